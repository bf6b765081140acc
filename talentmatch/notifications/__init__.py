"""Match notifications: rendering, SMTP transport and the notifier itself."""

from .models import (
    NotificationError,
    NotificationResult,
    NotificationTemplateError,
    OutgoingMessage,
    SMTPDeliveryError,
)
from .service import MatchNotifier
from .smtp_client import (
    MessageTransport,
    SMTPClient,
    build_sender_address,
    parse_recipients,
)
from .templates import TemplateRenderer

__all__ = [
    "MatchNotifier",
    "NotificationResult",
    "OutgoingMessage",
    "MessageTransport",
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
    "TemplateRenderer",
    "SMTPClient",
    "build_sender_address",
    "parse_recipients",
]
