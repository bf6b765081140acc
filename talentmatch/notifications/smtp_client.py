"""Messaging transport: the protocol the notifier needs and its SMTP implementation."""

import smtplib
import ssl
from contextlib import contextmanager
from email.message import EmailMessage
from typing import Callable, Iterator, List, Optional, Protocol, Sequence

from email_validator import EmailNotValidError, validate_email

from talentmatch.config.environment import EnvironmentConfig
from talentmatch.logging import get_logger

from .models import OutgoingMessage, SMTPDeliveryError

logger = get_logger(__name__, component="smtp")


class MessageTransport(Protocol):
    """Anything that can deliver rendered messages."""

    def send_one(self, message: OutgoingMessage) -> None: ...

    def send_batch(self, messages: Sequence[OutgoingMessage]) -> None: ...


class SMTPClient:
    """SMTP transport with TLS/SSL negotiation and authentication.

    Port 465 uses implicit TLS; any other port uses plain SMTP upgraded with
    STARTTLS when ``use_tls`` is set. A batch shares one connection.
    """

    def __init__(
        self,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
    ):
        """
        Args:
            env_config: SMTP host, port, credentials and sender identity
            use_tls: Upgrade plain connections with STARTTLS
            smtp_factory: Factory for SMTP instances (for mocking)
            smtp_ssl_factory: Factory for SMTP_SSL instances (for mocking)
        """
        self.env_config = env_config
        self.use_tls = use_tls
        self.sender = build_sender_address(env_config)
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL

    def send_one(self, message: OutgoingMessage) -> None:
        """Deliver a single message.

        Raises:
            SMTPDeliveryError: If delivery fails
        """
        self.send_batch([message])

    def send_batch(self, messages: Sequence[OutgoingMessage]) -> None:
        """Deliver messages over one connection, in order.

        Raises:
            SMTPDeliveryError: If delivery fails; ``sent_count`` tells how
                many messages went out first
        """
        if not messages:
            return

        sent = 0
        try:
            with self._connect() as smtp:
                for message in messages:
                    smtp.send_message(build_email(message, self.sender))
                    sent += 1
        except (smtplib.SMTPException, OSError) as e:
            error_msg = f"SMTP error during message delivery: {e}"
            logger.error(
                error_msg,
                extra={
                    "event": "smtp.delivery.failed",
                    "error_type": type(e).__name__,
                    "sent_count": sent,
                    "batch_size": len(messages),
                },
            )
            raise SMTPDeliveryError(error_msg, sent_count=sent) from e

        logger.debug(
            f"Delivered {sent} message(s)",
            extra={"event": "smtp.delivery.succeeded", "sent_count": sent},
        )

    @contextmanager
    def _connect(self) -> Iterator[smtplib.SMTP]:
        host, port = self.env_config.smtp_host, self.env_config.smtp_port

        if port == 465:
            smtp = self.smtp_ssl_factory(host, port, context=ssl.create_default_context())
        else:
            smtp = self.smtp_factory(host, port)

        try:
            if port != 465 and self.use_tls:
                smtp.starttls(context=ssl.create_default_context())

            if self.env_config.smtp_user and self.env_config.smtp_pass:
                smtp.login(self.env_config.smtp_user, self.env_config.smtp_pass)

            yield smtp
        finally:
            try:
                smtp.quit()
            except (smtplib.SMTPException, OSError) as e:
                logger.warning(
                    f"Error closing SMTP connection: {e}",
                    extra={"event": "smtp.close_failed"},
                )


def build_email(message: OutgoingMessage, sender: str) -> EmailMessage:
    """Multipart text + HTML EmailMessage for ``message``."""
    email = EmailMessage()
    email["Subject"] = message.subject
    email["From"] = sender
    email["To"] = ", ".join(message.to)
    email.set_content(message.text_body)
    email.add_alternative(message.html_body, subtype="html")
    return email


def parse_recipients(recipient_string: str) -> List[str]:
    """Parse and validate comma-separated email addresses.

    Raises:
        ValueError: If any address is invalid or none are given
    """
    recipients = []
    for email in (part.strip() for part in recipient_string.split(",")):
        if not email:
            continue
        try:
            recipients.append(validate_email(email, check_deliverability=False).normalized)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: '{email}' - {e}") from e

    if not recipients:
        raise ValueError("No valid email addresses found")

    return recipients


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """'From' header value, e.g. ``TalentMatch <matches@example.com>``."""
    return f"{env_config.smtp_sender_name} <{env_config.email_from}>"
