"""Message types, results and exceptions for the notifier."""

from dataclasses import dataclass
from typing import List, Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""


class NotificationTemplateError(NotificationError):
    """Raised when template rendering fails due to configuration or missing variables."""


class SMTPDeliveryError(NotificationError):
    """Raised when SMTP delivery fails.

    ``sent_count`` is how many messages of the batch were accepted by the
    server before the failure, so a retry can resume after them.
    """

    def __init__(self, message: str, sent_count: int = 0):
        super().__init__(message)
        self.sent_count = sent_count


@dataclass(frozen=True)
class OutgoingMessage:
    """A rendered message ready for a transport."""

    to: List[str]
    subject: str
    text_body: str
    html_body: str


@dataclass
class NotificationResult:
    """Outcome of notifying about one job's new matches.

    Attributes:
        job_id: Job the notifications were about
        status: "sent", "skipped" (nothing to send) or "failed"
        match_count: Unnotified matches at or above the score floor
        owner_notified: Whether the owner summary went out
        candidates_notified: Candidate messages delivered
        candidates_skipped: Matches with no usable candidate address
        marked_count: Matches newly stamped as notified
        error: Error message when status is "failed"
    """

    job_id: str
    status: str
    match_count: int = 0
    owner_notified: bool = False
    candidates_notified: int = 0
    candidates_skipped: int = 0
    marked_count: int = 0
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == "sent"
