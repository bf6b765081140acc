"""Post-matching notifier.

After a run, tells the job owner how many new matches there are and tells
each matched candidate with an account that a job fits them, then marks
those matches notified so nobody hears about the same match twice.

The notifier is a best-effort boundary: ``notify_job`` never raises.
"""

import time
from typing import Callable, ContextManager, List, Optional, Sequence

from sqlalchemy.orm import Session

from talentmatch.config.models import EmailConfig, NotificationsConfig
from talentmatch.logging import get_logger
from talentmatch.logging.context import log_context
from talentmatch.persistence import (
    JobRepository,
    MatchRepository,
    ProfileRepository,
    get_session,
)

from .models import NotificationResult, OutgoingMessage, SMTPDeliveryError
from .payloads import build_candidate_context, build_owner_context
from .smtp_client import MessageTransport, parse_recipients
from .templates import CANDIDATE_MATCH, OWNER_SUMMARY, TemplateRenderer

logger = get_logger(__name__, component="notifier")

DEFAULT_MIN_SCORE = 25
MAX_RETRY_DELAY_SECONDS = 60.0


class MatchNotifier:
    """Sends owner and candidate notifications for a job's new matches.

    Database work happens in two short sessions (read, then mark) and no
    session is held open while messages are being delivered.
    """

    def __init__(
        self,
        transport: MessageTransport,
        settings: Optional[NotificationsConfig] = None,
        email_config: Optional[EmailConfig] = None,
        min_score: int = DEFAULT_MIN_SCORE,
        renderer: Optional[TemplateRenderer] = None,
        session_scope: Callable[[], ContextManager[Session]] = get_session,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.transport = transport
        self.settings = settings or NotificationsConfig()
        self.email_config = email_config or EmailConfig()
        self.min_score = min_score
        self.renderer = renderer or TemplateRenderer()
        self.session_scope = session_scope
        self.sleep = sleep

    def notify_job(self, job_id: str) -> NotificationResult:
        """Notify about every unnotified match of ``job_id`` above the floor.

        Any failure is logged and reported through the result's ``failed``
        status. Matches whose message went out are still marked; the rest
        stay unnotified so a later run retries them.
        """
        with log_context(job_id=job_id):
            try:
                return self._notify(job_id)
            except Exception as e:
                logger.error(
                    f"Notification failed for job {job_id} (non-fatal): {e}",
                    exc_info=True,
                    extra={"event": "notification.failed", "error_type": type(e).__name__},
                )
                return NotificationResult(job_id=job_id, status="failed", error=str(e))

    def _notify(self, job_id: str) -> NotificationResult:
        if not self.settings.enabled:
            logger.info(
                "Notifications disabled, skipping",
                extra={"event": "notification.skip", "reason": "disabled"},
            )
            return NotificationResult(job_id=job_id, status="skipped")

        with self.session_scope() as session:
            job = JobRepository(session).get(job_id)
            if job is None:
                logger.warning(
                    f"Job {job_id} not found, nothing to notify",
                    extra={"event": "notification.skip", "reason": "job_not_found"},
                )
                return NotificationResult(job_id=job_id, status="skipped")

            matches = MatchRepository(session).list_unnotified(job_id, min_score=self.min_score)
            if not matches:
                logger.info(
                    "No unnotified matches above the score floor",
                    extra={
                        "event": "notification.skip",
                        "reason": "no_matches",
                        "min_score": self.min_score,
                    },
                )
                return NotificationResult(job_id=job_id, status="skipped")

            profiles = ProfileRepository(session)
            addresses = {m.profile_id: profiles.get_account_email(m.profile_id) for m in matches}

        result = NotificationResult(job_id=job_id, status="sent", match_count=len(matches))

        if job.owner_email:
            rendered = self.renderer.render(
                OWNER_SUMMARY, build_owner_context(job, matches, self.settings)
            )
            owner_message = OutgoingMessage(to=parse_recipients(job.owner_email), **rendered)
            self._deliver([owner_message], batch=False)
            result.owner_notified = True
            logger.info(
                f"Owner summary sent for {len(matches)} match(es)",
                extra={
                    "event": "notification.owner.sent",
                    "match_count": len(matches),
                    "top_score": matches[0].overall_score,
                },
            )
        else:
            logger.warning(
                "Job has no owner email, skipping owner summary",
                extra={"event": "notification.owner.skipped"},
            )

        handled_ids: List[int] = []
        candidate_messages = []
        for match in matches:
            message = self._candidate_message(job, match, addresses.get(match.profile_id))
            if message is None:
                result.candidates_skipped += 1
                handled_ids.append(match.id)
            else:
                candidate_messages.append((match.id, message))

        try:
            for start in range(0, len(candidate_messages), self.settings.batch_size):
                batch = candidate_messages[start:start + self.settings.batch_size]
                try:
                    self._deliver([message for _, message in batch], batch=True)
                except SMTPDeliveryError as e:
                    handled_ids.extend(match_id for match_id, _ in batch[:e.sent_count])
                    raise
                handled_ids.extend(match_id for match_id, _ in batch)
                result.candidates_notified += len(batch)
        finally:
            # Delivered messages are marked even when a later batch fails
            with self.session_scope() as session:
                result.marked_count = MatchRepository(session).mark_notified(handled_ids)

        logger.info(
            f"Notified {result.candidates_notified} candidate(s) for job {job_id}",
            extra={
                "event": "notification.send.success",
                "match_count": result.match_count,
                "candidates_notified": result.candidates_notified,
                "candidates_skipped": result.candidates_skipped,
                "marked_count": result.marked_count,
            },
        )
        return result

    def _candidate_message(self, job, match, address: Optional[str]) -> Optional[OutgoingMessage]:
        if not address:
            return None

        try:
            recipients = parse_recipients(address)
        except ValueError as e:
            logger.warning(
                f"Skipping candidate with unusable address: {e}",
                extra={"event": "notification.candidate.skipped", "profile_id": match.profile_id},
            )
            return None

        rendered = self.renderer.render(
            CANDIDATE_MATCH, build_candidate_context(job, match, self.settings)
        )
        return OutgoingMessage(to=recipients, **rendered)

    def _deliver(self, messages: Sequence[OutgoingMessage], batch: bool) -> None:
        """Send with exponential backoff, resuming after already-sent messages.

        Raises:
            SMTPDeliveryError: When every attempt has failed; ``sent_count``
                counts the messages delivered across all attempts
        """
        pending: List[OutgoingMessage] = list(messages)
        max_attempts = self.email_config.max_retries + 1

        for attempt in range(1, max_attempts + 1):
            if attempt > 1:
                delay = min(
                    self.email_config.retry_initial_delay
                    * self.email_config.retry_backoff_multiplier ** (attempt - 2),
                    MAX_RETRY_DELAY_SECONDS,
                )
                logger.warning(
                    f"Retrying delivery (attempt {attempt}/{max_attempts}) after {delay:.1f}s",
                    extra={"event": "notification.send.attempt", "attempt": attempt},
                )
                self.sleep(delay)

            try:
                if batch:
                    self.transport.send_batch(pending)
                else:
                    self.transport.send_one(pending[0])
                return
            except SMTPDeliveryError as e:
                pending = pending[e.sent_count:]
                if not pending:
                    return
                if attempt == max_attempts:
                    logger.error(
                        f"Delivery failed after {max_attempts} attempts: {e}",
                        extra={
                            "event": "notification.send.failure",
                            "attempt": attempt,
                            "retry_remaining": False,
                        },
                    )
                    raise SMTPDeliveryError(
                        str(e), sent_count=len(messages) - len(pending)
                    ) from e
                logger.warning(
                    f"Delivery failed (attempt {attempt}/{max_attempts}): {e}",
                    extra={
                        "event": "notification.send.failure",
                        "attempt": attempt,
                        "retry_remaining": True,
                    },
                )
