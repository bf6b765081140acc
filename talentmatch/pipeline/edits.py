"""Job edits as seen by the matching pipeline.

A requirement edit makes every existing match for the job meaningless, so
the matches are deleted in the same transaction that resets the job to
PENDING. Other edits only bump ``updated_at``, which makes cached matches
stale without deleting them.
"""

from dataclasses import dataclass
from typing import Any, Callable, ContextManager, Mapping

from sqlalchemy.orm import Session

from talentmatch.logging import get_logger
from talentmatch.persistence import JobRepository, MatchRepository, get_session
from talentmatch.utils.timestamps import utc_now

logger = get_logger(__name__, component="job_edits")


@dataclass(frozen=True)
class JobEditResult:
    job_id: str
    requirements_changed: bool
    matches_deleted: int = 0


def apply_job_edit(
    job_id: str,
    changes: Mapping[str, Any],
    session_scope: Callable[[], ContextManager[Session]] = get_session,
    clock=utc_now,
) -> JobEditResult:
    """Apply ``changes`` to a job and invalidate its matches as needed.

    Raises:
        ValueError: If a field is not editable or a value is invalid
        RecordNotFoundError: If the job doesn't exist
    """
    with session_scope() as session:
        requirements_changed = JobRepository(session, clock=clock).record_edit(job_id, changes)
        deleted = 0
        if requirements_changed:
            deleted = MatchRepository(session, clock=clock).delete_all_for_job(job_id)

    logger.info(
        f"Job {job_id} edited",
        extra={
            "event": "job.edited",
            "job_id": job_id,
            "fields": sorted(changes),
            "requirements_changed": requirements_changed,
            "matches_deleted": deleted,
        },
    )
    return JobEditResult(
        job_id=job_id, requirements_changed=requirements_changed, matches_deleted=deleted
    )
