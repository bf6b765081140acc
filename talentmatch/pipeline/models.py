"""Data models for matching run and sweep reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from talentmatch.domain.models import MatchingStatus
from talentmatch.notifications.models import NotificationResult


@dataclass
class MatchRunResult:
    """
    Outcome of one matching run for one job.

    Attributes:
        job_id: Job that was matched
        run_id: Correlation id stamped on every log line of the run
        status: Final matching status (COMPLETED or FAILED)
        match_count: Candidates with a fresh match after the run
        errors: One ``"Profile <id>: <message>"`` entry per failed candidate
        shortlist_size: Candidates that passed the eligibility filter
        cached_count: Candidates whose existing match was reused
        scored_count: Candidates sent to the Score Provider successfully
        duration_seconds: Wall-clock duration of the run
        notification: What the notifier reported, if it ran
        stale: True when the job was edited mid-run; its fresh scores were
            discarded and the job went back to PENDING
    """

    job_id: str
    run_id: str
    status: MatchingStatus
    match_count: int = 0
    errors: List[str] = field(default_factory=list)
    shortlist_size: int = 0
    cached_count: int = 0
    scored_count: int = 0
    duration_seconds: float = 0.0
    notification: Optional[NotificationResult] = None
    stale: bool = False

    @property
    def had_errors(self) -> bool:
        return bool(self.errors)


@dataclass
class SweepResult:
    """
    Aggregate outcome of one scheduled sweep over the matching queue.

    Attributes:
        sweep_id: Correlation id for the sweep
        started_at: UTC time the sweep began
        finished_at: UTC time the sweep ended
        job_results: Run results keyed by job id
        failures: Error message keyed by job id, for runs that raised
        skipped: True when a previous sweep still held the lock
    """

    sweep_id: str
    started_at: datetime
    finished_at: datetime
    job_results: Dict[str, MatchRunResult] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)
    skipped: bool = False

    @property
    def jobs_attempted(self) -> int:
        return len(self.job_results) + len(self.failures)

    @property
    def jobs_completed(self) -> int:
        return sum(
            1 for r in self.job_results.values() if r.status == MatchingStatus.COMPLETED
        )

    @property
    def jobs_failed(self) -> int:
        return self.jobs_attempted - self.jobs_completed

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()
