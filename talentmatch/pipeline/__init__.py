"""Matching pipeline: per-job orchestration, sweeps and edit handling."""

from .edits import JobEditResult, apply_job_edit
from .exceptions import CandidateNotFoundError, JobNotFoundError, MatchingError
from .models import MatchRunResult, SweepResult
from .runner import MatchingOrchestrator

__all__ = [
    "MatchingOrchestrator",
    "MatchRunResult",
    "SweepResult",
    "apply_job_edit",
    "JobEditResult",
    "MatchingError",
    "JobNotFoundError",
    "CandidateNotFoundError",
]
