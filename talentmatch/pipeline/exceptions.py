"""Exceptions raised by the matching pipeline."""


class MatchingError(Exception):
    """Base exception for matching pipeline errors."""


class JobNotFoundError(MatchingError):
    """The job to match does not exist. Raised before any state change."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class CandidateNotFoundError(MatchingError):
    """A shortlisted profile disappeared before it could be scored."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(f"Profile {profile_id} not found")
        self.profile_id = profile_id
