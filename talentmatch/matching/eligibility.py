"""Eligibility Filter: a cheap set-intersection pre-screen before scoring."""

from dataclasses import dataclass
from typing import List, Protocol, Sequence, Tuple

from talentmatch.domain.models import Job
from talentmatch.logging import get_logger

logger = get_logger(__name__, component="eligibility")


class CandidateReader(Protocol):
    def list_active_ids(self) -> List[str]: ...

    def find_eligible_ids(
        self,
        required_specializations: Sequence[str] = (),
        required_admissions: Sequence[str] = (),
        required_technical_domains: Sequence[str] = (),
    ) -> List[str]: ...


@dataclass(frozen=True)
class EligibilityCriteria:
    """The three hard-requirement categories of a job.

    Minimum experience and location are deliberately not part of the
    pre-screen; the Score Provider weighs them.
    """

    required_specializations: Tuple[str, ...] = ()
    required_admissions: Tuple[str, ...] = ()
    required_technical_domains: Tuple[str, ...] = ()

    @classmethod
    def from_job(cls, job: Job) -> "EligibilityCriteria":
        return cls(
            required_specializations=tuple(job.required_specializations),
            required_admissions=tuple(job.required_admissions),
            required_technical_domains=tuple(job.required_technical_domains),
        )

    @property
    def is_empty(self) -> bool:
        return not (
            self.required_specializations
            or self.required_admissions
            or self.required_technical_domains
        )


class EligibilityFilter:
    """Select the ACTIVE profiles worth scoring for a job.

    A profile passes when, for every non-empty category, it holds at least
    one of the listed names. Empty categories constrain nothing; a job with
    no requirements at all shortlists every active profile.
    """

    def __init__(self, candidates: CandidateReader):
        self.candidates = candidates

    def shortlist(self, criteria: EligibilityCriteria) -> List[str]:
        """Ids of eligible profiles in ascending order. Never writes."""
        if criteria.is_empty:
            profile_ids = self.candidates.list_active_ids()
        else:
            profile_ids = self.candidates.find_eligible_ids(
                required_specializations=criteria.required_specializations,
                required_admissions=criteria.required_admissions,
                required_technical_domains=criteria.required_technical_domains,
            )

        logger.info(
            f"Shortlisted {len(profile_ids)} candidate(s)",
            extra={
                "event": "matching.filter.completed",
                "shortlist_size": len(profile_ids),
                "unconstrained": criteria.is_empty,
            },
        )
        return profile_ids
