"""Template context builders for notification messages."""

from typing import Dict, Sequence

from talentmatch.config.models import NotificationsConfig
from talentmatch.domain.models import Job, Match


def build_owner_context(
    job: Job, matches: Sequence[Match], settings: NotificationsConfig
) -> Dict:
    """Context for the owner summary: count, top score and a link to the job.

    ``matches`` must be ordered best score first.
    """
    return {
        "app_name": settings.app_name,
        "job_id": job.id,
        "job_title": job.title,
        "match_count": len(matches),
        "top_score": matches[0].overall_score if matches else 0,
        "matches_url": f"{settings.app_url}/employer/jobs/{job.id}",
    }


def build_candidate_context(job: Job, match: Match, settings: NotificationsConfig) -> Dict:
    """Context for one candidate message. Carries the tier, not the score."""
    return {
        "app_name": settings.app_name,
        "job_title": job.title,
        "recommendation": match.recommendation.value,
        "profile_url": f"{settings.app_url}/candidate",
    }
