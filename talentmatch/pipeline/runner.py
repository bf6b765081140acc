"""Matching orchestration: one job against the candidate pool, and sweeps over the queue."""

import threading
import time
from typing import Callable, ContextManager, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from talentmatch.domain.models import (
    CandidateForScoring,
    Job,
    JobForScoring,
    Match,
    MatchingStatus,
)
from talentmatch.logging import get_logger
from talentmatch.logging.context import log_context
from talentmatch.matching.eligibility import EligibilityCriteria, EligibilityFilter
from talentmatch.matching.scoring import ScoreProvider
from talentmatch.notifications.service import MatchNotifier
from talentmatch.persistence import (
    JobRepository,
    MatchRepository,
    ProfileRepository,
    get_session,
)
from talentmatch.utils.timestamps import utc_now

from .exceptions import CandidateNotFoundError, JobNotFoundError
from .models import MatchRunResult, SweepResult

logger = get_logger(__name__, component="orchestrator")

_CACHED = "cached"
_SCORED = "scored"


class MatchingOrchestrator:
    """
    Runs the matching pipeline for a job.

    A run moves the job to RUNNING, shortlists candidates, reuses fresh
    matches, scores the rest one by one and ends in COMPLETED or FAILED.
    A failing candidate is recorded and skipped; only a run where every
    shortlisted candidate failed is FAILED. The notifier is invoked once
    after the final status is stored.

    Every unit of work uses its own short session; none are nested and none
    stay open across a Score Provider call.
    """

    def __init__(
        self,
        score_provider: ScoreProvider,
        notifier: Optional[MatchNotifier] = None,
        session_scope: Callable[[], ContextManager[Session]] = get_session,
        clock=utc_now,
    ):
        """
        Args:
            score_provider: Judges one job against one anonymized candidate
            notifier: Called once per run after the status is stored
            session_scope: Factory for transactional sessions
            clock: Source of "now" for timestamps and experience dates
        """
        self.score_provider = score_provider
        self.notifier = notifier
        self.session_scope = session_scope
        self.clock = clock
        self._sweep_lock = threading.Lock()

    def run_for_job(self, job_id: str) -> MatchRunResult:
        """
        Match every eligible candidate against ``job_id``.

        Returns:
            MatchRunResult with the match count, per-candidate errors and
            run statistics

        Raises:
            JobNotFoundError: If the job doesn't exist (nothing is changed)
            Exception: Anything that escapes the run itself, after the job
                has been marked FAILED
        """
        run_id = uuid4().hex

        with log_context(run_id=run_id, job_id=job_id):
            with self.session_scope() as session:
                job = JobRepository(session, clock=self.clock).get(job_id)

            if job is None:
                logger.warning(
                    f"Job {job_id} not found, matching not started",
                    extra={"event": "matching.run.job_not_found"},
                )
                raise JobNotFoundError(job_id)

            try:
                return self._run(job, run_id)
            except Exception as e:
                logger.error(
                    f"Matching run aborted for job {job_id}: {e}",
                    exc_info=True,
                    extra={"event": "matching.run.aborted", "error_type": type(e).__name__},
                )
                self._force_failed(job_id)
                raise

    def _run(self, job: Job, run_id: str) -> MatchRunResult:
        started = time.monotonic()
        run_started = self.clock()

        with self.session_scope() as session:
            JobRepository(session, clock=self.clock).set_matching_status(
                job.id, MatchingStatus.RUNNING
            )

        logger.info(
            f"Matching run started for job {job.id}",
            extra={"event": "matching.run.started", "job_title": job.title},
        )

        with self.session_scope() as session:
            shortlist = EligibilityFilter(ProfileRepository(session)).shortlist(
                EligibilityCriteria.from_job(job)
            )

        job_payload = JobForScoring.from_job(job)
        errors: List[str] = []
        cached_count = 0
        scored_count = 0

        for profile_id in shortlist:
            with log_context(profile_id=profile_id):
                try:
                    outcome = self._match_candidate(job, job_payload, profile_id)
                except CandidateNotFoundError as e:
                    errors.append(str(e))
                    logger.warning(
                        str(e), extra={"event": "matching.candidate.missing"}
                    )
                    continue
                except Exception as e:
                    errors.append(f"Profile {profile_id}: {e}")
                    logger.warning(
                        f"Scoring failed for profile {profile_id}: {e}",
                        extra={
                            "event": "matching.candidate.failed",
                            "error_type": type(e).__name__,
                        },
                    )
                    continue

            if outcome == _CACHED:
                cached_count += 1
            else:
                scored_count += 1

        match_count = cached_count + scored_count
        if shortlist and match_count == 0:
            status = MatchingStatus.FAILED
        else:
            status = MatchingStatus.COMPLETED

        with self.session_scope() as session:
            jobs = JobRepository(session, clock=self.clock)
            current = jobs.get(job.id)
            stale = current is not None and current.updated_at != job.updated_at
            discarded = 0
            if stale:
                # Scores from this run were judged against the pre-edit job
                discarded = MatchRepository(session, clock=self.clock).delete_scored_since(
                    job.id, run_started
                )
                match_count = max(match_count - discarded, 0)
                status = MatchingStatus.PENDING
            jobs.set_matching_status(job.id, status)

        result = MatchRunResult(
            job_id=job.id,
            run_id=run_id,
            status=status,
            match_count=match_count,
            errors=errors,
            shortlist_size=len(shortlist),
            cached_count=cached_count,
            scored_count=scored_count,
            stale=stale,
        )

        if stale:
            logger.warning(
                f"Job {job.id} was edited during the run; results discarded and job requeued",
                extra={"event": "matching.run.stale", "discarded_count": discarded},
            )
        else:
            result.notification = self._notify(job.id)
        result.duration_seconds = time.monotonic() - started

        logger.info(
            f"Matching run {status.value} for job {job.id}: "
            f"{match_count}/{len(shortlist)} matched, {len(errors)} error(s)",
            extra={
                "event": "matching.run.completed",
                "status": status.value,
                "shortlist_size": result.shortlist_size,
                "match_count": match_count,
                "cached_count": cached_count,
                "scored_count": scored_count,
                "error_count": len(errors),
                "duration_ms": int(result.duration_seconds * 1000),
            },
        )
        return result

    def _match_candidate(self, job: Job, job_payload: JobForScoring, profile_id: str) -> str:
        """Reuse a fresh match or score and store a new one."""
        with self.session_scope() as session:
            existing = MatchRepository(session, clock=self.clock).get(job.id, profile_id)
            if existing is not None and existing.is_fresh_for(job):
                logger.debug(
                    "Reusing fresh match",
                    extra={"event": "matching.candidate.cached", "overall_score": existing.overall_score},
                )
                return _CACHED

            candidate: Optional[CandidateForScoring] = ProfileRepository(
                session
            ).get_for_scoring(profile_id, today=self.clock().date())

        if candidate is None:
            raise CandidateNotFoundError(profile_id)

        score = self.score_provider.score(job_payload, candidate)

        with self.session_scope() as session:
            stored = MatchRepository(session, clock=self.clock).upsert(
                Match.from_score(job.id, profile_id, score)
            )

        logger.info(
            f"Scored profile {profile_id}: {stored.overall_score} ({stored.recommendation.value})",
            extra={
                "event": "matching.candidate.scored",
                "overall_score": stored.overall_score,
                "recommendation": stored.recommendation.value,
            },
        )
        return _SCORED

    def _notify(self, job_id: str):
        if self.notifier is None:
            return None

        try:
            return self.notifier.notify_job(job_id)
        except Exception as e:
            logger.error(
                f"Notifier raised for job {job_id} (ignored): {e}",
                exc_info=True,
                extra={"event": "notification.failed", "error_type": type(e).__name__},
            )
            return None

    def _force_failed(self, job_id: str) -> None:
        try:
            with self.session_scope() as session:
                JobRepository(session, clock=self.clock).set_matching_status(
                    job_id, MatchingStatus.FAILED
                )
        except Exception as e:
            logger.error(
                f"Could not record failed status for job {job_id}: {e}",
                exc_info=True,
                extra={"event": "matching.run.status_write_failed"},
            )

    def run_sweep(self) -> SweepResult:
        """
        Run matching for every open job that is PENDING or FAILED, oldest first.

        A job whose run raises is recorded in ``failures`` and the sweep moves
        on. If a previous sweep is still running in this process, the call
        returns immediately with ``skipped=True``.
        """
        sweep_id = uuid4().hex
        started_at = utc_now()

        if not self._sweep_lock.acquire(blocking=False):
            with log_context(sweep_id=sweep_id):
                logger.warning(
                    "Sweep skipped: previous sweep still in progress",
                    extra={"event": "matching.sweep.skipped", "reason": "lock_held"},
                )
            return SweepResult(
                sweep_id=sweep_id, started_at=started_at, finished_at=utc_now(), skipped=True
            )

        try:
            with log_context(sweep_id=sweep_id):
                with self.session_scope() as session:
                    jobs = JobRepository(session, clock=self.clock).list_for_matching()

                logger.info(
                    f"Sweep started: {len(jobs)} job(s) queued",
                    extra={"event": "matching.sweep.started", "job_count": len(jobs)},
                )

                result = SweepResult(sweep_id=sweep_id, started_at=started_at, finished_at=started_at)
                for job in jobs:
                    try:
                        result.job_results[job.id] = self.run_for_job(job.id)
                    except Exception as e:
                        result.failures[job.id] = str(e)
                        logger.error(
                            f"Matching failed for job {job.id}: {e}",
                            extra={
                                "event": "matching.sweep.job_failed",
                                "job_id": job.id,
                                "error_type": type(e).__name__,
                            },
                        )

                result.finished_at = utc_now()
                logger.info(
                    "Sweep completed",
                    extra={
                        "event": "matching.sweep.completed",
                        "jobs_attempted": result.jobs_attempted,
                        "jobs_completed": result.jobs_completed,
                        "jobs_failed": result.jobs_failed,
                        "duration_ms": int(result.duration_seconds * 1000),
                    },
                )
                return result
        finally:
            self._sweep_lock.release()
