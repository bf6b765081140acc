"""Data access layer (repositories) for persistence operations.

Repositories wrap a caller-owned session, translate SQLAlchemy failures into
persistence exceptions and return domain models rather than ORM rows.
"""

from datetime import date, datetime
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from talentmatch.domain.models import (
    CandidateForScoring,
    CandidateProfile,
    Job,
    JobStatus,
    Match,
    MatchingStatus,
    ProfileStatus,
)
from talentmatch.logging import get_logger
from talentmatch.matching.experience import compute_experience_years
from talentmatch.utils.timestamps import format_timestamp, utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    JobModel,
    MatchModel,
    ProfileAdmissionModel,
    ProfileModel,
    ProfileSpecializationModel,
    ProfileTechnicalDomainModel,
)

logger = get_logger(__name__, component="persistence")

Clock = Callable[[], Any]

# Fields whose change invalidates every match for the job
REQUIREMENT_FIELDS = frozenset({
    "required_specializations",
    "preferred_specializations",
    "required_admissions",
    "required_technical_domains",
    "minimum_experience",
    "preferred_location",
})

EDITABLE_FIELDS = REQUIREMENT_FIELDS | {"title", "description", "status", "owner_email"}

_SET_FIELDS = frozenset({
    "required_specializations",
    "preferred_specializations",
    "required_admissions",
    "required_technical_domains",
})


class JobRepository:
    """Job reader and writer used by the matching pipeline."""

    def __init__(self, session: Session, clock: Clock = utc_now):
        self.session = session
        self.clock = clock

    def get(self, job_id: str) -> Optional[Job]:
        """Retrieve a job by id, or None.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            job_model = self.session.get(JobModel, job_id, populate_existing=True)
            return job_model.to_domain() if job_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve job: {e}") from e

    def add(self, job: Job) -> Job:
        """Insert a new job.

        Raises:
            DataIntegrityError: If a job with the same id exists
            PersistenceError: If database error occurs
        """
        try:
            job_model = JobModel.from_domain(job)
            self.session.add(job_model)
            self.session.flush()
            return job_model.to_domain()
        except IntegrityError as e:
            logger.error(f"Integrity error inserting job {job.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to insert job due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error inserting job {job.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to insert job: {e}") from e

    def set_matching_status(self, job_id: str, status: MatchingStatus) -> None:
        """Record the outcome of a matching run.

        ``matched_at`` is set only on COMPLETED. ``updated_at`` is left alone so
        a status change never invalidates cached matches.

        Raises:
            RecordNotFoundError: If the job doesn't exist
            PersistenceError: If database error occurs
        """
        values = {"matching_status": MatchingStatus(status).value}
        if status == MatchingStatus.COMPLETED:
            values["matched_at"] = format_timestamp(self.clock())

        try:
            result = self.session.execute(
                update(JobModel).where(JobModel.id == job_id).values(**values)
            )
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating matching status for job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update matching status: {e}") from e

        if result.rowcount == 0:
            raise RecordNotFoundError(f"Job {job_id} not found")

    def record_edit(self, job_id: str, changes: Mapping[str, Any]) -> bool:
        """Apply an edit to a job.

        Only fields whose value actually differs are written, and
        ``updated_at`` moves only when at least one does. When any requirement-bearing field actually changes value, the job's
        matching status is reset to PENDING. List fields compare as sets.

        Returns:
            True if requirements changed

        Raises:
            ValueError: If ``changes`` names a field that isn't editable, or a
                value fails validation
            RecordNotFoundError: If the job doesn't exist
            PersistenceError: If database error occurs
        """
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields are not editable: {', '.join(unknown)}")

        try:
            job_model = self.session.get(JobModel, job_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading job {job_id} for edit: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load job: {e}") from e

        if job_model is None:
            raise RecordNotFoundError(f"Job {job_id} not found")

        current = job_model.to_domain()
        edited = Job.model_validate({**current.model_dump(), **changes})

        changed_fields = [
            field
            for field in changes
            if _differs(field, getattr(current, field), getattr(edited, field))
        ]
        if not changed_fields:
            return False

        requirements_changed = bool(REQUIREMENT_FIELDS.intersection(changed_fields))

        edited_row = JobModel.from_domain(edited)
        for field in changed_fields:
            setattr(job_model, field, getattr(edited_row, field))
        job_model.updated_at = format_timestamp(self.clock())
        if requirements_changed:
            job_model.matching_status = MatchingStatus.PENDING.value

        try:
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error saving edit for job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save job edit: {e}") from e

        return requirements_changed

    def list_for_matching(self) -> List[Job]:
        """Open jobs whose matching status is PENDING or FAILED, oldest first.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(JobModel)
                .where(
                    JobModel.status == JobStatus.OPEN.value,
                    JobModel.matching_status.in_(
                        [MatchingStatus.PENDING.value, MatchingStatus.FAILED.value]
                    ),
                )
                .order_by(JobModel.created_at.asc(), JobModel.id.asc())
            )
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error listing jobs for matching: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list jobs for matching: {e}") from e


def _differs(field: str, old: Any, new: Any) -> bool:
    if field in _SET_FIELDS:
        return set(old) != set(new)
    return old != new


class ProfileRepository:
    """Candidate reader, plus the writer used by the profile producer."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, profile_id: str) -> Optional[CandidateProfile]:
        try:
            profile_model = self.session.get(ProfileModel, profile_id)
            return profile_model.to_domain() if profile_model else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving profile {profile_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve profile: {e}") from e

    def save(self, profile: CandidateProfile) -> CandidateProfile:
        """Insert a profile or replace an existing one with the same id.

        Raises:
            DataIntegrityError: On constraint violation
            PersistenceError: If database error occurs
        """
        try:
            existing = self.session.get(ProfileModel, profile.id)
            if existing is None:
                profile_model = ProfileModel.from_domain(profile)
                self.session.add(profile_model)
                self.session.flush()
                return profile_model.to_domain()

            existing.status = profile.status.value
            existing.account_email = profile.account_email
            children = ProfileModel.children_from_domain(profile)
            # Orphans must be deleted before rows with the same keys are inserted
            for name in children:
                setattr(existing, name, [])
            self.session.flush()
            for name, rows in children.items():
                setattr(existing, name, rows)
            self.session.flush()
            return existing.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error saving profile {profile.id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to save profile due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving profile {profile.id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save profile: {e}") from e

    def list_active_ids(self) -> List[str]:
        """Ids of every ACTIVE profile, ascending."""
        try:
            stmt = (
                select(ProfileModel.id)
                .where(ProfileModel.status == ProfileStatus.ACTIVE.value)
                .order_by(ProfileModel.id.asc())
            )
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing active profiles: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list active profiles: {e}") from e

    def find_eligible_ids(
        self,
        required_specializations: Sequence[str] = (),
        required_admissions: Sequence[str] = (),
        required_technical_domains: Sequence[str] = (),
    ) -> List[str]:
        """Ids of ACTIVE profiles that intersect every non-empty category.

        Each non-empty category adds one EXISTS subquery over its child
        table; empty categories add nothing. Ids are returned ascending.

        Raises:
            PersistenceError: If database error occurs
        """
        stmt = select(ProfileModel.id).where(ProfileModel.status == ProfileStatus.ACTIVE.value)

        categories = (
            (ProfileSpecializationModel, ProfileSpecializationModel.name, required_specializations),
            (ProfileAdmissionModel, ProfileAdmissionModel.jurisdiction, required_admissions),
            (ProfileTechnicalDomainModel, ProfileTechnicalDomainModel.name, required_technical_domains),
        )
        for child, column, names in categories:
            if names:
                stmt = stmt.where(
                    select(child.profile_id)
                    .where(child.profile_id == ProfileModel.id, column.in_(list(names)))
                    .exists()
                )

        try:
            return list(self.session.execute(stmt.order_by(ProfileModel.id.asc())).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error filtering eligible profiles: {e}", exc_info=True)
            raise PersistenceError(f"Failed to filter eligible profiles: {e}") from e

    def get_for_scoring(
        self, profile_id: str, today: Optional[date] = None
    ) -> Optional[CandidateForScoring]:
        """Anonymized scoring payload for a profile, or None if it's gone.

        Contact details and employer names are never included.
        """
        profile = self.get(profile_id)
        if profile is None:
            return None

        return CandidateForScoring(
            specializations=profile.specializations,
            experience_years=compute_experience_years(profile.work_history, today=today),
            education=profile.education,
            admissions=profile.admissions,
            technical_domains=profile.technical_domains,
            languages=profile.languages,
        )

    def get_account_email(self, profile_id: str) -> Optional[str]:
        """Contact address of the account linked to a profile, if any."""
        try:
            stmt = select(ProfileModel.account_email).where(ProfileModel.id == profile_id)
            return self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving account email for {profile_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve account email: {e}") from e


class MatchRepository:
    """Match Store: keyed (job, profile) results with atomic upsert."""

    def __init__(self, session: Session, clock: Clock = utc_now):
        self.session = session
        self.clock = clock

    def get(self, job_id: str, profile_id: str) -> Optional[Match]:
        try:
            stmt = (
                select(MatchModel)
                .where(MatchModel.job_id == job_id, MatchModel.profile_id == profile_id)
                .execution_options(populate_existing=True)
            )
            match_model = self.session.execute(stmt).scalar_one_or_none()
            return match_model.to_domain() if match_model else None
        except SQLAlchemyError as e:
            logger.error(
                f"Error retrieving match {job_id}/{profile_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to retrieve match: {e}") from e

    def upsert(self, match: Match) -> Match:
        """Insert or overwrite the match for ``(job_id, profile_id)``.

        A single INSERT ... ON CONFLICT DO UPDATE: concurrent writers for the
        same pair never create a second row and never surface a unique
        violation; the last writer wins. ``scored_at`` is set to now and
        ``notified_at`` is cleared on every write.

        Raises:
            DataIntegrityError: If the job or profile doesn't exist
            PersistenceError: If database error occurs
        """
        scored_at = format_timestamp(self.clock())
        values = {**MatchModel.scoring_values(match), "scored_at": scored_at, "notified_at": None}

        try:
            insert = _dialect_insert(self.session)
            stmt = (
                insert(MatchModel)
                .values(job_id=match.job_id, profile_id=match.profile_id, **values)
                .on_conflict_do_update(index_elements=["job_id", "profile_id"], set_=values)
            )
            self.session.execute(stmt)
            self.session.flush()
        except IntegrityError as e:
            logger.error(
                f"Integrity error upserting match {match.job_id}/{match.profile_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(f"Failed to upsert match due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(
                f"Error upserting match {match.job_id}/{match.profile_id}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to upsert match: {e}") from e

        return self.get(match.job_id, match.profile_id)

    def list_for_job(self, job_id: str) -> List[Match]:
        """All matches for a job, best score first."""
        stmt = (
            select(MatchModel)
            .where(MatchModel.job_id == job_id)
            .order_by(MatchModel.overall_score.desc(), MatchModel.profile_id.asc())
        )
        return self._list(stmt, "list matches")

    def list_unnotified(self, job_id: str, min_score: Optional[int] = None) -> List[Match]:
        """Matches not yet notified, optionally at or above ``min_score``."""
        stmt = select(MatchModel).where(
            MatchModel.job_id == job_id, MatchModel.notified_at.is_(None)
        )
        if min_score is not None:
            stmt = stmt.where(MatchModel.overall_score >= min_score)
        stmt = stmt.order_by(MatchModel.overall_score.desc(), MatchModel.profile_id.asc())
        return self._list(stmt, "list unnotified matches")

    def mark_notified(self, match_ids: Iterable[int]) -> int:
        """Stamp ``notified_at`` on matches that don't have it yet.

        Returns:
            Number of matches newly marked (0 for empty input)
        """
        ids = list(match_ids)
        if not ids:
            return 0

        try:
            result = self.session.execute(
                update(MatchModel)
                .where(MatchModel.id.in_(ids), MatchModel.notified_at.is_(None))
                .values(notified_at=format_timestamp(self.clock()))
                .execution_options(synchronize_session=False)
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error marking matches notified: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark matches notified: {e}") from e

    def delete_all_for_job(self, job_id: str) -> int:
        """Delete every match for a job and return how many were removed."""
        try:
            result = self.session.execute(
                delete(MatchModel)
                .where(MatchModel.job_id == job_id)
                .execution_options(synchronize_session=False)
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error deleting matches for job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete matches: {e}") from e

    def delete_scored_since(self, job_id: str, since: datetime) -> int:
        """Delete a job's matches scored at or after ``since``."""
        try:
            result = self.session.execute(
                delete(MatchModel)
                .where(
                    MatchModel.job_id == job_id,
                    MatchModel.scored_at >= format_timestamp(since),
                )
                .execution_options(synchronize_session=False)
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error discarding matches for job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to discard matches: {e}") from e

    def count_for_job(self, job_id: str) -> int:
        try:
            stmt = select(func.count()).select_from(MatchModel).where(MatchModel.job_id == job_id)
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting matches for job {job_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count matches: {e}") from e

    def _list(self, stmt, action: str) -> List[Match]:
        try:
            rows = self.session.execute(stmt.execution_options(populate_existing=True))
            return [row.to_domain() for row in rows.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to {action}: {e}") from e


def _dialect_insert(session: Session):
    """The ``insert`` construct that supports ON CONFLICT for the bound engine."""
    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert
    if dialect == "postgresql":
        return postgresql.insert
    raise PersistenceError(f"Match upsert is not supported on dialect '{dialect}'")
