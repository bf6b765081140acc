"""Database schema definition and ORM models.

Defines the SQLAlchemy tables for jobs, candidate profiles (with one child
table per requirement category) and matches, plus conversions between ORM
rows and domain models.
"""

from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from talentmatch.domain.models import (
    Admission,
    CandidateProfile,
    EducationEntry,
    Job,
    LanguageSkill,
    Match,
    RequirementTag,
    WorkHistoryEntry,
)
from talentmatch.logging import get_logger
from talentmatch.utils.timestamps import format_timestamp, parse_timestamp

from .subscores import decode_dimensions, encode_dimensions

logger = get_logger(__name__, component="database")

Base = declarative_base()


class JobModel(Base):
    """ORM model for the jobs table.

    Requirement lists are stored as JSON arrays; only profile-side categories
    are queried relationally.
    """

    __tablename__ = "jobs"

    id = Column(String(64), primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft")
    matching_status = Column(String(20), nullable=False, default="pending")

    required_specializations = Column(JSON, nullable=False, default=list)
    preferred_specializations = Column(JSON, nullable=False, default=list)
    required_admissions = Column(JSON, nullable=False, default=list)
    required_technical_domains = Column(JSON, nullable=False, default=list)
    minimum_experience = Column(Integer, nullable=True)
    preferred_location = Column(String(255), nullable=True)
    owner_email = Column(String(320), nullable=True)

    # Timestamps (fixed-width ISO 8601 strings)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)
    matched_at = Column(String(50), nullable=True)

    __table_args__ = (
        Index("idx_jobs_matching_queue", "status", "matching_status", "created_at"),
    )

    def to_domain(self) -> Job:
        return Job(
            id=self.id,
            title=self.title,
            description=self.description,
            status=self.status,
            matching_status=self.matching_status,
            required_specializations=self.required_specializations or [],
            preferred_specializations=self.preferred_specializations or [],
            required_admissions=self.required_admissions or [],
            required_technical_domains=self.required_technical_domains or [],
            minimum_experience=self.minimum_experience,
            preferred_location=self.preferred_location,
            owner_email=self.owner_email,
            created_at=parse_timestamp(self.created_at),
            updated_at=parse_timestamp(self.updated_at),
            matched_at=parse_timestamp(self.matched_at),
        )

    @classmethod
    def from_domain(cls, job: Job) -> "JobModel":
        return cls(
            id=job.id,
            title=job.title,
            description=job.description,
            status=job.status.value,
            matching_status=job.matching_status.value,
            required_specializations=list(job.required_specializations),
            preferred_specializations=list(job.preferred_specializations),
            required_admissions=list(job.required_admissions),
            required_technical_domains=list(job.required_technical_domains),
            minimum_experience=job.minimum_experience,
            preferred_location=job.preferred_location,
            owner_email=job.owner_email,
            created_at=format_timestamp(job.created_at),
            updated_at=format_timestamp(job.updated_at),
            matched_at=format_timestamp(job.matched_at),
        )


class ProfileModel(Base):
    """ORM model for the profiles table.

    Category entries live in child tables so eligibility can be answered
    with indexed EXISTS subqueries.
    """

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    status = Column(String(20), nullable=False, default="pending_review")
    account_email = Column(String(320), nullable=True)

    specializations = relationship(
        "ProfileSpecializationModel", cascade="all, delete-orphan", lazy="selectin"
    )
    admissions = relationship(
        "ProfileAdmissionModel", cascade="all, delete-orphan", lazy="selectin"
    )
    technical_domains = relationship(
        "ProfileTechnicalDomainModel", cascade="all, delete-orphan", lazy="selectin"
    )
    education = relationship(
        "ProfileEducationModel",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProfileEducationModel.position",
    )
    work_history = relationship(
        "ProfileWorkHistoryModel",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProfileWorkHistoryModel.position",
    )
    languages = relationship(
        "ProfileLanguageModel", cascade="all, delete-orphan", lazy="selectin"
    )

    __table_args__ = (Index("idx_profiles_status", "status"),)

    def to_domain(self) -> CandidateProfile:
        return CandidateProfile(
            id=self.id,
            status=self.status,
            specializations=sorted(row.name for row in self.specializations),
            admissions=[
                Admission(jurisdiction=row.jurisdiction, year=row.year, standing=row.standing)
                for row in sorted(self.admissions, key=lambda row: row.jurisdiction)
            ],
            technical_domains=sorted(row.name for row in self.technical_domains),
            education=[
                EducationEntry(institution=row.institution, degree=row.degree, field=row.field)
                for row in self.education
            ],
            work_history=[
                WorkHistoryEntry(start_date=row.start_date, end_date=row.end_date)
                for row in self.work_history
            ],
            languages=[
                LanguageSkill(language=row.language, proficiency=row.proficiency)
                for row in sorted(self.languages, key=lambda row: row.language)
            ],
            account_email=self.account_email,
        )

    @classmethod
    def from_domain(cls, profile: CandidateProfile) -> "ProfileModel":
        return cls(
            id=profile.id,
            status=profile.status.value,
            account_email=profile.account_email,
            **cls.children_from_domain(profile),
        )

    @staticmethod
    def children_from_domain(profile: CandidateProfile) -> dict:
        """Fresh child rows for every category collection of ``profile``."""
        return dict(
            specializations=[
                ProfileSpecializationModel(name=name) for name in profile.specializations
            ],
            admissions=[
                ProfileAdmissionModel(
                    jurisdiction=admission.jurisdiction,
                    year=admission.year,
                    standing=admission.standing,
                )
                for admission in _unique_admissions(profile.admissions)
            ],
            technical_domains=[
                ProfileTechnicalDomainModel(name=name) for name in profile.technical_domains
            ],
            education=[
                ProfileEducationModel(
                    position=i,
                    institution=entry.institution,
                    degree=entry.degree,
                    field=entry.field,
                )
                for i, entry in enumerate(profile.education)
            ],
            work_history=[
                ProfileWorkHistoryModel(
                    position=i, start_date=entry.start_date, end_date=entry.end_date
                )
                for i, entry in enumerate(profile.work_history)
            ],
            languages=[
                ProfileLanguageModel(language=skill.language, proficiency=skill.proficiency)
                for skill in _unique_languages(profile.languages)
            ],
        )


class ProfileSpecializationModel(Base):
    __tablename__ = "profile_specializations"

    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    name = Column(String(255), primary_key=True)

    __table_args__ = (Index("idx_profile_specializations_name", "name"),)


class ProfileAdmissionModel(Base):
    __tablename__ = "profile_admissions"

    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    jurisdiction = Column(String(255), primary_key=True)
    year = Column(String(10), nullable=True)
    standing = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_profile_admissions_jurisdiction", "jurisdiction"),)


class ProfileTechnicalDomainModel(Base):
    __tablename__ = "profile_technical_domains"

    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    name = Column(String(255), primary_key=True)

    __table_args__ = (Index("idx_profile_technical_domains_name", "name"),)


class ProfileEducationModel(Base):
    __tablename__ = "profile_education"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    position = Column(Integer, nullable=False, default=0)
    institution = Column(String(255), nullable=False)
    degree = Column(String(255), nullable=False)
    field = Column(String(255), nullable=False)


class ProfileWorkHistoryModel(Base):
    """Work-history spans. Employer names are never stored here."""

    __tablename__ = "profile_work_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    position = Column(Integer, nullable=False, default=0)
    start_date = Column(String(20), nullable=True)
    end_date = Column(String(20), nullable=True)


class ProfileLanguageModel(Base):
    __tablename__ = "profile_languages"

    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    language = Column(String(100), primary_key=True)
    proficiency = Column(String(50), nullable=True)


class MatchModel(Base):
    """ORM model for the matches table.

    At most one row per (job_id, profile_id), enforced by
    ``uq_matches_job_profile`` and relied upon by the upsert.
    """

    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(64), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)
    profile_id = Column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )

    overall_score = Column(Integer, nullable=False)
    dimensions = Column(JSON, nullable=False)
    requirement_tags = Column(JSON, nullable=False, default=list)
    strengths = Column(JSON, nullable=False, default=list)
    gaps = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=False, default="")
    recommendation = Column(String(32), nullable=False)

    scored_at = Column(String(50), nullable=False)
    notified_at = Column(String(50), nullable=True)

    __table_args__ = (
        UniqueConstraint("job_id", "profile_id", name="uq_matches_job_profile"),
        Index("idx_matches_job_score", "job_id", "overall_score"),
        Index("idx_matches_notified", "job_id", "notified_at"),
    )

    def to_domain(self) -> Match:
        return Match(
            id=self.id,
            job_id=self.job_id,
            profile_id=self.profile_id,
            overall_score=self.overall_score,
            dimensions=decode_dimensions(self.dimensions),
            requirement_tags=[
                RequirementTag.model_validate(tag) for tag in self.requirement_tags or []
            ],
            strengths=list(self.strengths or []),
            gaps=list(self.gaps or []),
            summary=self.summary or "",
            recommendation=self.recommendation,
            scored_at=parse_timestamp(self.scored_at),
            notified_at=parse_timestamp(self.notified_at),
        )

    @staticmethod
    def scoring_values(match: Match) -> dict:
        """Column values for every scoring field of ``match``.

        Excludes the key and the timestamps, which the store manages.
        """
        return {
            "overall_score": match.overall_score,
            "dimensions": encode_dimensions(match.dimensions),
            "requirement_tags": [tag.model_dump(mode="json") for tag in match.requirement_tags],
            "strengths": list(match.strengths),
            "gaps": list(match.gaps),
            "summary": match.summary,
            "recommendation": match.recommendation.value,
        }


def _unique_admissions(admissions):
    seen = set()
    for admission in admissions:
        if admission.jurisdiction not in seen:
            seen.add(admission.jurisdiction)
            yield admission


def _unique_languages(languages):
    seen = set()
    for skill in languages:
        if skill.language not in seen:
            seen.add(skill.language)
            yield skill


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    Base.metadata.create_all(engine, checkfirst=True)

    tables = inspect(engine).get_table_names()
    logger.info(
        f"Database schema ready. Tables: {', '.join(tables)}",
        extra={"event": "database.schema_ready", "table_count": len(tables)},
    )
