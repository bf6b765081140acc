"""Core domain models for jobs, candidate profiles and matches.

This module defines the data structures used throughout the matching pipeline:
- Job: a hiring requisition with its requirement sets and matching status
- CandidateProfile: an anonymized candidate as stored by the profile subsystem
- JobForScoring / CandidateForScoring: the PII-free payloads sent to the scorer
- ScoreResult: the structured judgment returned by a Score Provider
- Match: the persisted result of scoring one (job, profile) pair
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from talentmatch.utils.timestamps import ensure_utc


class JobStatus(str, Enum):
    """Lifecycle status of a job posting."""

    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    ARCHIVED = "archived"


class MatchingStatus(str, Enum):
    """Outcome of the most recent matching run for a job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ProfileStatus(str, Enum):
    """Review status of a candidate profile. Only ACTIVE profiles are matched."""

    PENDING_REVIEW = "pending_review"
    ACTIVE = "active"
    REJECTED = "rejected"


class RequirementStatus(str, Enum):
    """How well a candidate satisfies one hard requirement."""

    MET = "met"
    PARTIAL = "partial"
    UNMET = "unmet"
    UNKNOWN = "unknown"


class Recommendation(str, Enum):
    """Recommendation tier attached to every match."""

    STRONG = "Strong Match"
    GOOD = "Good Match"
    PARTIAL = "Partial Match"
    WEAK = "Weak Match"


# Sub-score dimensions produced by the current scoring schema
DIMENSIONS = (
    "specialization_match",
    "experience_fit",
    "technical_background",
    "credentials",
    "location_and_language",
    "leadership_and_bd",
)


def _clean_names(values: List[str]) -> List[str]:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    seen = set()
    cleaned = []
    for value in values:
        stripped = value.strip()
        if stripped and stripped not in seen:
            seen.add(stripped)
            cleaned.append(stripped)
    return cleaned


class Job(BaseModel):
    """A hiring requisition.

    ``matching_status`` is independent of the lifecycle ``status``. The
    ``updated_at`` timestamp is the freshness reference for cached matches:
    a match scored before the last edit is stale.
    """

    id: str = Field(..., min_length=1, description="Job identifier")
    title: str = Field(..., min_length=1, description="Job title")
    description: Optional[str] = Field(None, description="Free-text description")
    status: JobStatus = Field(JobStatus.DRAFT, description="Lifecycle status")
    matching_status: MatchingStatus = Field(
        MatchingStatus.PENDING, description="Latest matching run outcome"
    )
    required_specializations: List[str] = Field(default_factory=list)
    preferred_specializations: List[str] = Field(default_factory=list)
    required_admissions: List[str] = Field(default_factory=list)
    required_technical_domains: List[str] = Field(default_factory=list)
    minimum_experience: Optional[int] = Field(None, ge=0, description="Minimum years")
    preferred_location: Optional[str] = Field(None)
    owner_email: Optional[str] = Field(None, description="Recipient of match summaries")
    created_at: datetime = Field(..., description="Creation time (UTC)")
    updated_at: datetime = Field(..., description="Last edit time (UTC)")
    matched_at: Optional[datetime] = Field(None, description="Last successful run (UTC)")

    @field_validator(
        "required_specializations",
        "preferred_specializations",
        "required_admissions",
        "required_technical_domains",
    )
    @classmethod
    def normalize_names(cls, v: List[str]) -> List[str]:
        return _clean_names(v)

    @field_validator("created_at", "updated_at", "matched_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class Admission(BaseModel):
    """Jurisdictional admission (bar, patent office) held by a candidate."""

    jurisdiction: str = Field(..., min_length=1)
    year: Optional[str] = None
    standing: Optional[str] = None

    @field_validator("jurisdiction")
    @classmethod
    def strip_jurisdiction(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("jurisdiction cannot be blank")
        return stripped


class EducationEntry(BaseModel):
    """A degree held by a candidate."""

    institution: str
    degree: str
    field: str


class WorkHistoryEntry(BaseModel):
    """A work-history span. Employer names are deliberately absent."""

    start_date: Optional[str] = None
    end_date: Optional[str] = None


class LanguageSkill(BaseModel):
    """A spoken or written language and how well the candidate uses it."""

    language: str = Field(..., min_length=1)
    proficiency: Optional[str] = None

    @field_validator("language")
    @classmethod
    def strip_language(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("language cannot be blank")
        return stripped


class CandidateProfile(BaseModel):
    """Anonymized candidate as owned by the profile-management subsystem.

    ``account_email`` is only present when the profile is linked to a login
    and is read exclusively by the notifier.
    """

    id: str = Field(..., min_length=1)
    status: ProfileStatus = ProfileStatus.PENDING_REVIEW
    specializations: List[str] = Field(default_factory=list)
    admissions: List[Admission] = Field(default_factory=list)
    technical_domains: List[str] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    work_history: List[WorkHistoryEntry] = Field(default_factory=list)
    languages: List[LanguageSkill] = Field(default_factory=list)
    account_email: Optional[str] = None

    @field_validator("specializations", "technical_domains")
    @classmethod
    def normalize_names(cls, v: List[str]) -> List[str]:
        return _clean_names(v)


class JobForScoring(BaseModel):
    """Job payload handed to a Score Provider."""

    title: str
    description: Optional[str] = None
    required_specializations: List[str] = Field(default_factory=list)
    preferred_specializations: List[str] = Field(default_factory=list)
    minimum_experience: Optional[int] = None
    preferred_location: Optional[str] = None
    required_admissions: List[str] = Field(default_factory=list)
    required_technical_domains: List[str] = Field(default_factory=list)

    @classmethod
    def from_job(cls, job: Job) -> "JobForScoring":
        return cls(
            title=job.title,
            description=job.description,
            required_specializations=list(job.required_specializations),
            preferred_specializations=list(job.preferred_specializations),
            minimum_experience=job.minimum_experience,
            preferred_location=job.preferred_location,
            required_admissions=list(job.required_admissions),
            required_technical_domains=list(job.required_technical_domains),
        )


class CandidateForScoring(BaseModel):
    """Anonymized candidate payload handed to a Score Provider.

    Never carries a name, email, phone number or employer name.
    """

    specializations: List[str] = Field(default_factory=list)
    experience_years: int = Field(0, ge=0)
    education: List[EducationEntry] = Field(default_factory=list)
    admissions: List[Admission] = Field(default_factory=list)
    technical_domains: List[str] = Field(default_factory=list)
    languages: List[LanguageSkill] = Field(default_factory=list)


class DimensionScore(BaseModel):
    """One named sub-score with its explanation."""

    score: int = Field(..., ge=0, le=100)
    explanation: str = ""


class RequirementTag(BaseModel):
    """Satisfaction of one hard requirement, as judged by the scorer."""

    requirement: str = Field(..., min_length=1)
    status: RequirementStatus


class ScoreResult(BaseModel):
    """Structured judgment returned by a Score Provider for one pair."""

    overall_score: int = Field(..., ge=0, le=100)
    dimensions: Dict[str, DimensionScore] = Field(default_factory=dict)
    requirement_tags: List[RequirementTag] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    summary: str = ""
    recommendation: Recommendation

    @field_validator("dimensions")
    @classmethod
    def validate_dimension_names(
        cls, v: Dict[str, DimensionScore]
    ) -> Dict[str, DimensionScore]:
        unknown = sorted(set(v) - set(DIMENSIONS))
        if unknown:
            raise ValueError(f"Unknown score dimensions: {', '.join(unknown)}")
        return v


class Match(BaseModel):
    """Persisted result of scoring one (job, profile) pair.

    ``scored_at`` is assigned by the match store on every write and
    ``notified_at`` is cleared whenever the pair is rescored.
    """

    id: Optional[int] = None
    job_id: str
    profile_id: str
    overall_score: int = Field(..., ge=0, le=100)
    dimensions: Dict[str, DimensionScore] = Field(default_factory=dict)
    requirement_tags: List[RequirementTag] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    gaps: List[str] = Field(default_factory=list)
    summary: str = ""
    recommendation: Recommendation
    scored_at: Optional[datetime] = None
    notified_at: Optional[datetime] = None

    @field_validator("scored_at", "notified_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @classmethod
    def from_score(cls, job_id: str, profile_id: str, result: ScoreResult) -> "Match":
        """Build an unsaved match from a Score Provider result."""
        return cls(
            job_id=job_id,
            profile_id=profile_id,
            overall_score=result.overall_score,
            dimensions=dict(result.dimensions),
            requirement_tags=list(result.requirement_tags),
            strengths=list(result.strengths),
            gaps=list(result.gaps),
            summary=result.summary,
            recommendation=result.recommendation,
        )

    def is_fresh_for(self, job: Job) -> bool:
        """True when this match was scored after the job's last edit."""
        return self.scored_at is not None and self.scored_at > job.updated_at
