"""Domain models for the matching pipeline."""

from .models import (
    DIMENSIONS,
    Admission,
    CandidateForScoring,
    CandidateProfile,
    DimensionScore,
    EducationEntry,
    Job,
    JobForScoring,
    JobStatus,
    LanguageSkill,
    Match,
    MatchingStatus,
    ProfileStatus,
    Recommendation,
    RequirementStatus,
    RequirementTag,
    ScoreResult,
    WorkHistoryEntry,
)

__all__ = [
    "DIMENSIONS",
    "Admission",
    "CandidateForScoring",
    "CandidateProfile",
    "DimensionScore",
    "EducationEntry",
    "Job",
    "JobForScoring",
    "JobStatus",
    "LanguageSkill",
    "Match",
    "MatchingStatus",
    "ProfileStatus",
    "Recommendation",
    "RequirementStatus",
    "RequirementTag",
    "ScoreResult",
    "WorkHistoryEntry",
]
