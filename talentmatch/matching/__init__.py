"""Candidate selection and scoring: eligibility, experience and the Score Provider."""

from .eligibility import EligibilityCriteria, EligibilityFilter
from .exceptions import (
    ScoringConfigurationError,
    ScoringError,
    ScoringHTTPError,
    ScoringResponseError,
    ScoringTimeoutError,
)
from .experience import compute_experience_years, parse_year_month
from .scoring import HttpScoreProvider, ScoreProvider

__all__ = [
    "EligibilityCriteria",
    "EligibilityFilter",
    "compute_experience_years",
    "parse_year_month",
    "ScoreProvider",
    "HttpScoreProvider",
    "ScoringError",
    "ScoringHTTPError",
    "ScoringTimeoutError",
    "ScoringResponseError",
    "ScoringConfigurationError",
]
