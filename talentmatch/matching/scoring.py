"""Score Provider boundary and the HTTP implementation.

The orchestrator only depends on the ``ScoreProvider`` protocol. The shipped
``HttpScoreProvider`` POSTs the anonymized job and candidate to a scoring
service and validates the JSON it gets back.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

import requests
from pydantic import ValidationError

from talentmatch.domain.models import CandidateForScoring, JobForScoring, ScoreResult
from talentmatch.logging import get_logger

from .exceptions import (
    ScoringConfigurationError,
    ScoringHTTPError,
    ScoringResponseError,
    ScoringTimeoutError,
)

logger = get_logger(__name__, component="scoring")


@runtime_checkable
class ScoreProvider(Protocol):
    """Anything that can judge one job against one anonymized candidate."""

    def score(self, job: JobForScoring, candidate: CandidateForScoring) -> ScoreResult:
        """Return the structured score, or raise on failure."""
        ...


class HttpScoreProvider:
    """Score Provider backed by a JSON-over-HTTP scoring service.

    Request body::

        {"job": {...JobForScoring...}, "candidate": {...CandidateForScoring...}}

    The response body must validate as a ``ScoreResult``.

    Attributes:
        endpoint_url: URL that receives the POST
        timeout: Per-request timeout in seconds
        user_agent: User-Agent header for requests
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: int = 60,
        user_agent: str = "TalentMatch/1.0",
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Raises:
            ScoringConfigurationError: If the URL is blank, the timeout is
                outside 5-300 seconds or the user agent is empty
        """
        if not endpoint_url or not endpoint_url.strip():
            raise ScoringConfigurationError("endpoint_url cannot be empty")
        if not 5 <= timeout <= 300:
            raise ScoringConfigurationError(
                f"Timeout must be between 5 and 300 seconds, got: {timeout}"
            )
        if not user_agent or not user_agent.strip():
            raise ScoringConfigurationError("user_agent cannot be empty")

        self.endpoint_url = endpoint_url.strip()
        self.timeout = timeout
        self.user_agent = user_agent.strip()

        self._session = session or requests.Session()
        self._session.headers.update(
            {"User-Agent": self.user_agent, "Accept": "application/json"}
        )
        if api_key:
            self._session.headers["Authorization"] = f"Bearer {api_key}"

    @classmethod
    def from_config(cls, scoring_config, api_key: Optional[str] = None) -> "HttpScoreProvider":
        """Build a provider from the ``scoring`` section of AppConfig."""
        return cls(
            endpoint_url=scoring_config.endpoint_url,
            timeout=scoring_config.timeout_seconds,
            user_agent=scoring_config.user_agent,
            api_key=api_key,
        )

    def score(self, job: JobForScoring, candidate: CandidateForScoring) -> ScoreResult:
        """POST one pair to the scoring service.

        Raises:
            ScoringHTTPError: On HTTP status >= 400 or connection failure
            ScoringTimeoutError: On request timeout
            ScoringResponseError: On non-JSON or schema-invalid responses
        """
        payload = {
            "job": job.model_dump(mode="json"),
            "candidate": candidate.model_dump(mode="json"),
        }
        url = self.endpoint_url

        try:
            response = self._session.post(url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Scoring request timed out after {self.timeout} seconds",
                extra={"event": "scoring.request.timeout", "url": url, "timeout": self.timeout},
            )
            raise ScoringTimeoutError(
                f"Scoring request timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Scoring request failed: {e}",
                extra={
                    "event": "scoring.request.error",
                    "error_type": type(e).__name__,
                    "url": url,
                },
            )
            raise ScoringHTTPError(
                f"Scoring request failed: {e}", status_code=0, url=url
            ) from e

        if response.status_code >= 400:
            is_retryable = response.status_code >= 500
            logger.log(
                logging.WARNING if is_retryable else logging.ERROR,
                f"HTTP {response.status_code} error from scoring service",
                extra={
                    "event": "scoring.request.retryable_error" if is_retryable else "scoring.request.error",
                    "status_code": response.status_code,
                    "url": url,
                },
            )
            raise ScoringHTTPError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                url=url,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ScoringResponseError(f"Scoring response is not valid JSON: {e}") from e

        try:
            result = ScoreResult.model_validate(data)
        except ValidationError as e:
            raise ScoringResponseError(
                f"Scoring response failed validation: {e.error_count()} error(s)"
            ) from e

        logger.debug(
            "Scoring request succeeded",
            extra={
                "event": "scoring.request.succeeded",
                "overall_score": result.overall_score,
                "recommendation": result.recommendation.value,
            },
        )
        return result

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._session.close()
