"""Exceptions raised at the Score Provider boundary."""


class ScoringError(Exception):
    """Base exception for Score Provider failures.

    The orchestrator records any of these against the candidate being scored
    and moves on to the next one.
    """


class ScoringHTTPError(ScoringError):
    """The scoring endpoint answered with an HTTP error or could not be reached."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    @property
    def is_retryable(self) -> bool:
        """5xx responses and connection failures (status 0) may succeed later."""
        return self.status_code == 0 or self.status_code >= 500


class ScoringTimeoutError(ScoringError):
    """The scoring request did not complete within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class ScoringResponseError(ScoringError):
    """The response was not JSON or did not match the score schema."""


class ScoringConfigurationError(ScoringError):
    """The provider was constructed with invalid settings."""
