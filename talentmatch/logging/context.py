"""Context propagation for structured logging.

Fields such as ``run_id``, ``job_id`` and ``profile_id`` are pushed onto a
contextvar when a matching run or a candidate iteration begins and are picked
up by ``ContextualFilter`` for every record emitted inside that scope.
"""

from contextvars import ContextVar, Token
from typing import Any, Dict, Optional


LogContextVar: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the active logging context."""
    return LogContextVar.get().copy()


def push_log_context(**kwargs) -> Token:
    """Merge ``kwargs`` into the active context.

    Returns:
        Token to hand back to ``pop_log_context`` to restore the prior state

    Example:
        >>> token = push_log_context(run_id="abc123", job_id="job-42")
        >>> pop_log_context(token)
    """
    current = LogContextVar.get()
    return LogContextVar.set({**current, **kwargs})


def pop_log_context(token: Token) -> None:
    """Restore the context captured by ``push_log_context``."""
    LogContextVar.reset(token)


def clear_log_context() -> None:
    """Drop every context field. Mostly useful in tests."""
    LogContextVar.set({})


class log_context:
    """Context manager that scopes logging fields to a ``with`` block.

    Example:
        >>> with log_context(run_id="abc123", job_id="job-42"):
        ...     logger.info("Scoring candidates")  # carries run_id and job_id
    """

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.token: Optional[Token] = None

    def __enter__(self):
        self.token = push_log_context(**self.kwargs)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token is not None:
            pop_log_context(self.token)
        return False
