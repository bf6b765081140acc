"""Structured logging helpers shared by every talentmatch component."""

import logging
from typing import Optional


class ComponentLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that stamps a ``component`` field onto every record.

    Fields passed through ``extra`` at the call site win over the adapter's
    defaults, so a call can still override ``component`` when it needs to.
    """

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        kwargs["extra"] = {**self.extra, **extra}
        return msg, kwargs


def get_logger(name: str, component: Optional[str] = None):
    """Return a logger for ``name``, optionally bound to a component label.

    Args:
        name: Logger name (typically ``__name__``)
        component: Component label injected into all records
            (e.g. ``"orchestrator"``, ``"notifier"``, ``"match_store"``)

    Returns:
        Plain ``logging.Logger`` or a ``ComponentLoggerAdapter``

    Example:
        >>> logger = get_logger(__name__, component="orchestrator")
        >>> logger.info("Run started", extra={"event": "matching.run.started"})
    """
    logger = logging.getLogger(name)

    if component:
        return ComponentLoggerAdapter(logger, {"component": component})

    return logger
