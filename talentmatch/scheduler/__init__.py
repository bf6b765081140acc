"""Periodic execution of the matching sweep."""

from .service import SchedulerService

__all__ = ["SchedulerService"]
