"""Persistence layer: engine/session management, ORM schema and repositories.

Public API:
    - init_database(database_url) / close_database() / get_engine()
    - get_session() -> ContextManager[Session]
    - JobRepository: job reader and writer
    - ProfileRepository: candidate reader (and producer-side writer)
    - MatchRepository: the Match Store
    - PersistenceError and subclasses

Example:
    >>> init_database("sqlite:///./data/talentmatch.db")
    >>> with get_session() as session:
    ...     job = JobRepository(session).get("job-1")
"""

from .database import close_database, get_engine, get_session, init_database
from .exceptions import (
    DatabaseConnectionError,
    DataIntegrityError,
    PersistenceError,
    RecordNotFoundError,
    SubscoreSchemaError,
)
from .repositories import (
    EDITABLE_FIELDS,
    REQUIREMENT_FIELDS,
    JobRepository,
    MatchRepository,
    ProfileRepository,
)

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "JobRepository",
    "ProfileRepository",
    "MatchRepository",
    "EDITABLE_FIELDS",
    "REQUIREMENT_FIELDS",
    "PersistenceError",
    "DatabaseConnectionError",
    "RecordNotFoundError",
    "DataIntegrityError",
    "SubscoreSchemaError",
]
