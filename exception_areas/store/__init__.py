"""Persistence package: transaction guard, ownership lookups, invalidation and the store."""

from .database import create_db_engine, create_session_factory, transaction
from .exception_store import ExceptionAreaStore
from .invalidation import DatabaseResultsInvalidator, ResultsInvalidator
from .ownership import require_owner, resolve_area_ownership, resolve_case_ownership

__all__ = [
    "ExceptionAreaStore",
    "DatabaseResultsInvalidator",
    "ResultsInvalidator",
    "create_db_engine",
    "create_session_factory",
    "transaction",
    "require_owner",
    "resolve_area_ownership",
    "resolve_case_ownership",
]
