"""Data models package: immutable read models and SQLAlchemy tables."""

from .data_models import (
    ExceptionArea,
    OwnershipRecord,
    StagedFile,
)

from .orm import (
    Base,
    Case,
    CaseOutput,
    CaseResult,
    ExceptionAreaRow,
    Project,
)

__all__ = [
    # Read models
    "ExceptionArea",
    "OwnershipRecord",
    "StagedFile",
    # ORM tables
    "Base",
    "Case",
    "CaseOutput",
    "CaseResult",
    "ExceptionAreaRow",
    "Project",
]
