"""
Ownership chain lookups.

Resolves area -> case -> project -> owner with one explicit join and returns a
flat OwnershipRecord, so authorization never depends on lazy relationship
loading. When lock=True the case row is selected FOR UPDATE, serializing
concurrent mutations of the same case on backends that support row locks.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from exception_areas.errors import Forbidden, NotFound
from exception_areas.models.data_models import OwnershipRecord
from exception_areas.models.orm import Case, ExceptionAreaRow, Project


def resolve_case_ownership(
    session: Session,
    case_id: int,
    project_id: Optional[int] = None,
    lock: bool = False,
) -> OwnershipRecord:
    """
    Ownership of a case.

    Raises:
        NotFound: no such case (within the project, when given)
    """
    stmt = (
        select(Case.id, Project.id, Project.owner_id)
        .join(Project, Case.project_id == Project.id)
        .where(Case.id == case_id)
    )
    if project_id is not None:
        stmt = stmt.where(Project.id == project_id)
    if lock:
        stmt = stmt.with_for_update(of=Case)

    row = session.execute(stmt).first()
    if row is None:
        raise NotFound(f"Case {case_id} not found")
    return OwnershipRecord(case_id=row[0], project_id=row[1], owner_id=row[2])


def resolve_area_ownership(
    session: Session,
    area_id: int,
    case_id: int,
    project_id: Optional[int] = None,
    lock: bool = False,
) -> OwnershipRecord:
    """
    Ownership of an exception area scoped by its case (and project).

    Raises:
        NotFound: no such area in the case
    """
    stmt = (
        select(ExceptionAreaRow.id, Case.id, Project.id, Project.owner_id)
        .join(Case, ExceptionAreaRow.case_id == Case.id)
        .join(Project, Case.project_id == Project.id)
        .where(ExceptionAreaRow.id == area_id, Case.id == case_id)
    )
    if project_id is not None:
        stmt = stmt.where(Project.id == project_id)
    if lock:
        stmt = stmt.with_for_update(of=Case)

    row = session.execute(stmt).first()
    if row is None:
        raise NotFound(f"Exception area {area_id} not found in case {case_id}")
    return OwnershipRecord(
        area_id=row[0], case_id=row[1], project_id=row[2], owner_id=row[3]
    )


def require_owner(record: OwnershipRecord, principal: Optional[str]) -> None:
    """
    Raises:
        Forbidden: principal does not own the project
    """
    if not record.is_owned_by(principal):
        raise Forbidden(
            f"Project {record.project_id} is not owned by the current user"
        )
