#!/usr/bin/env python3
"""
Exception Areas - Store

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Transactional create/update/delete of exception areas and the
bulk replace used by shapefile import.

Every mutation:
1. Resolves the flat ownership tuple and checks the acting principal
2. Validates new geometry before anything is written
3. Invalidates downstream case outputs inside the same transaction
4. Stamps Case.last_modified
5. Commits through the transaction guard (rollback + re-raise on any error)

Bulk replace is two-phase: the deletion of all existing areas is
committed before the replacement set is inserted. A failure during the
insert phase leaves the case with zero exception areas.

Navigation Guide:
- ExceptionAreaStore.create / update / delete: single-area mutations
- ExceptionAreaStore.replace_all_for_case: bulk import path
"""

import logging
from contextlib import nullcontext
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, ContextManager, Iterable, List, Mapping, Optional

import filelock
from sqlalchemy import delete
from sqlalchemy.orm import Session, sessionmaker
from shapely.geometry.base import BaseGeometry

from exception_areas.errors import Conflict, InvalidGeometry, ShapefileImportError
from exception_areas.geometry.geometry_utils import (
    coerce_geometry,
    deduplicate_geometries,
)
from exception_areas.geometry.validator import GeometryValidator
from exception_areas.models.data_models import ExceptionArea, OwnershipRecord
from exception_areas.models.orm import Case, ExceptionAreaRow
from exception_areas.store.database import transaction
from exception_areas.store.invalidation import (
    DatabaseResultsInvalidator,
    ResultsInvalidator,
)
from exception_areas.store.ownership import (
    require_owner,
    resolve_area_ownership,
    resolve_case_ownership,
)

logger = logging.getLogger(__name__)

# Patch keys that address identity fields (snake_case and client camelCase)
ID_KEYS = ("id",)
CASE_ID_KEYS = ("case_id", "caseId")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _identity_changed(value: Any, current: int) -> bool:
    try:
        return int(value) != current
    except (TypeError, ValueError):
        return True


class ExceptionAreaStore:
    """
    Consistency layer for exception area mutations.

    One store instance acts on behalf of one principal (the authenticated
    user of the current request).
    """

    def __init__(
        self,
        session_factory: "sessionmaker[Session]",
        principal: Optional[str],
        invalidator: Optional[ResultsInvalidator] = None,
        validator: Optional[GeometryValidator] = None,
        clock: Callable[[], datetime] = _utcnow,
        lock_dir: Optional[Path] = None,
        lock_timeout_s: float = 600.0,
    ) -> None:
        self.session_factory = session_factory
        self.principal = principal
        self.invalidator = invalidator or DatabaseResultsInvalidator()
        self.validator = validator or GeometryValidator()
        self.clock = clock
        self.lock_dir = Path(lock_dir) if lock_dir is not None else None
        self.lock_timeout_s = lock_timeout_s

    # ------------------------------------------------------------------ #
    #  Helpers
    # ------------------------------------------------------------------ #

    def _touch_case(self, session: Session, case_id: int) -> None:
        case = session.get(Case, case_id)
        case.last_modified = self.clock()

    def _invalidate(self, session: Session, case_id: int) -> None:
        self.invalidator.invalidate(session, case_id, hard=False)

    def _case_lock(self, case_id: int) -> ContextManager:
        """Cross-process lock serializing bulk imports of one case."""
        if self.lock_dir is None:
            return nullcontext()
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock_file = self.lock_dir / f"case_{case_id}.lock"
        return filelock.FileLock(str(lock_file), timeout=self.lock_timeout_s)

    def authorize_case(
        self, case_id: int, project_id: Optional[int] = None
    ) -> OwnershipRecord:
        """
        Check the principal owns the case without mutating anything.

        Raises:
            NotFound: unknown case
            Forbidden: principal does not own the project
        """
        with self.session_factory() as session:
            record = resolve_case_ownership(session, case_id, project_id)
        require_owner(record, self.principal)
        return record

    # ------------------------------------------------------------------ #
    #  Single-area mutations
    # ------------------------------------------------------------------ #

    def create(
        self,
        case_id: int,
        geometry: Any,
        project_id: Optional[int] = None,
    ) -> ExceptionArea:
        """
        Insert one exception area.

        Raises:
            NotFound: unknown case
            Forbidden: principal does not own the project
            InvalidGeometry: geometry missing or invalid
        """
        geometry = coerce_geometry(geometry)

        with self.session_factory() as session:
            with transaction(session):
                record = resolve_case_ownership(session, case_id, project_id, lock=True)
                require_owner(record, self.principal)
                self.validator.require_valid(geometry)

                self._invalidate(session, case_id)

                row = ExceptionAreaRow(case_id=case_id)
                row.geometry = geometry
                session.add(row)
                self._touch_case(session, case_id)
                session.flush()

                created = ExceptionArea.from_geometry(row.id, case_id, geometry)

        logger.info(f"✅ Created exception area {created.id} in case {case_id}")
        return created

    def update(
        self,
        area_id: int,
        case_id: int,
        patch: Mapping[str, Any],
        project_id: Optional[int] = None,
    ) -> None:
        """
        Apply a patch to one exception area. Only geometry may change.

        Raises:
            NotFound: no such area in the case
            Forbidden: principal does not own the project
            Conflict: patch changes id or case id
            InvalidGeometry: new geometry missing or invalid
        """
        if not isinstance(patch, Mapping):
            raise InvalidGeometry("exception area patch must be a mapping")

        with self.session_factory() as session:
            with transaction(session):
                record = resolve_area_ownership(
                    session, area_id, case_id, project_id, lock=True
                )
                require_owner(record, self.principal)

                row = session.get(ExceptionAreaRow, area_id)

                for key in ID_KEYS:
                    if key in patch and _identity_changed(patch[key], row.id):
                        raise Conflict("Exception area id cannot be changed")
                for key in CASE_ID_KEYS:
                    if key in patch and _identity_changed(patch[key], row.case_id):
                        raise Conflict("Exception area case cannot be changed")

                if "geometry" in patch:
                    geometry = coerce_geometry(patch["geometry"])
                    if geometry is None or not geometry.equals_exact(
                        row.geometry, 0.0
                    ):
                        self.validator.require_valid(geometry)
                        self._invalidate(session, case_id)
                        row.geometry = geometry
                        logger.info(
                            f"Geometry of exception area {area_id} in case {case_id} replaced"
                        )

                self._touch_case(session, case_id)

        logger.info(f"✅ Updated exception area {area_id} in case {case_id}")

    def delete(
        self,
        area_id: int,
        case_id: int,
        project_id: Optional[int] = None,
    ) -> ExceptionArea:
        """
        Remove one exception area and return its last known state.

        Raises:
            NotFound: no such area in the case
            Forbidden: principal does not own the project
        """
        with self.session_factory() as session:
            with transaction(session):
                record = resolve_area_ownership(
                    session, area_id, case_id, project_id, lock=True
                )
                require_owner(record, self.principal)

                row = session.get(ExceptionAreaRow, area_id)
                removed = ExceptionArea.from_geometry(row.id, row.case_id, row.geometry)

                self._invalidate(session, case_id)
                session.delete(row)
                self._touch_case(session, case_id)

        logger.info(f"✅ Deleted exception area {area_id} from case {case_id}")
        return removed

    # ------------------------------------------------------------------ #
    #  Bulk replace (shapefile import)
    # ------------------------------------------------------------------ #

    def replace_all_for_case(
        self,
        case_id: int,
        geometries: Iterable[Any],
        project_id: Optional[int] = None,
    ) -> List[ExceptionArea]:
        """
        Replace every exception area of a case.

        Phase 1 commits the invalidation, the case stamp and the deletion of
        all existing areas. Phase 2 inserts the deduplicated replacement set.

        Ownership is checked before the batch is inspected and again under
        the row lock in phase 1.

        Returns:
            The inserted areas.

        Raises:
            NotFound / Forbidden: ownership check failed (nothing is touched)
            ShapefileImportError: no geometries given (nothing is touched)
            InvalidGeometry: a geometry is invalid (nothing is touched)
        """
        self.authorize_case(case_id, project_id)

        batch: List[BaseGeometry] = [coerce_geometry(g) for g in geometries]
        if not batch:
            raise ShapefileImportError("No valid geometries have been found.")
        for geometry in batch:
            self.validator.require_valid(geometry)

        with self._case_lock(case_id):
            with self.session_factory() as session:
                # Phase 1: purge
                with transaction(session):
                    record = resolve_case_ownership(
                        session, case_id, project_id, lock=True
                    )
                    require_owner(record, self.principal)

                    self._touch_case(session, case_id)
                    self._invalidate(session, case_id)
                    removed = session.execute(
                        delete(ExceptionAreaRow).where(
                            ExceptionAreaRow.case_id == case_id
                        )
                    ).rowcount

                logger.info(f"Removed {removed} exception areas from case {case_id}")

                unique = deduplicate_geometries(batch)

                # Phase 2: insert
                with transaction(session):
                    rows = []
                    for geometry in unique:
                        row = ExceptionAreaRow(case_id=case_id)
                        row.geometry = geometry
                        rows.append(row)
                    session.add_all(rows)
                    session.flush()

                    inserted = [
                        ExceptionArea.from_geometry(row.id, case_id, geometry)
                        for row, geometry in zip(rows, unique)
                    ]

        logger.info(
            f"✅ Replaced exception areas of case {case_id}: {len(inserted)} inserted "
            f"({len(batch) - len(unique)} duplicates dropped)"
        )
        return inserted
