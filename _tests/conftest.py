"""
Shared fixtures: in-memory SQLite database seeded with two projects owned by
different users, a recording invalidator and a few polygons.
"""

from datetime import datetime, timezone
from typing import List, Tuple

import pytest
from shapely.geometry import Polygon, box

from exception_areas.config_types import DatabaseConfig
from exception_areas.models.orm import (
    Case,
    CaseOutput,
    CaseResult,
    ExceptionAreaRow,
    Project,
)
from exception_areas.store.database import create_db_engine, create_session_factory
from exception_areas.store.exception_store import ExceptionAreaStore
from exception_areas.store.invalidation import DatabaseResultsInvalidator

OWNER = "alice"
OTHER_USER = "bob"

PROJECT_ID = 1
CASE_ID = 10
OTHER_PROJECT_ID = 2
OTHER_CASE_ID = 20

SEED_TIME = datetime(2024, 1, 1, 12, 0, 0)


# ============================================================================
# HELPERS
# ============================================================================


class RecordingInvalidator(DatabaseResultsInvalidator):
    """Database invalidator that also records each call."""

    def __init__(self) -> None:
        self.calls: List[Tuple[int, bool]] = []

    def invalidate(self, session, case_id, hard=False):
        self.calls.append((case_id, hard))
        super().invalidate(session, case_id, hard=hard)


def bowtie() -> Polygon:
    """Self-intersecting polygon."""
    return Polygon([(0, 0), (10, 10), (10, 0), (0, 10), (0, 0)])


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def session_factory():
    engine = create_db_engine(DatabaseConfig(url="sqlite://"))
    factory = create_session_factory(engine, create_schema=True)

    with factory() as session:
        session.add_all(
            [
                Project(id=PROJECT_ID, name="Polder", owner_id=OWNER),
                Project(id=OTHER_PROJECT_ID, name="Dunes", owner_id=OTHER_USER),
            ]
        )
        session.flush()
        session.add_all(
            [
                Case(id=CASE_ID, project_id=PROJECT_ID, name="Base", last_modified=SEED_TIME),
                Case(
                    id=OTHER_CASE_ID,
                    project_id=OTHER_PROJECT_ID,
                    name="Other",
                    last_modified=SEED_TIME,
                ),
            ]
        )
        session.flush()
        output = CaseOutput(case_id=CASE_ID, name="population", in_sync=True)
        session.add(output)
        session.flush()
        session.add(CaseResult(case_id=CASE_ID, output_id=output.id, payload="42"))
        session.commit()

    yield factory
    engine.dispose()


@pytest.fixture
def invalidator():
    return RecordingInvalidator()


@pytest.fixture
def clock():
    return lambda: datetime(2025, 6, 1, 8, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(session_factory, invalidator, clock):
    return ExceptionAreaStore(
        session_factory, principal=OWNER, invalidator=invalidator, clock=clock
    )


@pytest.fixture
def foreign_store(session_factory, invalidator, clock):
    """Store acting as bob, who does not own CASE_ID."""
    return ExceptionAreaStore(
        session_factory, principal=OTHER_USER, invalidator=invalidator, clock=clock
    )


@pytest.fixture
def seeded_area(session_factory):
    """One stored exception area in CASE_ID; returns its id."""
    with session_factory() as session:
        row = ExceptionAreaRow(case_id=CASE_ID)
        row.geometry = box(0, 0, 100, 100)
        session.add(row)
        session.commit()
        return row.id


@pytest.fixture
def other_users_area(session_factory):
    """One stored exception area in OTHER_CASE_ID (owned by bob)."""
    with session_factory() as session:
        row = ExceptionAreaRow(case_id=OTHER_CASE_ID)
        row.geometry = box(0, 0, 5, 5)
        session.add(row)
        session.commit()
        return row.id
