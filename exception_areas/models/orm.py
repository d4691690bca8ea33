"""
SQLAlchemy tables read and written by the exception area pipeline.

Only the columns the pipeline needs are mapped: the ownership chain
(project -> owner), the case modification stamp, the exception geometry and
the downstream output/result rows purged on invalidation.

Geometries are stored as WKB so a stored polygon reads back vertex-for-vertex.
"""

from datetime import datetime
from typing import List, Optional

from shapely import wkb
from shapely.geometry.base import BaseGeometry
from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    cases: Mapped[List["Case"]] = relationship(back_populates="project")


class Case(Base):
    __tablename__ = "cases"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    project_id: Mapped[int] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    last_modified: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    project: Mapped[Project] = relationship(back_populates="cases")


class ExceptionAreaRow(Base):
    """Persisted exception area. Only geometry is client-mutable."""

    __tablename__ = "exception_areas"
    # Ids of deleted areas are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    geometry_wkb: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    @property
    def geometry(self) -> BaseGeometry:
        return wkb.loads(self.geometry_wkb)

    @geometry.setter
    def geometry(self, value: BaseGeometry) -> None:
        self.geometry_wkb = wkb.dumps(value)


class CaseOutput(Base):
    """An output definition of a case; in_sync is cleared on invalidation."""

    __tablename__ = "case_outputs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    in_sync: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class CaseResult(Base):
    """A computed downstream result that depends on the case geometry."""

    __tablename__ = "case_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    output_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("case_outputs.id", ondelete="CASCADE"), nullable=True
    )
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="")
