#!/usr/bin/env python3
"""
Exception Areas - Query Service

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Read exception areas of a case for the map client, either
verbatim with exact metrics or simplified for a zoom level and viewport.

Each call reads from a single session inside one transaction, so every
returned area comes from the same snapshot.

Navigation Guide:
- parse_bbox: "minX,minY,maxX,maxY" -> validated bounds
- QueryService.list_all / list_for_viewport / get_one
"""

import logging
import math
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from exception_areas.errors import InvalidBoundingBox, NotFound
from exception_areas.geometry.geometry_utils import Bounds, viewport_polygon
from exception_areas.geometry.simplification import SimplificationEngine
from exception_areas.models.data_models import ExceptionArea
from exception_areas.models.orm import ExceptionAreaRow

logger = logging.getLogger(__name__)


def _parse_coordinate(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        return math.nan


def parse_bbox(bbox: Optional[str]) -> Bounds:
    """
    Parse a viewport string "minX,minY,maxX,maxY".

    Only the first four comma-separated parts are considered. All four must
    be finite numbers with minX < maxX and minY < maxY.

    Raises:
        InvalidBoundingBox: malformed or degenerate bounding box
    """
    if bbox is None:
        raise InvalidBoundingBox("bounding box is invalid")

    parts = [_parse_coordinate(p) for p in bbox.split(",")[:4]]
    if len(parts) != 4 or not all(math.isfinite(v) for v in parts):
        raise InvalidBoundingBox("bounding box is invalid")

    min_x, min_y, max_x, max_y = parts
    if min_x >= max_x or min_y >= max_y:
        raise InvalidBoundingBox("bounding box is invalid")
    return (min_x, min_y, max_x, max_y)


class QueryService:
    """Read-side access to exception areas."""

    def __init__(
        self,
        session_factory: "sessionmaker[Session]",
        engine: Optional[SimplificationEngine] = None,
    ) -> None:
        self.session_factory = session_factory
        self.engine = engine or SimplificationEngine()

    def _load_case_areas(self, case_id: int) -> List[ExceptionArea]:
        with self.session_factory() as session:
            with session.begin():
                rows = session.scalars(
                    select(ExceptionAreaRow)
                    .where(ExceptionAreaRow.case_id == case_id)
                    .order_by(ExceptionAreaRow.id)
                ).all()
                areas = [
                    ExceptionArea.from_geometry(row.id, row.case_id, row.geometry)
                    for row in rows
                ]
        logger.debug(f"Loaded {len(areas)} exception areas of case {case_id}")
        return areas

    def list_all(self, case_id: int) -> List[ExceptionArea]:
        """All areas of a case with exact geometry, area and bounding box."""
        return self._load_case_areas(case_id)

    def list_for_viewport(
        self, case_id: int, zoom: int, bbox: str
    ) -> List[ExceptionArea]:
        """
        All areas of a case simplified for a zoom level and viewport.

        Raises:
            InvalidZoomLevel: zoom outside the resolution table
            InvalidBoundingBox: malformed bbox
        """
        self.engine.resolution_table.resolution(zoom)
        viewport = viewport_polygon(parse_bbox(bbox))

        return [
            self.engine.simplify_area(area, zoom, viewport)
            for area in self._load_case_areas(case_id)
        ]

    def get_one(self, case_id: int, area_id: int) -> ExceptionArea:
        """
        One area of a case.

        Raises:
            NotFound: no such area in the case
        """
        with self.session_factory() as session:
            row = session.scalars(
                select(ExceptionAreaRow).where(
                    ExceptionAreaRow.id == area_id,
                    ExceptionAreaRow.case_id == case_id,
                )
            ).first()
            if row is None:
                raise NotFound(
                    f"Exception area {area_id} not found in case {case_id}"
                )
            return ExceptionArea.from_geometry(row.id, row.case_id, row.geometry)
