#!/usr/bin/env python3
"""
Exception Areas - Simplification Engine

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Reduce exception geometries to what a map client can render
at a given zoom level.

Policy (per geometry, for a zoom level and a viewport rectangle):
1. Outside the viewport -> envelope only (cheap placeholder)
2. Inside the viewport and zoom above the detail threshold -> unchanged
3. Otherwise -> topology-preserving simplification with
   tolerance = resolution[zoom] * tolerance_factor

Area and bounding box are always measured on the original geometry, so
metrics stay exact when the display shape is simplified.

Navigation Guide:
- SimplificationStrategy: which branch was taken
- SimplifiedGeometry: result tuple
- SimplificationEngine.simplify: core method
"""

import logging
from enum import Enum
from typing import NamedTuple, Optional

from shapely.geometry.base import BaseGeometry

from exception_areas.config_types import ResolutionTable
from exception_areas.geometry.geometry_utils import compute_area, compute_envelope
from exception_areas.models.data_models import ExceptionArea

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# 📦 RESULT TYPES
# ═══════════════════════════════════════════════════════════════════════════


class SimplificationStrategy(Enum):
    """Which display representation was produced."""

    ENVELOPE = "envelope"  # Off-screen: envelope placeholder
    FULL = "full"  # Detail zoom: untouched geometry
    SIMPLIFIED = "simplified"  # Topology-preserving simplification


class SimplifiedGeometry(NamedTuple):
    """Display geometry plus metrics of the original geometry."""

    geometry: BaseGeometry
    area: float
    bounding_box: Optional[BaseGeometry]
    strategy: SimplificationStrategy


# ═══════════════════════════════════════════════════════════════════════════
# 📐 SIMPLIFICATION ENGINE
# ═══════════════════════════════════════════════════════════════════════════


class SimplificationEngine:
    """
    Zoom-adaptive geometry simplification.

    The resolution table is immutable configuration injected at construction;
    the engine holds no other state and is safe to share between requests.
    """

    def __init__(self, resolution_table: Optional[ResolutionTable] = None) -> None:
        self.resolution_table = resolution_table or ResolutionTable()

    def simplify(
        self,
        geometry: BaseGeometry,
        zoom: int,
        viewport: BaseGeometry,
    ) -> SimplifiedGeometry:
        """
        Produce the display geometry for one exception area.

        Args:
            geometry: Stored (unsimplified) geometry
            zoom: Integer zoom level, index into the resolution table
            viewport: Polygon of the visible map region

        Returns:
            SimplifiedGeometry with area and bounding box of the original.

        Raises:
            InvalidZoomLevel: zoom is not covered by the resolution table
        """
        tolerance = self.resolution_table.tolerance(zoom)

        area = compute_area(geometry)
        bounding_box = compute_envelope(geometry)

        if not geometry.intersects(viewport):
            return SimplifiedGeometry(
                bounding_box, area, bounding_box, SimplificationStrategy.ENVELOPE
            )

        if self.resolution_table.is_detail_zoom(zoom):
            return SimplifiedGeometry(
                geometry, area, bounding_box, SimplificationStrategy.FULL
            )

        simplified = geometry.simplify(tolerance, preserve_topology=True)
        return SimplifiedGeometry(
            simplified, area, bounding_box, SimplificationStrategy.SIMPLIFIED
        )

    def simplify_area(
        self,
        area: ExceptionArea,
        zoom: int,
        viewport: BaseGeometry,
    ) -> ExceptionArea:
        """Apply simplify() to an ExceptionArea read model."""
        result = self.simplify(area.geometry, zoom, viewport)
        return ExceptionArea(
            id=area.id,
            case_id=area.case_id,
            geometry=result.geometry,
            area=result.area,
            bounding_box=result.bounding_box,
        )
