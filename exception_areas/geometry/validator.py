"""
Exception Areas - Geometry Validator

Gate in front of every insert/update: a geometry may only be stored when it
is present, polygonal, non-empty and topologically valid (closed rings, no
self-intersections). Closed rings are enforced when the geometry is parsed
(see geometry_utils.coerce_geometry); shapely's validity check covers the
rest.
"""

import logging
from typing import Optional, Tuple, Type

from shapely.geometry import MultiPolygon, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import explain_validity

from exception_areas.errors import InvalidGeometry

logger = logging.getLogger(__name__)

POLYGONAL_TYPES: Tuple[Type[BaseGeometry], ...] = (Polygon, MultiPolygon)


class GeometryValidator:
    """Validate exception area geometries before they are stored."""

    def __init__(
        self, allowed_types: Tuple[Type[BaseGeometry], ...] = POLYGONAL_TYPES
    ) -> None:
        self.allowed_types = allowed_types

    def validate(self, geometry: Optional[BaseGeometry]) -> bool:
        """Return True when the geometry may be stored."""
        return self.explain(geometry) is None

    def explain(self, geometry: Optional[BaseGeometry]) -> Optional[str]:
        """
        Describe why a geometry is rejected.

        Returns:
            None for a valid geometry, otherwise a short reason.
        """
        if geometry is None:
            return "geometry is missing"
        if not isinstance(geometry, BaseGeometry):
            return f"unsupported geometry object {type(geometry).__name__}"
        if not isinstance(geometry, self.allowed_types):
            return f"{geometry.geom_type} is not polygonal"
        if geometry.is_empty:
            return "geometry is empty"
        if not geometry.is_valid:
            return explain_validity(geometry)
        return None

    def require_valid(self, geometry: Optional[BaseGeometry]) -> BaseGeometry:
        """
        Return the geometry unchanged or raise InvalidGeometry.

        Raises:
            InvalidGeometry: geometry fails validation
        """
        reason = self.explain(geometry)
        if reason is not None:
            logger.debug(f"Rejected geometry: {reason}")
            raise InvalidGeometry(f"Invalid geometry: {reason}")
        return geometry
