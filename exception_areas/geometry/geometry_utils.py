#!/usr/bin/env python3
"""
Geometry Utility Functions

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Pure geometry helpers shared by the store, the query layer
and the shapefile importer. No database or HTTP dependencies.

Key Functions:
1. Geometry coercion (shapely object, GeoJSON mapping or WKT text)
2. Derived metrics (area, envelope)
3. Spatial-equality deduplication
4. Viewport polygon construction

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between functions
"""

import logging
import math
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import shapely
from shapely import wkt
from shapely.errors import GEOSException, ShapelyError
from shapely.geometry import box, shape
from shapely.geometry.base import BaseGeometry

from exception_areas.errors import InvalidGeometry

logger = logging.getLogger(__name__)

Bounds = Tuple[float, float, float, float]


# ===========================================================================
# COERCION
# ===========================================================================


def _ring_is_closed(ring: Sequence[Sequence[float]]) -> bool:
    if len(ring) < 4:
        return False
    return list(ring[0])[:2] == list(ring[-1])[:2]


def _check_geojson_rings(geojson: Mapping[str, Any]) -> None:
    """Reject GeoJSON polygons whose rings are not explicitly closed."""
    geom_type = geojson.get("type")
    coordinates = geojson.get("coordinates") or []
    if geom_type == "Polygon":
        polygons = [coordinates]
    elif geom_type == "MultiPolygon":
        polygons = coordinates
    else:
        return
    for polygon in polygons:
        for ring in polygon:
            if not _ring_is_closed(ring):
                raise InvalidGeometry("Invalid geometry: ring is not closed")


def coerce_geometry(value: Any) -> Optional[BaseGeometry]:
    """
    Turn client input into a shapely geometry.

    Accepts a shapely geometry, a GeoJSON geometry or Feature mapping, or a
    WKT string. None stays None so the validator can report it as missing.

    Raises:
        InvalidGeometry: the input cannot be parsed as a geometry
    """
    if value is None or isinstance(value, BaseGeometry):
        return value

    if isinstance(value, str):
        try:
            return wkt.loads(value)
        except (GEOSException, ValueError) as e:
            raise InvalidGeometry(f"Invalid geometry: cannot parse WKT ({e})") from e

    if isinstance(value, Mapping):
        geojson = value.get("geometry") if value.get("type") == "Feature" else value
        if geojson is None:
            return None
        if not isinstance(geojson, Mapping):
            raise InvalidGeometry("Invalid geometry: GeoJSON geometry must be an object")
        try:
            _check_geojson_rings(geojson)
            return shape(geojson)
        except (
            ShapelyError,
            ValueError,
            TypeError,
            AttributeError,
            KeyError,
            IndexError,
        ) as e:
            raise InvalidGeometry(
                f"Invalid geometry: cannot parse GeoJSON ({e})"
            ) from e

    raise InvalidGeometry(f"Invalid geometry: unsupported type {type(value).__name__}")


# ===========================================================================
# DERIVED METRICS
# ===========================================================================


def compute_area(geometry: Optional[BaseGeometry]) -> float:
    """
    Area of a geometry, 0.0 when undefined.

    Returns 0.0 for missing or empty geometries and for non-finite values.
    """
    if geometry is None or geometry.is_empty:
        return 0.0
    area = geometry.area
    if area is None or not math.isfinite(area):
        return 0.0
    return max(0.0, float(area))


def compute_envelope(geometry: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """Axis-aligned envelope of a geometry (None for a missing geometry)."""
    if geometry is None:
        return None
    return geometry.envelope


def vertex_count(geometry: Optional[BaseGeometry]) -> int:
    """Total number of coordinates in a geometry."""
    if geometry is None:
        return 0
    return int(shapely.get_num_coordinates(geometry))


def viewport_polygon(bounds: Bounds) -> BaseGeometry:
    """Rectangle polygon for (min_x, min_y, max_x, max_y)."""
    min_x, min_y, max_x, max_y = bounds
    return box(min_x, min_y, max_x, max_y)


# ===========================================================================
# SPATIAL EQUALITY
# ===========================================================================


def spatially_equal(a: BaseGeometry, b: BaseGeometry) -> bool:
    """Same shape, independent of vertex order, start point and winding."""
    return a.equals(b)


def deduplicate_geometries(geometries: Iterable[BaseGeometry]) -> List[BaseGeometry]:
    """
    Drop geometries spatially equal to an earlier one, keeping input order.

    Every candidate is compared against every kept geometry, so this is
    O(n^2) in the batch size.
    """
    unique: List[BaseGeometry] = []
    for candidate in geometries:
        if any(spatially_equal(candidate, kept) for kept in unique):
            continue
        unique.append(candidate)
    return unique
