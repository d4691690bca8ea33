"""Geometry package: validation, metrics, deduplication and display simplification."""

from .validator import GeometryValidator
from .simplification import (
    SimplificationEngine,
    SimplificationStrategy,
    SimplifiedGeometry,
)
from .geometry_utils import (
    coerce_geometry,
    compute_area,
    compute_envelope,
    deduplicate_geometries,
    spatially_equal,
    vertex_count,
    viewport_polygon,
)

__all__ = [
    "GeometryValidator",
    "SimplificationEngine",
    "SimplificationStrategy",
    "SimplifiedGeometry",
    "coerce_geometry",
    "compute_area",
    "compute_envelope",
    "deduplicate_geometries",
    "spatially_equal",
    "vertex_count",
    "viewport_polygon",
]
