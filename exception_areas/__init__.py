"""
Exception Areas

Polygonal exception areas of a computation case: validation, zoom-adaptive
simplification for map display, shapefile bulk import and transactional
invalidation of downstream case results.
"""

from exception_areas.config import CONFIG
from exception_areas.config_types import ExceptionAreasConfig, ResolutionTable
from exception_areas.geometry import GeometryValidator, SimplificationEngine
from exception_areas.importing import ShapefileImporter
from exception_areas.query import QueryService
from exception_areas.store import ExceptionAreaStore

__all__ = [
    "CONFIG",
    "ExceptionAreasConfig",
    "ResolutionTable",
    "GeometryValidator",
    "SimplificationEngine",
    "ShapefileImporter",
    "QueryService",
    "ExceptionAreaStore",
]
