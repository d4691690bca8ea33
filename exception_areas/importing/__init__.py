"""Shapefile import package: upload staging and geometry batch extraction."""

from .shapefile_importer import ShapefileImporter, read_shapefile_geometries
from .staging import StagingArea

__all__ = [
    "ShapefileImporter",
    "StagingArea",
    "read_shapefile_geometries",
]
