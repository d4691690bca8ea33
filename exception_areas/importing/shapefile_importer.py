#!/usr/bin/env python3
"""
Exception Areas - Shapefile Importer

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Turn a multi-file upload into one batch of exception
geometries.

Algorithm:
1. Group staged files by base file name (parks.shp, parks.dbf, parks.shx)
2. Discard groups without a .shp member
3. Rename sidecars so they share the .shp file's base path
4. Read each group with attributes when a .dbf is present, geometry-only
   otherwise
5. Flatten, drop unusable features, fail when nothing is left
6. Deduplicate by spatial equality

Navigation Guide:
- read_shapefile_geometries: default geopandas-backed reader
- ShapefileImporter.group_files: steps 1-2
- ShapefileImporter.align_sidecars: step 3
- ShapefileImporter.import_batch: full pipeline
"""

import logging
from collections import OrderedDict
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

import geopandas as gpd
import pyogrio
from shapely.geometry.base import BaseGeometry

from exception_areas.errors import ShapefileImportError
from exception_areas.geometry.geometry_utils import deduplicate_geometries
from exception_areas.geometry.validator import GeometryValidator
from exception_areas.models.data_models import StagedFile

logger = logging.getLogger(__name__)

# (shp_path, with_attributes) -> geometries
ShapeReader = Callable[[Path, bool], Iterable[BaseGeometry]]


# ═══════════════════════════════════════════════════════════════════════════
# 📂 SHAPEFILE READER
# ═══════════════════════════════════════════════════════════════════════════


@contextmanager
def gdal_config(options: Dict[str, Any]) -> Iterator[None]:
    """
    Apply GDAL config options for the duration of the block.

    GDAL config is process-wide, so previous values are restored on exit.
    """
    previous = {key: pyogrio.get_gdal_config_option(key) for key in options}
    pyogrio.set_gdal_config_options(options)
    try:
        yield
    finally:
        pyogrio.set_gdal_config_options(previous)


def read_shapefile_geometries(
    shp_path: Path, with_attributes: bool
) -> List[BaseGeometry]:
    """
    Read every feature geometry of one shapefile.

    Args:
        shp_path: Path to the .shp file; sidecars must share its base name
        with_attributes: Read the .dbf attribute table as well

    Returns:
        Feature geometries in file order, null shapes skipped.
    """
    shp_path = Path(shp_path)
    options: Dict[str, Any] = {}
    if not shp_path.with_suffix(".shx").exists():
        # Let GDAL rebuild a missing index sidecar
        options["SHAPE_RESTORE_SHX"] = True

    with gdal_config(options):
        if with_attributes:
            gdf = gpd.read_file(shp_path, engine="pyogrio")
        else:
            gdf = gpd.read_file(shp_path, engine="pyogrio", columns=[])

    geometries = [geom for geom in gdf.geometry if geom is not None]
    logger.debug(f"Read {len(geometries)} features from {shp_path.name}")
    return geometries


# ═══════════════════════════════════════════════════════════════════════════
# 📥 SHAPEFILE IMPORTER
# ═══════════════════════════════════════════════════════════════════════════


class ShapefileImporter:
    """
    Build a deduplicated geometry batch from uploaded shapefile parts.

    Blocking I/O only; run it before the store opens its transaction.
    """

    def __init__(
        self,
        reader: Optional[ShapeReader] = None,
        validator: Optional[GeometryValidator] = None,
    ) -> None:
        self.reader = reader or read_shapefile_geometries
        self.validator = validator or GeometryValidator()

    def group_files(self, files: Iterable[StagedFile]) -> List[List[StagedFile]]:
        """
        Group files by base name and keep only groups containing a .shp.

        Group order follows the first appearance of each base name.
        """
        groups: Dict[str, List[StagedFile]] = OrderedDict()
        for staged in files:
            groups.setdefault(staged.name, []).append(staged)

        kept = []
        for name, group in groups.items():
            if any(f.is_shp for f in group):
                kept.append(group)
            else:
                logger.warning(f"⚠️ Ignoring '{name}': no .shp file in upload group")
        return kept

    def align_sidecars(self, group: List[StagedFile]) -> Path:
        """
        Rename every file of a group to <shp base path><extension>.

        Returns:
            Path of the renamed .shp file.
        """
        shp = next(f for f in group if f.is_shp)
        base = shp.local_path
        for staged in group:
            target = base.with_name(base.name + staged.extension)
            if staged.local_path != target:
                staged.local_path.replace(target)
        return base.with_name(base.name + ".shp")

    def read_group(self, group: List[StagedFile]) -> List[BaseGeometry]:
        """Read the geometries of one aligned group."""
        with_attributes = any(f.is_dbf for f in group)
        shp_path = self.align_sidecars(group)
        return list(self.reader(shp_path, with_attributes))

    def import_batch(self, files: Iterable[StagedFile]) -> List[BaseGeometry]:
        """
        Run the full import pipeline.

        Raises:
            ShapefileImportError: no valid geometry was found in the upload
        """
        groups = self.group_files(files)

        batch: List[BaseGeometry] = []
        for group in groups:
            batch.extend(self.read_group(group))

        usable = []
        for index, geometry in enumerate(batch):
            reason = self.validator.explain(geometry)
            if reason is not None:
                logger.warning(f"⚠️ Skipping imported feature {index}: {reason}")
                continue
            usable.append(geometry)

        if not usable:
            raise ShapefileImportError("No valid geometries have been found.")

        unique = deduplicate_geometries(usable)
        logger.info(
            f"✅ Imported {len(unique)} geometries from {len(groups)} shapefile(s) "
            f"({len(batch) - len(usable)} invalid, "
            f"{len(usable) - len(unique)} duplicates dropped)"
        )
        return unique
