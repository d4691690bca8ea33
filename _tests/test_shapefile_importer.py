"""
Unit tests for upload staging and the ShapefileImporter.

Tests:
1. Grouping by base name, groups without .shp contribute nothing
2. Sidecars are renamed onto the .shp base path
3. .dbf presence selects attribute vs geometry-only reading
4. Invalid features dropped, empty batch -> ShapefileImportError
5. Spatially equal features deduplicated
6. Real shapefiles written with geopandas round-trip through the reader

Run with: python -m pytest _tests/test_shapefile_importer.py -v
"""

from pathlib import Path
from typing import List, Tuple

import geopandas as gpd
import pyogrio
import pytest
from shapely import wkt
from shapely.geometry import Point, Polygon, box

from exception_areas.errors import ShapefileImportError
from exception_areas.importing.shapefile_importer import ShapefileImporter, gdal_config
from exception_areas.importing.staging import StagingArea

from conftest import bowtie


# ============================================================================
# HELPERS
# ============================================================================


class WktReader:
    """Fake shape reader: the staged .shp holds one WKT geometry per line."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Path, bool]] = []

    def __call__(self, shp_path: Path, with_attributes: bool):
        self.calls.append((shp_path, with_attributes))
        return [wkt.loads(line) for line in shp_path.read_text().splitlines() if line]


def _wkt_lines(*geometries) -> bytes:
    return "\n".join(g.wkt for g in geometries).encode()


@pytest.fixture
def reader():
    return WktReader()


@pytest.fixture
def importer(reader):
    return ShapefileImporter(reader=reader)


@pytest.fixture
def staging(tmp_path):
    with StagingArea(tmp_path / "staging") as area:
        yield area


# ============================================================================
# STAGING
# ============================================================================


class TestStagingArea:
    """Uploaded parts are written to a scratch directory."""

    def test_add_bytes_and_streams(self, tmp_path):
        import io

        with StagingArea(tmp_path) as area:
            a = area.add("Parks.SHP", b"abc")
            b = area.add('"parks.dbf"', io.BytesIO(b"def"))

            assert a.name == "Parks" and a.extension == ".shp"
            assert b.name == "parks" and b.extension == ".dbf"
            assert a.local_path.read_bytes() == b"abc"
            assert b.local_path.read_bytes() == b"def"
            directory = area.directory

        assert not directory.exists()

    def test_keep_directory_when_cleanup_disabled(self, tmp_path):
        with StagingArea(tmp_path, cleanup=False) as area:
            area.add("x.shp", b"1")
        assert area.directory.exists()


# ============================================================================
# GROUPING AND ALIGNMENT
# ============================================================================


class TestGrouping:
    """Files are grouped by base name; groups need a .shp member."""

    def test_groups_by_base_name(self, importer, staging):
        staging.add("a.shp", b"")
        staging.add("b.shp", b"")
        staging.add("a.dbf", b"")
        staging.add("a.shx", b"")

        groups = importer.group_files(staging.files)

        assert [[f.extension for f in g] for g in groups] == [
            [".shp", ".dbf", ".shx"],
            [".shp"],
        ]

    def test_group_without_shp_discarded(self, importer, staging):
        staging.add("orphan.dbf", b"")
        staging.add("orphan.shx", b"")
        assert importer.group_files(staging.files) == []

    def test_sidecars_share_shp_base_path(self, importer, staging):
        shp = staging.add("a.shp", b"shp")
        staging.add("a.dbf", b"dbf")
        staging.add("a.prj", b"prj")

        shp_path = importer.align_sidecars(importer.group_files(staging.files)[0])

        base = shp.local_path
        assert shp_path == base.with_name(base.name + ".shp")
        assert shp_path.read_bytes() == b"shp"
        assert base.with_name(base.name + ".dbf").read_bytes() == b"dbf"
        assert base.with_name(base.name + ".prj").read_bytes() == b"prj"


# ============================================================================
# IMPORT PIPELINE
# ============================================================================


class TestImportBatch:
    """Full import pipeline with a fake reader."""

    def test_flattens_groups(self, importer, staging):
        staging.add("a.shp", _wkt_lines(box(0, 0, 1, 1), box(2, 2, 3, 3)))
        staging.add("b.shp", _wkt_lines(box(5, 5, 6, 6)))

        batch = importer.import_batch(staging.files)

        assert len(batch) == 3

    def test_dbf_selects_attribute_read(self, importer, reader, staging):
        staging.add("with.shp", _wkt_lines(box(0, 0, 1, 1)))
        staging.add("with.dbf", b"")
        staging.add("without.shp", _wkt_lines(box(2, 2, 3, 3)))

        importer.import_batch(staging.files)

        assert [flag for _, flag in reader.calls] == [True, False]

    def test_group_without_shp_contributes_nothing(self, importer, staging):
        staging.add("a.shp", _wkt_lines(box(0, 0, 1, 1)))
        staging.add("ghost.dbf", _wkt_lines(box(9, 9, 10, 10)))

        batch = importer.import_batch(staging.files)

        assert len(batch) == 1
        assert batch[0].equals(box(0, 0, 1, 1))

    def test_duplicates_with_different_vertex_order(self, importer, staging):
        ccw = Polygon([(0, 0), (10, 0), (10, 10), (0, 10)])
        cw = Polygon([(0, 10), (10, 10), (10, 0), (0, 0)])
        staging.add("a.shp", _wkt_lines(ccw))
        staging.add("b.shp", _wkt_lines(cw))

        batch = importer.import_batch(staging.files)

        assert len(batch) == 1

    def test_invalid_features_dropped(self, importer, staging):
        staging.add("a.shp", _wkt_lines(bowtie(), Point(1, 1), box(0, 0, 1, 1)))

        batch = importer.import_batch(staging.files)

        assert len(batch) == 1

    def test_no_geometries_fails(self, importer, staging):
        staging.add("a.shp", b"")
        with pytest.raises(ShapefileImportError):
            importer.import_batch(staging.files)

    def test_only_sidecars_fails(self, importer, staging):
        staging.add("a.dbf", b"")
        with pytest.raises(ShapefileImportError):
            importer.import_batch(staging.files)


# ============================================================================
# REAL SHAPEFILES
# ============================================================================


def _write_shapefile(directory: Path, name: str, geometries) -> dict:
    gdf = gpd.GeoDataFrame(
        {"label": [f"area_{i}" for i in range(len(geometries))]},
        geometry=list(geometries),
    )
    gdf.to_file(directory / f"{name}.shp")
    return {p.suffix: p.read_bytes() for p in directory.glob(f"{name}.*")}


class TestGeopandasReader:
    """Default reader on shapefiles written by geopandas."""

    def test_reads_staged_shapefile(self, tmp_path):
        source = tmp_path / "source"
        source.mkdir()
        parts = _write_shapefile(
            source, "parks", [box(0, 0, 10, 10), box(20, 20, 30, 30), box(0, 0, 10, 10)]
        )

        with StagingArea(tmp_path / "staging") as staging:
            for ext, data in parts.items():
                staging.add(f"parks{ext}", data)
            batch = ShapefileImporter().import_batch(staging.files)

        assert len(batch) == 2
        assert batch[0].equals(box(0, 0, 10, 10))
        assert batch[1].equals(box(20, 20, 30, 30))

    def test_reads_without_attribute_table(self, tmp_path):
        source = tmp_path / "source"
        source.mkdir()
        parts = _write_shapefile(source, "lakes", [box(0, 0, 5, 5)])

        with StagingArea(tmp_path / "staging") as staging:
            staging.add("lakes.shp", parts[".shp"])
            staging.add("lakes.shx", parts[".shx"])
            batch = ShapefileImporter().import_batch(staging.files)

        assert len(batch) == 1
        assert batch[0].equals(box(0, 0, 5, 5))

    def test_missing_index_restored_without_leaking_config(self, tmp_path):
        source = tmp_path / "source"
        source.mkdir()
        parts = _write_shapefile(source, "ponds", [box(0, 0, 3, 3)])
        before = pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX")

        with StagingArea(tmp_path / "staging") as staging:
            staging.add("ponds.shp", parts[".shp"])
            staging.add("ponds.dbf", parts[".dbf"])
            batch = ShapefileImporter().import_batch(staging.files)

        assert len(batch) == 1
        assert batch[0].equals(box(0, 0, 3, 3))
        assert pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX") == before


class TestGdalConfig:
    """Scoped GDAL config options."""

    def test_restored_after_block(self):
        before = pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX")

        with gdal_config({"SHAPE_RESTORE_SHX": True}):
            assert pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX") is True

        assert pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX") == before

    def test_restored_after_error(self):
        before = pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX")

        with pytest.raises(RuntimeError):
            with gdal_config({"SHAPE_RESTORE_SHX": True}):
                raise RuntimeError("read failed")

        assert pyogrio.get_gdal_config_option("SHAPE_RESTORE_SHX") == before
