"""
Unit tests for QueryService and bounding box parsing.

Run with: python -m pytest _tests/test_query_service.py -v
"""

import pytest
from shapely.geometry import Point, Polygon

from exception_areas.errors import InvalidBoundingBox, InvalidZoomLevel, NotFound
from exception_areas.geometry.geometry_utils import vertex_count
from exception_areas.query.query_service import QueryService, parse_bbox

from conftest import CASE_ID, OTHER_CASE_ID


@pytest.fixture
def query(session_factory):
    return QueryService(session_factory)


@pytest.fixture
def populated_case(store):
    """Three areas in CASE_ID: a far-away triangle, a circle and a square."""
    far = store.create(CASE_ID, Polygon([(100, 100), (130, 105), (120, 140)]))
    circle = store.create(CASE_ID, Point(0, 0).buffer(5_000, 64))
    square = store.create(CASE_ID, Polygon([(0, 0), (4, 0), (4, 4), (0, 4)]))
    return far, circle, square


class TestParseBbox:
    """Parsing of minX,minY,maxX,maxY viewport strings."""

    def test_valid(self):
        assert parse_bbox("-10,-10,10,10") == (-10.0, -10.0, 10.0, 10.0)

    def test_whitespace_tolerated(self):
        assert parse_bbox(" 0, 1 ,2 , 3") == (0.0, 1.0, 2.0, 3.0)

    def test_extra_parts_ignored(self):
        assert parse_bbox("0,0,1,1,99") == (0.0, 0.0, 1.0, 1.0)

    @pytest.mark.parametrize(
        "bbox",
        [
            None,
            "",
            "1,2,3",
            "5,5,1,1",
            "0,0,0,1",
            "0,0,1,0",
            "nan",
            "0,0,nan,1",
            "0,0,inf,1",
            "-inf,0,1,1",
            "a,b,c,d",
        ],
    )
    def test_invalid(self, bbox):
        with pytest.raises(InvalidBoundingBox):
            parse_bbox(bbox)


class TestListAll:
    """Verbatim listing."""

    def test_empty_case(self, query):
        assert query.list_all(CASE_ID) == []

    def test_exact_metrics(self, query, populated_case):
        areas = query.list_all(CASE_ID)

        assert [a.id for a in areas] == [a.id for a in populated_case]
        square = areas[2]
        assert square.area == pytest.approx(16.0)
        assert square.bounding_box.bounds == (0.0, 0.0, 4.0, 4.0)

    def test_scoped_to_case(self, query, populated_case, other_users_area):
        assert [a.id for a in query.list_all(OTHER_CASE_ID)] == [other_users_area]


class TestListForViewport:
    """Zoom/viewport simplified listing."""

    def test_outside_area_becomes_envelope(self, query, populated_case):
        far = populated_case[0]

        areas = query.list_for_viewport(CASE_ID, 5, "-10,-10,10,10")

        listed = next(a for a in areas if a.id == far.id)
        assert listed.geometry.equals(far.geometry.envelope)
        assert listed.area == pytest.approx(far.area)

    def test_low_zoom_simplifies_with_original_metrics(self, query, populated_case):
        circle = populated_case[1]

        areas = query.list_for_viewport(CASE_ID, 3, "-6000,-6000,6000,6000")

        listed = next(a for a in areas if a.id == circle.id)
        assert vertex_count(listed.geometry) < vertex_count(circle.geometry)
        assert listed.area == pytest.approx(circle.area)
        assert listed.bounding_box.equals(circle.bounding_box)

    def test_detail_zoom_returns_stored_geometry(self, query, populated_case):
        circle = populated_case[1]

        areas = query.list_for_viewport(CASE_ID, 12, "-6000,-6000,6000,6000")

        listed = next(a for a in areas if a.id == circle.id)
        assert listed.geometry.equals_exact(circle.geometry, 0.0)

    def test_invalid_bbox(self, query):
        with pytest.raises(InvalidBoundingBox):
            query.list_for_viewport(CASE_ID, 5, "5,5,1,1")

    @pytest.mark.parametrize("zoom", [-1, 14])
    def test_invalid_zoom(self, query, zoom):
        with pytest.raises(InvalidZoomLevel):
            query.list_for_viewport(CASE_ID, zoom, "-10,-10,10,10")


class TestGetOne:
    """Single-area read."""

    def test_found(self, query, seeded_area):
        area = query.get_one(CASE_ID, seeded_area)
        assert area.id == seeded_area
        assert area.area == pytest.approx(10_000.0)

    def test_missing(self, query):
        with pytest.raises(NotFound):
            query.get_one(CASE_ID, 404)

    def test_wrong_case(self, query, seeded_area):
        with pytest.raises(NotFound):
            query.get_one(OTHER_CASE_ID, seeded_area)
