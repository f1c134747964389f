"""Tests for roomgraph/geom/polygon.py pure functions."""
import pytest

from roomgraph.core.model import Point
from roomgraph.geom.polygon import (
    average_point,
    bounds_contains,
    compare_points_row_major,
    distance,
    is_point_inside_polygon,
    is_point_inside_polygon_inclusive,
    is_point_on_segment,
    normalize_polygon_vertices,
    overlap_area,
    point_line_distance,
    points_close,
    polygon_area,
    polygon_bounds,
    polygon_centroid,
    polygon_perimeter,
    polygons_overlap_with_area,
    project_point_to_segment,
    segments_intersect_strict,
    to_shapely_polygon,
)

SQUARE = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)]


# --- distances and projection ---

def test_distance_pythagorean():
    assert distance(Point(0, 0), Point(3, 4)) == 5.0


def test_project_point_to_segment_interior():
    result = project_point_to_segment(Point(5, 5), Point(0, 0), Point(10, 0))
    assert result.projection == Point(5, 0)
    assert result.t == pytest.approx(0.5)
    assert result.distance == pytest.approx(5.0)


def test_project_point_to_segment_clamps_to_start():
    result = project_point_to_segment(Point(-5, 3), Point(0, 0), Point(10, 0))
    assert result.t == 0.0
    assert result.projection == Point(0, 0)


def test_project_point_to_degenerate_segment():
    result = project_point_to_segment(Point(3, 4), Point(0, 0), Point(0, 0))
    assert result.t == 0.0
    assert result.distance == pytest.approx(5.0)


def test_point_line_distance_uses_infinite_line():
    assert point_line_distance(Point(50, 2), Point(0, 0), Point(10, 0)) == pytest.approx(2.0)


def test_is_point_on_segment():
    assert is_point_on_segment(Point(5, 0.1), Point(0, 0), Point(10, 0), 0.5)
    assert not is_point_on_segment(Point(5, 3), Point(0, 0), Point(10, 0), 0.5)


def test_is_point_on_segment_measures_distance_to_long_diagonals():
    assert is_point_on_segment(Point(200, 200.3), Point(0, 0), Point(400, 400), 0.5)
    assert not is_point_on_segment(Point(200, 214), Point(0, 0), Point(400, 400), 0.5)


def test_points_close_is_euclidean():
    assert points_close(Point(0, 0), Point(0.3, 0.3), 0.5)
    assert not points_close(Point(0, 0), Point(0.4, 0.4), 0.5)


# --- area, perimeter, centroid ---

def test_polygon_area_is_signed():
    assert polygon_area(SQUARE) == pytest.approx(100.0)
    assert polygon_area(list(reversed(SQUARE))) == pytest.approx(-100.0)


def test_polygon_area_needs_three_points():
    assert polygon_area(SQUARE[:2]) == 0.0


def test_polygon_perimeter():
    assert polygon_perimeter(SQUARE) == pytest.approx(40.0)


def test_polygon_centroid_of_square():
    centroid = polygon_centroid(SQUARE)
    assert centroid.x == pytest.approx(5.0)
    assert centroid.y == pytest.approx(5.0)


def test_polygon_centroid_falls_back_to_mean_for_collinear_points():
    points = [Point(0, 0), Point(5, 0), Point(10, 0)]
    assert polygon_centroid(points) == average_point(points)


def test_compare_points_row_major_orders_by_y_first():
    assert compare_points_row_major(Point(100, 0), Point(0, 10)) == -1
    assert compare_points_row_major(Point(0, 5), Point(10, 5)) == -1
    assert compare_points_row_major(Point(3, 3), Point(3, 3)) == 0


# --- bounds ---

def test_polygon_bounds_and_containment():
    outer = polygon_bounds(SQUARE)
    inner = polygon_bounds([Point(2, 2), Point(8, 2), Point(8, 8)])
    assert (outer.left, outer.top, outer.right, outer.bottom) == (0, 0, 10, 10)
    assert bounds_contains(outer, inner)
    assert not bounds_contains(inner, outer)


# --- point in polygon ---

def test_point_inside_polygon_excludes_boundary():
    assert is_point_inside_polygon(Point(5, 5), SQUARE)
    assert not is_point_inside_polygon(Point(0, 5), SQUARE)
    assert not is_point_inside_polygon(Point(15, 5), SQUARE)


def test_point_inside_polygon_inclusive_accepts_boundary():
    assert is_point_inside_polygon_inclusive(Point(0, 5), SQUARE)
    assert is_point_inside_polygon_inclusive(Point(10, 10), SQUARE)


# --- intersection and overlap ---

def test_segments_intersect_strict_crossing():
    assert segments_intersect_strict(Point(0, 0), Point(10, 10), Point(0, 10), Point(10, 0))


def test_segments_intersect_strict_excludes_touching_and_collinear():
    assert not segments_intersect_strict(Point(0, 0), Point(10, 0), Point(10, 0), Point(10, 10))
    assert not segments_intersect_strict(Point(0, 0), Point(10, 0), Point(5, 0), Point(15, 0))


def test_polygons_sharing_an_edge_do_not_overlap():
    right = [Point(10, 0), Point(20, 0), Point(20, 10), Point(10, 10)]
    assert not polygons_overlap_with_area(SQUARE, right)


def test_polygons_overlap_with_area():
    shifted = [Point(5, 5), Point(15, 5), Point(15, 15), Point(5, 15)]
    assert polygons_overlap_with_area(SQUARE, shifted)
    assert overlap_area(SQUARE, shifted) == pytest.approx(25.0)


def test_crossing_polygons_without_contained_vertices_overlap():
    wide = [Point(-5, 3), Point(15, 3), Point(15, 7), Point(-5, 7)]
    assert polygons_overlap_with_area(SQUARE, wide)


# --- normalization and shapely bridge ---

def test_normalize_polygon_vertices_drops_duplicates_and_closing_point():
    raw = [Point(0, 0), Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 0)]
    assert normalize_polygon_vertices(raw) == [Point(0, 0), Point(10, 0), Point(10, 10)]


def test_to_shapely_polygon_rejects_degenerate_loops():
    assert to_shapely_polygon([Point(0, 0), Point(5, 0), Point(10, 0)]) is None
    assert to_shapely_polygon(SQUARE).area == pytest.approx(100.0)
