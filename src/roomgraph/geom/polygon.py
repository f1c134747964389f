"""Polygon and segment geometry for wall and room calculations.

Pure functions over ``Point`` sequences. Every tolerance is an explicit
keyword so call sites document the epsilon they rely on.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from shapely.geometry import Polygon

from ..config import AREA_EPSILON, POINT_EPSILON
from ..core.model import Point


@dataclass(frozen=True)
class Bounds:
    left: float
    top: float
    right: float
    bottom: float


@dataclass(frozen=True)
class SegmentProjection:
    """Closest point on a segment.

    Attributes:
        projection: The projected point.
        t: Clamped segment parameter in [0, 1].
        distance: Distance from the query point to the projection.
    """

    projection: Point
    t: float
    distance: float


def distance(a: Point, b: Point) -> float:
    """Calculate Euclidean distance between two points."""
    return math.hypot(b.x - a.x, b.y - a.y)


def points_close(a: Point, b: Point, tolerance: float) -> bool:
    """Check if two points lie within a distance tolerance of each other."""
    return distance(a, b) <= tolerance


def project_point_to_segment(point: Point, start: Point, end: Point) -> SegmentProjection:
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq <= 1e-8:
        return SegmentProjection(projection=start, t=0.0, distance=distance(point, start))

    raw_t = ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq
    t = max(0.0, min(1.0, raw_t))
    projection = Point(start.x + dx * t, start.y + dy * t)
    return SegmentProjection(projection=projection, t=t, distance=distance(point, projection))


def point_to_segment_distance(point: Point, start: Point, end: Point) -> float:
    return project_point_to_segment(point, start, end).distance


def point_line_distance(point: Point, line_start: Point, line_end: Point) -> float:
    """Distance from a point to the infinite line through two points."""
    dx = line_end.x - line_start.x
    dy = line_end.y - line_start.y
    length = math.hypot(dx, dy)
    if length <= 0.0001:
        return distance(point, line_start)
    cross = abs(dx * (point.y - line_start.y) - dy * (point.x - line_start.x))
    return cross / length


def is_point_on_segment(point: Point, start: Point, end: Point, tolerance: float) -> bool:
    """Check whether a point lies on a segment body within tolerance.

    Degenerate segments (shorter than the tolerance) never host a point.
    """
    if distance(start, end) <= tolerance:
        return False
    return point_to_segment_distance(point, start, end) <= tolerance


def polygon_area(vertices: Sequence[Point]) -> float:
    """Signed shoelace area; positive for counter-clockwise (y-up) loops."""
    if len(vertices) < 3:
        return 0.0
    area = 0.0
    count = len(vertices)
    for i in range(count):
        current = vertices[i]
        nxt = vertices[(i + 1) % count]
        area += current.x * nxt.y - nxt.x * current.y
    return area / 2.0


def polygon_perimeter(vertices: Sequence[Point]) -> float:
    if len(vertices) < 2:
        return 0.0
    count = len(vertices)
    return sum(distance(vertices[i], vertices[(i + 1) % count]) for i in range(count))


def average_point(points: Sequence[Point]) -> Point:
    if not points:
        return Point(0.0, 0.0)
    return Point(
        sum(p.x for p in points) / len(points),
        sum(p.y for p in points) / len(points),
    )


def polygon_centroid(vertices: Sequence[Point]) -> Point:
    """Area-weighted centroid, falling back to the vertex mean.

    The fallback applies to fewer than three vertices and to loops whose
    doubled area is below 1e-8.
    """
    if not vertices:
        return Point(0.0, 0.0)
    if len(vertices) < 3:
        return average_point(vertices)

    area_factor = 0.0
    cx = 0.0
    cy = 0.0
    count = len(vertices)
    for i in range(count):
        current = vertices[i]
        nxt = vertices[(i + 1) % count]
        cross = current.x * nxt.y - nxt.x * current.y
        area_factor += cross
        cx += (current.x + nxt.x) * cross
        cy += (current.y + nxt.y) * cross

    if abs(area_factor) < 1e-8:
        return average_point(vertices)
    factor = 1.0 / (3.0 * area_factor)
    return Point(cx * factor, cy * factor)


def compare_points_row_major(a: Point, b: Point, epsilon: float = POINT_EPSILON) -> int:
    """Order points by y, then by x when the y values are within epsilon."""
    if abs(a.y - b.y) > epsilon:
        return -1 if a.y < b.y else 1
    if a.x < b.x:
        return -1
    if a.x > b.x:
        return 1
    return 0


def polygon_bounds(vertices: Sequence[Point]) -> Bounds:
    if not vertices:
        return Bounds(0.0, 0.0, 0.0, 0.0)
    xs = [v.x for v in vertices]
    ys = [v.y for v in vertices]
    return Bounds(left=min(xs), top=min(ys), right=max(xs), bottom=max(ys))


def bounds_contains(outer: Bounds, inner: Bounds, tolerance: float = POINT_EPSILON) -> bool:
    return (
        outer.left <= inner.left + tolerance
        and outer.top <= inner.top + tolerance
        and outer.right >= inner.right - tolerance
        and outer.bottom >= inner.bottom - tolerance
    )


def bounds_overlap(a: Bounds, b: Bounds, tolerance: float = AREA_EPSILON) -> bool:
    """Check for a positive-area overlap between two boxes."""
    return (
        a.left < b.right - tolerance
        and a.right > b.left + tolerance
        and a.top < b.bottom - tolerance
        and a.bottom > b.top + tolerance
    )


def is_point_on_polygon_boundary(point: Point, polygon: Sequence[Point], tolerance: float = POINT_EPSILON) -> bool:
    count = len(polygon)
    for i in range(count):
        if point_to_segment_distance(point, polygon[i], polygon[(i + 1) % count]) <= tolerance:
            return True
    return False


def is_point_inside_polygon(point: Point, polygon: Sequence[Point], tolerance: float = POINT_EPSILON) -> bool:
    """Ray-casting test that excludes the boundary."""
    if len(polygon) < 3:
        return False
    if is_point_on_polygon_boundary(point, polygon, tolerance):
        return False

    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        pi = polygon[i]
        pj = polygon[j]
        if (pi.y > point.y) != (pj.y > point.y):
            x_cross = (pj.x - pi.x) * (point.y - pi.y) / (pj.y - pi.y) + pi.x
            if point.x < x_cross:
                inside = not inside
        j = i
    return inside


def is_point_inside_polygon_inclusive(point: Point, polygon: Sequence[Point], tolerance: float = POINT_EPSILON) -> bool:
    return is_point_inside_polygon(point, polygon, tolerance) or is_point_on_polygon_boundary(
        point, polygon, tolerance
    )


def orientation(a: Point, b: Point, c: Point) -> float:
    """Twice the signed area of the triangle abc."""
    return (b.x - a.x) * (c.y - a.y) - (b.y - a.y) * (c.x - a.x)


def segments_intersect_strict(
    a1: Point, a2: Point, b1: Point, b2: Point, tolerance: float = AREA_EPSILON
) -> bool:
    """Proper crossing test; collinear and touching configurations are excluded."""
    o1 = orientation(a1, a2, b1)
    o2 = orientation(a1, a2, b2)
    o3 = orientation(b1, b2, a1)
    o4 = orientation(b1, b2, a2)

    if min(abs(o1), abs(o2), abs(o3), abs(o4)) <= tolerance:
        return False
    return (o1 > 0) != (o2 > 0) and (o3 > 0) != (o4 > 0)


def polygons_overlap_with_area(a: Sequence[Point], b: Sequence[Point]) -> bool:
    """Check whether two simple polygons share a positive-area region.

    Shared edges and touching corners do not count as overlap.
    """
    if len(a) < 3 or len(b) < 3:
        return False
    if not bounds_overlap(polygon_bounds(a), polygon_bounds(b)):
        return False

    if any(is_point_inside_polygon(point, b) for point in a):
        return True
    if any(is_point_inside_polygon(point, a) for point in b):
        return True

    for i in range(len(a)):
        a_start = a[i]
        a_end = a[(i + 1) % len(a)]
        for j in range(len(b)):
            if segments_intersect_strict(a_start, a_end, b[j], b[(j + 1) % len(b)]):
                return True
    return False


def normalize_polygon_vertices(vertices: Sequence[Point], epsilon: float = POINT_EPSILON) -> list[Point]:
    """Drop consecutive duplicates and a closing copy of the first vertex."""
    cleaned: list[Point] = []
    for vertex in vertices:
        if not cleaned or not points_close(cleaned[-1], vertex, epsilon):
            cleaned.append(vertex)

    if len(cleaned) >= 2 and points_close(cleaned[0], cleaned[-1], epsilon):
        cleaned.pop()
    return cleaned


def to_shapely_polygon(vertices: Sequence[Point]) -> Optional[Polygon]:
    """Create a Shapely polygon from a vertex loop.

    Invalid rings are repaired with buffer(0); degenerate loops yield None.
    """
    if len(vertices) < 3:
        return None

    polygon = Polygon([(p.x, p.y) for p in vertices])
    if not polygon.is_valid:
        polygon = polygon.buffer(0)
    if polygon.is_empty or polygon.area <= AREA_EPSILON:
        return None
    return polygon


def overlap_area(a: Sequence[Point], b: Sequence[Point]) -> float:
    """Area shared by two vertex loops, 0.0 when either is degenerate."""
    poly_a = to_shapely_polygon(a)
    poly_b = to_shapely_polygon(b)
    if poly_a is None or poly_b is None:
        return 0.0
    return poly_a.intersection(poly_b).area
