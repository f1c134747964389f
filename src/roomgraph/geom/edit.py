"""Geometric editing functions for the wall network.

This module inserts new wall edges while reusing and splitting overlapping
walls, so the wall list never holds two walls covering the same stretch of
line, and moves shared endpoints without disconnecting the graph.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, List, Optional, Sequence, Tuple

from shapely.geometry import LineString, box
from shapely.strtree import STRtree

from ..config import (
    DEFAULT_WALL_COLOR,
    DEFAULT_WALL_HEIGHT_MM,
    DEFAULT_WALL_LAYER,
    DEFAULT_WALL_MATERIAL,
    DEFAULT_WALL_THICKNESS_MM,
    MIN_WALL_LENGTH,
    SPLIT_PARAM_MARGIN,
    WALL_NODE_TOLERANCE,
)
from ..core.model import Opening, Point, Wall, WallLayer, generate_id
from ..core.topology import rebuild_wall_adjacency
from .polygon import distance, is_point_on_segment, point_line_distance, points_close, project_point_to_segment

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interval:
    start: float
    end: float


@dataclass(frozen=True)
class ColinearOverlap:
    wall_id: str
    start: float
    end: float


def _clone_layers(layers: Optional[Sequence[WallLayer]]) -> Optional[Tuple[WallLayer, ...]]:
    if layers is None:
        return None
    return tuple(replace(layer, id=generate_id(), order=index) for index, layer in enumerate(layers))


def create_wall_segment(start: Point, end: Point, **defaults: Any) -> Wall:
    """Create a new wall between two points.

    Args:
        start: Start point.
        end: End point.
        **defaults: Optional Wall fields (thickness, height, wall_type,
            wall_type_id, wall_layers, is_wall_type_override, material,
            color, layer, openings).

    Returns:
        A fresh Wall; its thickness falls back to the layer sum, then to
        the default thickness.
    """
    wall_layers = _clone_layers(defaults.get("wall_layers"))
    thickness = defaults.get("thickness")
    if thickness is None:
        if wall_layers is not None:
            thickness = sum(max(layer.thickness, 0.0) for layer in wall_layers)
        else:
            thickness = DEFAULT_WALL_THICKNESS_MM

    return Wall(
        id=generate_id(),
        start=start,
        end=end,
        thickness=thickness,
        height=defaults.get("height") or DEFAULT_WALL_HEIGHT_MM,
        wall_type=defaults.get("wall_type") or "interior",
        wall_type_id=defaults.get("wall_type_id"),
        wall_layers=wall_layers,
        is_wall_type_override=bool(defaults.get("is_wall_type_override", False)),
        material=defaults.get("material") or DEFAULT_WALL_MATERIAL,
        color=defaults.get("color") or DEFAULT_WALL_COLOR,
        layer=defaults.get("layer") or DEFAULT_WALL_LAYER,
        openings=tuple(defaults.get("openings") or ()),
    )


def split_wall_at_point(wall: Wall, point: Point) -> Optional[Tuple[Wall, Wall]]:
    """Split a wall in two at the projection of a point.

    Openings go to the half holding their position and are re-expressed as
    fractions of that half. Both halves get cloned layers with fresh ids.

    Returns:
        ``(first, second)``, or None when the wall is degenerate or the split
        falls within SPLIT_PARAM_MARGIN of either end.
    """
    dx = wall.end.x - wall.start.x
    dy = wall.end.y - wall.start.y
    length_sq = dx * dx + dy * dy
    if length_sq < 1e-8:
        return None

    t = ((point.x - wall.start.x) * dx + (point.y - wall.start.y) * dy) / length_sq
    if t <= SPLIT_PARAM_MARGIN or t >= 1 - SPLIT_PARAM_MARGIN:
        return None

    first_id = generate_id()
    second_id = generate_id()
    safe_t = max(SPLIT_PARAM_MARGIN, min(1 - SPLIT_PARAM_MARGIN, t))

    first_openings: List[Opening] = []
    second_openings: List[Opening] = []
    for opening in wall.openings:
        if opening.position <= safe_t:
            first_openings.append(
                replace(
                    opening,
                    id=generate_id(),
                    wall_id=first_id,
                    position=max(0.0, min(1.0, opening.position / safe_t)),
                )
            )
        else:
            second_openings.append(
                replace(
                    opening,
                    id=generate_id(),
                    wall_id=second_id,
                    position=max(0.0, min(1.0, (opening.position - safe_t) / (1 - safe_t))),
                )
            )

    first = replace(
        wall,
        id=first_id,
        end=point,
        wall_layers=_clone_layers(wall.wall_layers),
        connected_wall_ids=(),
        openings=tuple(first_openings),
    )
    second = replace(
        wall,
        id=second_id,
        start=point,
        wall_layers=_clone_layers(wall.wall_layers),
        connected_wall_ids=(),
        openings=tuple(second_openings),
    )
    return first, second


def _wall_index(walls: Sequence[Wall]) -> STRtree:
    return STRtree([LineString([(w.start.x, w.start.y), (w.end.x, w.end.y)]) for w in walls])


def _candidates_near_point(walls: Sequence[Wall], point: Point, tolerance: float) -> List[int]:
    """Indices of walls whose bounding box lies within tolerance of a point."""
    if not walls:
        return []
    query = box(point.x - tolerance, point.y - tolerance, point.x + tolerance, point.y + tolerance)
    return sorted(int(i) for i in _wall_index(walls).query(query))


def _candidates_near_segment(walls: Sequence[Wall], start: Point, end: Point, tolerance: float) -> List[int]:
    if not walls:
        return []
    query = box(
        min(start.x, end.x) - tolerance,
        min(start.y, end.y) - tolerance,
        max(start.x, end.x) + tolerance,
        max(start.y, end.y) + tolerance,
    )
    return sorted(int(i) for i in _wall_index(walls).query(query))


def is_wall_colinear_with_line(wall: Wall, line_start: Point, line_end: Point, tolerance: float) -> bool:
    return (
        point_line_distance(wall.start, line_start, line_end) <= tolerance
        and point_line_distance(wall.end, line_start, line_end) <= tolerance
    )


def _split_first_hosting_wall(
    walls: List[Wall],
    point: Point,
    tolerance: float,
    line: Optional[Tuple[Point, Point]],
) -> bool:
    for index in _candidates_near_point(walls, point, tolerance):
        wall = walls[index]
        if line is not None and not is_wall_colinear_with_line(wall, line[0], line[1], tolerance):
            continue
        if points_close(wall.start, point, tolerance) or points_close(wall.end, point, tolerance):
            continue
        if not is_point_on_segment(point, wall.start, wall.end, tolerance):
            continue
        halves = split_wall_at_point(wall, project_point_to_segment(point, wall.start, wall.end).projection)
        if halves is None:
            continue
        walls[index : index + 1] = list(halves)
        LOGGER.debug("Split wall %s at (%.3f, %.3f)", wall.id, point.x, point.y)
        return True
    return False


def split_walls_at_point(walls: Sequence[Wall], point: Point, tolerance: float = WALL_NODE_TOLERANCE) -> List[Wall]:
    """Split every wall whose body passes through a point.

    Walls already ending at the point are left alone. Each split is done in
    place, so the wall order is kept with halves replacing their parent.
    """
    result = list(walls)
    while _split_first_hosting_wall(result, point, tolerance, None):
        pass
    return result


def split_walls_at_point_on_line(
    walls: Sequence[Wall],
    point: Point,
    line_start: Point,
    line_end: Point,
    tolerance: float = WALL_NODE_TOLERANCE,
) -> List[Wall]:
    """Like split_walls_at_point, restricted to walls collinear with a line."""
    result = list(walls)
    while _split_first_hosting_wall(result, point, tolerance, (line_start, line_end)):
        pass
    return result


def _point_at(start: Point, unit: Tuple[float, float], offset: float) -> Point:
    return Point(start.x + unit[0] * offset, start.y + unit[1] * offset)


def collect_colinear_overlaps(
    walls: Sequence[Wall],
    line_start: Point,
    line_end: Point,
    tolerance: float = WALL_NODE_TOLERANCE,
) -> List[ColinearOverlap]:
    """Project collinear walls onto a segment and keep the overlapping spans.

    Returns:
        One ColinearOverlap per wall, as offsets along the segment from
        line_start, for spans longer than the tolerance.
    """
    line_length = distance(line_start, line_end)
    if line_length <= MIN_WALL_LENGTH:
        return []
    unit = ((line_end.x - line_start.x) / line_length, (line_end.y - line_start.y) / line_length)

    overlaps = []
    for index in _candidates_near_segment(walls, line_start, line_end, tolerance):
        wall = walls[index]
        if not is_wall_colinear_with_line(wall, line_start, line_end, tolerance):
            continue
        projected_start = (wall.start.x - line_start.x) * unit[0] + (wall.start.y - line_start.y) * unit[1]
        projected_end = (wall.end.x - line_start.x) * unit[0] + (wall.end.y - line_start.y) * unit[1]
        overlap_start = max(0.0, min(projected_start, projected_end))
        overlap_end = min(line_length, max(projected_start, projected_end))
        if overlap_end - overlap_start <= tolerance:
            continue
        overlaps.append(ColinearOverlap(wall_id=wall.id, start=overlap_start, end=overlap_end))
    return overlaps


def merge_intervals(intervals: Sequence[Interval], tolerance: float) -> List[Interval]:
    merged: List[Interval] = []
    for interval in sorted(intervals, key=lambda item: item.start):
        if not merged or interval.start > merged[-1].end + tolerance:
            merged.append(interval)
        else:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, interval.end))
    return merged


def subtract_intervals(source: Sequence[Interval], remove: Sequence[Interval], tolerance: float) -> List[Interval]:
    """Remove the ``remove`` spans from the ``source`` spans."""
    result = list(source)
    for cut in remove:
        remaining = []
        for segment in result:
            if cut.end <= segment.start + tolerance or cut.start >= segment.end - tolerance:
                remaining.append(segment)
                continue
            if cut.start > segment.start + tolerance:
                remaining.append(Interval(segment.start, max(segment.start, cut.start)))
            if cut.end < segment.end - tolerance:
                remaining.append(Interval(min(segment.end, cut.end), segment.end))
        result = remaining
    return [segment for segment in result if segment.end - segment.start > tolerance]


def _insert_edge(walls: Sequence[Wall], start: Point, end: Point, tolerance: float, defaults: dict) -> List[Wall]:
    if distance(start, end) <= MIN_WALL_LENGTH:
        return list(walls)

    result = split_walls_at_point(walls, start, tolerance)
    result = split_walls_at_point(result, end, tolerance)

    line_length = distance(start, end)
    unit = ((end.x - start.x) / line_length, (end.y - start.y) / line_length)

    for overlap in collect_colinear_overlaps(result, start, end, tolerance):
        result = split_walls_at_point_on_line(result, _point_at(start, unit, overlap.start), start, end, tolerance)
        result = split_walls_at_point_on_line(result, _point_at(start, unit, overlap.end), start, end, tolerance)

    covered = merge_intervals(
        [Interval(o.start, o.end) for o in collect_colinear_overlaps(result, start, end, tolerance)],
        tolerance,
    )
    uncovered = subtract_intervals([Interval(0.0, line_length)], covered, tolerance)

    for segment in uncovered:
        if segment.end - segment.start <= tolerance:
            continue
        result.append(
            create_wall_segment(_point_at(start, unit, segment.start), _point_at(start, unit, segment.end), **defaults)
        )
    LOGGER.debug(
        "Inserted edge: %d covered span(s) reused, %d new wall(s)", len(covered), len(uncovered)
    )
    return result


def add_edge_with_wall_reuse(
    walls: Sequence[Wall],
    start: Point,
    end: Point,
    tolerance: float = WALL_NODE_TOLERANCE,
    **defaults: Any,
) -> List[Wall]:
    """Insert the segment [start, end], reusing collinear walls it overlaps.

    Existing walls are split at the segment's ends and at the boundaries of
    their overlap with it; only the uncovered stretches become new walls.
    Adjacency is rebuilt afterwards.

    Args:
        walls: Current walls.
        start: Segment start.
        end: Segment end.
        tolerance: Snap and collinearity tolerance.
        **defaults: Field defaults for newly created walls.

    Returns:
        The new wall list.
    """
    if distance(start, end) <= MIN_WALL_LENGTH:
        return list(walls)
    return rebuild_wall_adjacency(_insert_edge(walls, start, end, tolerance, defaults), tolerance)


def build_rectangle_vertices(a: Point, b: Point) -> List[Point]:
    """Axis-aligned rectangle corners for two opposite corners."""
    min_x, max_x = min(a.x, b.x), max(a.x, b.x)
    min_y, max_y = min(a.y, b.y), max(a.y, b.y)
    return [Point(min_x, min_y), Point(max_x, min_y), Point(max_x, max_y), Point(min_x, max_y)]


def build_closed_polygon_edges(vertices: Sequence[Point]) -> List[Tuple[Point, Point]]:
    if len(vertices) < 3:
        return []
    edges = []
    for i, start in enumerate(vertices):
        end = vertices[(i + 1) % len(vertices)]
        if distance(start, end) <= MIN_WALL_LENGTH:
            continue
        edges.append((start, end))
    return edges


def add_polygon_with_wall_reuse(
    walls: Sequence[Wall],
    vertices: Sequence[Point],
    tolerance: float = WALL_NODE_TOLERANCE,
    **defaults: Any,
) -> List[Wall]:
    """Insert every edge of a closed polygon with wall reuse."""
    result = list(walls)
    for start, end in build_closed_polygon_edges(vertices):
        result = _insert_edge(result, start, end, tolerance, defaults)
    return rebuild_wall_adjacency(result, tolerance)


def move_connected_node(
    walls: Sequence[Wall],
    source: Point,
    target: Point,
    tolerance: float = WALL_NODE_TOLERANCE,
) -> List[Wall]:
    """Move every wall endpoint at ``source`` to ``target``.

    Walls that share the dragged endpoint stay connected through the move.
    A wall whose two ends meet after the move is dropped.
    """
    moved = []
    for wall in walls:
        start = target if points_close(wall.start, source, tolerance) else wall.start
        end = target if points_close(wall.end, source, tolerance) else wall.end
        if distance(start, end) <= MIN_WALL_LENGTH:
            LOGGER.debug("Dropped wall %s collapsed by node move", wall.id)
            continue
        moved.append(wall if start is wall.start and end is wall.end else replace(wall, start=start, end=end))
    return rebuild_wall_adjacency(moved, tolerance)


def remove_walls(walls: Sequence[Wall], wall_ids: Sequence[str], tolerance: float = WALL_NODE_TOLERANCE) -> List[Wall]:
    """Drop walls by id and rebuild adjacency for the rest."""
    doomed = set(wall_ids)
    return rebuild_wall_adjacency([wall for wall in walls if wall.id not in doomed], tolerance)
