"""Room detection from the wall graph.

Faces traced from the wall graph are deduplicated by their canonical wall
cycle, matched against the previous room list so user data survives
re-detection, and finally arranged into the nested hierarchy.
"""

from __future__ import annotations

import hashlib
import logging
import re
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Sequence

import networkx as nx

from ..config import DEFAULT_SETTINGS, WALL_NODE_TOLERANCE, DetectionSettings
from ..core.model import Point, Room, Wall
from ..core.topology import build_wall_graph, build_wall_network
from ..geom.polygon import average_point, compare_points_row_major, is_point_inside_polygon_inclusive
from .faces import DetectedFace, trace_faces
from .hierarchy import apply_nested_room_hierarchy, room_hierarchy_depth

LOGGER = logging.getLogger(__name__)

ROOM_NAME_PATTERN = re.compile(r"^Room\s+(\d+)$", re.IGNORECASE)


def _smallest_rotation(items: Sequence[str]) -> str:
    best = ""
    for i in range(len(items)):
        rotated = "|".join(list(items[i:]) + list(items[:i]))
        if not best or rotated < best:
            best = rotated
    return best


def canonical_cycle_key(wall_ids: Iterable[str]) -> str:
    """Rotation and direction invariant key of a wall-id loop."""
    source = [wall_id for wall_id in wall_ids if wall_id]
    if not source:
        return ""
    forward = _smallest_rotation(source)
    backward = _smallest_rotation(source[::-1])
    return forward if forward < backward else backward


def room_id_for_key(key: str) -> str:
    """Stable id for a room first seen with the given boundary key."""
    return "room-" + hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]


def dedupe_faces(faces: Sequence[DetectedFace]) -> List[DetectedFace]:
    """Keep one face per canonical key, the smallest by area."""
    by_key: Dict[str, DetectedFace] = {}
    for face in faces:
        key = canonical_cycle_key(face.wall_ids)
        existing = by_key.get(key)
        if existing is None or face.signed_area < existing.signed_area:
            by_key[key] = face
    return list(by_key.values())


def next_room_name_index(rooms: Iterable[Room]) -> int:
    """One more than the highest "Room N" suffix in use."""
    highest = 0
    for room in rooms:
        match = ROOM_NAME_PATTERN.match(room.name or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest + 1


def map_faces_to_rooms(faces: Sequence[DetectedFace], previous_rooms: Sequence[Room]) -> List[Room]:
    """Turn faces into flat Room records, inheriting identity by boundary.

    Each face pops at most one previous room with the same canonical key and
    takes over its id, name, manual parent, color, space type and heights.
    Unmatched faces get a fresh id and the next "Room N" name.
    """
    previous_by_key: Dict[str, List[Room]] = {}
    for room in previous_rooms:
        previous_by_key.setdefault(canonical_cycle_key(room.wall_ids), []).append(room)

    next_number = next_room_name_index(previous_rooms)
    rooms = []
    for face in faces:
        key = canonical_cycle_key(face.wall_ids)
        bucket = previous_by_key.get(key)
        previous = bucket.pop(0) if bucket else None

        if previous is None:
            name = f"Room {next_number}"
            next_number += 1
            rooms.append(
                Room(
                    id=room_id_for_key(key),
                    name=name,
                    wall_ids=face.wall_ids,
                    vertices=face.vertices,
                    gross_area=face.signed_area,
                    net_area=face.signed_area,
                    area=face.signed_area,
                    perimeter=face.perimeter,
                )
            )
            continue

        rooms.append(
            Room(
                id=previous.id,
                name=previous.name,
                wall_ids=face.wall_ids,
                vertices=face.vertices,
                gross_area=face.signed_area,
                net_area=face.signed_area,
                area=face.signed_area,
                perimeter=face.perimeter,
                space_type=previous.space_type,
                manual_parent_room_id=previous.manual_parent_room_id,
                floor_height=previous.floor_height,
                ceiling_height=previous.ceiling_height,
                color=previous.color,
                show_tag=previous.show_tag,
            )
        )
    return rooms


def _detect_flat_rooms(
    walls: Sequence[Wall],
    previous_rooms: Sequence[Room],
    settings: DetectionSettings,
) -> List[Room]:
    if len(walls) < 3:
        return []

    graph = build_wall_graph(walls, settings.snap_tolerance)
    if len(graph.edges) < 3:
        return []

    faces = dedupe_faces(trace_faces(graph, settings))
    if not faces:
        return []

    faces.sort(key=cmp_to_key(lambda a, b: compare_points_row_major(a.centroid, b.centroid)))
    return map_faces_to_rooms(faces, previous_rooms)


def detect_rooms(
    walls: Sequence[Wall],
    previous_rooms: Sequence[Room] = (),
    settings: Optional[DetectionSettings] = None,
) -> List[Room]:
    """Derive the complete room list from the complete wall list.

    Args:
        walls: Current walls.
        previous_rooms: Rooms before the edit, for identity continuity.
        settings: Detection knobs; defaults from roomgraph.config.

    Returns:
        Rooms with resolved hierarchy, in display order.
    """
    settings = settings or DEFAULT_SETTINGS
    flat = _detect_flat_rooms(walls, previous_rooms, settings)
    rooms = sort_rooms_for_display(apply_nested_room_hierarchy(flat, settings))
    LOGGER.debug("Detected %d rooms from %d walls", len(rooms), len(walls))
    return rooms


def wall_geometry_changed(a: Wall, b: Wall, tolerance: float = 1e-6) -> bool:
    return (
        abs(a.start.x - b.start.x) > tolerance
        or abs(a.start.y - b.start.y) > tolerance
        or abs(a.end.x - b.end.x) > tolerance
        or abs(a.end.y - b.end.y) > tolerance
    )


def changed_wall_ids(previous_walls: Sequence[Wall], next_walls: Sequence[Wall]) -> set:
    """Ids of walls added, removed, or moved between two wall lists."""
    previous_by_id = {wall.id: wall for wall in previous_walls}
    next_by_id = {wall.id: wall for wall in next_walls}
    changed = set()
    for wall_id, wall in next_by_id.items():
        previous = previous_by_id.get(wall_id)
        if previous is None or wall_geometry_changed(previous, wall):
            changed.add(wall_id)
    changed.update(wall_id for wall_id in previous_by_id if wall_id not in next_by_id)
    return changed


def detect_rooms_incremental(
    previous_walls: Sequence[Wall],
    next_walls: Sequence[Wall],
    previous_rooms: Sequence[Room],
    settings: Optional[DetectionSettings] = None,
) -> List[Room]:
    """Re-trace only the wall components an edit touched.

    Produces the same rooms as detect_rooms(next_walls, previous_rooms).

    Args:
        previous_walls: Walls before the edit.
        next_walls: Walls after the edit.
        previous_rooms: Rooms derived from previous_walls.
        settings: Detection knobs.

    Returns:
        Rooms with resolved hierarchy, in display order.
    """
    settings = settings or DEFAULT_SETTINGS
    if len(next_walls) < 3:
        return []

    changed = changed_wall_ids(previous_walls, next_walls)
    if not changed:
        return sort_rooms_for_display(apply_nested_room_hierarchy(previous_rooms, settings))

    network = nx.compose(
        build_wall_network(previous_walls, WALL_NODE_TOLERANCE),
        build_wall_network(next_walls, WALL_NODE_TOLERANCE),
    )
    # Walls within the snap cell but outside the adjacency tolerance still
    # share a graph node, so components are taken over the snapped graph too.
    for walls in (previous_walls, next_walls):
        graph = build_wall_graph(walls, settings.snap_tolerance)
        by_node: Dict[str, List[str]] = {}
        for edge in graph.edges:
            by_node.setdefault(edge.from_node, []).append(edge.wall_id)
            by_node.setdefault(edge.to_node, []).append(edge.wall_id)
        for wall_ids in by_node.values():
            nx.add_path(network, wall_ids)

    affected = set()
    for wall_id in changed:
        if wall_id in network and wall_id not in affected:
            affected.update(nx.node_connected_component(network, wall_id))

    next_ids = {wall.id for wall in next_walls}
    unaffected_rooms = [
        room
        for room in previous_rooms
        if all(wall_id in next_ids and wall_id not in affected for wall_id in room.wall_ids)
    ]
    affected_walls = [wall for wall in next_walls if wall.id in affected]
    recalculated = _detect_flat_rooms(affected_walls, previous_rooms, settings)
    LOGGER.debug(
        "Incremental detection: %d changed, %d affected walls, %d rooms kept, %d re-traced",
        len(changed),
        len(affected),
        len(unaffected_rooms),
        len(recalculated),
    )
    return sort_rooms_for_display(apply_nested_room_hierarchy(unaffected_rooms + recalculated, settings))


def room_vertex_mean(room: Room) -> Point:
    return average_point(room.vertices)


def sort_rooms_for_display(rooms: Sequence[Room]) -> List[Room]:
    """Order rooms top-to-bottom, left-to-right, then by name."""

    def compare(a: Room, b: Room) -> int:
        ordering = compare_points_row_major(room_vertex_mean(a), room_vertex_mean(b))
        if ordering:
            return ordering
        return (a.name > b.name) - (a.name < b.name)

    return sorted(rooms, key=cmp_to_key(compare))


def pick_smallest_room_at_point(point: Point, rooms: Sequence[Room]) -> Optional[Room]:
    """Return the smallest room containing a point, deepest first on ties."""
    rooms_by_id = {room.id: room for room in rooms}
    containing = [room for room in rooms if is_point_inside_polygon_inclusive(point, room.vertices)]
    if not containing:
        return None

    def compare(a: Room, b: Room) -> int:
        if abs(a.gross_area - b.gross_area) > 1e-6:
            return -1 if a.gross_area < b.gross_area else 1
        depth_a = room_hierarchy_depth(a, rooms_by_id)
        depth_b = room_hierarchy_depth(b, rooms_by_id)
        if depth_a != depth_b:
            return depth_b - depth_a
        return (a.name > b.name) - (a.name < b.name)

    return sorted(containing, key=cmp_to_key(compare))[0]
