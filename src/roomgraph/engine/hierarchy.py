"""Nested room hierarchy.

Assigns each room the smallest strictly larger room that contains it,
honouring a user-pinned parent when that pin is still geometrically valid,
then derives child lists, child auto-names, net areas, room roles and
suggested space types.
"""

from __future__ import annotations

import re
from dataclasses import replace
from functools import cmp_to_key
from typing import Dict, List, Mapping, Optional, Sequence

from ..config import AREA_EPSILON, DEFAULT_SETTINGS, MAX_HIERARCHY_DEPTH, DetectionSettings
from ..core.model import (
    ROOM_TYPE_ENCLOSED,
    ROOM_TYPE_REMAINING,
    ROOM_TYPE_SURROUNDING,
    Room,
)
from ..geom.polygon import (
    Bounds,
    bounds_contains,
    compare_points_row_major,
    is_point_inside_polygon_inclusive,
    polygon_bounds,
    polygon_centroid,
)

# Space-type labels that were produced by the engine, not typed by a user.
AUTO_SPACE_TYPES = frozenset(
    {
        "detected",
        "enclosed-space",
        "remaining-area",
        "surrounding-area",
        "sub room",
        "storage",
        "utility",
        "bathroom",
        "shaft",
        "net area",
        "general",
    }
)

# Names a child room may carry and still be renumbered under its parent.
# The "<parent> - N" pattern is built per parent in looks_auto_named().
AUTO_NAME_PATTERNS = (
    re.compile(r"^Room\s+\d+(\s*-\s*\d+)?$", re.IGNORECASE),
    re.compile(r"^Sub\s*Room\s+\d+$", re.IGNORECASE),
)
NUMBERED_SUFFIX_PATTERN = re.compile(r"^.+\s-\s\d+$", re.IGNORECASE)


def is_valid_parent(
    child: Room,
    candidate: Room,
    bounds_by_id: Mapping[str, Bounds],
) -> bool:
    """Check whether candidate can contain child.

    The candidate's box must contain the child's box, every child vertex must
    be inside or on the candidate polygon, and the candidate must be strictly
    larger. Equal areas never nest.
    """
    if candidate.id == child.id:
        return False
    candidate_bounds = bounds_by_id.get(candidate.id)
    child_bounds = bounds_by_id.get(child.id)
    if candidate_bounds is None or child_bounds is None:
        return False
    if not bounds_contains(candidate_bounds, child_bounds):
        return False
    if not all(is_point_inside_polygon_inclusive(v, candidate.vertices) for v in child.vertices):
        return False
    if child.gross_area >= candidate.gross_area - AREA_EPSILON:
        return False
    return True


def room_hierarchy_depth(room: Room, rooms_by_id: Mapping[str, Room]) -> int:
    """Number of ancestors above a room, bounded by MAX_HIERARCHY_DEPTH."""
    depth = 0
    cursor = rooms_by_id.get(room.parent_room_id) if room.parent_room_id else None
    while cursor is not None and depth < MAX_HIERARCHY_DEPTH:
        depth += 1
        cursor = rooms_by_id.get(cursor.parent_room_id) if cursor.parent_room_id else None
    return depth


def classify_room_type(room: Room) -> str:
    if not room.child_room_ids:
        return ROOM_TYPE_ENCLOSED
    if room.parent_room_id:
        return ROOM_TYPE_REMAINING
    return ROOM_TYPE_SURROUNDING


def suggest_space_type(room: Room, settings: DetectionSettings = DEFAULT_SETTINGS) -> str:
    """Suggest a label from the room's net area in m² and its nesting."""
    area_m2 = max(room.net_area, 0.0) * settings.m_per_unit ** 2

    if room.parent_room_id:
        if area_m2 < 1.5:
            return "Shaft"
        if area_m2 < 4:
            return "Storage"
        if area_m2 < 8:
            return "Closet"
        return "Sub Room"

    if room.child_room_ids:
        return "Net Area"

    if area_m2 < 3:
        return "Storage"
    if area_m2 < 8:
        return "Bathroom"
    if area_m2 < 15:
        return "Utility"
    return "General"


def resolve_space_type(current: Optional[str], suggested: str) -> str:
    """Keep a user label verbatim, replace empty or engine-made labels."""
    normalized = (current or "").strip().lower()
    if not normalized or normalized in AUTO_SPACE_TYPES:
        return suggested
    return current


def looks_auto_named(child: Room, parent: Room) -> bool:
    """Check whether a child's name is one the engine may overwrite."""
    name = (child.name or "").strip()
    if not name:
        return True
    if any(pattern.match(name) for pattern in AUTO_NAME_PATTERNS):
        return True
    if re.match(rf"^{re.escape(parent.name)}\s-\s\d+$", name, re.IGNORECASE):
        return True
    if child.parent_room_id is not None and NUMBERED_SUFFIX_PATTERN.match(name):
        return True
    return False


def _compare_by_centroid(a: Room, b: Room) -> int:
    return compare_points_row_major(polygon_centroid(a.vertices), polygon_centroid(b.vertices))


def _assign_child_auto_names(rooms_by_id: Dict[str, Room], order: Sequence[str]) -> None:
    parents = [rooms_by_id[room_id] for room_id in order if rooms_by_id[room_id].child_room_ids]
    parents.sort(key=lambda parent: room_hierarchy_depth(parent, rooms_by_id))

    for parent_snapshot in parents:
        parent = rooms_by_id[parent_snapshot.id]
        children = sorted(
            (rooms_by_id[child_id] for child_id in parent.child_room_ids if child_id in rooms_by_id),
            key=cmp_to_key(_compare_by_centroid),
        )
        auto_index = 1
        for child in children:
            if not looks_auto_named(child, parent):
                continue
            rooms_by_id[child.id] = replace(child, name=f"{parent.name} - {auto_index}")
            auto_index += 1


def apply_nested_room_hierarchy(
    source_rooms: Sequence[Room],
    settings: DetectionSettings = DEFAULT_SETTINGS,
) -> List[Room]:
    """Resolve parent/child links and every field derived from them.

    Args:
        source_rooms: Rooms with gross_area set to their own polygon area.
        settings: Used for the m² conversion of space-type bands.

    Returns:
        New Room records in the input order.
    """
    if not source_rooms:
        return []

    order = [room.id for room in source_rooms]
    rooms_by_id: Dict[str, Room] = {room.id: room for room in source_rooms}
    bounds_by_id = {room.id: polygon_bounds(room.vertices) for room in source_rooms}

    for child in source_rooms:
        best_parent: Optional[Room] = None
        for candidate in source_rooms:
            if not is_valid_parent(child, candidate, bounds_by_id):
                continue
            if best_parent is None or candidate.gross_area < best_parent.gross_area:
                best_parent = candidate

        pinned = rooms_by_id.get(child.manual_parent_room_id) if child.manual_parent_room_id else None
        if pinned is not None and is_valid_parent(child, pinned, bounds_by_id):
            parent_id: Optional[str] = pinned.id
        else:
            parent_id = best_parent.id if best_parent is not None else None

        rooms_by_id[child.id] = replace(
            rooms_by_id[child.id],
            parent_room_id=parent_id,
            manual_parent_room_id=parent_id,
        )

    children: Dict[str, List[str]] = {room_id: [] for room_id in order}
    for room_id in order:
        parent_id = rooms_by_id[room_id].parent_room_id
        if parent_id in children:
            children[parent_id].append(room_id)
    for room_id in order:
        rooms_by_id[room_id] = replace(rooms_by_id[room_id], child_room_ids=tuple(children[room_id]))

    _assign_child_auto_names(rooms_by_id, order)

    result = []
    for room_id in order:
        room = rooms_by_id[room_id]
        children_gross = sum(rooms_by_id[child_id].gross_area for child_id in room.child_room_ids)
        net_area = max(0.0, room.gross_area - children_gross)
        room = replace(room, net_area=net_area, area=net_area)
        room = replace(
            room,
            room_type=classify_room_type(room),
            space_type=resolve_space_type(room.space_type, suggest_space_type(room, settings)),
        )
        result.append(room)
    return result
