"""Tests for room detection, identity continuity and incremental updates."""
from dataclasses import replace

import pytest

from roomgraph.core.model import Point, Room
from roomgraph.engine.faces import DetectedFace
from roomgraph.engine.rooms import (
    canonical_cycle_key,
    changed_wall_ids,
    dedupe_faces,
    detect_rooms,
    detect_rooms_incremental,
    next_room_name_index,
    pick_smallest_room_at_point,
    room_id_for_key,
    sort_rooms_for_display,
)


def _face(wall_ids, area):
    return DetectedFace(
        wall_ids=tuple(wall_ids),
        vertices=(Point(0, 0), Point(1, 0), Point(1, 1)),
        signed_area=area,
        perimeter=0.0,
        centroid=Point(0, 0),
    )


# --- canonical keys ---

def test_canonical_cycle_key_ignores_rotation_and_direction():
    key = canonical_cycle_key(["b", "c", "a"])
    assert key == "a|b|c"
    assert canonical_cycle_key(["a", "c", "b"]) == key
    assert canonical_cycle_key(["c", "a", "b"]) == key


def test_canonical_cycle_key_of_empty_loop():
    assert canonical_cycle_key([]) == ""


def test_room_id_for_key_is_stable():
    assert room_id_for_key("a|b|c") == room_id_for_key("a|b|c")
    assert room_id_for_key("a|b|c").startswith("room-")
    assert room_id_for_key("a|b|c") != room_id_for_key("a|b|d")


def test_dedupe_faces_keeps_smallest_per_key():
    faces = [_face(["a", "b", "c"], 50.0), _face(["c", "b", "a"], 20.0), _face(["x", "y", "z"], 10.0)]
    kept = dedupe_faces(faces)
    assert sorted(face.signed_area for face in kept) == [10.0, 20.0]


def test_next_room_name_index():
    rooms = [
        Room(id="1", name="Room 2", wall_ids=(), vertices=()),
        Room(id="2", name="Kitchen", wall_ids=(), vertices=()),
        Room(id="3", name="room 7", wall_ids=(), vertices=()),
    ]
    assert next_room_name_index(rooms) == 8
    assert next_room_name_index([]) == 1


# --- full detection ---

def test_rectangle_detects_one_room(rectangle_walls):
    rooms = detect_rooms(rectangle_walls)
    assert len(rooms) == 1
    room = rooms[0]
    assert room.name == "Room 1"
    assert room.id.startswith("room-")
    assert room.gross_area == pytest.approx(120000.0)
    assert room.net_area == pytest.approx(120000.0)
    assert room.perimeter == pytest.approx(1400.0)
    assert len(room.wall_ids) == 4
    assert room.room_type == "enclosed-space"


def test_detection_is_deterministic(split_walls):
    assert detect_rooms(split_walls) == detect_rooms(split_walls)


def test_split_rectangle_rooms_are_named_left_to_right(split_walls):
    rooms = detect_rooms(split_walls)
    assert [room.name for room in rooms] == ["Room 1", "Room 2"]
    assert all(v.x <= 200 for v in rooms[0].vertices)
    assert all(v.x >= 200 for v in rooms[1].vertices)


def test_too_few_walls_yield_no_rooms(make_wall):
    assert detect_rooms([]) == []
    assert detect_rooms([make_wall("a", 0, 0, 10, 0), make_wall("b", 10, 0, 10, 10)]) == []


# --- identity continuity ---

def test_user_data_survives_redetection(split_walls):
    rooms = detect_rooms(split_walls)
    kitchen = replace(rooms[0], name="Kitchen", color="#ff0000", space_type="Kitchen", ceiling_height=2.6)
    redetected = detect_rooms(split_walls, [kitchen, rooms[1]])
    by_id = {room.id: room for room in redetected}
    assert by_id[kitchen.id].name == "Kitchen"
    assert by_id[kitchen.id].color == "#ff0000"
    assert by_id[kitchen.id].space_type == "Kitchen"
    assert by_id[kitchen.id].ceiling_height == 2.6


def test_removing_separator_merges_rooms(split_walls):
    rooms = detect_rooms(split_walls)
    merged = detect_rooms([wall for wall in split_walls if wall.id != "mid"], rooms)
    assert len(merged) == 1
    assert merged[0].gross_area == pytest.approx(120000.0)
    assert merged[0].name == "Room 3"
    assert merged[0].id not in {room.id for room in rooms}


# --- incremental detection ---

def test_changed_wall_ids(split_walls, make_wall):
    moved = [make_wall("right", 500, 0, 500, 300) if wall.id == "right" else wall for wall in split_walls]
    assert changed_wall_ids(split_walls, moved) == {"right"}
    assert changed_wall_ids(split_walls, split_walls[:-1]) == {"mid"}
    assert changed_wall_ids(split_walls, split_walls) == set()


def test_incremental_matches_full_after_deleting_a_wall(split_walls):
    rooms = detect_rooms(split_walls)
    next_walls = [wall for wall in split_walls if wall.id != "mid"]
    assert detect_rooms_incremental(split_walls, next_walls, rooms) == detect_rooms(next_walls, rooms)


def test_incremental_keeps_untouched_component(make_rectangle, make_wall):
    walls = make_rectangle("a", 0, 0, 100, 100) + make_rectangle("b", 500, 0, 600, 100)
    rooms = detect_rooms(walls)
    moved = []
    for wall in walls:
        if wall.id == "b-right":
            wall = make_wall("b-right", 700, 0, 700, 100)
        elif wall.id == "b-top":
            wall = make_wall("b-top", 500, 0, 700, 0)
        elif wall.id == "b-bottom":
            wall = make_wall("b-bottom", 700, 100, 500, 100)
        moved.append(wall)

    incremental = detect_rooms_incremental(walls, moved, rooms)
    assert incremental == detect_rooms(moved, rooms)
    assert rooms[0] in incremental
    assert sorted(room.gross_area for room in incremental) == pytest.approx([10000.0, 20000.0])


def test_incremental_without_changes_returns_previous_rooms(nested_walls):
    rooms = detect_rooms(nested_walls)
    assert detect_rooms_incremental(nested_walls, nested_walls, rooms) == rooms


# --- ordering and picking ---

def test_sort_rooms_for_display_top_to_bottom_then_name():
    top = Room(id="t", name="B", wall_ids=(), vertices=(Point(0, 0), Point(10, 0), Point(10, 10)))
    bottom = Room(id="b", name="A", wall_ids=(), vertices=(Point(0, 100), Point(10, 100), Point(10, 110)))
    twin = Room(id="w", name="A", wall_ids=(), vertices=top.vertices)
    assert [room.id for room in sort_rooms_for_display([bottom, top, twin])] == ["w", "t", "b"]


def test_pick_smallest_room_at_point(nested_walls):
    rooms = detect_rooms(nested_walls)
    outer = max(rooms, key=lambda room: room.gross_area)
    inner = min(rooms, key=lambda room: room.gross_area)
    assert pick_smallest_room_at_point(Point(200, 150), rooms) == inner
    assert pick_smallest_room_at_point(Point(50, 50), rooms) == outer
    assert pick_smallest_room_at_point(Point(900, 900), rooms) is None
