"""Tests for the edit API: operations, re-detection and validation."""
import pytest

from roomgraph.core.model import Plan
from roomgraph.engine import api
from roomgraph.engine.ops import as_point, get_operation, list_operations
from roomgraph.engine.validators import RoomValidationError


def _rectangle_op(x0, y0, x1, y1, **extra):
    return {"op": "add_polygon", "corner_a": [x0, y0], "corner_b": {"x": x1, "y": y1}, **extra}


@pytest.fixture
def room_plan(empty_plan):
    """Plan holding one 400 x 300 room drawn with default wall types."""
    return api.apply(empty_plan, _rectangle_op(0, 0, 400, 300)).plan


@pytest.fixture
def nested_plan(nested_walls, make_rectangle):
    walls = nested_walls + make_rectangle("far", 1000, 0, 1200, 100)
    return api.detect(Plan(walls=tuple(walls)))


def _room_with_area(plan, area):
    return next(room for room in plan.rooms if room.gross_area == pytest.approx(area))


# --- payload handling ---

def test_as_point_accepts_pairs_and_mappings():
    assert as_point([1, 2]) == as_point({"x": 1, "y": 2})
    with pytest.raises(ValueError, match="Invalid point"):
        as_point("nowhere")


def test_unknown_operation_raises(room_plan):
    with pytest.raises(ValueError, match="Unknown operation type: explode"):
        api.apply(room_plan, {"op": "explode"})


def test_operation_without_type_raises(room_plan):
    with pytest.raises(ValueError, match="'op' or 'type'"):
        api.apply(room_plan, {"wall": "x"})


def test_unknown_wall_raises(room_plan):
    with pytest.raises(ValueError, match="does not exist"):
        api.apply(room_plan, {"op": "delete_wall", "wall": "missing"})


def test_registry_lists_every_operation():
    assert set(list_operations()) >= {
        "add_wall",
        "add_polygon",
        "delete_wall",
        "move_node",
        "update_wall",
        "set_wall_thickness",
        "add_layer",
        "remove_layer",
        "reorder_layers",
        "update_layer_thickness",
        "convert_core_material",
        "reset_wall_type",
        "add_opening",
        "delete_opening",
        "reparent_room",
        "update_room",
    }
    with pytest.raises(KeyError):
        get_operation("explode")


# --- geometry operations ---

def test_add_polygon_creates_typed_walls_and_room(room_plan):
    assert len(room_plan.walls) == 4
    assert all(wall.wall_type_id == "cement-block-wall" for wall in room_plan.walls)
    assert all(wall.thickness == pytest.approx(180.0) for wall in room_plan.walls)
    assert all(len(wall.connected_wall_ids) == 2 for wall in room_plan.walls)
    assert len(room_plan.rooms) == 1
    assert room_plan.rooms[0].gross_area == pytest.approx(120000.0)


def test_type_key_is_accepted_as_operation_name(empty_plan):
    result = api.apply(empty_plan, {"type": "add_polygon", "corner_a": [0, 0], "corner_b": [10, 10]})
    assert len(result.plan.rooms) == 1


def test_add_wall_splits_room(room_plan):
    result = api.apply(room_plan, {"op": "add_wall", "start": [200, 0], "end": [200, 300]})
    assert result.ok
    assert len(result.plan.walls) == 7
    assert sorted(room.gross_area for room in result.plan.rooms) == pytest.approx([60000.0, 60000.0])


def test_delete_wall_merges_rooms(room_plan):
    split = api.apply(room_plan, {"op": "add_wall", "start": [200, 0], "end": [200, 300]}).plan
    divider = next(wall for wall in split.walls if wall.start.x == wall.end.x == 200)
    merged = api.apply(split, {"op": "delete_wall", "wall": divider.id}).plan
    assert len(merged.rooms) == 1
    assert merged.rooms[0].gross_area == pytest.approx(120000.0)


def test_move_node_reshapes_room(room_plan):
    result = api.apply(room_plan, {"op": "move_node", "source": [400, 300], "target": [500, 300]})
    assert result.plan.rooms[0].gross_area == pytest.approx(135000.0)
    assert result.plan.rooms[0].id == room_plan.rooms[0].id


def test_move_node_needs_an_endpoint(room_plan):
    with pytest.raises(ValueError, match="No wall endpoint"):
        api.apply(room_plan, {"op": "move_node", "source": [123, 45], "target": [0, 0]})


def test_overlapping_outline_is_rejected(empty_plan):
    first = api.apply(empty_plan, _rectangle_op(0, 0, 200, 200)).plan
    result = api.apply(first, _rectangle_op(100, 100, 300, 300))
    assert not result.ok
    assert "overlap" in result.errors[0]
    assert result.resolve(first) is first


def test_apply_strict_raises_on_validation_errors(empty_plan):
    first = api.apply(empty_plan, _rectangle_op(0, 0, 200, 200)).plan
    with pytest.raises(RoomValidationError, match="overlap") as excinfo:
        api.apply_strict(first, _rectangle_op(100, 100, 300, 300))
    assert excinfo.value.errors


def test_apply_operations_skips_rejected_edits(empty_plan):
    final, results = api.apply_operations(
        empty_plan,
        [
            _rectangle_op(0, 0, 200, 200),
            _rectangle_op(100, 100, 300, 300),
            _rectangle_op(500, 0, 600, 100),
        ],
    )
    assert [result.ok for result in results] == [True, False, True]
    assert len(final.walls) == 8
    assert sorted(room.gross_area for room in final.rooms) == pytest.approx([10000.0, 40000.0])


def test_move_node_onto_neighbouring_corner_drops_collapsed_wall(room_plan):
    result = api.apply(room_plan, {"op": "move_node", "source": [400, 0], "target": [400, 300]})
    assert len(result.plan.walls) == 3
    assert all(wall.start != wall.end for wall in result.plan.walls)


def test_non_object_operation_raises(empty_plan):
    with pytest.raises(ValueError, match="must be a JSON object"):
        api.apply_operations(empty_plan, [_rectangle_op(0, 0, 10, 10), ["add_wall"]])


# --- wall and assembly operations ---

def test_set_wall_thickness_snaps_core(room_plan):
    wall = room_plan.walls[0]
    result = api.apply(room_plan, {"op": "set_wall_thickness", "wall": wall.id, "thickness": 240})
    updated = result.plan.wall_by_id(wall.id)
    assert updated.thickness == pytest.approx(230.0)
    assert updated.is_wall_type_override
    assert result.plan.rooms == room_plan.rooms


def test_layer_operations(room_plan):
    wall = room_plan.walls[0]
    plan = api.apply(room_plan, {"op": "add_layer", "wall": wall.id, "preset": "plaster", "index": 0}).plan
    assert plan.wall_by_id(wall.id).thickness == pytest.approx(192.0)

    first_layer = plan.wall_by_id(wall.id).wall_layers[0]
    plan = api.apply(plan, {"op": "update_layer_thickness", "wall": wall.id, "layer": first_layer.id, "thickness": 20}).plan
    assert plan.wall_by_id(wall.id).thickness == pytest.approx(200.0)

    plan = api.apply(plan, {"op": "remove_layer", "wall": wall.id, "layer": first_layer.id}).plan
    assert plan.wall_by_id(wall.id).thickness == pytest.approx(180.0)
    assert not plan.wall_by_id(wall.id).is_wall_type_override


def test_unknown_layer_raises(room_plan):
    wall = room_plan.walls[0]
    with pytest.raises(ValueError, match="Layer 'nope' does not exist"):
        api.apply(room_plan, {"op": "remove_layer", "wall": wall.id, "layer": "nope"})


def test_reorder_layers_rejects_negative_index(room_plan):
    wall = room_plan.walls[0]
    with pytest.raises(ValueError, match="non-negative"):
        api.apply(room_plan, {"op": "reorder_layers", "wall": wall.id, "from_index": -1, "to_index": 0})


def test_convert_core_material_and_reset(room_plan):
    wall = room_plan.walls[0]
    plan = api.apply(room_plan, {"op": "convert_core_material", "wall": wall.id, "material": "clay-brick"}).plan
    assert plan.wall_by_id(wall.id).thickness == pytest.approx(260.0)
    plan = api.apply(plan, {"op": "reset_wall_type", "wall": wall.id}).plan
    assert plan.wall_by_id(wall.id).thickness == pytest.approx(180.0)
    with pytest.raises(ValueError, match="Unknown material"):
        api.apply(plan, {"op": "convert_core_material", "wall": wall.id, "material": "cheese"})


def test_update_wall_type_resets_layers(room_plan):
    wall = room_plan.walls[0]
    plan = api.apply(room_plan, {"op": "update_wall", "wall": wall.id, "wall_type_id": "brick-wall"}).plan
    updated = plan.wall_by_id(wall.id)
    assert updated.thickness == pytest.approx(260.0)
    assert updated.wall_layers[1].material == "clay-brick"
    assert not updated.is_wall_type_override
    with pytest.raises(ValueError, match="Cannot update wall fields: start"):
        api.apply(plan, {"op": "update_wall", "wall": wall.id, "start": [0, 0]})


@pytest.mark.parametrize(
    "operation",
    [
        {"op": "add_wall", "start": [0, 500], "end": [100, 500], "wall_type_id": "bogus"},
        _rectangle_op(500, 0, 600, 100, wall_type_id="bogus"),
    ],
)
def test_drawing_with_unknown_wall_type_raises(room_plan, operation):
    with pytest.raises(ValueError, match="Unknown wall type: bogus"):
        api.apply(room_plan, operation)


def test_update_wall_to_unknown_type_keeps_the_wall(room_plan):
    wall = room_plan.walls[0]
    with pytest.raises(ValueError, match="Unknown wall type: no-such-type"):
        api.apply(room_plan, {"op": "update_wall", "wall": wall.id, "wall_type_id": "no-such-type"})
    assert room_plan.wall_by_id(wall.id).wall_type_id == "cement-block-wall"


def test_openings(room_plan):
    wall = room_plan.walls[0]
    plan = api.apply(room_plan, {"op": "add_opening", "wall": wall.id, "type": "window", "position": 0.25, "width": 1200}).plan
    opening = plan.wall_by_id(wall.id).openings[0]
    assert (opening.type, opening.position, opening.width) == ("window", 0.25, 1200.0)
    plan = api.apply(plan, {"op": "delete_opening", "wall": wall.id, "opening": opening.id}).plan
    assert plan.wall_by_id(wall.id).openings == ()
    with pytest.raises(ValueError, match="between 0 and 1"):
        api.apply(plan, {"op": "add_opening", "wall": wall.id, "position": 1.5})


# --- room operations ---

def test_update_room_survives_later_edits(room_plan):
    room = room_plan.rooms[0]
    plan = api.apply(room_plan, {"op": "update_room", "room": room.id, "name": "Living", "space_type": "Lounge"}).plan
    plan = api.apply(plan, _rectangle_op(1000, 0, 1100, 100)).plan
    living = plan.room_by_id(room.id)
    assert living.name == "Living"
    assert living.space_type == "Lounge"


def test_update_room_rejects_unknown_fields(room_plan):
    with pytest.raises(ValueError, match="Cannot update room fields"):
        api.apply(room_plan, {"op": "update_room", "room": room_plan.rooms[0].id, "gross_area": 1})


def test_reparent_to_non_container_warns(nested_plan):
    outer = _room_with_area(nested_plan, 120000.0)
    inner = next(room for room in nested_plan.rooms if room.parent_room_id == outer.id)
    far = next(room for room in nested_plan.rooms if room.id not in (outer.id, inner.id))

    result = api.apply(nested_plan, {"op": "reparent_room", "room": inner.id, "parent": far.id})
    assert result.ok
    assert result.plan.room_by_id(inner.id).parent_room_id == outer.id
    assert f'"{inner.name}" is not inside "{far.name}"; parent was assigned by containment.' in result.warnings


def test_reparent_to_self_raises(nested_plan):
    room = nested_plan.rooms[0]
    with pytest.raises(ValueError, match="own parent"):
        api.apply(nested_plan, {"op": "reparent_room", "room": room.id, "parent": room.id})


def test_opening_the_parent_warns_about_orphaned_child(nested_plan):
    outer = _room_with_area(nested_plan, 120000.0)
    inner = next(room for room in nested_plan.rooms if room.parent_room_id == outer.id)

    result = api.apply(nested_plan, {"op": "delete_wall", "wall": "outer-top"})
    assert result.ok
    assert outer.id not in {room.id for room in result.plan.rooms}
    assert result.plan.room_by_id(inner.id).parent_room_id is None
    assert (
        f'"{inner.name}" moved outside its parent and is now treated as an adjacent/top-level room.'
        in result.warnings
    )


def test_detected_parents_stay_pinned_when_an_intermediate_room_is_drawn(room_plan):
    plan = api.apply(room_plan, _rectangle_op(150, 120, 250, 180)).plan
    child = _room_with_area(plan, 6000.0)
    outer = _room_with_area(plan, 120000.0)
    assert child.manual_parent_room_id == outer.id

    result = api.apply(plan, _rectangle_op(50, 50, 350, 250))
    assert not result.ok
    assert "overlap inside" in result.errors[0]
    assert result.resolve(plan) is plan

    fresh = api.detect(Plan(walls=result.plan.walls))
    middle = _room_with_area(fresh, 60000.0)
    assert _room_with_area(fresh, 6000.0).parent_room_id == middle.id
    assert middle.parent_room_id == _room_with_area(fresh, 120000.0).id


# --- whole-plan helpers ---

def test_detect_and_validate(nested_walls):
    plan = api.detect(Plan(walls=tuple(nested_walls)))
    assert len(plan.rooms) == 2
    assert api.validate(plan).ok
