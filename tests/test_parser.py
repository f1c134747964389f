"""Tests for plan JSON loading and saving."""
import json
from dataclasses import replace

import pytest

from roomgraph.core.model import Opening, Plan
from roomgraph.engine.api import detect
from roomgraph.engine.ops import AddLayerOp
from roomgraph.io.parser import load_plan, plan_from_dict, plan_to_dict, save_plan


@pytest.fixture
def detailed_plan(nested_walls):
    plan = detect(Plan(walls=tuple(nested_walls)))
    plan, _ = AddLayerOp().apply(plan, wall="outer-top", preset="insulation")
    door = Opening(id="d1", wall_id="outer-left", position=0.3)
    walls = tuple(replace(wall, openings=(door,)) if wall.id == "outer-left" else wall for wall in plan.walls)
    return Plan(walls=walls, rooms=plan.rooms)


def test_save_and_load_round_trip(tmp_path, detailed_plan):
    path = tmp_path / "plan.json"
    save_plan(detailed_plan, str(path))
    assert load_plan(str(path)) == detailed_plan


def test_documents_use_camel_case_keys(detailed_plan):
    data = plan_to_dict(detailed_plan)
    wall = next(wall for wall in data["walls"] if wall["id"] == "outer-top")
    assert {"wallTypeId", "wallLayers", "isWallTypeOverride", "connectedWallIds"} <= set(wall)
    assert wall["wallLayers"][0]["isCore"] is False
    room = data["rooms"][0]
    assert {"parentRoomId", "childRoomIds", "grossArea", "netArea", "roomType", "manualParentRoomId"} <= set(room)
    opening = next(wall for wall in data["walls"] if wall["id"] == "outer-left")["openings"][0]
    assert opening["wallId"] == "outer-left"
    assert opening["sillHeight"] == 0.0


def test_minimal_wall_record_gets_defaults():
    plan = plan_from_dict({"walls": [{"id": "a", "start": {"x": 0, "y": 0}, "end": {"x": 10, "y": 0}}]})
    wall = plan.walls[0]
    assert wall.thickness == 18
    assert wall.wall_layers is None
    assert plan.rooms == ()


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="File not found"):
        load_plan(str(tmp_path / "missing.json"))


def test_load_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid JSON"):
        load_plan(str(path))


def test_malformed_wall_names_the_record(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"walls": [{"id": "w9", "start": {"x": 0}}]}), encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid wall data for w9"):
        load_plan(str(path))


def test_malformed_room_names_the_record():
    with pytest.raises(ValueError, match="Invalid room data for 0"):
        plan_from_dict({"rooms": [{"name": "no id"}]})


def test_document_must_be_an_object():
    with pytest.raises(ValueError, match="JSON object"):
        plan_from_dict([1, 2, 3])
