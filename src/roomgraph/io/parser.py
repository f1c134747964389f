"""Parser for plan JSON files.

This module converts between Plan objects and the plain JSON documents the
persistence layer stores: ``{"walls": [...], "rooms": [...]}`` with
camelCase keys on every record.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from ..core.model import Opening, Plan, Point, Room, Wall, WallLayer


def _point(data: Dict[str, Any]) -> Point:
    return Point(float(data["x"]), float(data["y"]))


def _point_to_dict(point: Point) -> Dict[str, float]:
    return {"x": point.x, "y": point.y}


def _layer_from_dict(data: Dict[str, Any], order: int) -> WallLayer:
    return WallLayer(
        id=data["id"],
        name=data.get("name", data["material"]),
        material=data["material"],
        thickness=float(data["thickness"]),
        is_core=bool(data.get("isCore", False)),
        color=data.get("color", "#9E9E9E"),
        hatch_pattern=data.get("hatchPattern", ""),
        thermal_conductivity=float(data.get("thermalConductivity", 0.5)),
        density=float(data.get("density", 1200.0)),
        specific_heat_capacity=float(data.get("specificHeatCapacity", 900.0)),
        order=int(data.get("order", order)),
    )


def _layer_to_dict(layer: WallLayer) -> Dict[str, Any]:
    return {
        "id": layer.id,
        "name": layer.name,
        "material": layer.material,
        "thickness": layer.thickness,
        "isCore": layer.is_core,
        "color": layer.color,
        "hatchPattern": layer.hatch_pattern,
        "thermalConductivity": layer.thermal_conductivity,
        "density": layer.density,
        "specificHeatCapacity": layer.specific_heat_capacity,
        "order": layer.order,
    }


def _opening_from_dict(data: Dict[str, Any], wall_id: str) -> Opening:
    opening = Opening(id=data["id"], wall_id=data.get("wallId", wall_id))
    return Opening(
        id=opening.id,
        wall_id=opening.wall_id,
        type=data.get("type", opening.type),
        position=float(data.get("position", opening.position)),
        width=float(data.get("width", opening.width)),
        height=float(data.get("height", opening.height)),
        sill_height=float(data.get("sillHeight", opening.sill_height)),
        material=data.get("material"),
    )


def _opening_to_dict(opening: Opening) -> Dict[str, Any]:
    return {
        "id": opening.id,
        "wallId": opening.wall_id,
        "type": opening.type,
        "position": opening.position,
        "width": opening.width,
        "height": opening.height,
        "sillHeight": opening.sill_height,
        "material": opening.material,
    }


def wall_from_dict(data: Dict[str, Any]) -> Wall:
    layers_data = data.get("wallLayers")
    defaults = Wall(id=data["id"], start=_point(data["start"]), end=_point(data["end"]))
    return Wall(
        id=defaults.id,
        start=defaults.start,
        end=defaults.end,
        thickness=float(data.get("thickness", defaults.thickness)),
        height=float(data.get("height", defaults.height)),
        wall_type=data.get("wallType", defaults.wall_type),
        wall_type_id=data.get("wallTypeId"),
        wall_layers=(
            tuple(_layer_from_dict(layer, index) for index, layer in enumerate(layers_data))
            if layers_data is not None
            else None
        ),
        is_wall_type_override=bool(data.get("isWallTypeOverride", False)),
        material=data.get("material", defaults.material),
        color=data.get("color", defaults.color),
        layer=data.get("layer", defaults.layer),
        connected_wall_ids=tuple(data.get("connectedWallIds", ())),
        openings=tuple(_opening_from_dict(opening, defaults.id) for opening in data.get("openings", ())),
    )


def wall_to_dict(wall: Wall) -> Dict[str, Any]:
    return {
        "id": wall.id,
        "start": _point_to_dict(wall.start),
        "end": _point_to_dict(wall.end),
        "thickness": wall.thickness,
        "height": wall.height,
        "wallType": wall.wall_type,
        "wallTypeId": wall.wall_type_id,
        "wallLayers": [_layer_to_dict(layer) for layer in wall.wall_layers] if wall.wall_layers is not None else None,
        "isWallTypeOverride": wall.is_wall_type_override,
        "material": wall.material,
        "color": wall.color,
        "layer": wall.layer,
        "connectedWallIds": list(wall.connected_wall_ids),
        "openings": [_opening_to_dict(opening) for opening in wall.openings],
    }


def room_from_dict(data: Dict[str, Any]) -> Room:
    vertices = tuple(_point(vertex) for vertex in data["vertices"])
    defaults = Room(id=data["id"], name=data.get("name", ""), wall_ids=tuple(data.get("wallIds", ())), vertices=vertices)
    gross_area = float(data.get("grossArea", data.get("area", 0.0)))
    return Room(
        id=defaults.id,
        name=defaults.name,
        wall_ids=defaults.wall_ids,
        vertices=vertices,
        parent_room_id=data.get("parentRoomId"),
        child_room_ids=tuple(data.get("childRoomIds", ())),
        gross_area=gross_area,
        net_area=float(data.get("netArea", gross_area)),
        room_type=data.get("roomType", defaults.room_type),
        area=float(data.get("area", gross_area)),
        perimeter=float(data.get("perimeter", 0.0)),
        space_type=data.get("spaceType", defaults.space_type),
        manual_parent_room_id=data.get("manualParentRoomId"),
        floor_height=float(data.get("floorHeight", defaults.floor_height)),
        ceiling_height=float(data.get("ceilingHeight", defaults.ceiling_height)),
        color=data.get("color"),
        show_tag=bool(data.get("showTag", True)),
    )


def room_to_dict(room: Room) -> Dict[str, Any]:
    return {
        "id": room.id,
        "name": room.name,
        "wallIds": list(room.wall_ids),
        "vertices": [_point_to_dict(vertex) for vertex in room.vertices],
        "parentRoomId": room.parent_room_id,
        "childRoomIds": list(room.child_room_ids),
        "grossArea": room.gross_area,
        "netArea": room.net_area,
        "roomType": room.room_type,
        "area": room.area,
        "perimeter": room.perimeter,
        "spaceType": room.space_type,
        "manualParentRoomId": room.manual_parent_room_id,
        "floorHeight": room.floor_height,
        "ceilingHeight": room.ceiling_height,
        "color": room.color,
        "showTag": room.show_tag,
    }


def plan_from_dict(data: Dict[str, Any]) -> Plan:
    """Build a Plan from a decoded JSON document.

    Raises:
        ValueError: If a wall or room record is malformed.
    """
    if not isinstance(data, dict):
        raise ValueError("Plan document must be a JSON object")

    walls = []
    for index, wall_data in enumerate(data.get("walls", [])):
        try:
            walls.append(wall_from_dict(wall_data))
        except (KeyError, TypeError, ValueError) as e:
            wall_id = wall_data.get("id", index) if isinstance(wall_data, dict) else index
            raise ValueError(f"Invalid wall data for {wall_id}: {e}") from e

    rooms = []
    for index, room_data in enumerate(data.get("rooms", [])):
        try:
            rooms.append(room_from_dict(room_data))
        except (KeyError, TypeError, ValueError) as e:
            room_id = room_data.get("id", index) if isinstance(room_data, dict) else index
            raise ValueError(f"Invalid room data for {room_id}: {e}") from e

    return Plan(walls=tuple(walls), rooms=tuple(rooms))


def plan_to_dict(plan: Plan) -> Dict[str, Any]:
    return {
        "walls": [wall_to_dict(wall) for wall in plan.walls],
        "rooms": [room_to_dict(room) for room in plan.rooms],
    }


def load_plan(path: str) -> Plan:
    """Load a plan from a JSON file.

    Args:
        path: Path to the JSON file containing plan data.

    Returns:
        Plan object with the stored walls and rooms.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the JSON data is invalid or malformed.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with open(file_path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e

    return plan_from_dict(data)


def save_plan(plan: Plan, path: str, indent: Optional[int] = 2) -> None:
    with open(Path(path), "w", encoding="utf-8") as f:
        json.dump(plan_to_dict(plan), f, indent=indent)
