"""Operations engine for wall and room edits.

Every operation validates its payload in ``precheck`` (raising ValueError
for unknown ids or malformed values) and returns a new Plan plus non-fatal
warnings from ``apply``. Rooms are not re-derived here; the API layer runs
detection and validation after each operation.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..assembly.materials import MATERIAL_LIBRARY, LAYER_PRESETS, get_default_layer_preset
from ..assembly.wall_types import (
    BUILT_IN_WALL_TYPES,
    DEFAULT_WALL_TYPE_ID,
    WallTypeRegistry,
    add_wall_layer,
    convert_wall_core_material,
    create_wall_from_type_defaults,
    remove_wall_layer,
    reorder_wall_layers,
    reset_wall_to_type_default,
    resize_wall_total_thickness,
    update_wall_layer_thickness,
)
from ..config import WALL_NODE_TOLERANCE
from ..core.model import Opening, Plan, Point, Room, Wall, WallLayer, generate_id
from ..geom.edit import (
    add_edge_with_wall_reuse,
    add_polygon_with_wall_reuse,
    build_rectangle_vertices,
    move_connected_node,
    remove_walls,
)
from ..geom.polygon import points_close
from .hierarchy import apply_nested_room_hierarchy

OperationOutput = Tuple[Plan, List[str]]

WALL_UPDATE_FIELDS = frozenset({"height", "wall_type", "material", "color", "layer", "wall_type_id"})
ROOM_UPDATE_FIELDS = frozenset({"name", "color", "space_type", "floor_height", "ceiling_height", "show_tag"})
OPENING_TYPES = frozenset({"door", "window"})


class Operation(Protocol):
    """Protocol for plan edit operations.

    All operations must implement this interface to be compatible
    with the operation registry and execution engine.
    """

    def precheck(self, plan: Plan, **kwargs: Any) -> bool:
        """Validate that the operation can be applied to the plan.

        Raises:
            ValueError: If validation fails with a specific reason.
        """
        ...

    def apply(self, plan: Plan, **kwargs: Any) -> OperationOutput:
        """Apply the operation and return the new plan with its warnings."""
        ...


def as_point(value: Any) -> Point:
    """Coerce a Point, an {"x", "y"} mapping or an (x, y) pair to a Point."""
    if isinstance(value, Point):
        return value
    try:
        if isinstance(value, Mapping):
            return Point(float(value["x"]), float(value["y"]))
        x, y = value
        return Point(float(x), float(y))
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid point: {value!r}") from e


def _require_wall(plan: Plan, wall: str) -> Wall:
    return plan.wall_by_id(wall)


def _require_layer(wall: Wall, layer: str) -> WallLayer:
    for candidate in wall.wall_layers or ():
        if candidate.id == layer:
            return candidate
    raise ValueError(f"Layer '{layer}' does not exist on wall '{wall.id}'")


def _replace_wall(plan: Plan, updated: Wall) -> Plan:
    return replace(plan, walls=tuple(updated if wall.id == updated.id else wall for wall in plan.walls))


def _replace_room(plan: Plan, updated: Room) -> Plan:
    return replace(plan, rooms=tuple(updated if room.id == updated.id else room for room in plan.rooms))


def _require_wall_type(wall_type_id: Optional[str], registry: WallTypeRegistry) -> None:
    if wall_type_id is not None and all(wall_type.id != wall_type_id for wall_type in registry):
        raise ValueError(f"Unknown wall type: {wall_type_id}")


def _wall_defaults(wall_type_id: Optional[str], registry: WallTypeRegistry, overrides: Mapping[str, Any]) -> Dict[str, Any]:
    defaults = create_wall_from_type_defaults(wall_type_id or DEFAULT_WALL_TYPE_ID, registry)
    defaults.update({key: value for key, value in overrides.items() if value is not None})
    return defaults


class AddWallOp:
    """Draw a wall segment, reusing collinear walls it overlaps."""

    def precheck(
        self,
        plan: Plan,
        start: Any,
        end: Any,
        wall_type_id: Optional[str] = None,
        registry: WallTypeRegistry = BUILT_IN_WALL_TYPES,
        **kwargs: Any,
    ) -> bool:
        _require_wall_type(wall_type_id, registry)
        a = as_point(start)
        b = as_point(end)
        if a == b:
            raise ValueError("Wall start and end must differ")
        return True

    def apply(
        self,
        plan: Plan,
        start: Any,
        end: Any,
        wall_type_id: Optional[str] = None,
        tolerance: float = WALL_NODE_TOLERANCE,
        registry: WallTypeRegistry = BUILT_IN_WALL_TYPES,
        **kwargs: Any,
    ) -> OperationOutput:
        defaults = _wall_defaults(wall_type_id, registry, kwargs)
        walls = add_edge_with_wall_reuse(plan.walls, as_point(start), as_point(end), tolerance, **defaults)
        return replace(plan, walls=tuple(walls)), []


class AddPolygonOp:
    """Draw a closed room outline from vertices or two rectangle corners."""

    def precheck(
        self,
        plan: Plan,
        vertices: Optional[Sequence[Any]] = None,
        corner_a: Any = None,
        corner_b: Any = None,
        wall_type_id: Optional[str] = None,
        registry: WallTypeRegistry = BUILT_IN_WALL_TYPES,
        **kwargs: Any,
    ) -> bool:
        _require_wall_type(wall_type_id, registry)
        if vertices is None:
            if corner_a is None or corner_b is None:
                raise ValueError("add_polygon needs 'vertices' or both 'corner_a' and 'corner_b'")
            a = as_point(corner_a)
            b = as_point(corner_b)
            if a.x == b.x or a.y == b.y:
                raise ValueError("Rectangle corners must span a positive area")
            return True
        if len(vertices) < 3:
            raise ValueError("A polygon needs at least 3 vertices")
        for vertex in vertices:
            as_point(vertex)
        return True

    def apply(
        self,
        plan: Plan,
        vertices: Optional[Sequence[Any]] = None,
        corner_a: Any = None,
        corner_b: Any = None,
        wall_type_id: Optional[str] = None,
        tolerance: float = WALL_NODE_TOLERANCE,
        registry: WallTypeRegistry = BUILT_IN_WALL_TYPES,
        **kwargs: Any,
    ) -> OperationOutput:
        if vertices is None:
            points = build_rectangle_vertices(as_point(corner_a), as_point(corner_b))
        else:
            points = [as_point(vertex) for vertex in vertices]
        defaults = _wall_defaults(wall_type_id, registry, kwargs)
        walls = add_polygon_with_wall_reuse(plan.walls, points, tolerance, **defaults)
        return replace(plan, walls=tuple(walls)), []


class DeleteWallOp:
    def precheck(self, plan: Plan, wall: str, **kwargs: Any) -> bool:
        _require_wall(plan, wall)
        return True

    def apply(self, plan: Plan, wall: str, tolerance: float = WALL_NODE_TOLERANCE, **kwargs: Any) -> OperationOutput:
        return replace(plan, walls=tuple(remove_walls(plan.walls, [wall], tolerance))), []


class MoveNodeOp:
    """Drag a wall endpoint, carrying every wall that shares it."""

    def precheck(
        self, plan: Plan, source: Any, target: Any, tolerance: float = WALL_NODE_TOLERANCE, **kwargs: Any
    ) -> bool:
        point = as_point(source)
        as_point(target)
        for wall in plan.walls:
            if points_close(wall.start, point, tolerance) or points_close(wall.end, point, tolerance):
                return True
        raise ValueError(f"No wall endpoint at ({point.x}, {point.y})")

    def apply(
        self, plan: Plan, source: Any, target: Any, tolerance: float = WALL_NODE_TOLERANCE, **kwargs: Any
    ) -> OperationOutput:
        walls = move_connected_node(plan.walls, as_point(source), as_point(target), tolerance)
        return replace(plan, walls=tuple(walls)), []


class UpdateWallOp:
    """Change non-geometric wall fields; a new wall_type_id resets the layers."""

    def precheck(
        self, plan: Plan, wall: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES, **kwargs: Any
    ) -> bool:
        _require_wall(plan, wall)
        if "wall_type_id" in kwargs:
            _require_wall_type(kwargs["wall_type_id"], registry)
        unknown = set(kwargs) - WALL_UPDATE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update wall fields: {', '.join(sorted(unknown))}")
        return True

    def apply(
        self, plan: Plan, wall: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES, **kwargs: Any
    ) -> OperationOutput:
        current = _require_wall(plan, wall)
        updated = replace(current, **{key: value for key, value in kwargs.items() if key in WALL_UPDATE_FIELDS})
        if "wall_type_id" in kwargs and kwargs["wall_type_id"] != current.wall_type_id:
            updated = reset_wall_to_type_default(replace(updated, wall_layers=None), registry)
        return _replace_wall(plan, updated), []


class SetWallThicknessOp:
    def precheck(self, plan: Plan, wall: str, thickness: float, **kwargs: Any) -> bool:
        _require_wall(plan, wall)
        if float(thickness) <= 0:
            raise ValueError("Wall thickness must be positive")
        return True

    def apply(
        self, plan: Plan, wall: str, thickness: float, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES, **kwargs: Any
    ) -> OperationOutput:
        result = resize_wall_total_thickness(_require_wall(plan, wall), float(thickness), registry)
        return _replace_wall(plan, result.wall), list(result.warnings)


class AddLayerOp:
    def precheck(self, plan: Plan, wall: str, preset: str, index: int = 0, **kwargs: Any) -> bool:
        _require_wall(plan, wall)
        if preset not in LAYER_PRESETS:
            raise ValueError(f"Unknown layer preset: {preset}")
        return True

    def apply(
        self,
        plan: Plan,
        wall: str,
        preset: str,
        index: int = 0,
        registry: WallTypeRegistry = BUILT_IN_WALL_TYPES,
        **kwargs: Any,
    ) -> OperationOutput:
        layer = get_default_layer_preset(preset, int(index))
        result = add_wall_layer(_require_wall(plan, wall), layer, int(index), registry)
        return _replace_wall(plan, result.wall), list(result.warnings)


class RemoveLayerOp:
    def precheck(self, plan: Plan, wall: str, layer: str, **kwargs: Any) -> bool:
        _require_layer(_require_wall(plan, wall), layer)
        return True

    def apply(
        self, plan: Plan, wall: str, layer: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES, **kwargs: Any
    ) -> OperationOutput:
        result = remove_wall_layer(_require_wall(plan, wall), layer, registry)
        return _replace_wall(plan, result.wall), list(result.warnings)


class ReorderLayersOp:
    def precheck(self, plan: Plan, wall: str, from_index: int, to_index: int, **kwargs: Any) -> bool:
        _require_wall(plan, wall)
        if int(from_index) < 0 or int(to_index) < 0:
            raise ValueError("Layer indices must be non-negative")
        return True

    def apply(
        self,
        plan: Plan,
        wall: str,
        from_index: int,
        to_index: int,
        registry: WallTypeRegistry = BUILT_IN_WALL_TYPES,
        **kwargs: Any,
    ) -> OperationOutput:
        result = reorder_wall_layers(_require_wall(plan, wall), int(from_index), int(to_index), registry)
        return _replace_wall(plan, result.wall), list(result.warnings)


class UpdateLayerThicknessOp:
    def precheck(self, plan: Plan, wall: str, layer: str, thickness: float, **kwargs: Any) -> bool:
        _require_layer(_require_wall(plan, wall), layer)
        if float(thickness) <= 0:
            raise ValueError("Layer thickness must be positive")
        return True

    def apply(
        self,
        plan: Plan,
        wall: str,
        layer: str,
        thickness: float,
        registry: WallTypeRegistry = BUILT_IN_WALL_TYPES,
        **kwargs: Any,
    ) -> OperationOutput:
        result = update_wall_layer_thickness(_require_wall(plan, wall), layer, float(thickness), registry)
        return _replace_wall(plan, result.wall), list(result.warnings)


class ConvertCoreMaterialOp:
    def precheck(self, plan: Plan, wall: str, material: str, **kwargs: Any) -> bool:
        _require_wall(plan, wall)
        if material not in MATERIAL_LIBRARY:
            raise ValueError(f"Unknown material: {material}")
        return True

    def apply(
        self, plan: Plan, wall: str, material: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES, **kwargs: Any
    ) -> OperationOutput:
        result = convert_wall_core_material(_require_wall(plan, wall), material, registry)
        return _replace_wall(plan, result.wall), list(result.warnings)


class ResetWallTypeOp:
    def precheck(self, plan: Plan, wall: str, **kwargs: Any) -> bool:
        _require_wall(plan, wall)
        return True

    def apply(
        self, plan: Plan, wall: str, registry: WallTypeRegistry = BUILT_IN_WALL_TYPES, **kwargs: Any
    ) -> OperationOutput:
        return _replace_wall(plan, reset_wall_to_type_default(_require_wall(plan, wall), registry)), []


class AddOpeningOp:
    def precheck(
        self, plan: Plan, wall: str, type: str = "door", position: float = 0.5, **kwargs: Any
    ) -> bool:
        _require_wall(plan, wall)
        if type not in OPENING_TYPES:
            raise ValueError(f"Unknown opening type: {type}")
        if not 0.0 <= float(position) <= 1.0:
            raise ValueError("Opening position must be a fraction between 0 and 1")
        return True

    def apply(
        self,
        plan: Plan,
        wall: str,
        type: str = "door",
        position: float = 0.5,
        width: Optional[float] = None,
        height: Optional[float] = None,
        sill_height: Optional[float] = None,
        material: Optional[str] = None,
        **kwargs: Any,
    ) -> OperationOutput:
        host = _require_wall(plan, wall)
        opening = Opening(id=generate_id(), wall_id=host.id, type=type, position=float(position), material=material)
        sizes = {"width": width, "height": height, "sill_height": sill_height}
        opening = replace(opening, **{key: float(value) for key, value in sizes.items() if value is not None})
        return _replace_wall(plan, replace(host, openings=host.openings + (opening,))), []


class DeleteOpeningOp:
    def precheck(self, plan: Plan, wall: str, opening: str, **kwargs: Any) -> bool:
        host = _require_wall(plan, wall)
        if not any(candidate.id == opening for candidate in host.openings):
            raise ValueError(f"Opening '{opening}' does not exist on wall '{wall}'")
        return True

    def apply(self, plan: Plan, wall: str, opening: str, **kwargs: Any) -> OperationOutput:
        host = _require_wall(plan, wall)
        remaining = tuple(candidate for candidate in host.openings if candidate.id != opening)
        return _replace_wall(plan, replace(host, openings=remaining)), []


class ReparentRoomOp:
    """Pin a room under a chosen parent, or clear the pin with parent=None.

    The pin only sticks when the parent still geometrically contains the
    room; otherwise the hierarchy falls back to containment and a warning
    says so.
    """

    def precheck(self, plan: Plan, room: str, parent: Optional[str] = None, **kwargs: Any) -> bool:
        plan.room_by_id(room)
        if parent is not None:
            plan.room_by_id(parent)
            if parent == room:
                raise ValueError("A room cannot be its own parent")
        return True

    def apply(self, plan: Plan, room: str, parent: Optional[str] = None, **kwargs: Any) -> OperationOutput:
        target = plan.room_by_id(room)
        pinned = _replace_room(plan, replace(target, manual_parent_room_id=parent))
        rooms = apply_nested_room_hierarchy(pinned.rooms)
        resolved = next(candidate for candidate in rooms if candidate.id == room)

        warnings = []
        if parent is not None and resolved.parent_room_id != parent:
            parent_name = plan.room_by_id(parent).name
            warnings.append(f'"{target.name}" is not inside "{parent_name}"; parent was assigned by containment.')
        return replace(plan, rooms=tuple(rooms)), warnings


class UpdateRoomOp:
    def precheck(self, plan: Plan, room: str, **kwargs: Any) -> bool:
        plan.room_by_id(room)
        unknown = set(kwargs) - ROOM_UPDATE_FIELDS - {"registry"}
        if unknown:
            raise ValueError(f"Cannot update room fields: {', '.join(sorted(unknown))}")
        return True

    def apply(self, plan: Plan, room: str, **kwargs: Any) -> OperationOutput:
        current = plan.room_by_id(room)
        updated = replace(current, **{key: value for key, value in kwargs.items() if key in ROOM_UPDATE_FIELDS})
        return _replace_room(plan, updated), []


_OPERATIONS: Dict[str, Operation] = {
    "add_wall": AddWallOp(),
    "add_polygon": AddPolygonOp(),
    "delete_wall": DeleteWallOp(),
    "move_node": MoveNodeOp(),
    "update_wall": UpdateWallOp(),
    "set_wall_thickness": SetWallThicknessOp(),
    "add_layer": AddLayerOp(),
    "remove_layer": RemoveLayerOp(),
    "reorder_layers": ReorderLayersOp(),
    "update_layer_thickness": UpdateLayerThicknessOp(),
    "convert_core_material": ConvertCoreMaterialOp(),
    "reset_wall_type": ResetWallTypeOp(),
    "add_opening": AddOpeningOp(),
    "delete_opening": DeleteOpeningOp(),
    "reparent_room": ReparentRoomOp(),
    "update_room": UpdateRoomOp(),
}


def register_operation(name: str, operation: Operation) -> None:
    """Register a new operation in the registry.

    Args:
        name: Name of the operation.
        operation: Operation instance to register.
    """
    _OPERATIONS[name] = operation


def get_operation(name: str) -> Operation:
    """Get an operation by name.

    Raises:
        KeyError: If the operation is not registered.
    """
    if name not in _OPERATIONS:
        raise KeyError(f"Operation '{name}' is not registered")
    return _OPERATIONS[name]


def list_operations() -> list[str]:
    return list(_OPERATIONS.keys())
