"""Core data models for the wall topology engine.

This module defines the fundamental data structures exchanged with the
editor: points, walls with their layered assemblies and openings, and the
rooms derived from them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Tuple

from ..config import (
    DEFAULT_CEILING_HEIGHT,
    DEFAULT_FLOOR_HEIGHT,
    DEFAULT_WALL_COLOR,
    DEFAULT_WALL_HEIGHT_MM,
    DEFAULT_WALL_LAYER,
    DEFAULT_WALL_MATERIAL,
    DEFAULT_WALL_THICKNESS_MM,
)

ROOM_TYPE_ENCLOSED = "enclosed-space"
ROOM_TYPE_REMAINING = "remaining-area"
ROOM_TYPE_SURROUNDING = "surrounding-area"


def generate_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Point:
    """Represents a 2D point in engine-native units.

    Attributes:
        x: The x-coordinate of the point.
        y: The y-coordinate of the point.
    """

    x: float
    y: float


@dataclass(frozen=True)
class Opening:
    """A door or window cut-out hosted by a wall.

    Attributes:
        id: Unique identifier for the opening.
        wall_id: ID of the host wall.
        type: "door" or "window".
        position: Fraction (0..1) along the wall from start to end.
        width: Opening width.
        height: Opening height.
        sill_height: Height of the sill above the floor.
        material: Optional material label.
    """

    id: str
    wall_id: str
    type: str = "door"
    position: float = 0.5
    width: float = 900.0
    height: float = 2100.0
    sill_height: float = 0.0
    material: Optional[str] = None


@dataclass(frozen=True)
class MaterialProperties:
    material: str
    name: str
    thermal_conductivity: float
    density: float
    specific_heat_capacity: float


@dataclass(frozen=True)
class WallLayer:
    """One ply of a wall cross-section.

    Attributes:
        id: Unique identifier for the layer.
        name: Display name.
        material: Material key in the material library.
        thickness: Thickness in millimetres.
        is_core: Whether this is a structural core ply.
        color: Display color.
        hatch_pattern: Pattern id used by renderers and in fingerprints.
        thermal_conductivity: W/mK.
        density: kg/m³.
        specific_heat_capacity: J/kgK.
        order: Position within the stack, outermost first.
    """

    id: str
    name: str
    material: str
    thickness: float
    is_core: bool = False
    color: str = "#9E9E9E"
    hatch_pattern: str = ""
    thermal_conductivity: float = 0.5
    density: float = 1200.0
    specific_heat_capacity: float = 900.0
    order: int = 0


@dataclass(frozen=True)
class WallTypeDefinition:
    """A named, reusable layered wall assembly.

    Attributes:
        id: Registry key.
        name: Display name.
        category: "structural" or "partition".
        layers: Ordered layer stack.
        total_thickness: Sum of layer thicknesses (mm).
        u_value: Thermal transmittance (W/m²K).
        default_height: Height for new walls of this type (mm).
        plan_texture_id: Plan texture for renderers.
        section_texture_id: Section texture for renderers.
        core_color: Color of the core ply.
    """

    id: str
    name: str
    category: str
    layers: Tuple[WallLayer, ...]
    total_thickness: float
    u_value: float
    default_height: float = DEFAULT_WALL_HEIGHT_MM
    plan_texture_id: str = ""
    section_texture_id: str = ""
    core_color: str = "#9E9E9E"


@dataclass(frozen=True)
class Wall:
    """Represents a wall centerline segment.

    Attributes:
        id: Unique identifier for the wall.
        start: Starting point of the wall.
        end: Ending point of the wall.
        thickness: Total thickness (mm), derived from layers when known.
        height: Wall height (mm).
        wall_type: Free-form classification ("interior", "exterior", ...).
        wall_type_id: Reference into the wall type registry.
        wall_layers: Instance-level layer override, None to follow the type.
        is_wall_type_override: Whether the effective layers differ from the type.
        material: Core material display name.
        color: Display color.
        layer: Drawing layer id.
        connected_wall_ids: Walls sharing an endpoint, always recomputed.
        openings: Doors and windows hosted by this wall.
    """

    id: str
    start: Point
    end: Point
    thickness: float = DEFAULT_WALL_THICKNESS_MM
    height: float = DEFAULT_WALL_HEIGHT_MM
    wall_type: str = "interior"
    wall_type_id: Optional[str] = None
    wall_layers: Optional[Tuple[WallLayer, ...]] = None
    is_wall_type_override: bool = False
    material: Optional[str] = DEFAULT_WALL_MATERIAL
    color: Optional[str] = DEFAULT_WALL_COLOR
    layer: str = DEFAULT_WALL_LAYER
    connected_wall_ids: Tuple[str, ...] = ()
    openings: Tuple[Opening, ...] = ()


@dataclass(frozen=True)
class Room:
    """Represents a room derived from an enclosed wall cycle.

    Rooms are never built by callers; detection creates them and carries
    user-entered fields (name, color, space type, heights, manual parent)
    across re-detections of the same boundary.

    Attributes:
        id: Unique identifier for the room.
        name: Human-readable name of the room.
        wall_ids: Ordered boundary wall ids (cyclic).
        vertices: Closed polygon, first point not repeated.
        parent_room_id: Room this one lives inside, if any.
        child_room_ids: Direct children (inverse of parent_room_id).
        gross_area: Own polygon area (units²).
        net_area: Gross area minus direct children's gross area, >= 0.
        room_type: enclosed-space, remaining-area or surrounding-area.
        area: Effective area, equal to net_area after hierarchy.
        perimeter: Polygon perimeter (units).
        space_type: Free-form or suggested classification label.
        manual_parent_room_id: User-pinned parent override.
        floor_height: Floor level.
        ceiling_height: Ceiling level.
        color: Display color.
        show_tag: Whether renderers should show the room tag.
    """

    id: str
    name: str
    wall_ids: Tuple[str, ...]
    vertices: Tuple[Point, ...]
    parent_room_id: Optional[str] = None
    child_room_ids: Tuple[str, ...] = ()
    gross_area: float = 0.0
    net_area: float = 0.0
    room_type: str = ROOM_TYPE_ENCLOSED
    area: float = 0.0
    perimeter: float = 0.0
    space_type: str = "detected"
    manual_parent_room_id: Optional[str] = None
    floor_height: float = DEFAULT_FLOOR_HEIGHT
    ceiling_height: float = DEFAULT_CEILING_HEIGHT
    color: Optional[str] = None
    show_tag: bool = True


@dataclass(frozen=True)
class Plan:
    """The (walls, rooms) pair handed to the history collaborator.

    Attributes:
        walls: Current wall list.
        rooms: Rooms derived from the walls.
    """

    walls: Tuple[Wall, ...] = ()
    rooms: Tuple[Room, ...] = ()

    def wall_by_id(self, wall_id: str) -> Wall:
        for wall in self.walls:
            if wall.id == wall_id:
                return wall
        raise ValueError(f"Wall '{wall_id}' does not exist")

    def room_by_id(self, room_id: str) -> Room:
        for room in self.rooms:
            if room.id == room_id:
                return room
        raise ValueError(f"Room '{room_id}' does not exist")
