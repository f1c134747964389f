"""Core data models and wall topology."""

from .model import Opening, Plan, Point, Room, Wall, WallLayer, WallTypeDefinition
from .topology import build_room_hierarchy_graph, build_wall_adjacency_map, build_wall_graph, build_wall_network

__all__ = [
    "Opening",
    "Plan",
    "Point",
    "Room",
    "Wall",
    "WallLayer",
    "WallTypeDefinition",
    "build_wall_graph",
    "build_wall_adjacency_map",
    "build_wall_network",
    "build_room_hierarchy_graph",
]
