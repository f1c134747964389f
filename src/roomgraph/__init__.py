"""roomgraph - wall topology, room detection and wall assemblies for floor plans."""

__version__ = "0.1.0"

from .core.model import Opening, Plan, Point, Room, Wall, WallLayer, WallTypeDefinition
from .engine.api import EditResult, apply, apply_strict, detect, validate

__all__ = [
    "EditResult",
    "Opening",
    "Plan",
    "Point",
    "Room",
    "Wall",
    "WallLayer",
    "WallTypeDefinition",
    "apply",
    "apply_strict",
    "detect",
    "validate",
]
