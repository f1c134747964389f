"""
Configuration for the wall topology and room detection engine.

All lengths are engine-native units unless the name says otherwise.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

# Global parameters for algorithm sensitivity
NODE_SNAP_TOLERANCE = 0.5  # Grid cell used to merge wall endpoints into graph nodes
WALL_NODE_TOLERANCE = 0.5  # Endpoint coincidence for connected_wall_ids
MIN_ROOM_AREA = 4.0  # Signed face area below this is not a room
MAX_TRACE_STEPS = 2048  # Half-edge walk bound for a single face
POINT_EPSILON = 1e-6  # Vertex de-duplication and boundary tests
AREA_EPSILON = 1e-8  # Area comparisons in hierarchy and validation
MIN_WALL_LENGTH = 0.001  # Shorter segments are treated as degenerate
SPLIT_PARAM_MARGIN = 0.001  # No split closer than this (as a fraction) to a wall end
MAX_HIERARCHY_DEPTH = 32

# Formatting-side conversion, only used for m² space-type bands
MM_PER_UNIT = 25.4 / 96

# Thermal surface resistances (m²K/W)
R_SI = 0.13
R_SE = 0.04

# Defaults for new walls and rooms
DEFAULT_WALL_HEIGHT_MM = 2700
DEFAULT_WALL_THICKNESS_MM = 18
DEFAULT_WALL_MATERIAL = "concrete"
DEFAULT_WALL_COLOR = "#6b7280"
DEFAULT_WALL_LAYER = "default"
DEFAULT_FLOOR_HEIGHT = 0.0
DEFAULT_CEILING_HEIGHT = 3.0


@dataclass(frozen=True)
class DetectionSettings:
    """Tunable knobs of the room detection pipeline.

    Attributes:
        snap_tolerance: Grid cell size for endpoint merging.
        min_room_area: Minimum signed area (units²) of a kept face.
        max_trace_steps: Bound on a single half-edge walk.
        mm_per_unit: Millimetres per engine unit, for m² based labels.
    """

    snap_tolerance: float = NODE_SNAP_TOLERANCE
    min_room_area: float = MIN_ROOM_AREA
    max_trace_steps: int = MAX_TRACE_STEPS
    mm_per_unit: float = MM_PER_UNIT

    @property
    def m_per_unit(self) -> float:
        return self.mm_per_unit / 1000.0

    @classmethod
    def from_env(cls) -> "DetectionSettings":
        """Build settings from ROOMGRAPH_* environment variables."""
        return cls(
            snap_tolerance=float(os.environ.get("ROOMGRAPH_SNAP_TOLERANCE", NODE_SNAP_TOLERANCE)),
            min_room_area=float(os.environ.get("ROOMGRAPH_MIN_ROOM_AREA", MIN_ROOM_AREA)),
            max_trace_steps=int(os.environ.get("ROOMGRAPH_MAX_TRACE_STEPS", MAX_TRACE_STEPS)),
            mm_per_unit=float(os.environ.get("ROOMGRAPH_MM_PER_UNIT", MM_PER_UNIT)),
        )


DEFAULT_SETTINGS = DetectionSettings()
