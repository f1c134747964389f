"""Planar face tracing over the snapped wall graph.

Each wall contributes two directed half-edges. Walking from a half-edge to
the clockwise neighbour of its reverse at the destination node outlines one
face of the planar subdivision; interior faces come out counter-clockwise
(positive signed area) and the unbounded face clockwise, so a positive area
threshold keeps rooms and drops the outside.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..config import DEFAULT_SETTINGS, DetectionSettings
from ..core.model import Point
from ..core.topology import WallGraph
from ..geom.polygon import normalize_polygon_vertices, polygon_area, polygon_centroid, polygon_perimeter

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class HalfEdge:
    id: str
    reverse_id: str
    wall_id: str
    from_node: str
    to_node: str
    angle: float


@dataclass(frozen=True)
class DetectedFace:
    """A closed half-edge loop kept as a candidate room.

    Attributes:
        wall_ids: Boundary walls in walk order, consecutive repeats collapsed.
        vertices: Polygon vertices in walk order.
        signed_area: Shoelace area in units².
        perimeter: Boundary length in units.
        centroid: Area-weighted centroid.
    """

    wall_ids: Tuple[str, ...]
    vertices: Tuple[Point, ...]
    signed_area: float
    perimeter: float
    centroid: Point


def build_half_edges(graph: WallGraph) -> Tuple[List[HalfEdge], Dict[str, List[HalfEdge]]]:
    """Create both directions of every edge and sort them around each node.

    Returns:
        The half-edge list (forward, reverse per edge) and the outgoing
        half-edges of each node sorted by absolute angle.
    """
    nodes = graph.node_by_id()
    half_edges: List[HalfEdge] = []
    outgoing: Dict[str, List[HalfEdge]] = {}

    for edge in graph.edges:
        a = nodes.get(edge.from_node)
        b = nodes.get(edge.to_node)
        if a is None or b is None:
            continue
        forward_id = f"{edge.wall_id}::f"
        reverse_id = f"{edge.wall_id}::r"
        forward = HalfEdge(
            id=forward_id,
            reverse_id=reverse_id,
            wall_id=edge.wall_id,
            from_node=edge.from_node,
            to_node=edge.to_node,
            angle=math.atan2(b.point.y - a.point.y, b.point.x - a.point.x),
        )
        reverse = HalfEdge(
            id=reverse_id,
            reverse_id=forward_id,
            wall_id=edge.wall_id,
            from_node=edge.to_node,
            to_node=edge.from_node,
            angle=math.atan2(a.point.y - b.point.y, a.point.x - b.point.x),
        )
        half_edges.extend((forward, reverse))
        outgoing.setdefault(forward.from_node, []).append(forward)
        outgoing.setdefault(reverse.from_node, []).append(reverse)

    for edges_at_node in outgoing.values():
        edges_at_node.sort(key=lambda half_edge: (half_edge.angle, half_edge.id))

    return half_edges, outgoing


def trace_face(
    start: HalfEdge,
    outgoing: Dict[str, List[HalfEdge]],
    visited: Set[str],
    max_steps: int = DEFAULT_SETTINGS.max_trace_steps,
) -> Optional[List[HalfEdge]]:
    """Walk one face starting from a half-edge.

    The walk is iterative and bounded. A loop that revisits a half-edge other
    than the start, reaches a dead end, or exceeds max_steps yields None and
    leaves ``visited`` untouched. A closed loop marks all its half-edges
    visited.
    """
    face_edges: List[HalfEdge] = []
    seen: Set[str] = set()
    current = start

    for _ in range(max_steps):
        if current.id in seen:
            if current.id == start.id:
                break
            return None

        seen.add(current.id)
        face_edges.append(current)

        candidates = outgoing.get(current.to_node)
        if not candidates:
            return None

        reverse_index = next(
            (index for index, edge in enumerate(candidates) if edge.id == current.reverse_id),
            -1,
        )
        if reverse_index < 0:
            return None

        current = candidates[(reverse_index - 1) % len(candidates)]
        if current.id == start.id:
            break

    if current.id != start.id:
        return None

    visited.update(edge.id for edge in face_edges)
    return face_edges


def normalize_wall_sequence(wall_ids: Sequence[str]) -> List[str]:
    """Collapse consecutive repeats and a wrap-around repeat of the first id."""
    sequence: List[str] = []
    for wall_id in wall_ids:
        if not sequence or sequence[-1] != wall_id:
            sequence.append(wall_id)
    if len(sequence) > 1 and sequence[0] == sequence[-1]:
        sequence.pop()
    return sequence


def trace_faces(graph: WallGraph, settings: DetectionSettings = DEFAULT_SETTINGS) -> List[DetectedFace]:
    """Extract every enclosed minimal cycle of the wall graph.

    Args:
        graph: Snapped wall graph.
        settings: Detection knobs (area threshold, step bound).

    Returns:
        Candidate faces with positive area above the threshold, in the order
        their first half-edge appears.
    """
    nodes = graph.node_by_id()
    half_edges, outgoing = build_half_edges(graph)
    visited: Set[str] = set()
    faces: List[DetectedFace] = []
    unclosed = 0

    for start in half_edges:
        if start.id in visited:
            continue

        traced = trace_face(start, outgoing, visited, settings.max_trace_steps)
        if traced is None:
            unclosed += 1
            continue
        if len(traced) < 3:
            continue

        vertices = normalize_polygon_vertices([nodes[edge.from_node].point for edge in traced])
        if len(vertices) < 3:
            continue

        signed_area = polygon_area(vertices)
        if signed_area <= settings.min_room_area:
            continue

        wall_ids = normalize_wall_sequence([edge.wall_id for edge in traced])
        if len(wall_ids) < 3:
            continue

        faces.append(
            DetectedFace(
                wall_ids=tuple(wall_ids),
                vertices=tuple(vertices),
                signed_area=signed_area,
                perimeter=polygon_perimeter(vertices),
                centroid=polygon_centroid(vertices),
            )
        )

    if unclosed:
        LOGGER.debug("Discarded %d half-edge walks that did not close", unclosed)
    LOGGER.debug("Traced %d candidate faces from %d half-edges", len(faces), len(half_edges))
    return faces
