"""Topology analysis for wall networks.

This module turns a wall list into the graphs the rest of the engine works
on: the snapped node/edge graph used for face tracing, the endpoint
adjacency stored on each wall, and NetworkX views for connectivity and
room nesting queries.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Sequence, Set, Tuple

import networkx as nx

from ..config import NODE_SNAP_TOLERANCE, WALL_NODE_TOLERANCE
from .model import Point, Room, Wall

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphNode:
    id: str
    point: Point


@dataclass(frozen=True)
class GraphEdge:
    wall_id: str
    from_node: str
    to_node: str


@dataclass(frozen=True)
class WallGraph:
    """Snapped wall graph.

    Attributes:
        nodes: Deduplicated endpoints, positioned at the mean of their members.
        edges: One edge per non-degenerate wall.
    """

    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]

    def node_by_id(self) -> Dict[str, GraphNode]:
        return {node.id: node for node in self.nodes}


def point_to_grid_key(point: Point, step: float) -> str:
    """Quantize a point to a grid cell key of the given step."""
    safe_step = max(step, 1e-4)
    gx = math.floor(point.x / safe_step + 0.5)
    gy = math.floor(point.y / safe_step + 0.5)
    return f"{gx}:{gy}"


def build_wall_graph(walls: Sequence[Wall], snap_tolerance: float = NODE_SNAP_TOLERANCE) -> WallGraph:
    """Merge wall endpoints into graph nodes and emit one edge per wall.

    Endpoints falling into the same grid cell become one node whose position
    is the running mean of its members. Walls whose two endpoints land on
    the same node are dropped.

    Args:
        walls: Current wall list.
        snap_tolerance: Grid cell size used for merging.

    Returns:
        WallGraph with nodes in first-seen order.
    """
    accumulators: Dict[str, List[float]] = {}
    edges: List[GraphEdge] = []

    def node_id_for(point: Point) -> str:
        key = point_to_grid_key(point, snap_tolerance)
        acc = accumulators.get(key)
        if acc is None:
            accumulators[key] = [point.x, point.y, 1.0]
        else:
            acc[0] += point.x
            acc[1] += point.y
            acc[2] += 1.0
        return f"n:{key}"

    dropped = 0
    for wall in walls:
        from_id = node_id_for(wall.start)
        to_id = node_id_for(wall.end)
        if from_id == to_id:
            dropped += 1
            continue
        edges.append(GraphEdge(wall_id=wall.id, from_node=from_id, to_node=to_id))

    nodes = tuple(
        GraphNode(id=f"n:{key}", point=Point(sx / count, sy / count))
        for key, (sx, sy, count) in accumulators.items()
    )
    if dropped:
        LOGGER.debug("Dropped %d degenerate walls while building the wall graph", dropped)
    return WallGraph(nodes=nodes, edges=tuple(edges))


def build_wall_adjacency_map(walls: Iterable[Wall], tolerance: float = WALL_NODE_TOLERANCE) -> Dict[str, Set[str]]:
    """Build adjacency mapping from each wall to the walls sharing an endpoint.

    Two walls are adjacent when any endpoint of one lies within the
    tolerance (per axis) of any endpoint of the other.

    Args:
        walls: Walls to analyse.
        tolerance: Endpoint coincidence tolerance.

    Returns:
        Dictionary mapping wall_id to the set of adjacent wall ids.
    """
    wall_list = list(walls)
    adjacency: Dict[str, Set[str]] = {wall.id: set() for wall in wall_list}

    for i, a in enumerate(wall_list):
        for b in wall_list[i + 1 :]:
            if a.id == b.id or not walls_share_endpoint(a, b, tolerance):
                continue
            adjacency[a.id].add(b.id)
            adjacency[b.id].add(a.id)

    return adjacency


def _endpoints_touch(a: Point, b: Point, tolerance: float) -> bool:
    return abs(a.x - b.x) <= tolerance and abs(a.y - b.y) <= tolerance


def walls_share_endpoint(a: Wall, b: Wall, tolerance: float = WALL_NODE_TOLERANCE) -> bool:
    return any(
        _endpoints_touch(p, q, tolerance)
        for p in (a.start, a.end)
        for q in (b.start, b.end)
    )


def rebuild_wall_adjacency(walls: Sequence[Wall], tolerance: float = WALL_NODE_TOLERANCE) -> List[Wall]:
    """Return the walls with freshly computed connected_wall_ids."""
    adjacency = build_wall_adjacency_map(walls, tolerance)
    rebuilt = []
    for wall in walls:
        connected = tuple(sorted(adjacency.get(wall.id, ())))
        rebuilt.append(wall if connected == wall.connected_wall_ids else replace(wall, connected_wall_ids=connected))
    return rebuilt


def build_wall_network(walls: Sequence[Wall], tolerance: float = WALL_NODE_TOLERANCE) -> nx.Graph:
    """Build a graph where nodes are walls and edges are shared endpoints.

    Args:
        walls: Walls to include.
        tolerance: Endpoint coincidence tolerance.

    Returns:
        NetworkX Graph over wall ids.
    """
    G = nx.Graph()
    for wall in walls:
        G.add_node(wall.id)
    for wall_id, neighbours in build_wall_adjacency_map(walls, tolerance).items():
        for neighbour in neighbours:
            G.add_edge(wall_id, neighbour)
    return G


def build_room_hierarchy_graph(rooms: Sequence[Room]) -> nx.DiGraph:
    """Build a directed parent -> child graph of rooms.

    Args:
        rooms: Rooms with resolved parent_room_id.

    Returns:
        NetworkX DiGraph; nodes carry the room name.
    """
    G = nx.DiGraph()
    for room in rooms:
        G.add_node(room.id, name=room.name)
    for room in rooms:
        if room.parent_room_id is not None and room.parent_room_id in G:
            G.add_edge(room.parent_room_id, room.id)
    return G
