"""Deterministic 2D layout around a focal node.

Two strategies are supported:

- standard: the focal node's subtree is laid out level by level below it, its
  parent directly above it, and its remaining relations on a circle around it;
- contextual: five fixed zones (center, above, below, around, peripheral).

Both are single-pass. Overlaps are possible and are reported, not resolved;
see `LayoutEngine.overlapping_pairs`.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from .models import EdgeType, GraphEdge, Node


class LayoutMode(str, Enum):
    STANDARD = "standard"
    CONTEXTUAL = "contextual"


# Contextual zones (reference units)
CONTEXT_PARENT_Y = -180.0
CONTEXT_CHILD_Y = 180.0
CONTEXT_CHILD_SPACING = 160.0
CONTEXT_RELATION_DISTANCE = 280.0
CONTEXT_ARC_START = math.pi * 0.25  # 45 degrees
CONTEXT_ARC_END = math.pi * 1.75  # 315 degrees
CONTEXT_PERIPHERAL_X = 400.0
CONTEXT_PERIPHERAL_SPACING = 80.0

# Circular fallback when the focal node is missing
FALLBACK_MIN_RADIUS = 150.0
FALLBACK_MAX_RADIUS = 300.0
FALLBACK_RADIUS_PER_NODE = 30.0

DEFAULT_DEPTH_LIMIT = 3


@dataclass(frozen=True)
class LayoutConfig:
    """Geometry parameters, fixed for the lifetime of an engine."""

    hierarchy_vertical_gap: float = 120.0
    child_horizontal_spacing: float = 100.0
    relation_radial_distance: float = 200.0
    min_node_distance: float = 80.0  # advisory only
    node_radius: float = 24.0

    def __post_init__(self) -> None:
        for name in (
            "hierarchy_vertical_gap",
            "child_horizontal_spacing",
            "relation_radial_distance",
            "min_node_distance",
            "node_radius",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def distance_to(self, other: Point) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}


@dataclass(frozen=True)
class PositionedNode:
    id: str
    x: float
    y: float
    radius: float
    level: int | None = None  # hierarchy level relative to the focal node

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "x": self.x, "y": self.y, "radius": self.radius, "level": self.level}


@dataclass(frozen=True)
class PositionedEdge:
    source_id: str
    target_id: str
    edge_type: EdgeType
    is_curved: bool
    source_point: Point
    target_point: Point

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "targetId": self.target_id,
            "edgeType": self.edge_type.value,
            "isCurved": self.is_curved,
            "sourcePoint": self.source_point.to_dict(),
            "targetPoint": self.target_point.to_dict(),
        }


@dataclass(frozen=True)
class LayoutResult:
    positioned_nodes: tuple[PositionedNode, ...] = ()
    positioned_edges: tuple[PositionedEdge, ...] = ()

    def position(self, node_id: str) -> Point | None:
        for node in self.positioned_nodes:
            if node.id == node_id:
                return node.point
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.positioned_nodes],
            "edges": [e.to_dict() for e in self.positioned_edges],
        }


@dataclass
class _EdgeStructure:
    """Adjacency derived from typed edges; lives for one layout call."""

    parents: dict[str, str] = field(default_factory=dict)  # child -> parent
    children: dict[str, list[str]] = field(default_factory=dict)  # parent -> children
    relations: dict[str, list[str]] = field(default_factory=dict)
    cross_workspace: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: Iterable[GraphEdge]) -> _EdgeStructure:
        structure = cls()
        for edge in edges:
            if edge.source == edge.target:
                continue
            if edge.edge_type == EdgeType.HIERARCHY:
                structure.parents[edge.target] = edge.source
                _append_unique(structure.children, edge.source, edge.target)
            elif edge.edge_type == EdgeType.RELATION:
                _append_unique(structure.relations, edge.source, edge.target)
                _append_unique(structure.relations, edge.target, edge.source)
            elif edge.edge_type == EdgeType.CROSS_WORKSPACE:
                _append_unique(structure.cross_workspace, edge.source, edge.target)
                _append_unique(structure.cross_workspace, edge.target, edge.source)
        return structure


def _append_unique(adjacency: dict[str, list[str]], key: str, value: str) -> None:
    values = adjacency.setdefault(key, [])
    if value not in values:
        values.append(value)


class LayoutEngine:
    """Places nodes and edges around a focal node.

    The engine holds only its configuration; every call builds its own
    working state, so one engine can serve concurrent callers.
    """

    def __init__(self, config: LayoutConfig | None = None):
        self.config = config or LayoutConfig()

    def layout(
        self,
        nodes: Iterable[Node],
        edges: Iterable[GraphEdge],
        focal_id: str,
        mode: LayoutMode | str = LayoutMode.STANDARD,
        depth_limit: int = DEFAULT_DEPTH_LIMIT,
    ) -> LayoutResult:
        """Lay out `nodes` around `focal_id`.

        Args:
            nodes: Candidate nodes; only these can receive positions
            edges: Typed edges between node ids
            focal_id: Node placed at the origin
            mode: "standard" or "contextual"
            depth_limit: Hierarchy levels expanded below the focal node
                (standard mode only)

        Returns:
            LayoutResult with positioned nodes and edges in input order.
            Nodes left unplaced, and edges touching them, are omitted.
        """
        nodes = list(nodes)
        edges = list(edges)
        mode = LayoutMode(mode)

        present = {}
        for node in nodes:
            present.setdefault(node.id, node)

        if focal_id not in present:
            positions = self._circle_positions(nodes)
            levels: dict[str, int | None] = {}
        else:
            structure = _EdgeStructure.from_edges(edges)
            if mode == LayoutMode.CONTEXTUAL:
                positions, levels = self._contextual_positions(focal_id, present, structure)
            else:
                positions, levels = self._standard_positions(focal_id, present, structure, depth_limit)

        return self._build_result(nodes, edges, positions, levels)

    def overlapping_pairs(self, result: LayoutResult) -> list[tuple[str, str, float]]:
        """Node pairs placed closer than `min_node_distance`, with their distance."""
        pairs = []
        placed = result.positioned_nodes
        for i, left in enumerate(placed):
            for right in placed[i + 1 :]:
                distance = left.point.distance_to(right.point)
                if distance < self.config.min_node_distance:
                    pairs.append((left.id, right.id, distance))
        return pairs

    def _standard_positions(
        self,
        focal_id: str,
        present: dict[str, Node],
        structure: _EdgeStructure,
        depth_limit: int,
    ) -> tuple[dict[str, Point], dict[str, int | None]]:
        cfg = self.config
        depth_limit = max(0, depth_limit)
        positions = {focal_id: Point(0.0, 0.0)}
        levels: dict[str, int | None] = {focal_id: 0}

        # Level by level below the focal node; positions double as the visited set
        queue = deque([(focal_id, 0)])
        while queue:
            current, level = queue.popleft()
            if level >= depth_limit:
                continue

            child_ids = [
                c for c in structure.children.get(current, []) if c in present and c not in positions
            ]
            if not child_ids:
                continue

            origin = positions[current]
            spacing = cfg.child_horizontal_spacing
            row_width = len(child_ids) * spacing
            for i, child_id in enumerate(child_ids):
                offset_x = -row_width / 2 + i * spacing + spacing / 2
                positions[child_id] = Point(origin.x + offset_x, origin.y + cfg.hierarchy_vertical_gap)
                levels[child_id] = level + 1
                queue.append((child_id, level + 1))

        # Direct parent only, never further up
        parent_id = structure.parents.get(focal_id)
        if depth_limit > 0 and parent_id in present and parent_id not in positions:
            positions[parent_id] = Point(0.0, -cfg.hierarchy_vertical_gap)
            levels[parent_id] = -1

        related = [r for r in structure.relations.get(focal_id, []) if r in present and r not in positions]
        if related:
            center = positions[focal_id]
            step = 2 * math.pi / len(related)
            for i, node_id in enumerate(related):
                angle = step * i
                positions[node_id] = Point(
                    center.x + math.cos(angle) * cfg.relation_radial_distance,
                    center.y + math.sin(angle) * cfg.relation_radial_distance,
                )
                levels[node_id] = None

        return positions, levels

    def _contextual_positions(
        self,
        focal_id: str,
        present: dict[str, Node],
        structure: _EdgeStructure,
    ) -> tuple[dict[str, Point], dict[str, int | None]]:
        # Center
        positions = {focal_id: Point(0.0, 0.0)}
        levels: dict[str, int | None] = {focal_id: 0}

        # Above
        parent_id = structure.parents.get(focal_id)
        if parent_id in present and parent_id not in positions:
            positions[parent_id] = Point(0.0, CONTEXT_PARENT_Y)
            levels[parent_id] = -1

        # Below
        child_ids = [c for c in structure.children.get(focal_id, []) if c in present and c not in positions]
        total_width = (len(child_ids) - 1) * CONTEXT_CHILD_SPACING
        for i, child_id in enumerate(child_ids):
            positions[child_id] = Point(-total_width / 2 + i * CONTEXT_CHILD_SPACING, CONTEXT_CHILD_Y)
            levels[child_id] = 1

        # Around: an arc that leaves the wedge toward the parent open
        related = [r for r in structure.relations.get(focal_id, []) if r in present and r not in positions]
        step = (CONTEXT_ARC_END - CONTEXT_ARC_START) / (len(related) - 1) if len(related) > 1 else 0.0
        for i, node_id in enumerate(related):
            angle = CONTEXT_ARC_START + step * i
            positions[node_id] = Point(
                math.cos(angle) * CONTEXT_RELATION_DISTANCE,
                math.sin(angle) * CONTEXT_RELATION_DISTANCE,
            )
            levels[node_id] = None

        # Peripheral: alternate right/left, each side stacked around y = 0
        foreign = [
            r for r in structure.cross_workspace.get(focal_id, []) if r in present and r not in positions
        ]
        per_side = {1: (len(foreign) + 1) // 2, -1: len(foreign) // 2}
        for i, node_id in enumerate(foreign):
            side = 1 if i % 2 == 0 else -1
            row = i // 2
            y = (row - (per_side[side] - 1) / 2) * CONTEXT_PERIPHERAL_SPACING
            positions[node_id] = Point(side * CONTEXT_PERIPHERAL_X, y)
            levels[node_id] = None

        return positions, levels

    def _circle_positions(self, nodes: list[Node]) -> dict[str, Point]:
        radius = min(FALLBACK_MAX_RADIUS, max(FALLBACK_MIN_RADIUS, len(nodes) * FALLBACK_RADIUS_PER_NODE))
        step = 2 * math.pi / max(1, len(nodes))
        positions = {}
        for i, node in enumerate(nodes):
            if node.id in positions:
                continue
            angle = step * i
            positions[node.id] = Point(math.cos(angle) * radius, math.sin(angle) * radius)
        return positions

    def _build_result(
        self,
        nodes: list[Node],
        edges: list[GraphEdge],
        positions: dict[str, Point],
        levels: dict[str, int | None],
    ) -> LayoutResult:
        placed = []
        emitted = set()
        for node in nodes:
            point = positions.get(node.id)
            if point is None or node.id in emitted:
                continue
            emitted.add(node.id)
            placed.append(
                PositionedNode(
                    id=node.id,
                    x=point.x,
                    y=point.y,
                    radius=self.config.node_radius,
                    level=levels.get(node.id),
                )
            )

        routed = []
        for edge in edges:
            source = positions.get(edge.source)
            target = positions.get(edge.target)
            if source is None or target is None:
                continue
            routed.append(
                PositionedEdge(
                    source_id=edge.source,
                    target_id=edge.target,
                    edge_type=edge.edge_type,
                    is_curved=edge.edge_type != EdgeType.HIERARCHY,
                    source_point=source,
                    target_point=target,
                )
            )

        return LayoutResult(positioned_nodes=tuple(placed), positioned_edges=tuple(routed))
