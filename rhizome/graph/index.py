"""Graph index construction and traversal."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterable

from ..models import EdgeType, GraphEdge, Node, parse_timestamp
from .text import normalize_tags, tokenize

logger = logging.getLogger(__name__)


@dataclass
class GraphIndex:
    """Lookup structures over one snapshot of nodes.

    Built fresh for every call; nothing here is cached between calls.
    """

    nodes: list[Node] = field(default_factory=list)  # input order
    by_id: dict[str, Node] = field(default_factory=dict)
    children: dict[str, list[str]] = field(default_factory=dict)  # parent -> children
    outgoing: dict[str, list[str]] = field(default_factory=dict)  # node -> resolved relation ids
    backlinks: dict[str, list[str]] = field(default_factory=dict)  # node -> ids linking to it
    relations: dict[str, list[str]] = field(default_factory=dict)  # symmetric, no self-links
    tags: dict[str, frozenset[str]] = field(default_factory=dict)
    tokens: dict[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, nodes: Iterable[Node], workspace_id: str | None = None) -> GraphIndex:
        """Build the index, optionally restricted to a single workspace."""
        index = cls()

        # Add all nodes first
        for node in nodes:
            if workspace_id is not None and node.workspace_id != workspace_id:
                continue
            if node.id in index.by_id:
                logger.debug("Duplicate node id %s ignored", node.id)
                continue
            index.nodes.append(node)
            index.by_id[node.id] = node
            index.tags[node.id] = normalize_tags(node.tags)
            index.tokens[node.id] = tokenize(f"{node.title} {node.content}")

        # Build edges
        dangling = 0
        for node in index.nodes:
            if node.parent_id:
                if node.parent_id in index.by_id:
                    index.children.setdefault(node.parent_id, []).append(node.id)
                else:
                    dangling += 1

            resolved = []
            for target in node.relation_ids:
                if target not in index.by_id:
                    dangling += 1
                    continue
                if target in resolved:
                    continue
                resolved.append(target)
                index.backlinks.setdefault(target, []).append(node.id)
            index.outgoing[node.id] = resolved

        for node in index.nodes:
            neighbors = []
            for other in index.outgoing.get(node.id, []) + index.backlinks.get(node.id, []):
                if other != node.id and other not in neighbors:
                    neighbors.append(other)
            index.relations[node.id] = neighbors

        if dangling:
            logger.debug("Dropped %d dangling parent/relation references", dangling)

        return index

    def get(self, node_id: str) -> Node | None:
        return self.by_id.get(node_id)

    def parent(self, node_id: str) -> Node | None:
        node = self.by_id.get(node_id)
        if node is None or not node.parent_id:
            return None
        return self.by_id.get(node.parent_id)

    def child_nodes(self, node_id: str) -> list[Node]:
        return [self.by_id[c] for c in self.children.get(node_id, [])]

    def backlink_count(self, node_id: str) -> int:
        return len(self.backlinks.get(node_id, []))

    def tag_set(self, node_id: str) -> frozenset[str]:
        return self.tags.get(node_id, frozenset())

    def token_set(self, node_id: str) -> frozenset[str]:
        return self.tokens.get(node_id, frozenset())

    def descendants(self, node_id: str) -> list[Node]:
        """Breadth-first descendants of a node.

        The visited set stops expansion on malformed (cyclic) hierarchies; the
        start node is never reported as its own descendant.
        """
        visited = {node_id}
        result = []
        queue = deque(self.children.get(node_id, []))

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            result.append(self.by_id[current])

            for child in self.children.get(current, []):
                if child not in visited:
                    queue.append(child)

        return result

    def ancestors(self, node_id: str) -> list[Node]:
        """Walk parent links upward, nearest first, stopping on a repeat."""
        visited = {node_id}
        result = []
        current = self.parent(node_id)
        while current is not None and current.id not in visited:
            visited.add(current.id)
            result.append(current)
            current = self.parent(current.id)
        return result

    def hierarchy_cycles(self) -> list[list[str]]:
        """Find parent-link cycles.

        Returns cycles as ordered paths from A -> parent -> ... -> A, rotated
        to start at the smallest id so each cycle is reported once.
        """
        cycles = []
        seen = set()
        settled = set()

        for node in self.nodes:
            path = []
            current = node.id
            while current is not None and current not in settled:
                if current in path:
                    cycle = path[path.index(current):]
                    min_idx = cycle.index(min(cycle))
                    normalized = tuple(cycle[min_idx:]) + tuple(cycle[:min_idx])
                    if normalized not in seen:
                        seen.add(normalized)
                        cycles.append(list(normalized) + [normalized[0]])
                    break
                path.append(current)
                parent = self.parent(current)
                current = parent.id if parent else None
            settled.update(path)

        return cycles

    def dangling_references(self) -> list[tuple[str, str, str]]:
        """(source id, "parent" | "relation", missing target id) for unresolved pointers."""
        result = []
        for node in self.nodes:
            if node.parent_id and node.parent_id not in self.by_id:
                result.append((node.id, "parent", node.parent_id))
            for target in node.relation_ids:
                if target not in self.by_id:
                    result.append((node.id, "relation", target))
        return result

    def build_edges(self) -> list[GraphEdge]:
        """Typed edges for the layout engine.

        A parent link becomes a hierarchy edge (parent -> child), a relation
        becomes one relation edge per unordered pair, and every cross-workspace
        reference becomes a cross-workspace edge whether or not its target is
        indexed.
        """
        edges = []
        seen_pairs = set()

        for node in self.nodes:
            if node.parent_id and node.parent_id in self.by_id and node.parent_id != node.id:
                edges.append(GraphEdge(node.parent_id, node.id, EdgeType.HIERARCHY))

            for target in self.outgoing.get(node.id, []):
                if target == node.id:
                    continue
                key = tuple(sorted((node.id, target)))
                if key in seen_pairs:
                    continue
                seen_pairs.add(key)
                edges.append(
                    GraphEdge(node.id, target, EdgeType.RELATION, label=node.relation_kinds.get(target))
                )

            for ref in node.cross_workspace_refs:
                edges.append(GraphEdge(node.id, ref, EdgeType.CROSS_WORKSPACE))

        return edges


@dataclass(frozen=True)
class NodeFilter:
    """Selection criteria for `filter_nodes`; "all" disables a criterion."""

    workspace_id: str = "all"
    type: str = "all"
    tags: tuple[str, ...] = ()
    date_from: str | None = None
    date_to: str | None = None

    def __post_init__(self) -> None:
        _parse_bound(self.date_from)
        _parse_bound(self.date_to)


def filter_nodes(nodes: Iterable[Node], filters: NodeFilter) -> list[Node]:
    """Filter nodes by workspace, type, required tags and creation date range."""
    required = normalize_tags(filters.tags)
    min_date = _parse_bound(filters.date_from)
    max_date = _parse_bound(filters.date_to, end_of_day=True)

    result = []
    for node in nodes:
        if filters.workspace_id != "all" and node.workspace_id != filters.workspace_id:
            continue
        if filters.type != "all" and node.type != filters.type:
            continue
        if required and not required <= normalize_tags(node.tags):
            continue
        if min_date or max_date:
            created = parse_timestamp(node.created_at)
            if min_date and created < min_date:
                continue
            if max_date and created > max_date:
                continue
        result.append(node)
    return result


def _parse_bound(value: str | None, *, end_of_day: bool = False) -> datetime | None:
    """A date or timestamp bound; None when unset, ValueError when unreadable."""
    if not value:
        return None
    text = value.strip()
    try:
        day = date.fromisoformat(text)
    except ValueError:
        parsed = parse_timestamp(text)
        if parsed == datetime.min.replace(tzinfo=timezone.utc):
            raise ValueError(f"not a date or timestamp: {value!r}")
        return parsed
    if end_of_day:
        return datetime(day.year, day.month, day.day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
