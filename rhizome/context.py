"""Context resolution: everything a viewer needs to place one node in the graph."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from .graph.index import GraphIndex
from .graph.text import jaccard_similarity
from .models import Node

logger = logging.getLogger(__name__)

# Weights of the suggestion score; they sum to 1 so scores stay in [0, 1]
TAG_WEIGHT = 0.65
KEYWORD_WEIGHT = 0.35
SCORE_PRECISION = 4


@dataclass(frozen=True)
class ContextOptions:
    """Tunable limits for `resolve_context`."""

    recently_connected_limit: int = 8
    suggestion_limit: int = 8
    min_suggestion_score: float = 0.15


@dataclass(frozen=True)
class RelatedNodeSuggestion:
    """An unlinked node that is probably related, with the evidence for it."""

    node: Node
    score: float
    shared_tags: tuple[str, ...] = ()
    matched_keywords: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node.to_dict(),
            "score": self.score,
            "sharedTags": list(self.shared_tags),
            "matchedKeywords": list(self.matched_keywords),
        }


@dataclass(frozen=True)
class ContextView:
    """Read-only view of a node's place in its workspace graph."""

    node: Node
    direct_relations: tuple[Node, ...] = ()
    backlinks: tuple[Node, ...] = ()
    shared_tag_nodes: tuple[Node, ...] = ()
    recently_connected: tuple[Node, ...] = ()
    parent: Node | None = None
    children: tuple[Node, ...] = ()
    pending_todos: tuple[Node, ...] = ()
    suggestions: tuple[RelatedNodeSuggestion, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""

        def ids(nodes: Iterable[Node]) -> list[str]:
            return [n.id for n in nodes]

        return {
            "node": self.node.to_dict(),
            "directRelations": ids(self.direct_relations),
            "backlinks": ids(self.backlinks),
            "sharedTagNodes": ids(self.shared_tag_nodes),
            "recentlyConnectedNodes": ids(self.recently_connected),
            "parentNode": self.parent.id if self.parent else None,
            "childNodes": ids(self.children),
            "pendingTodosInside": ids(self.pending_todos),
            "suggestedRelatedNodes": [s.to_dict() for s in self.suggestions],
        }


def resolve_context(
    node_id: str,
    all_nodes: Iterable[Node],
    options: ContextOptions | None = None,
) -> ContextView | None:
    """Compute the context view for a node.

    Args:
        node_id: Id of the focal node
        all_nodes: Node snapshot; only the focal node's workspace is considered
        options: Limits and thresholds (defaults when omitted)

    Returns:
        ContextView, or None when no node has this id
    """
    options = options or ContextOptions()
    all_nodes = list(all_nodes)

    node = next((n for n in all_nodes if n.id == node_id), None)
    if node is None:
        logger.debug("Context requested for unknown node %s", node_id)
        return None

    index = GraphIndex.build(all_nodes, workspace_id=node.workspace_id)

    direct_relations = [index.by_id[t] for t in index.outgoing.get(node.id, [])]
    backlinks = [index.by_id[s] for s in index.backlinks.get(node.id, [])]

    base_tags = index.tag_set(node.id)
    shared_tag_nodes = [
        other for other in index.nodes if other.id != node.id and base_tags & index.tag_set(other.id)
    ]

    recently_connected = _unique_nodes(direct_relations + backlinks)
    recently_connected.sort(key=lambda n: n.updated, reverse=True)
    recently_connected = recently_connected[: max(0, options.recently_connected_limit)]

    parent = index.parent(node.id)
    children = index.child_nodes(node.id)
    pending_todos = [n for n in index.descendants(node.id) if n.is_pending]

    excluded = {node.id}
    excluded.update(n.id for n in direct_relations)
    excluded.update(n.id for n in backlinks)
    excluded.update(n.id for n in children)
    if parent is not None:
        excluded.add(parent.id)

    suggestions = [
        s
        for s in rank_related_nodes(node, index, excluded)
        if s.score >= options.min_suggestion_score
    ][: max(0, options.suggestion_limit)]

    return ContextView(
        node=node,
        direct_relations=tuple(direct_relations),
        backlinks=tuple(backlinks),
        shared_tag_nodes=tuple(shared_tag_nodes),
        recently_connected=tuple(recently_connected),
        parent=parent,
        children=tuple(children),
        pending_todos=tuple(pending_todos),
        suggestions=tuple(suggestions),
    )


def rank_related_nodes(node: Node, index: GraphIndex, excluded: set[str]) -> list[RelatedNodeSuggestion]:
    """Score every non-excluded node against `node`, best first.

    Only candidates sharing at least one tag or keyword are returned. Ties on
    score are broken by most recent update, then by index order.
    """
    base_tags = index.tag_set(node.id)
    base_keywords = index.token_set(node.id)

    ranked = []
    for candidate in index.nodes:
        if candidate.id in excluded:
            continue

        candidate_tags = index.tag_set(candidate.id)
        candidate_keywords = index.token_set(candidate.id)

        shared_tags = base_tags & candidate_tags
        matched_keywords = base_keywords & candidate_keywords
        if not shared_tags and not matched_keywords:
            continue

        tag_score = jaccard_similarity(base_tags, candidate_tags)
        keyword_score = jaccard_similarity(base_keywords, candidate_keywords)
        score = round(tag_score * TAG_WEIGHT + keyword_score * KEYWORD_WEIGHT, SCORE_PRECISION)

        ranked.append(
            RelatedNodeSuggestion(
                node=candidate,
                score=score,
                shared_tags=tuple(sorted(shared_tags)),
                matched_keywords=tuple(sorted(matched_keywords)),
            )
        )

    # Two stable passes: recency first, then score
    ranked.sort(key=lambda s: s.node.updated, reverse=True)
    ranked.sort(key=lambda s: s.score, reverse=True)
    return ranked


def _unique_nodes(nodes: list[Node]) -> list[Node]:
    seen = set()
    result = []
    for n in nodes:
        if n.id not in seen:
            seen.add(n.id)
            result.append(n)
    return result
