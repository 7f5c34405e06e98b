"""Data models for knowledge graph nodes and edges."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class NodeType(str, Enum):
    """Known node types. Unknown values stay valid on `Node.type`."""

    NOTE = "note"
    TODO = "todo"
    PROJECT = "project"
    IDEA = "idea"
    LINK = "link"
    EVENT = "event"

    @classmethod
    def parse(cls, value: str | None) -> NodeType | None:
        """Return the known variant for `value`, or None for anything else."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class EdgeType(str, Enum):
    HIERARCHY = "hierarchy"
    RELATION = "relation"
    CROSS_WORKSPACE = "cross-workspace"


# "task" is accepted as a spelling of the todo type
TASK_TYPES = frozenset({NodeType.TODO.value, "task"})

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO-8601 timestamp; unparseable values sort as the earliest instant."""
    if not value:
        return _EPOCH
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    return tuple(str(v) for v in value if v is not None and str(v).strip())


@dataclass(frozen=True)
class Node:
    """A single knowledge record."""

    id: str
    workspace_id: str
    type: str = NodeType.NOTE.value  # open-ended; see NodeType.parse
    title: str = ""
    content: str = ""
    tags: tuple[str, ...] = ()
    relation_ids: tuple[str, ...] = ()
    relation_kinds: dict[str, str] = field(default_factory=dict)  # relation id -> kind
    cross_workspace_refs: tuple[str, ...] = ()
    parent_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
    updated_at: str = ""
    status: str | None = None

    @property
    def known_type(self) -> NodeType | None:
        return NodeType.parse(self.type)

    @property
    def is_task(self) -> bool:
        return (self.type or "").strip().lower() in TASK_TYPES

    @property
    def is_pending(self) -> bool:
        """True for task-like nodes that are not done yet."""
        return self.is_task and (self.status or "").strip().lower() == TaskStatus.PENDING.value

    @property
    def updated(self) -> datetime:
        return parse_timestamp(self.updated_at)

    @property
    def created(self) -> datetime:
        return parse_timestamp(self.created_at)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        """Build a node from an export record (camelCase or snake_case keys).

        Relations may be given as `relationIds` (plain ids) or as `relations`,
        a list of ids or `{"targetNodeId": ..., "kind": ...}` objects.
        """

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        node_id = str(pick("id", default="")).strip()
        if not node_id:
            raise ValueError("node record is missing an id")

        relation_ids: list[str] = []
        relation_kinds: dict[str, str] = {}
        for raw in _as_list(pick("relationIds", "relation_ids", default=[])):
            relation_ids.append(str(raw))
        for raw in _as_list(pick("relations", default=[])):
            if isinstance(raw, dict):
                target = raw.get("targetNodeId") or raw.get("target_node_id") or raw.get("id")
                if not target:
                    continue
                relation_ids.append(str(target))
                if raw.get("kind"):
                    relation_kinds[str(target)] = str(raw["kind"])
            elif raw is not None:
                relation_ids.append(str(raw))

        parent = pick("parentId", "parent_id")
        status = pick("status")
        metadata = pick("metadata", default={})

        return cls(
            id=node_id,
            workspace_id=str(pick("workspaceId", "workspace_id", default="default")),
            type=str(pick("type", default=NodeType.NOTE.value)),
            title=str(pick("title", default="")),
            content=str(pick("content", default="")),
            tags=_tags(pick("tags", default=[])),
            relation_ids=tuple(dict.fromkeys(relation_ids)),
            relation_kinds=relation_kinds,
            cross_workspace_refs=_as_tuple(pick("crossWorkspaceRefs", "cross_workspace_refs", default=[])),
            parent_id=str(parent) if parent else None,
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
            created_at=str(pick("createdAt", "created_at", default="")),
            updated_at=str(pick("updatedAt", "updated_at", default="")),
            status=str(status) if status else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to an export record with camelCase keys."""
        data: dict[str, Any] = {
            "id": self.id,
            "workspaceId": self.workspace_id,
            "type": self.type,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "relationIds": list(self.relation_ids),
            "crossWorkspaceRefs": list(self.cross_workspace_refs),
            "parentId": self.parent_id,
            "metadata": dict(self.metadata),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "status": self.status,
        }
        if self.relation_kinds:
            data["relationKinds"] = dict(self.relation_kinds)
        return data


def _tags(value: Any) -> tuple[str, ...]:
    """Tags as a list, or as one query string such as "#research, q1"."""
    if isinstance(value, str):
        from .graph.text import parse_tag_query

        return tuple(parse_tag_query(value))
    return _as_tuple(value)


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass(frozen=True)
class GraphEdge:
    """A typed edge between two node ids."""

    source: str
    target: str
    edge_type: EdgeType
    label: str | None = None  # relation kind, when one was recorded

    def __post_init__(self) -> None:
        object.__setattr__(self, "edge_type", EdgeType(self.edge_type))

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "edgeType": self.edge_type.value,
            "label": self.label,
        }
