"""Node loading from markdown vaults and export files."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import frontmatter
import yaml

from ..graph.text import extract_links, parse_tag_query
from ..models import Node, NodeType

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE = "default"

# Frontmatter keys mapped onto Node fields; everything else lands in metadata
RESERVED_KEYS = {
    "id",
    "workspace",
    "type",
    "title",
    "tags",
    "relations",
    "parent",
    "cross_workspace_refs",
    "status",
    "created",
    "updated",
}


def infer_workspace_from_path(path: Path, vault_path: Path) -> str:
    """Use the top-level folder as the workspace; root-level notes go to "default"."""
    try:
        parts = path.relative_to(vault_path).parts
    except ValueError:
        return DEFAULT_WORKSPACE

    if len(parts) < 2:
        return DEFAULT_WORKSPACE
    return parts[0]


def _timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc).isoformat()
    return str(value) if value else ""


def _link_target(value: Any) -> str | None:
    """A bare id, or the target of a single [[wiki-link]]."""
    text = str(value).strip()
    if not text:
        return None
    links = extract_links(text)
    return links[0] if links else text


def _title_from_content(content: str) -> str | None:
    for line in content.split("\n"):
        if line.startswith("# "):
            return line[2:].strip()
    return None


def _json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return _timestamp(value)
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def load_note(path: Path, vault_path: Path) -> Node:
    """Load a single markdown note and map its frontmatter onto a Node."""
    post = frontmatter.load(path)

    fm = post.metadata
    content = post.content

    tags = fm.get("tags", [])
    if isinstance(tags, str):
        tags = parse_tag_query(tags)

    raw_relations = fm.get("relations", [])
    if not isinstance(raw_relations, list):
        raw_relations = [raw_relations]

    relations: list[dict[str, str]] = []
    for raw in raw_relations:
        if isinstance(raw, dict):
            target = _link_target(raw.get("target") or raw.get("id") or "")
            if target:
                relations.append({"targetNodeId": target, "kind": str(raw.get("kind") or "")})
        elif raw is not None:
            target = _link_target(raw)
            if target:
                relations.append({"targetNodeId": target})
    for link in extract_links(content):
        relations.append({"targetNodeId": link})

    refs = fm.get("cross_workspace_refs", [])
    if not isinstance(refs, list):
        refs = [refs]

    updated = fm.get("updated")
    if not updated:
        updated = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)

    parent = fm.get("parent")

    return Node.from_dict(
        {
            "id": str(fm.get("id") or path.stem),
            "workspaceId": str(fm.get("workspace") or infer_workspace_from_path(path, vault_path)),
            "type": str(fm.get("type") or NodeType.NOTE.value),
            "title": str(fm.get("title") or _title_from_content(content) or path.stem),
            "content": content,
            "tags": [str(t) for t in tags or []],
            "relations": relations,
            "crossWorkspaceRefs": [t for t in (_link_target(r) for r in refs if r is not None) if t],
            "parentId": _link_target(parent) if parent else None,
            "metadata": {k: _json_safe(v) for k, v in fm.items() if k not in RESERVED_KEYS},
            "createdAt": _timestamp(fm.get("created")),
            "updatedAt": _timestamp(updated),
            "status": fm.get("status"),
        }
    )


def load_notes(vault_path: Path) -> list[Node]:
    """Load all markdown notes under a vault directory.

    Args:
        vault_path: Path to the vault directory

    Returns:
        Nodes in path order with link targets resolved to ids; notes that
        fail to parse are skipped
    """
    nodes = []

    for md_file in sorted(vault_path.rglob("*.md")):
        # Skip hidden files and directories
        if any(part.startswith(".") for part in md_file.relative_to(vault_path).parts):
            continue

        try:
            nodes.append(load_note(md_file, vault_path))
        except (OSError, ValueError, yaml.YAMLError) as e:
            # Log error but continue loading
            logger.warning("Failed to load %s: %s", md_file, e)

    return resolve_link_targets(nodes)


def resolve_link_targets(nodes: list[Node]) -> list[Node]:
    """Point link targets at loaded node ids.

    Wiki-links are written by hand, so a target that is not an exact id is
    matched case-insensitively against ids, then against titles. Targets that
    still match nothing are left as they are (dangling).
    """
    ids = {n.id for n in nodes}
    lookup: dict[str, str] = {}
    for n in nodes:
        lookup.setdefault(n.id.lower(), n.id)
    for n in nodes:
        if n.title.strip():
            lookup.setdefault(n.title.strip().lower(), n.id)

    def canonical(target: str) -> str:
        if target in ids:
            return target
        return lookup.get(target.strip().lower(), target)

    resolved = []
    for n in nodes:
        relation_ids = tuple(dict.fromkeys(canonical(t) for t in n.relation_ids))
        relation_kinds = {canonical(t): kind for t, kind in n.relation_kinds.items()}
        parent_id = canonical(n.parent_id) if n.parent_id else None
        refs = tuple(dict.fromkeys(canonical(r) for r in n.cross_workspace_refs))

        if (relation_ids, relation_kinds, parent_id, refs) == (
            n.relation_ids,
            n.relation_kinds,
            n.parent_id,
            n.cross_workspace_refs,
        ):
            resolved.append(n)
            continue

        resolved.append(
            replace(
                n,
                relation_ids=relation_ids,
                relation_kinds=relation_kinds,
                parent_id=parent_id,
                cross_workspace_refs=refs,
            )
        )
    return resolved


def load_nodes_file(path: Path) -> list[Node]:
    """Load nodes from a JSON or YAML export.

    The file holds either a list of node records or {"nodes": [...]}.
    """
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")

    if suffix == ".json":
        data = json.loads(text)
    elif suffix in (".yml", ".yaml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"{path.name}: {e}") from e
    else:
        raise ValueError(f"Unsupported node file type: {path.name}")

    if isinstance(data, dict):
        data = data.get("nodes", [])
    if not isinstance(data, list):
        raise ValueError(f"{path.name}: expected a list of nodes")

    return [Node.from_dict(_json_safe(record)) for record in data if isinstance(record, dict)]


def load_nodes(path: Path) -> list[Node]:
    """Load nodes from a vault directory or an export file."""
    if path.is_dir():
        return load_notes(path)
    return load_nodes_file(path)
