"""Index command - summarize graph structure per workspace."""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..graph.index import GraphIndex, NodeFilter, filter_nodes
from ..models import EdgeType
from ..vault.loader import load_nodes


def run_index(
    source: Path,
    *,
    workspace: str | None = None,
    filters: NodeFilter | None = None,
    fmt: str = "md",
    top: int = 10,
    out: Path | None = None,
) -> int:
    """Output a structural summary: counts, top backlinks, dangling references, cycles.

    `filters` narrows the node set before indexing, so references to
    filtered-out nodes are reported as dangling.
    """
    console = Console(stderr=True)

    try:
        nodes = load_nodes(source)
    except (OSError, ValueError) as e:
        console.print(f"Error: cannot load nodes from {source}: {e}", style="bold red")
        return 1

    if filters is not None:
        nodes = filter_nodes(nodes, filters)

    workspaces = sorted({n.workspace_id for n in nodes})
    if workspace is not None:
        if workspace not in workspaces:
            console.print(f"Error: workspace '{workspace}' not found", style="bold red")
            return 1
        workspaces = [workspace]

    payload = {
        "workspaces": [_summarize(GraphIndex.build(nodes, workspace_id=w), w, top=top) for w in workspaces]
    }

    if fmt == "rich":
        if out:
            rich_console = Console(record=True)
            _print_rich(payload, console=rich_console)
            out.write_text(rich_console.export_text(), encoding="utf-8")
            console.print(f"Wrote index summary to {out}", style="green")
        else:
            _print_rich(payload, console=Console())
        return 0

    if fmt == "json":
        text = json.dumps(payload, indent=2, sort_keys=True) + "\n"
    else:
        text = _to_markdown(payload)

    if out:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote index summary to {out}", style="green")
    else:
        print(text, end="" if text.endswith("\n") else "\n")

    return 0


def _summarize(index: GraphIndex, workspace: str, *, top: int) -> dict:
    edge_counts = Counter(e.edge_type.value for e in index.build_edges())

    rows = [
        {"id": n.id, "title": n.title, "backlinks": index.backlink_count(n.id)}
        for n in index.nodes
        if index.backlink_count(n.id) > 0
    ]
    rows.sort(key=lambda r: (-r["backlinks"], r["id"]))

    return {
        "workspace": workspace,
        "node_count": len(index.nodes),
        "types": dict(sorted(Counter(n.type for n in index.nodes).items())),
        "edges": {t.value: edge_counts.get(t.value, 0) for t in EdgeType},
        "pending_todos": sum(1 for n in index.nodes if n.is_pending),
        "max_depth": max((len(index.ancestors(n.id)) for n in index.nodes), default=0),
        "top_backlinked": rows[: max(0, top)],
        "dangling": [
            {"source": src, "kind": kind, "target": dst} for src, kind, dst in index.dangling_references()
        ],
        "hierarchy_cycles": index.hierarchy_cycles(),
    }


def _to_markdown(payload: dict) -> str:
    lines: list[str] = []
    for ws in payload["workspaces"]:
        lines.append(f"## Workspace `{ws['workspace']}`")
        lines.append("")
        lines.append(f"- Nodes: {ws['node_count']}")
        for edge_type, count in ws["edges"].items():
            lines.append(f"- {edge_type} edges: {count}")
        lines.append(f"- Pending todos: {ws['pending_todos']}")
        lines.append(f"- Hierarchy depth: {ws['max_depth']}")
        lines.append("")

        lines.append("### Top backlinked")
        lines.append("")
        lines.append("| Node | Backlinks |")
        lines.append("|---|---:|")
        for r in ws["top_backlinked"]:
            lines.append(f"| `{r['id']}` | {r['backlinks']} |")
        lines.append("")

        if ws["dangling"]:
            lines.append("### Dangling references")
            lines.append("")
            for d in ws["dangling"]:
                lines.append(f"- `{d['source']}` {d['kind']} -> `{d['target']}`")
            lines.append("")

        if ws["hierarchy_cycles"]:
            lines.append("### Hierarchy cycles")
            lines.append("")
            for cycle in ws["hierarchy_cycles"]:
                lines.append("- " + " -> ".join(f"`{c}`" for c in cycle))
            lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def _print_rich(payload: dict, *, console: Console) -> None:
    for ws in payload["workspaces"]:
        console.print(f"[bold]Workspace {ws['workspace']}[/bold]")
        edges = "  ".join(f"{k}: {v}" for k, v in ws["edges"].items())
        console.print(f"Nodes: {ws['node_count']}  {edges}  Pending todos: {ws['pending_todos']}  Depth: {ws['max_depth']}")
        console.print()

        t = Table(title="Top backlinked", show_header=True, header_style="bold")
        t.add_column("Node", style="cyan", no_wrap=True)
        t.add_column("Backlinks", justify="right")
        for r in ws["top_backlinked"]:
            t.add_row(r["id"], str(r["backlinks"]))
        console.print(t)
        console.print()

        for d in ws["dangling"]:
            console.print(f"dangling {d['kind']}: {d['source']} -> {d['target']}", style="yellow")
        for cycle in ws["hierarchy_cycles"]:
            console.print("hierarchy cycle: " + " -> ".join(cycle), style="red")
