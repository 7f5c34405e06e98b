"""Layout command - compute 2D positions around a focal node."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..graph.index import GraphIndex
from ..layout import DEFAULT_DEPTH_LIMIT, LayoutConfig, LayoutEngine, LayoutMode, LayoutResult
from ..models import EdgeType, GraphEdge, Node
from ..vault.loader import load_nodes


def layout_inputs(nodes: list[Node], focal_id: str) -> tuple[list[Node], list[GraphEdge]]:
    """Nodes visible around `focal_id` and the typed edges between them.

    The focal node's workspace is indexed. Nodes of other workspaces are added
    when a cross-workspace reference joins them to the workspace in either
    direction, so they can sit in the peripheral zone. An unknown focal id
    indexes everything.
    """
    focal = next((n for n in nodes if n.id == focal_id), None)
    if focal is None:
        index = GraphIndex.build(nodes)
        return list(index.nodes), index.build_edges()

    index = GraphIndex.build(nodes, workspace_id=focal.workspace_id)
    edges = index.build_edges()
    referenced = {ref for n in index.nodes for ref in n.cross_workspace_refs}
    linked = {(e.source, e.target) for e in edges if e.edge_type == EdgeType.CROSS_WORKSPACE}

    visible = list(index.nodes)
    seen = set(index.by_id)
    for n in nodes:
        if n.id in seen:
            continue
        incoming = [ref for ref in n.cross_workspace_refs if ref in index.by_id]
        if n.id not in referenced and not incoming:
            continue
        seen.add(n.id)
        visible.append(n)
        # Links stored on the foreign side
        for ref in incoming:
            if (ref, n.id) not in linked and (n.id, ref) not in linked:
                linked.add((n.id, ref))
                edges.append(GraphEdge(n.id, ref, EdgeType.CROSS_WORKSPACE))
    return visible, edges


def run_layout(
    source: Path,
    node_id: str,
    *,
    config: LayoutConfig | None = None,
    mode: str = LayoutMode.STANDARD.value,
    depth: int = DEFAULT_DEPTH_LIMIT,
    fmt: str = "rich",
    out: Path | None = None,
) -> int:
    """Lay out the graph around a node and print positions."""
    console = Console(stderr=True)

    try:
        nodes = load_nodes(source)
    except (OSError, ValueError) as e:
        console.print(f"Error: cannot load nodes from {source}: {e}", style="bold red")
        return 1

    visible, edges = layout_inputs(nodes, node_id)
    if not any(n.id == node_id for n in visible):
        console.print(f"Node '{node_id}' not found; using circular layout", style="yellow")

    engine = LayoutEngine(config)
    result = engine.layout(visible, edges, node_id, mode=mode, depth_limit=depth)

    overlaps = engine.overlapping_pairs(result)
    if overlaps:
        console.print(
            f"{len(overlaps)} node pair(s) closer than {engine.config.min_node_distance:g}",
            style="yellow",
        )

    if fmt == "json":
        text = json.dumps(result.to_dict(), indent=2) + "\n"
        if out:
            out.write_text(text, encoding="utf-8")
            console.print(f"Wrote layout to {out}", style="green")
        else:
            print(text, end="")
        return 0

    if out:
        rich_console = Console(record=True)
        _print_rich(result, console=rich_console)
        out.write_text(rich_console.export_text(), encoding="utf-8")
        console.print(f"Wrote layout to {out}", style="green")
    else:
        _print_rich(result, console=Console())
    return 0


def _print_rich(result: LayoutResult, *, console: Console) -> None:
    console.print(
        f"Nodes: {len(result.positioned_nodes)}  Edges: {len(result.positioned_edges)}"
    )
    console.print()

    t = Table(title="Positions", show_header=True, header_style="bold")
    t.add_column("Node", style="cyan", no_wrap=True)
    t.add_column("X", justify="right")
    t.add_column("Y", justify="right")
    t.add_column("Level", justify="right")
    for n in result.positioned_nodes:
        t.add_row(n.id, f"{n.x:.1f}", f"{n.y:.1f}", "-" if n.level is None else str(n.level))
    console.print(t)
    console.print()

    t = Table(title="Edges", show_header=True, header_style="bold")
    t.add_column("Source", style="cyan", no_wrap=True)
    t.add_column("Target", style="cyan", no_wrap=True)
    t.add_column("Type")
    t.add_column("Curved")
    for e in result.positioned_edges:
        t.add_row(e.source_id, e.target_id, e.edge_type.value, "yes" if e.is_curved else "no")
    console.print(t)
