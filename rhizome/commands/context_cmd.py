"""Context command - show a node's place in its workspace graph."""

from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from ..context import ContextOptions, ContextView, resolve_context
from ..models import Node
from ..vault.loader import load_nodes


def run_context(
    source: Path,
    node_id: str,
    *,
    options: ContextOptions | None = None,
    fmt: str = "rich",
    out: Path | None = None,
) -> int:
    """Print the context view of one node.

    Args:
        source: Vault directory or node export file
        node_id: Id of the focal node
        options: Limits and thresholds
        fmt: Output format ("rich", "md", "json")
        out: Write output to this file instead of stdout

    Returns:
        Exit code (0 = success, 1 = node not found)
    """
    console = Console(stderr=True)

    try:
        nodes = load_nodes(source)
    except (OSError, ValueError) as e:
        console.print(f"Error: cannot load nodes from {source}: {e}", style="bold red")
        return 1

    view = resolve_context(node_id, nodes, options)
    if view is None:
        console.print(f"Error: node '{node_id}' not found", style="bold red")
        return 1

    if fmt == "json":
        _emit(json.dumps(view.to_dict(), indent=2, default=str) + "\n", out, console)
    elif fmt == "md":
        _emit(_context_to_markdown(view), out, console)
    elif out:
        rich_console = Console(record=True)
        _print_context_rich(view, console=rich_console)
        out.write_text(rich_console.export_text(), encoding="utf-8")
        console.print(f"Wrote context to {out}", style="green")
    else:
        _print_context_rich(view, console=Console())

    return 0


def run_suggest(
    source: Path,
    node_id: str,
    *,
    options: ContextOptions | None = None,
    limit: int | None = None,
    min_score: float | None = None,
    fmt: str = "rich",
) -> int:
    """Print ranked suggestions of unlinked but probably related nodes."""
    console = Console(stderr=True)

    options = options or ContextOptions()
    if limit is not None:
        options = replace(options, suggestion_limit=limit)
    if min_score is not None:
        options = replace(options, min_suggestion_score=min_score)

    try:
        nodes = load_nodes(source)
    except (OSError, ValueError) as e:
        console.print(f"Error: cannot load nodes from {source}: {e}", style="bold red")
        return 1

    view = resolve_context(node_id, nodes, options)
    if view is None:
        console.print(f"Error: node '{node_id}' not found", style="bold red")
        return 1

    if fmt == "json":
        payload = [s.to_dict() for s in view.suggestions]
        print(json.dumps(payload, indent=2, default=str))
        return 0

    if not view.suggestions:
        console.print(f"No suggestions for '{node_id}'", style="yellow")
        return 0

    if fmt == "md":
        lines = [f"## Suggestions for {_label(view.node)}", ""]
        lines.append("| Node | Score | Shared tags | Matched keywords |")
        lines.append("|---|---:|---|---|")
        for s in view.suggestions:
            lines.append(
                f"| `{s.node.id}` | {s.score:.4f} | {', '.join(s.shared_tags)} | {', '.join(s.matched_keywords)} |"
            )
        print("\n".join(lines))
        return 0

    t = Table(title=f"Suggestions for {_label(view.node)}", show_header=True, header_style="bold")
    t.add_column("Node", style="cyan", no_wrap=True)
    t.add_column("Score", justify="right")
    t.add_column("Shared tags")
    t.add_column("Matched keywords")
    for s in view.suggestions:
        t.add_row(_label(s.node), f"{s.score:.4f}", ", ".join(s.shared_tags), ", ".join(s.matched_keywords))
    Console().print(t)
    return 0


def _emit(text: str, out: Path | None, console: Console) -> None:
    if out:
        out.write_text(text, encoding="utf-8")
        console.print(f"Wrote context to {out}", style="green")
    else:
        print(text, end="" if text.endswith("\n") else "\n")


def _label(node: Node) -> str:
    if node.title and node.title != node.id:
        return f"{node.title} ({node.id})"
    return node.id


def _sections(view: ContextView) -> list[tuple[str, list[Node]]]:
    return [
        ("Direct relations", list(view.direct_relations)),
        ("Backlinks", list(view.backlinks)),
        ("Recently connected", list(view.recently_connected)),
        ("Children", list(view.children)),
        ("Pending todos inside", list(view.pending_todos)),
        ("Shared tags", list(view.shared_tag_nodes)),
    ]


def _context_to_markdown(view: ContextView) -> str:
    lines: list[str] = []
    lines.append(f"## {_label(view.node)}")
    lines.append("")
    lines.append(f"- Type: {view.node.type}")
    lines.append(f"- Workspace: {view.node.workspace_id}")
    lines.append(f"- Parent: {_label(view.parent) if view.parent else '-'}")
    lines.append("")

    for title, nodes in _sections(view):
        lines.append(f"### {title}")
        lines.append("")
        if not nodes:
            lines.append("- None")
        for n in nodes:
            lines.append(f"- `{n.id}` {n.title}".rstrip())
        lines.append("")

    lines.append("### Suggested related nodes")
    lines.append("")
    if view.suggestions:
        lines.append("| Node | Score | Shared tags | Matched keywords |")
        lines.append("|---|---:|---|---|")
        for s in view.suggestions:
            lines.append(
                f"| `{s.node.id}` | {s.score:.4f} | {', '.join(s.shared_tags)} | {', '.join(s.matched_keywords)} |"
            )
    else:
        lines.append("- None")

    return "\n".join(lines).rstrip() + "\n"


def _print_context_rich(view: ContextView, *, console: Console) -> None:
    console.print(f"[bold]{_label(view.node)}[/bold]")
    console.print(f"Type: {view.node.type}  Workspace: {view.node.workspace_id}")
    console.print(f"Parent: {_label(view.parent) if view.parent else '-'}")
    console.print()

    for title, nodes in _sections(view):
        if not nodes:
            continue
        t = Table(title=title, show_header=True, header_style="bold")
        t.add_column("Node", style="cyan", no_wrap=True)
        t.add_column("Type")
        t.add_column("Updated")
        for n in nodes:
            t.add_row(_label(n), n.type, n.updated_at or "-")
        console.print(t)
        console.print()

    if view.suggestions:
        t = Table(title="Suggested related nodes", show_header=True, header_style="bold")
        t.add_column("Node", style="cyan", no_wrap=True)
        t.add_column("Score", justify="right")
        t.add_column("Why")
        for s in view.suggestions:
            why = ", ".join([f"#{tag}" for tag in s.shared_tags] + list(s.matched_keywords))
            t.add_row(_label(s.node), f"{s.score:.4f}", why)
        console.print(t)
    else:
        console.print(Markdown("_No suggestions._"))
