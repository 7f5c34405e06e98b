"""CLI entrypoint for rhizome."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import ConfigError, RhizomeConfig, find_config, load_config


def _auto_detect_source(start: Path) -> Path | None:
    """Find a ./notes vault folder by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if p.is_dir() and p.name.lower() == "notes":
            return p
        candidate = p / "notes"
        if candidate.is_dir():
            return candidate
    return None


@click.group()
@click.version_option(__version__, prog_name="rhizome")
@click.option(
    "--source",
    "-s",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="Vault directory or node export file (defaults to auto-detected ./notes)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to rhizome.toml (defaults to the nearest one above the working directory)",
)
@click.option("--verbose", is_flag=True, help="Log dropped references and skipped files")
@click.pass_context
def cli(ctx: click.Context, source: Path | None, config_path: Path | None, verbose: bool) -> None:
    """rhizome - context and layout views for a personal knowledge graph.

    Reads nodes from a markdown vault or an export file and prints what
    surrounds a node: links, backlinks, hierarchy, pending work,
    suggestions and a 2D layout.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if source is None:
        detected = _auto_detect_source(Path.cwd())
        if detected is None:
            raise click.ClickException("Node source not found. Pass --source /path/to/notes or run from inside a vault.")
        source = detected

    if not source.exists():
        raise click.BadParameter(f"Path '{source}' does not exist.", param_hint="--source / -s")

    if config_path is None:
        config_path = find_config(Path.cwd())

    try:
        config = load_config(config_path) if config_path else RhizomeConfig()
    except ConfigError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    ctx.obj["source"] = source.resolve()
    ctx.obj["config"] = config


@cli.command()
@click.argument("node_id")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "md", "json"]),
    default="rich",
    show_default=True,
    help="Output format",
)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.pass_context
def context(ctx: click.Context, node_id: str, fmt: str, out: Path | None) -> None:
    """Show relations, backlinks, hierarchy, pending work and suggestions for a node.

    Examples:

        rhizome context project-alpha

        rhizome --source export.json context n-42 --format json
    """
    from .commands.context_cmd import run_context

    sys.exit(run_context(ctx.obj["source"], node_id, options=ctx.obj["config"].context, fmt=fmt, out=out))


@cli.command()
@click.argument("node_id")
@click.option("--limit", type=int, default=None, help="Maximum suggestions (overrides config)")
@click.option("--min-score", type=float, default=None, help="Minimum score (overrides config)")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "md", "json"]),
    default="rich",
    show_default=True,
    help="Output format",
)
@click.pass_context
def suggest(ctx: click.Context, node_id: str, limit: int | None, min_score: float | None, fmt: str) -> None:
    """Rank unlinked nodes that are probably related to NODE_ID."""
    from .commands.context_cmd import run_suggest

    exit_code = run_suggest(
        ctx.obj["source"],
        node_id,
        options=ctx.obj["config"].context,
        limit=limit,
        min_score=min_score,
        fmt=fmt,
    )
    sys.exit(exit_code)


@cli.command()
@click.argument("node_id")
@click.option(
    "--mode",
    type=click.Choice(["standard", "contextual"]),
    default="standard",
    show_default=True,
    help="Hierarchy + radial layout, or five fixed zones",
)
@click.option("--depth", type=click.IntRange(min=0), default=3, show_default=True, help="Hierarchy levels to expand (standard mode)")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json"]),
    default="rich",
    show_default=True,
    help="Output format",
)
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.pass_context
def layout(ctx: click.Context, node_id: str, mode: str, depth: int, fmt: str, out: Path | None) -> None:
    """Compute 2D positions for the graph around NODE_ID."""
    from .commands.layout_cmd import run_layout

    exit_code = run_layout(
        ctx.obj["source"],
        node_id,
        config=ctx.obj["config"].layout,
        mode=mode,
        depth=depth,
        fmt=fmt,
        out=out,
    )
    sys.exit(exit_code)


@cli.command()
@click.option("--workspace", type=str, default=None, help="Only summarize this workspace")
@click.option("--type", "node_type", type=str, default="all", show_default=True, help="Only index nodes of this type")
@click.option("--tags", type=str, default="", help='Only index nodes carrying all these tags, e.g. "#research, q1"')
@click.option("--from", "date_from", type=str, default=None, help="Only nodes created on or after this date")
@click.option("--to", "date_to", type=str, default=None, help="Only nodes created on or before this date")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["md", "json", "rich"]),
    default="md",
    show_default=True,
    help="Output format",
)
@click.option("--top", type=int, default=10, show_default=True, help="How many backlinked nodes to list")
@click.option("--out", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write output to a file")
@click.pass_context
def index(
    ctx: click.Context,
    workspace: str | None,
    node_type: str,
    tags: str,
    date_from: str | None,
    date_to: str | None,
    fmt: str,
    top: int,
    out: Path | None,
) -> None:
    """Summarize graph structure: edges, backlinks, dangling references, cycles."""
    from .commands.index_cmd import run_index
    from .graph import NodeFilter, parse_tag_query

    filters = None
    if node_type != "all" or tags.strip() or date_from or date_to:
        try:
            filters = NodeFilter(
                type=node_type,
                tags=tuple(parse_tag_query(tags)),
                date_from=date_from,
                date_to=date_to,
            )
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--from / --to") from e

    sys.exit(run_index(ctx.obj["source"], workspace=workspace, filters=filters, fmt=fmt, top=top, out=out))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
