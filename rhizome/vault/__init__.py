"""Node loading from vault directories and export files."""

from .loader import load_note, load_nodes, load_nodes_file, load_notes, resolve_link_targets

__all__ = [
    "load_note",
    "load_nodes",
    "load_nodes_file",
    "load_notes",
    "resolve_link_targets",
]
