"""rhizome - context and layout views for a personal knowledge graph."""

__version__ = "0.1.0"
