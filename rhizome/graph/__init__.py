"""Graph index and text utilities."""

from .index import GraphIndex, NodeFilter, filter_nodes
from .text import extract_links, jaccard_similarity, normalize_tags, parse_tag_query, tokenize

__all__ = [
    "GraphIndex",
    "NodeFilter",
    "filter_nodes",
    "extract_links",
    "jaccard_similarity",
    "normalize_tags",
    "parse_tag_query",
    "tokenize",
]
