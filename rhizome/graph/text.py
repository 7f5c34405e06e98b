"""Text utilities for tags, keywords and wiki-links."""

import re

# Match [[target]], [[target|display]], [[target#section]], [[target#section|display]]
WIKILINK_PATTERN = re.compile(r"\[\[([^\]|#]+)(?:#[^\]|]+)?(?:\|[^\]]+)?\]\]")

# Anything that is not a latin letter, digit, common accented letter or whitespace
NON_KEYWORD_PATTERN = re.compile(r"[^a-z0-9áéíóúüñ\s]")

MIN_TOKEN_LENGTH = 3


def extract_links(content: str) -> list[str]:
    """Extract all wiki-link targets from content.

    Returns stripped link targets, deduplicated in order of appearance.
    """
    seen = set()
    result = []
    for match in WIKILINK_PATTERN.findall(content):
        target = match.strip()
        if target and target not in seen:
            seen.add(target)
            result.append(target)
    return result


def normalize_tags(tags) -> frozenset[str]:
    """Trimmed, lowercased, non-empty tags."""
    return frozenset(t for t in (str(tag).strip().lower() for tag in tags) if t)


def tokenize(text: str) -> frozenset[str]:
    """Split text into lowercase keyword tokens of at least three characters."""
    cleaned = NON_KEYWORD_PATTERN.sub(" ", text.lower())
    return frozenset(token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH)


def jaccard_similarity(left: frozenset[str] | set[str], right: frozenset[str] | set[str]) -> float:
    """|intersection| / |union|; 0.0 when both sets are empty."""
    union = len(left | right)
    if union == 0:
        return 0.0
    return len(left & right) / union


def parse_tag_query(query: str) -> list[str]:
    """Parse a tag filter such as "#research, q1 ideas" into bare tags."""
    if not query.strip():
        return []
    tags = []
    for token in re.split(r"[\s,]+", query):
        tag = token.lstrip("#").strip()
        if tag:
            tags.append(tag)
    return tags
