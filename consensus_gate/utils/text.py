"""Text helpers shared by critique merging, edit grouping and prompts."""

from __future__ import annotations


def token_set(text: str) -> set[str]:
    """Lowercased whitespace tokens."""
    return set(text.lower().split())


def jaccard_score(a: str, b: str) -> float:
    """Normalized token overlap (Jaccard similarity) between two strings."""
    tokens_a = token_set(a)
    tokens_b = token_set(b)
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def normalize_key(text: str) -> str:
    """Grouping key: lowercased, surrounding whitespace stripped."""
    return text.lower().strip()


def truncate(text: str, limit: int) -> str:
    """Clip text to limit characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."
