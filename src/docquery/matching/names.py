"""Tiered name matching of query segments against catalog items.

A query arrives as path segments, each a tuple of tokens, so that
``Widget::render`` and ``widget_render`` stay distinguishable.

Tiers, best first:

1. ``EXACT``: a single-segment query whose tokens are the item name's
   tokens.
2. ``PATH_SUFFIX``: a query of two or more segments equal to the last
   segments of ``namespace::path::name``.
3. ``PREFIX``: each query token prefixes an item token, in order.
4. ``SUBSEQUENCE``: the query's characters appear, in order, within the
   item's tokens.
5. ``DESCRIPTION``: each query token prefixes a description token.

A miss in every tier is ``None``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum

from docquery.catalog.models import Item


class NameTier(IntEnum):
    EXACT = 1
    PATH_SUFFIX = 2
    PREFIX = 3
    SUBSEQUENCE = 4
    DESCRIPTION = 5


@dataclass(frozen=True, slots=True)
class NameScore:
    """Outcome of a successful name match.

    Attributes:
        tier: Matching tier reached.
        quality: Within-tier closeness in [0, 1]; never moves an item
            across tiers.
    """

    tier: NameTier
    quality: float = 0.0


def score(query_segments: Sequence[Sequence[str]], item: Item) -> NameScore | None:
    """Score an item's name and path against a normalized query.

    Args:
        query_segments: Output of :func:`docquery.tokenizer.normalize_segments`.
        item: Catalog item with pre-computed tokens.

    Returns:
        The best tier reached, or None when no tier matches.
    """
    segments = tuple(tuple(seg) for seg in query_segments if seg)
    query = tuple(t for seg in segments for t in seg)
    if not query:
        return None

    if len(segments) == 1:
        if query == item.name_tokens:
            return NameScore(NameTier.EXACT, 1.0)
    elif _is_path_suffix(segments, item.segment_tokens):
        return NameScore(NameTier.PATH_SUFFIX, len(segments) / len(item.segment_tokens))

    tokens = item.tokens
    positions = _prefix_positions(query, tokens)
    if positions is not None:
        return NameScore(NameTier.PREFIX, _name_coverage(query, positions, item))

    quality = _subsequence_quality(query, item)
    if quality is not None:
        return NameScore(NameTier.SUBSEQUENCE, quality)

    if item.description_tokens and all(
        any(t.startswith(q) for t in item.description_tokens) for q in query
    ):
        return NameScore(NameTier.DESCRIPTION, min(len(query) / len(item.description_tokens), 1.0))
    return None


def tie_break_key(item: Item) -> tuple[int, int, str, tuple[str, ...], int]:
    """Deterministic total order among equally scored items.

    Shorter path first, then namespace insertion order, then name, then
    path, then catalog position.
    """
    return (len(item.path), item.namespace_index, item.name, item.path, item.index)


def _is_path_suffix(
    query: tuple[tuple[str, ...], ...], segments: tuple[tuple[str, ...], ...]
) -> bool:
    """Whether the query segments equal the trailing segments of the item."""
    return len(query) <= len(segments) and segments[-len(query):] == query


def _prefix_positions(query: tuple[str, ...], tokens: tuple[str, ...]) -> list[int] | None:
    """Match query tokens as in-order prefixes, as late in the item as possible.

    Matching from the end keeps tokens on the name rather than the path
    whenever both would do.
    """
    positions: list[int] = []
    j = len(tokens) - 1
    for q in reversed(query):
        while j >= 0 and not tokens[j].startswith(q):
            j -= 1
        if j < 0:
            return None
        positions.append(j)
        j -= 1
    positions.reverse()
    return positions


def _name_coverage(query: tuple[str, ...], positions: list[int], item: Item) -> float:
    """Fraction of the name's characters covered by query tokens matched on it."""
    name_chars = sum(len(t) for t in item.name_tokens)
    if not name_chars:
        return 0.0
    first_name_pos = len(item.path_tokens)
    covered = sum(len(q) for q, pos in zip(query, positions) if pos >= first_name_pos)
    return min(covered / name_chars, 1.0)


def _subsequence_quality(query: tuple[str, ...], item: Item) -> float | None:
    """Quality of a character subsequence match, or None when there is none.

    Matches within the name alone score in [0.5, 1]; matches that need the
    path score in [0, 0.5]. Within each half, more compact is better.
    """
    needle = "".join(query)
    span = _subsequence_span(needle, "".join(item.name_tokens))
    if span is not None:
        return 0.5 + 0.5 * len(needle) / span
    span = _subsequence_span(needle, "".join(item.tokens))
    if span is not None:
        return 0.5 * len(needle) / span
    return None


def _subsequence_span(needle: str, haystack: str) -> int | None:
    """Length of the window spanned by a greedy in-order match of needle."""
    if not needle:
        return None
    start = -1
    pos = -1
    for ch in needle:
        pos = haystack.find(ch, pos + 1)
        if pos < 0:
            return None
        if start < 0:
            start = pos
    return pos - start + 1
