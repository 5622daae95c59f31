"""Name and query normalization into comparable token sequences."""

from __future__ import annotations

import re

_PATH_DELIMITERS = re.compile(r"::|[./]")
_SEPARATORS = re.compile(r"[_\W]+")


def normalize(text: str) -> tuple[str, ...]:
    """Split text into lowercase tokens.

    Splits on camelCase boundaries (``renderHTML`` -> ``render html``),
    acronym boundaries (``HTMLParser`` -> ``html parser``), any
    non-alphanumeric separator and path delimiters. Letters outside ASCII
    are word characters like any other. Empty tokens are dropped.

    Args:
        text: An item name, path or raw query string.

    Returns:
        The normalized tokens, in order of appearance.
    """
    tokens: list[str] = []
    for word in _SEPARATORS.split(text):
        tokens.extend(part.lower() for part in _split_case(word))
    return tuple(tokens)


def normalize_segments(text: str) -> tuple[tuple[str, ...], ...]:
    """Normalize each path segment of text separately.

    ``Widget::render`` gives ``(("widget",), ("render",))`` while
    ``widget_render`` gives ``(("widget", "render"),)``. Segments without
    tokens are dropped.
    """
    segments = (normalize(seg) for seg in split_path(text))
    return tuple(seg for seg in segments if seg)


def split_path(text: str) -> tuple[str, ...]:
    """Split a ``::``, ``.`` or ``/`` delimited path into its segments."""
    return tuple(seg.strip() for seg in _PATH_DELIMITERS.split(text) if seg.strip())


def _split_case(word: str) -> list[str]:
    """Split one separator-free word on lower-to-upper and acronym boundaries."""
    if not word:
        return []
    parts: list[str] = []
    start = 0
    for i in range(1, len(word)):
        prev, cur = word[i - 1], word[i]
        if not cur.isupper():
            continue
        nxt = word[i + 1] if i + 1 < len(word) else ""
        if prev.islower() or prev.isdigit() or (prev.isupper() and nxt.islower()):
            parts.append(word[start:i])
            start = i
    parts.append(word[start:])
    return parts
