"""Structural matching of type-shaped queries against item signatures.

A query is type-shaped when it contains ``->``, has call shape
``name(A, B)``, or is a single generic type such as ``Vec<u8>``.
Accepted forms::

    Context -> Html
    Context, Widget -> Html
    -> Html
    render(Context)
    fn render(Context) -> Html
    Option<Context>

A lone generic type matches a signature that accepts it or returns it.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import IntEnum

from docquery.catalog.models import Item, TypeRef

_ARROW = "->"
_CALL_HEAD = re.compile(r"^\s*(?:fn\s+)?(?P<name>[A-Za-z_][\w:]*)?\s*\(")
_GENERIC_HEAD = re.compile(r"^\s*[A-Za-z_][\w:]*\s*<")
_OPENERS = {"<": ">", "(": ")", "[": "]"}
_CLOSERS = frozenset(_OPENERS.values())


class TypeTier(IntEnum):
    FULL = 1
    PARTIAL = 2


@dataclass(frozen=True, slots=True)
class TypeScore:
    """Outcome of a successful signature match.

    Attributes:
        tier: FULL when the query covers every declared input.
        coverage: Matched inputs over declared inputs, in [0, 1].
    """

    tier: TypeTier
    coverage: float


@dataclass(frozen=True, slots=True)
class TypeQuery:
    """A parsed type-shaped query.

    Attributes:
        inputs: Query input types, in order.
        output: Query output type, or None when not constrained.
        name: Name part of a call-shaped query, if any.
        either_side: The single input may instead match the output.
    """

    inputs: tuple[TypeRef, ...] = ()
    output: TypeRef | None = None
    name: str | None = None
    either_side: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.inputs and self.output is None and not self.name


def parse_type_query(text: str) -> TypeQuery | None:
    """Parse a type-shaped query.

    Args:
        text: Raw query text.

    Returns:
        The parsed query, or None if the text is not type-shaped.

    Raises:
        TypeSyntaxError: If the text is type-shaped but a type in it
            cannot be parsed.
    """
    arrow = _find_arrow(text)
    left = text if arrow is None else text[:arrow]
    right = None if arrow is None else text[arrow + len(_ARROW):]

    name: str | None = None
    inputs_text = left
    head = _CALL_HEAD.match(left)
    body_end = len(left.rstrip()) - 1
    if head is not None and _closing_paren(left, head.end() - 1) == body_end:
        name = head.group("name")
        inputs_text = left[head.end():body_end]
    if arrow is None and name is None:
        if _GENERIC_HEAD.match(text) and text.rstrip().endswith(">"):
            return TypeQuery(inputs=(TypeRef.parse(text),), either_side=True)
        return None

    inputs = tuple(
        TypeRef.parse(part) for part in _split_top_level(inputs_text) if part.strip()
    )
    output = TypeRef.parse(right) if right is not None and right.strip() else None
    return TypeQuery(inputs=inputs, output=output, name=name)


def score(
    query_inputs: Sequence[TypeRef], query_output: TypeRef | None, item: Item
) -> TypeScore | None:
    """Score an item's signature against query input/output types.

    Query inputs must match item inputs at strictly increasing positions.
    The receiver, when present, is the first candidate position but is
    only counted as declared when the query actually matched it.

    Args:
        query_inputs: Types the item must accept, in order.
        query_output: Type the item must return, or None for any.
        item: Catalog item.

    Returns:
        The match tier and coverage, or None for non-function-like items
        and signatures that do not fit.
    """
    sig = item.signature
    if not item.kind.is_function_like or sig is None:
        return None

    if query_output is not None:
        if sig.output is None:
            if not query_output.is_unit:
                return None
        elif not query_output.matches(sig.output):
            return None

    candidates = ([sig.receiver] if sig.receiver is not None else []) + list(sig.inputs)
    receiver_matched = False
    j = 0
    for q in query_inputs:
        while j < len(candidates) and not q.matches(candidates[j]):
            j += 1
        if j == len(candidates):
            return None
        if j == 0 and sig.receiver is not None:
            receiver_matched = True
        j += 1

    declared = len(sig.inputs) + (1 if receiver_matched else 0)
    coverage = 1.0 if declared == 0 else min(len(query_inputs) / declared, 1.0)
    tier = TypeTier.FULL if coverage >= 1.0 else TypeTier.PARTIAL
    return TypeScore(tier, coverage)


def _find_arrow(text: str) -> int | None:
    """Position of the first ``->`` outside brackets."""
    depth = 0
    i = 0
    while i < len(text):
        if text.startswith(_ARROW, i):
            if depth == 0:
                return i
            i += len(_ARROW)
            continue
        ch = text[i]
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
        i += 1
    return None


def _closing_paren(text: str, open_pos: int) -> int | None:
    """Position of the ``)`` closing the ``(`` at open_pos."""
    depth = 0
    for i in range(open_pos, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return None


def _split_top_level(text: str) -> list[str]:
    """Split on commas that are not nested inside brackets."""
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS and text[i - 1 : i + 1] != _ARROW:
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts
