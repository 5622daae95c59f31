"""Score aggregation and final ordering of matched items."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from docquery.catalog.models import Item
from docquery.config import RankingWeights
from docquery.matching.names import NameScore, tie_break_key
from docquery.matching.types import TypeScore, TypeTier


@dataclass(frozen=True, slots=True)
class SearchResult:
    """A matched item with the score used to order it.

    Attributes:
        item: The matched catalog item.
        score: Combined ranking score (for debugging and telemetry).
        name_score: Name match outcome, if the name matcher ran and hit.
        type_score: Signature match outcome, if the type matcher ran and hit.
    """

    item: Item
    score: float
    name_score: NameScore | None = None
    type_score: TypeScore | None = None

    @property
    def namespace(self) -> str:
        return self.item.namespace

    @property
    def path(self) -> str:
        return self.item.display_path

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def kind(self) -> str:
        return self.item.kind.value

    @property
    def description(self) -> str:
        return self.item.description

    def to_dict(self) -> dict[str, Any]:
        """Result record for the rendering layer."""
        return {
            "namespace": self.namespace,
            "path": self.path,
            "name": self.name,
            "kind": self.kind,
            "description": self.description,
            "score": self.score,
        }


def rank(
    item: Item,
    name_score: NameScore | None,
    type_score: TypeScore | None,
    weights: RankingWeights,
) -> float:
    """Combine the available match scores into one number.

    Args:
        item: The matched item.
        name_score: Name match, or None if not applicable.
        type_score: Signature match, or None if not applicable.
        weights: Tier and penalty weights.

    Returns:
        The combined score; higher ranks first.
    """
    total = 0.0
    if name_score is not None:
        base = weights.for_tier(name_score.tier)
        total += base * (1.0 + weights.quality_bonus * name_score.quality)
    if type_score is not None:
        if type_score.tier is TypeTier.FULL:
            total += weights.type_full
        else:
            total += weights.type_partial + weights.type_coverage * type_score.coverage
    if item.deprecated:
        total -= weights.deprecated_penalty
    return total


def order(results: Iterable[SearchResult]) -> list[SearchResult]:
    """Sort by descending score, then by the name tie-break chain."""
    return sorted(results, key=lambda r: (-r.score, *tie_break_key(r.item)))
