"""Name and type-signature matchers."""

from __future__ import annotations

from docquery.matching.names import NameScore, NameTier
from docquery.matching.types import TypeQuery, TypeScore, TypeTier, parse_type_query

__all__ = [
    "NameScore",
    "NameTier",
    "TypeQuery",
    "TypeScore",
    "TypeTier",
    "parse_type_query",
]
