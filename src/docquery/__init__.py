"""docquery — ranked search over documentation item indexes."""

from __future__ import annotations

from docquery.catalog import Catalog, Item, ItemKind, TypeRef, build_catalog
from docquery.config import RankingWeights, SearchConfig, load_config
from docquery.engine import CancellationToken, QueryEngine, QuerySession
from docquery.exceptions import DocQueryError, MalformedIndex, UnresolvedParent
from docquery.ranker import SearchResult
from docquery.tokenizer import normalize

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "Catalog",
    "DocQueryError",
    "Item",
    "ItemKind",
    "MalformedIndex",
    "QueryEngine",
    "QuerySession",
    "RankingWeights",
    "SearchConfig",
    "SearchResult",
    "TypeRef",
    "UnresolvedParent",
    "build_catalog",
    "load_config",
    "normalize",
]
