"""Query engine — the entry point for searching a catalog.

Follows a one-way pipeline per query:
1. Parse the raw text into name tokens and/or a type query
2. Score every catalog item with the relevant matcher(s)
3. Rank, order and truncate the hits

Queries share no mutable state. A CancellationToken is checked before each
item is scored; a cancelled query returns None and never a partial list.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass

from rich.console import Console

from docquery.catalog.catalog import Catalog
from docquery.catalog.models import Item
from docquery.config import SearchConfig
from docquery.exceptions import TypeSyntaxError
from docquery.matching import names, types
from docquery.matching.types import TypeQuery, parse_type_query
from docquery.ranker import SearchResult, order, rank
from docquery.tokenizer import normalize_segments

console = Console(stderr=True)


class CancellationToken:
    """Cooperative cancellation flag for one query.

    Safe to cancel from another thread or task than the one running the
    query.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True, slots=True)
class ParsedQuery:
    """Raw query text split into the parts each matcher needs.

    Attributes:
        text: The raw query.
        segments: Normalized name tokens per path segment (empty when
            there is no name part).
        type_query: Parsed type expression, or None for name-shaped queries.
    """

    text: str
    segments: tuple[tuple[str, ...], ...] = ()
    type_query: TypeQuery | None = None

    @property
    def tokens(self) -> tuple[str, ...]:
        return tuple(t for seg in self.segments for t in seg)

    @property
    def is_empty(self) -> bool:
        if self.type_query is not None:
            return self.type_query.is_empty
        return not self.tokens


def parse_query(raw_text: str) -> ParsedQuery:
    """Detect whether a query is type-shaped and normalize it once.

    A query whose type expression does not parse is treated as
    name-shaped.
    """
    try:
        type_query = parse_type_query(raw_text)
    except TypeSyntaxError:
        type_query = None

    if type_query is None:
        return ParsedQuery(text=raw_text, segments=normalize_segments(raw_text))
    segments = normalize_segments(type_query.name) if type_query.name else ()
    return ParsedQuery(text=raw_text, segments=segments, type_query=type_query)


class QueryEngine:
    """Runs queries against an immutable catalog.

    Usage::

        engine = QueryEngine(Catalog.build(raw_index))
        results = engine.query("Context -> Html")
    """

    def __init__(self, catalog: Catalog, config: SearchConfig | None = None) -> None:
        """Initialize the engine.

        Args:
            catalog: The catalog to search.
            config: Search settings. Defaults are used when omitted.
        """
        self._catalog = catalog
        self._config = config or SearchConfig()
        self._config.validate()

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    @property
    def config(self) -> SearchConfig:
        return self._config

    def replace_catalog(self, catalog: Catalog) -> None:
        """Swap in a rebuilt catalog. Queries already running keep the old one."""
        self._catalog = catalog

    def query(
        self, raw_text: str, token: CancellationToken | None = None
    ) -> list[SearchResult] | None:
        """Search the catalog.

        Args:
            raw_text: What the user typed.
            token: Optional cancellation token, checked once per item.

        Returns:
            Ordered results (empty for an empty query), or None if the
            token was cancelled before the query finished.
        """
        started = time.perf_counter()
        parsed = parse_query(raw_text)
        if parsed.is_empty:
            return []

        hits: list[SearchResult] = []
        for item in self._catalog.all_items():
            if token is not None and token.cancelled:
                return None
            result = self._score_item(parsed, item)
            if result is not None:
                hits.append(result)
        return self._finish(parsed, hits, token, started)

    async def aquery(
        self, raw_text: str, token: CancellationToken | None = None
    ) -> list[SearchResult] | None:
        """Async variant of :meth:`query` that yields to the event loop.

        Control is handed back every ``config.yield_every`` items so a newer
        query can cancel this one mid-scan.
        """
        started = time.perf_counter()
        parsed = parse_query(raw_text)
        if parsed.is_empty:
            return []

        every = self._config.yield_every
        hits: list[SearchResult] = []
        for i, item in enumerate(self._catalog.all_items()):
            if i and i % every == 0:
                await asyncio.sleep(0)
            if token is not None and token.cancelled:
                return None
            result = self._score_item(parsed, item)
            if result is not None:
                hits.append(result)
        return self._finish(parsed, hits, token, started)

    def _score_item(self, parsed: ParsedQuery, item: Item) -> SearchResult | None:
        name_score = None
        type_score = None
        if parsed.segments:
            name_score = names.score(parsed.segments, item)
            if name_score is None:
                return None
        if parsed.type_query is not None:
            tq = parsed.type_query
            type_score = types.score(tq.inputs, tq.output, item)
            if type_score is None and tq.either_side:
                type_score = types.score((), tq.inputs[0], item)
            if type_score is None:
                return None
        return SearchResult(
            item=item,
            score=rank(item, name_score, type_score, self._config.weights),
            name_score=name_score,
            type_score=type_score,
        )

    def _finish(
        self,
        parsed: ParsedQuery,
        hits: list[SearchResult],
        token: CancellationToken | None,
        started: float,
    ) -> list[SearchResult] | None:
        if token is not None and token.cancelled:
            return None
        ordered = order(hits)
        if self._config.max_results:
            ordered = ordered[: self._config.max_results]
        if self._config.log_level == "DEBUG":
            elapsed = (time.perf_counter() - started) * 1000
            shape = "type" if parsed.type_query is not None else "name"
            console.log(
                f"[dim]query[/dim] {parsed.text!r} ({shape}) -> "
                f"{len(hits)} hits in {elapsed:.1f} ms"
            )
        return ordered


class QuerySession:
    """One logical search box: each new query supersedes the previous one.

    At most one result is ever delivered per session at a time; a query
    overtaken by a newer :meth:`submit` resolves to None.

    Usage::

        session = QuerySession(engine)
        results = await session.submit("rend")
    """

    def __init__(self, engine: QueryEngine) -> None:
        self._engine = engine
        self._token: CancellationToken | None = None
        self._generation = 0

    @property
    def engine(self) -> QueryEngine:
        return self._engine

    async def submit(self, raw_text: str) -> list[SearchResult] | None:
        """Run a query, cancelling whatever this session had in flight.

        Returns:
            Ordered results, or None if a newer submit (or :meth:`cancel`)
            superseded this one.
        """
        self.cancel()
        token = CancellationToken()
        self._token = token
        self._generation += 1
        generation = self._generation

        results = await self._engine.aquery(raw_text, token)
        if results is None or generation != self._generation or token.cancelled:
            return None
        return results

    def cancel(self) -> None:
        """Cancel the in-flight query, if any."""
        if self._token is not None:
            self._token.cancel()
            self._token = None
