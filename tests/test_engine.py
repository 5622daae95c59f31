"""Tests for the query engine facade and query sessions."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from docquery.catalog import Catalog
from docquery.config import SearchConfig
from docquery.engine import CancellationToken, QueryEngine, QuerySession, parse_query
from docquery.exceptions import ConfigError
from docquery.matching.names import NameTier


def _names(results: list[Any] | None) -> list[str]:
    assert results is not None
    return [r.item.qualified_name for r in results]


class _CancelAfter(CancellationToken):
    """Token that cancels itself after a number of checks."""

    def __init__(self, checks: int) -> None:
        super().__init__()
        self.remaining = checks

    @property
    def cancelled(self) -> bool:
        self.remaining -= 1
        if self.remaining < 0:
            self.cancel()
        return super().cancelled


class TestParseQuery:
    def test_name_shaped(self) -> None:
        parsed = parse_query("Widget::render")
        assert parsed.type_query is None
        assert parsed.tokens == ("widget", "render")

    def test_type_shaped(self) -> None:
        parsed = parse_query("Context -> Html")
        assert parsed.type_query is not None
        assert parsed.tokens == ()

    def test_call_shaped_keeps_name_tokens(self) -> None:
        parsed = parse_query("widgetRender(Context)")
        assert parsed.type_query is not None
        assert parsed.tokens == ("widget", "render")

    def test_bad_type_falls_back_to_name(self) -> None:
        parsed = parse_query("Context -> Vec<")
        assert parsed.type_query is None
        assert parsed.tokens == ("context", "vec")

    def test_path_segments_are_kept(self) -> None:
        parsed = parse_query("Widget::render")
        assert parsed.segments == (("widget",), ("render",))

    def test_bare_generic_is_type_shaped(self) -> None:
        parsed = parse_query("Option<Context>")
        assert parsed.type_query is not None
        assert parsed.type_query.either_side
        assert parsed.segments == ()

    def test_unbalanced_generic_falls_back_to_name(self) -> None:
        parsed = parse_query("Vec<u8>>")
        assert parsed.type_query is None
        assert parsed.tokens == ("vec", "u8")

    @pytest.mark.parametrize("text", ["", "   ", "::", "->"])
    def test_empty(self, text: str) -> None:
        assert parse_query(text).is_empty


class TestScenario:
    def test_exact_name_ranks_first(self, engine: QueryEngine) -> None:
        results = engine.query("render")
        assert _names(results) == ["alpha::Widget::render", "beta::widget_render"]
        assert results is not None
        assert results[0].name_score is not None
        assert results[0].name_score.tier is NameTier.EXACT

    def test_type_query_matches_only_signature(self, engine: QueryEngine) -> None:
        assert _names(engine.query("Context -> Html")) == ["alpha::Widget::render"]

    def test_empty_query(self, engine: QueryEngine) -> None:
        assert engine.query("") == []

    def test_prefix_returns_both_in_order(self, engine: QueryEngine) -> None:
        assert _names(engine.query("rend")) == ["alpha::Widget::render", "beta::widget_render"]

    def test_path_qualified_query_ranks_named_item_first(self, engine: QueryEngine) -> None:
        results = engine.query("Widget::render")
        assert _names(results) == ["alpha::Widget::render", "beta::widget_render"]
        assert results is not None
        assert results[0].name_score is not None
        assert results[0].name_score.tier is NameTier.PATH_SUFFIX


class TestQuery:
    def test_results_carry_scores(self, engine: QueryEngine) -> None:
        results = engine.query("rend")
        assert results is not None
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert all(s > 0 for s in scores)

    def test_type_queries_skip_non_function_items(self, engine: QueryEngine) -> None:
        for text in ("-> Html", "Context ->", "_ -> _", "Widget -> Html"):
            results = engine.query(text)
            assert results is not None
            assert all(r.item.kind.is_function_like for r in results), text

    def test_output_only_query(self, engine: QueryEngine) -> None:
        assert _names(engine.query("-> String")) == ["beta::widget_render"]

    def test_call_shaped_needs_name_and_signature(self, engine: QueryEngine) -> None:
        assert _names(engine.query("render(Context)")) == [
            "alpha::Widget::render",
            "beta::widget_render",
        ]
        assert _names(engine.query("render(Context) -> String")) == ["beta::widget_render"]
        assert engine.query("render(Html)") == []

    def test_bad_type_syntax_is_not_fatal(self, engine: QueryEngine) -> None:
        assert engine.query("Context -> Vec<") == []
        assert _names(engine.query("render")) == ["alpha::Widget::render", "beta::widget_render"]

    def test_exact_ranks_above_lower_tiers(self, catalog: Catalog) -> None:
        engine = QueryEngine(catalog)
        for text in ("render", "widget", "widget_render"):
            results = engine.query(text)
            assert results is not None
            tiers = [r.name_score.tier for r in results if r.name_score is not None]
            assert tiers == sorted(tiers), text

    def test_max_results(self, catalog: Catalog) -> None:
        engine = QueryEngine(catalog, SearchConfig(max_results=1))
        assert _names(engine.query("rend")) == ["alpha::Widget::render"]

    def test_deprecated_items_stay_discoverable(self) -> None:
        catalog = Catalog.build(
            {
                "x": {
                    "items": [
                        {"kind": "function", "name": "parse", "path": "old", "deprecated": True},
                        {"kind": "function", "name": "parse", "path": "new"},
                    ]
                }
            }
        )
        results = QueryEngine(catalog).query("parse")
        assert _names(results) == ["x::new::parse", "x::old::parse"]

    def test_invalid_config_rejected(self, catalog: Catalog) -> None:
        with pytest.raises(ConfigError):
            QueryEngine(catalog, SearchConfig(yield_every=0))

    def test_non_ascii_queries(self) -> None:
        catalog = Catalog.build(
            {
                "x": {
                    "items": [
                        {"kind": "function", "name": "café", "path": ""},
                        {"kind": "function", "name": "caf", "path": ""},
                        {"kind": "function", "name": "日本語", "path": ""},
                    ]
                }
            }
        )
        engine = QueryEngine(catalog)
        results = engine.query("caf")
        assert results is not None
        assert [r.name for r in results] == ["caf", "café"]
        assert _names(engine.query("日本")) == ["x::日本語"]

    def test_generic_type_query_matches_inputs_or_output(self) -> None:
        catalog = Catalog.build(
            {
                "x": {
                    "items": [
                        {"kind": "struct", "name": "Option", "path": ""},
                        {
                            "kind": "function",
                            "name": "wrap",
                            "path": "",
                            "signature": {"inputs": ["u8"], "output": "Option<u8>"},
                        },
                        {
                            "kind": "function",
                            "name": "unwrap",
                            "path": "",
                            "signature": {"inputs": ["Option<u8>"], "output": "u8"},
                        },
                        {
                            "kind": "function",
                            "name": "len",
                            "path": "",
                            "signature": {"inputs": ["Vec<u8>"], "output": "usize"},
                        },
                    ]
                }
            }
        )
        assert _names(QueryEngine(catalog).query("Option<u8>")) == ["x::unwrap", "x::wrap"]

    def test_replace_catalog(self, engine: QueryEngine) -> None:
        other = Catalog.build({"gamma": {"items": [{"kind": "macro", "name": "render", "path": ""}]}})
        engine.replace_catalog(other)
        assert engine.catalog is other
        assert _names(engine.query("render")) == ["gamma::render"]


class TestCancellation:
    def test_cancelled_before_start(self, engine: QueryEngine) -> None:
        token = CancellationToken()
        token.cancel()
        assert engine.query("render", token) is None

    def test_cancelled_mid_scan(self, engine: QueryEngine) -> None:
        token = _CancelAfter(checks=1)
        assert engine.query("render", token) is None
        assert token.cancelled

    def test_next_query_succeeds(self, engine: QueryEngine) -> None:
        token = CancellationToken()
        token.cancel()
        assert engine.query("render", token) is None
        assert _names(engine.query("render", CancellationToken())) == [
            "alpha::Widget::render",
            "beta::widget_render",
        ]

    def test_uncancelled_token(self, engine: QueryEngine) -> None:
        token = CancellationToken()
        assert not token.cancelled
        assert engine.query("render", token) == engine.query("render")


class TestAsync:
    @pytest.mark.asyncio
    async def test_aquery_matches_query(
        self, catalog: Catalog, fast_yield_config: SearchConfig
    ) -> None:
        engine = QueryEngine(catalog, fast_yield_config)
        assert _names(await engine.aquery("rend")) == _names(engine.query("rend"))
        assert await engine.aquery("") == []

    @pytest.mark.asyncio
    async def test_aquery_cancelled(self, catalog: Catalog) -> None:
        engine = QueryEngine(catalog)
        token = CancellationToken()
        token.cancel()
        assert await engine.aquery("render", token) is None

    @pytest.mark.asyncio
    async def test_session_supersedes_in_flight_query(
        self, catalog: Catalog, fast_yield_config: SearchConfig
    ) -> None:
        session = QuerySession(QueryEngine(catalog, fast_yield_config))

        first = asyncio.create_task(session.submit("render"))
        await asyncio.sleep(0)  # let the first query start scanning
        second = await session.submit("rend")

        assert await first is None
        assert _names(second) == ["alpha::Widget::render", "beta::widget_render"]

    @pytest.mark.asyncio
    async def test_session_cancel(
        self, catalog: Catalog, fast_yield_config: SearchConfig
    ) -> None:
        session = QuerySession(QueryEngine(catalog, fast_yield_config))

        pending = asyncio.create_task(session.submit("render"))
        await asyncio.sleep(0)
        session.cancel()

        assert await pending is None
        assert _names(await session.submit("Context -> Html")) == ["alpha::Widget::render"]

    @pytest.mark.asyncio
    async def test_session_sequential_queries(self, engine: QueryEngine) -> None:
        session = QuerySession(engine)
        assert session.engine is engine
        assert _names(await session.submit("r")) == _names(engine.query("r"))
        assert await session.submit("") == []
