"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import pytest

from docquery import config as config_module
from docquery.catalog import Catalog
from docquery.config import RankingWeights, SearchConfig
from docquery.engine import QueryEngine

RUSTDOC_INDEX = """\
var searchIndex = {};
searchIndex["any_key"] = {"doc":"Dynamically typed keys for associative arrays.","items":[[3,"HasherMut","any_key","Work around the inability of `Hash` to accept unsized `Hasher`s.",null,null],[8,"AnyHash","","Object-safe trait for dynamically typed hashable keys.",null,null],[10,"eq","","",0,{"inputs":[{"name":"self"},{"name":"anyhash"}],"output":{"name":"bool"}}],[8,"AnyOrd","","Object-safe trait for dynamically typed totally ordered keys.",null,null],[10,"cmp","","",1,{"inputs":[{"name":"self"},{"name":"anyord"}],"output":{"name":"ordering"}}],[11,"finish","","",2,{"inputs":[{"name":"self"}],"output":{"name":"u64"}}],[11,"downcast_ref","","Returns some reference to the boxed value if it is of type `T`, or `None` if it isn't.",0,{"inputs":[{"name":"self"}],"output":{"name":"option"}}],[11,"eq","","",0,{"inputs":[{"name":"self"},{"name":"anyhash"}],"output":{"name":"bool"}}],[11,"downcast_ref","","Returns some reference to the boxed value if it is of type `T`, or `None` if it isn't.",1,{"inputs":[{"name":"self"}],"output":{"name":"option"}}]],"paths":[[8,"AnyHash"],[8,"AnyOrd"],[3,"HasherMut"]]};
searchIndex["mopa"] = {"doc":"MOPA: My Own Personal Any.","items":[[8,"Any","mopa","A type to emulate dynamic typing.",null,null],[14,"mopafy","","The macro for implementing all the `Any` methods on your own trait.",null,null]],"paths":[]};
initSearch(searchIndex);
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's global config and DOCQUERY_* variables out of tests."""
    monkeypatch.setattr(config_module, "_GLOBAL_CONFIG_PATH", tmp_path / "no-global.toml")
    weights = [f"WEIGHT_{f.name.upper()}" for f in fields(RankingWeights)]
    for name in ("MAX_RESULTS", "YIELD_EVERY", "LOG_LEVEL", *weights):
        monkeypatch.delenv(f"DOCQUERY_{name}", raising=False)


@pytest.fixture
def raw_index() -> dict[str, Any]:
    """Two namespaces: a method on a struct, and a free function."""
    return {
        "alpha": {
            "doc": "Widgets.",
            "items": [
                {"kind": "struct", "name": "Widget", "path": ""},
                {
                    "kind": "method",
                    "name": "render",
                    "path": "Widget",
                    "parent": 0,
                    "description": "Render the widget into HTML.",
                    "signature": {"inputs": ["Context"], "output": "Html"},
                },
            ],
        },
        "beta": {
            "items": [
                {
                    "kind": "function",
                    "name": "widget_render",
                    "path": "",
                    "description": "Render a widget to a string.",
                    "signature": {"inputs": ["ctx: Context"], "output": "String"},
                },
            ],
        },
    }


@pytest.fixture
def catalog(raw_index: dict[str, Any]) -> Catalog:
    return Catalog.build(raw_index)


@pytest.fixture
def engine(catalog: Catalog) -> QueryEngine:
    return QueryEngine(catalog)


@pytest.fixture
def rustdoc_text() -> str:
    return RUSTDOC_INDEX


@pytest.fixture
def fast_yield_config() -> SearchConfig:
    """Config that yields to the event loop after every item."""
    return SearchConfig(yield_every=1)
