"""Tests for the CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from docquery import __version__
from docquery.cli import app
from docquery.exceptions import DocQueryError

runner = CliRunner()


def _json_lines(output: str) -> list[dict[str, Any]]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


@pytest.fixture
def index_file(tmp_path: Path, raw_index: dict[str, Any], monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "index.json"
    path.write_text(json.dumps(raw_index), encoding="utf-8")
    return path


class TestSearch:
    def test_json_results(self, index_file: Path) -> None:
        result = runner.invoke(app, ["search", str(index_file), "render", "--json"])
        assert result.exit_code == 0
        rows = _json_lines(result.output)
        assert [(r["namespace"], r["path"], r["name"]) for r in rows] == [
            ("alpha", "Widget", "render"),
            ("beta", "", "widget_render"),
        ]
        assert rows[0]["kind"] == "method"
        assert rows[0]["score"] > rows[1]["score"]

    def test_limit(self, index_file: Path) -> None:
        result = runner.invoke(app, ["search", str(index_file), "rend", "-n", "1", "--json"])
        assert result.exit_code == 0
        assert [r["name"] for r in _json_lines(result.output)] == ["render"]

    def test_limit_from_project_config(self, index_file: Path, tmp_path: Path) -> None:
        (tmp_path / ".docquery").mkdir()
        (tmp_path / ".docquery" / "config.toml").write_text("max_results = 1\n", encoding="utf-8")
        result = runner.invoke(app, ["search", str(index_file), "rend", "--json"])
        assert result.exit_code == 0
        assert len(_json_lines(result.output)) == 1

    def test_table_output(self, index_file: Path) -> None:
        result = runner.invoke(app, ["search", str(index_file), "Context -> Html"])
        assert result.exit_code == 0
        assert "render" in result.output
        assert "widget_render" not in result.output

    def test_no_matches(self, index_file: Path) -> None:
        result = runner.invoke(app, ["search", str(index_file), "zzzz"])
        assert result.exit_code == 0
        assert "No matches" in result.output

    def test_malformed_index(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"x": {"items": [{"kind": "struct", "name": "A"}]}}))
        result = runner.invoke(app, ["search", str(path), "A"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_index(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["search", str(tmp_path / "absent.json"), "A"])
        assert result.exit_code == 1

    def test_bad_config(self, index_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOCQUERY_MAX_RESULTS", "many")
        result = runner.invoke(app, ["search", str(index_file), "render"])
        assert result.exit_code == 1
        assert "max_results" in result.output

    def test_negative_limit_is_a_usage_error(self, index_file: Path) -> None:
        result = runner.invoke(app, ["search", str(index_file), "render", "--limit", "-1"])
        assert result.exit_code == 2
        assert not isinstance(result.exception, DocQueryError)

    def test_invalid_config_is_a_styled_error(
        self, index_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DOCQUERY_YIELD_EVERY", "0")
        result = runner.invoke(app, ["search", str(index_file), "render"])
        assert result.exit_code == 1
        assert "yield_every must be >= 1" in result.output

    def test_rustdoc_index(
        self, tmp_path: Path, rustdoc_text: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "search-index.js"
        path.write_text(rustdoc_text, encoding="utf-8")
        result = runner.invoke(app, ["search", str(path), "mopafy", "--json"])
        assert result.exit_code == 0
        rows = _json_lines(result.output)
        assert rows[0]["namespace"] == "mopa"
        assert rows[0]["kind"] == "macro"


class TestLookup:
    def test_found(self, index_file: Path) -> None:
        result = runner.invoke(app, ["lookup", str(index_file), "alpha", "Widget", "render"])
        assert result.exit_code == 0
        assert "alpha::Widget::render" in result.output
        assert "alpha::Widget" in result.output

    def test_members(self, index_file: Path) -> None:
        result = runner.invoke(app, ["lookup", str(index_file), "alpha", "", "Widget"])
        assert result.exit_code == 0
        assert "render" in result.output

    def test_not_found(self, index_file: Path) -> None:
        result = runner.invoke(app, ["lookup", str(index_file), "alpha", "", "render"])
        assert result.exit_code == 1
        assert "No item alpha::render" in result.output


class TestStats:
    def test_stats(self, index_file: Path) -> None:
        result = runner.invoke(app, ["stats", str(index_file)])
        assert result.exit_code == 0
        assert "alpha" in result.output
        assert "beta" in result.output
        assert "function 1" in result.output


class TestVersion:
    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output
