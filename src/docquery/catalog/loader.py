"""Index file loading for callers outside the query core."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from docquery.catalog.catalog import Catalog
from docquery.catalog.rustdoc import parse_search_index
from docquery.exceptions import IndexLoadError


def load_index(path: Path) -> dict[str, Any]:
    """Read a raw index from disk.

    ``.js`` files are read as rustdoc search indexes, anything else as the
    generic JSON shape.

    Args:
        path: Path to the index file.

    Returns:
        The raw index mapping, ready for :meth:`Catalog.build`.

    Raises:
        IndexLoadError: If the file cannot be read or decoded.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise IndexLoadError(f"Cannot read index {path}: {exc}") from exc

    if path.suffix == ".js":
        return parse_search_index(text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise IndexLoadError(f"Corrupt index at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise IndexLoadError(f"Index at {path} must be a JSON object")
    return data


def load_catalog(path: Path) -> Catalog:
    """Read an index file and build a catalog from it."""
    return Catalog.build(load_index(path))
