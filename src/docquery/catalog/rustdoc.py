"""Reader for the legacy rustdoc ``search-index.js`` format.

Each crate is one line of the form::

    searchIndex["crate"] = {"doc": "...", "items": [...], "paths": [...]};

Item rows are ``[kind_code, name, path, description, parent, signature]``.
An empty path repeats the previous row's path, ``parent`` indexes the
crate's ``paths`` table of ``[kind_code, name]`` pairs, and paths start
with the crate name. The reader converts all of this into the generic raw
index shape accepted by :meth:`docquery.catalog.Catalog.build`.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

from rich.console import Console

from docquery.exceptions import IndexLoadError
from docquery.tokenizer import split_path

console = Console(stderr=True)

_ASSIGNMENT = re.compile(
    r'^\s*searchIndex\[(?P<key>"(?:[^"\\]|\\.)*")\]\s*=\s*(?P<body>\{.*\})\s*;?\s*$'
)


@dataclass(frozen=True, slots=True)
class _Row:
    kind: int
    name: str
    module: tuple[str, ...]
    path: tuple[str, ...]
    description: str
    parent_ref: tuple[int, str] | None
    signature: Any


def parse_search_index(text: str) -> dict[str, Any]:
    """Parse a rustdoc search index script into a raw index mapping.

    Args:
        text: Contents of a ``search-index.js`` file.

    Returns:
        Mapping of crate name to ``{"doc": ..., "items": [...]}``, in file
        order.

    Raises:
        IndexLoadError: If no crate entries are found or an entry is not
            valid JSON.
    """
    raw_index: dict[str, Any] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        m = _ASSIGNMENT.match(line)
        if m is None:
            continue
        try:
            crate = json.loads(m.group("key"))
            data = json.loads(m.group("body"))
        except json.JSONDecodeError as exc:
            raise IndexLoadError(f"line {lineno}: invalid search index entry: {exc}") from exc
        if not isinstance(data, dict):
            raise IndexLoadError(f"line {lineno}: crate entry for {crate!r} is not an object")
        raw_index[crate] = convert_crate(crate, data)

    if not raw_index:
        raise IndexLoadError("no searchIndex entries found")
    return raw_index


def convert_crate(crate: str, data: dict[str, Any]) -> dict[str, Any]:
    """Convert one crate's rustdoc rows into generic item records."""
    rows = _read_rows(crate, data)

    kept: list[_Row] = []
    seen: set[tuple[tuple[str, ...], str]] = set()
    for row in rows:
        key = (row.path, row.name)
        if key in seen:
            # trait declarations and their impls share a path and name
            console.print(
                f"[yellow]Warning[/yellow]: {crate}: dropping duplicate "
                f"{'::'.join((*row.path, row.name))}"
            )
            continue
        seen.add(key)
        kept.append(row)

    positions: dict[tuple[int, str, tuple[str, ...]], int] = {}
    for pos, row in enumerate(kept):
        positions.setdefault((row.kind, row.name, row.path), pos)

    items: list[dict[str, Any]] = []
    for row in kept:
        record: dict[str, Any] = {
            "kind": row.kind,
            "name": row.name,
            "path": list(row.path),
            "description": row.description,
        }
        if row.parent_ref is not None:
            parent_kind, parent_name = row.parent_ref
            parent_pos = positions.get((parent_kind, parent_name, row.module))
            if parent_pos is None:
                console.print(
                    f"[yellow]Warning[/yellow]: {crate}: parent {parent_name} of "
                    f"{row.name} is not indexed in this crate"
                )
            else:
                record["parent"] = parent_pos
        if row.signature is not None:
            record["signature"] = row.signature
        items.append(record)

    return {"doc": data.get("doc") or "", "items": items}


def _read_rows(crate: str, data: dict[str, Any]) -> list[_Row]:
    raw_items = data.get("items")
    if not isinstance(raw_items, list):
        raise IndexLoadError(f"{crate}: missing 'items' list")
    paths = data.get("paths") or []

    rows: list[_Row] = []
    last_module = ""
    for pos, raw in enumerate(raw_items):
        if not isinstance(raw, list) or len(raw) < 4:
            raise IndexLoadError(f"{crate}[{pos}]: item row must have at least 4 fields")
        kind, name, module_text, description = raw[:4]
        parent = raw[4] if len(raw) > 4 else None
        signature = raw[5] if len(raw) > 5 else None

        if module_text:
            last_module = module_text
        module = _relative_module(crate, last_module)

        parent_ref: tuple[int, str] | None = None
        path = module
        if parent is not None:
            try:
                parent_kind, parent_name = paths[parent]
            except (IndexError, TypeError, ValueError) as exc:
                raise IndexLoadError(
                    f"{crate}[{pos}]: parent {parent!r} is not in the paths table"
                ) from exc
            parent_ref = (parent_kind, parent_name)
            path = module + (parent_name,)

        rows.append(
            _Row(
                kind=kind,
                name=name,
                module=module,
                path=path,
                description=description or "",
                parent_ref=parent_ref,
                signature=signature,
            )
        )
    return rows


def _relative_module(crate: str, module_text: str) -> tuple[str, ...]:
    """Strip the leading crate name from a rustdoc module path."""
    segments = split_path(module_text)
    if segments and segments[0] == crate:
        return segments[1:]
    return segments
