"""Item catalog — value types, catalog build and index file readers."""

from __future__ import annotations

from docquery.catalog.catalog import Catalog, build_catalog
from docquery.catalog.loader import load_catalog, load_index
from docquery.catalog.models import Item, ItemKind, Namespace, Signature, TypeRef

__all__ = [
    "Catalog",
    "Item",
    "ItemKind",
    "Namespace",
    "Signature",
    "TypeRef",
    "build_catalog",
    "load_catalog",
    "load_index",
]
