"""docquery exception hierarchy.

All exceptions inherit from DocQueryError so callers can catch the base
class when they want to handle any docquery-specific failure uniformly.

Per-query outcomes (no match, empty query, cancellation) are not
exceptions; they surface as ``None`` or an empty result list.
"""

from __future__ import annotations


class DocQueryError(Exception):
    """Base exception for all docquery errors."""


class ConfigError(DocQueryError):
    """Configuration-related errors (bad values, broken tier weights, etc.)."""


class IndexLoadError(DocQueryError):
    """An index file could not be read or decoded."""


class MalformedIndex(DocQueryError):
    """The raw index violates the catalog's structural rules.

    Raised at catalog build time only. The build is atomic, so no partial
    catalog is ever exposed when this is raised.
    """

    def __init__(
        self,
        message: str,
        namespace: str | None = None,
        position: int | None = None,
    ) -> None:
        if namespace is not None:
            where = namespace if position is None else f"{namespace}[{position}]"
            message = f"{where}: {message}"
        super().__init__(message)
        self.namespace = namespace
        self.position = position


class UnresolvedParent(MalformedIndex):
    """An item's parent reference does not resolve within its namespace."""

    def __init__(self, namespace: str, position: int, parent: object) -> None:
        super().__init__(
            f"parent reference {parent!r} does not resolve to an item",
            namespace=namespace,
            position=position,
        )
        self.parent = parent


class TypeSyntaxError(DocQueryError):
    """A type expression could not be parsed."""
