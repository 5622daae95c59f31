"""Immutable item catalog built once from a raw index mapping."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from docquery.catalog.models import Item, ItemKind, Namespace, Signature, TypeRef
from docquery.exceptions import MalformedIndex, TypeSyntaxError, UnresolvedParent
from docquery.tokenizer import normalize, split_path

_RECEIVER_KEY = "self"


@dataclass(frozen=True, slots=True)
class _Draft:
    """One validated raw record, before parents and signatures are resolved."""

    kind: ItemKind
    name: str
    path: tuple[str, ...]
    parent: int | None
    description: str
    signature: Any
    deprecated: bool


class Catalog:
    """Read-only collection of every item across all namespaces.

    Items are stored flatly in namespace-then-insertion order; an item's
    ``index`` is its position in that order. Parent/child relations are
    index-based and resolved through the catalog.

    Usage::

        catalog = Catalog.build(raw_index)
        item = catalog.lookup("alpha", "Widget", "render")
        parent = catalog.parent_of(item)
    """

    __slots__ = ("_namespaces", "_by_name", "_items", "_by_key", "_children")

    def __init__(self, namespaces: Sequence[Namespace]) -> None:
        """Wrap already-constructed namespaces. Prefer :meth:`build`."""
        self._namespaces: tuple[Namespace, ...] = tuple(namespaces)
        self._by_name: Mapping[str, Namespace] = MappingProxyType(
            {ns.name: ns for ns in self._namespaces}
        )
        self._items: tuple[Item, ...] = tuple(
            item for ns in self._namespaces for item in ns.items
        )
        by_key: dict[tuple[str, tuple[str, ...], str], Item] = {}
        children: dict[int, list[Item]] = {}
        for item in self._items:
            by_key[(item.namespace, item.path, item.name)] = item
            if item.parent is not None:
                children.setdefault(item.parent, []).append(item)
        self._by_key = MappingProxyType(by_key)
        self._children: Mapping[int, tuple[Item, ...]] = MappingProxyType(
            {k: tuple(v) for k, v in children.items()}
        )

    @classmethod
    def build(cls, raw_index: Mapping[str, Any]) -> Catalog:
        """Validate a raw index and build a catalog from it.

        Each namespace is parsed in full before parent references are
        resolved, so a parent may appear after its children.

        Args:
            raw_index: Mapping of namespace identifier to a mapping with an
                ``items`` list of item records and an optional ``doc``.

        Returns:
            The fully built catalog.

        Raises:
            MalformedIndex: On missing or ill-typed fields, duplicate
                ``(namespace, path, name)`` triples or parent cycles.
            UnresolvedParent: If a parent reference does not resolve
                within its namespace.
        """
        if not isinstance(raw_index, Mapping):
            raise MalformedIndex("index must be a mapping of namespace to items")

        namespaces: list[Namespace] = []
        offset = 0
        for ns_index, (ns_name, entry) in enumerate(raw_index.items()):
            namespace = _build_namespace(ns_name, entry, ns_index, offset)
            namespaces.append(namespace)
            offset += len(namespace.items)
        return cls(namespaces)

    @property
    def namespaces(self) -> tuple[Namespace, ...]:
        return self._namespaces

    def namespace(self, name: str) -> Namespace | None:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._items)

    def item(self, index: int) -> Item:
        """Return the item at a catalog position."""
        return self._items[index]

    def all_items(self) -> Iterator[Item]:
        """Iterate every item in namespace-then-insertion order.

        Each call returns a fresh iterator.
        """
        return iter(self._items)

    def lookup(
        self, namespace: str, path: str | Sequence[str], name: str
    ) -> Item | None:
        """Find an item by its ``(namespace, path, name)`` triple.

        Args:
            namespace: Namespace identifier.
            path: Enclosing scopes, as a ``::``/``.``/``/`` delimited string
                or a sequence of segments.
            name: Item name.

        Returns:
            The matching item, or None if there is none.
        """
        segments = split_path(path) if isinstance(path, str) else tuple(path)
        return self._by_key.get((namespace, segments, name))

    def parent_of(self, item: Item) -> Item | None:
        if item.parent is None:
            return None
        return self._items[item.parent]

    def children_of(self, item: Item) -> tuple[Item, ...]:
        return self._children.get(item.index, ())


def build_catalog(raw_index: Mapping[str, Any]) -> Catalog:
    """Build a catalog from a raw index. See :meth:`Catalog.build`."""
    return Catalog.build(raw_index)


def _build_namespace(name: object, entry: object, ns_index: int, offset: int) -> Namespace:
    """Parse, resolve and freeze one namespace."""
    if not isinstance(name, str) or not name.strip():
        raise MalformedIndex(f"namespace identifier must be a non-empty string, got {name!r}")
    if not isinstance(entry, Mapping):
        raise MalformedIndex("namespace entry must be a mapping", namespace=name)
    raw_items = entry.get("items")
    if not isinstance(raw_items, (list, tuple)):
        raise MalformedIndex("missing required 'items' list", namespace=name)
    doc = entry.get("doc") or ""
    if not isinstance(doc, str):
        raise MalformedIndex("'doc' must be a string", namespace=name)

    drafts = [_parse_record(name, pos, record) for pos, record in enumerate(raw_items)]
    _check_parents(name, drafts)

    ns_tokens = normalize(name)
    seen: set[tuple[tuple[str, ...], str]] = set()
    items: list[Item] = []
    for pos, draft in enumerate(drafts):
        key = (draft.path, draft.name)
        if key in seen:
            raise MalformedIndex(
                f"duplicate item {'::'.join((*draft.path, draft.name))!r}",
                namespace=name,
                position=pos,
            )
        seen.add(key)

        parent_draft = drafts[draft.parent] if draft.parent is not None else None
        signature = _parse_signature(name, pos, draft.signature, parent_draft)
        segments = (ns_tokens, *(normalize(seg) for seg in draft.path), normalize(draft.name))
        items.append(
            Item(
                index=offset + pos,
                namespace=name,
                namespace_index=ns_index,
                kind=draft.kind,
                name=draft.name,
                path=draft.path,
                parent=offset + draft.parent if draft.parent is not None else None,
                description=draft.description,
                signature=signature,
                deprecated=draft.deprecated,
                name_tokens=segments[-1],
                path_tokens=tuple(t for seg in segments[1:-1] for t in seg),
                segment_tokens=segments,
                description_tokens=normalize(draft.description),
            )
        )
    return Namespace(name=name, index=ns_index, items=tuple(items), doc=doc)


def _parse_record(namespace: str, pos: int, record: object) -> _Draft:
    """Validate one raw item record."""
    if not isinstance(record, Mapping):
        raise MalformedIndex("item record must be a mapping", namespace=namespace, position=pos)

    for required in ("kind", "name", "path"):
        if required not in record:
            raise MalformedIndex(
                f"missing required field {required!r}", namespace=namespace, position=pos
            )

    try:
        kind = ItemKind.from_raw(record["kind"])
    except ValueError as exc:
        raise MalformedIndex(str(exc), namespace=namespace, position=pos) from exc

    name = record["name"]
    if not isinstance(name, str) or not name:
        raise MalformedIndex("'name' must be a non-empty string", namespace=namespace, position=pos)

    raw_path = record["path"]
    if isinstance(raw_path, str):
        path = split_path(raw_path)
    elif isinstance(raw_path, (list, tuple)) and all(isinstance(s, str) for s in raw_path):
        path = tuple(s for s in raw_path if s)
    else:
        raise MalformedIndex(
            "'path' must be a string or a list of strings", namespace=namespace, position=pos
        )

    parent = record.get("parent")
    if parent is not None and (isinstance(parent, bool) or not isinstance(parent, int)):
        raise UnresolvedParent(namespace, pos, parent)

    description = record.get("description") or ""
    if not isinstance(description, str):
        raise MalformedIndex("'description' must be a string", namespace=namespace, position=pos)

    deprecated = record.get("deprecated", False)
    if not isinstance(deprecated, bool):
        raise MalformedIndex("'deprecated' must be a boolean", namespace=namespace, position=pos)

    return _Draft(
        kind=kind,
        name=name,
        path=path,
        parent=parent,
        description=description,
        signature=record.get("signature"),
        deprecated=deprecated,
    )


def _check_parents(namespace: str, drafts: Sequence[_Draft]) -> None:
    """Ensure every parent index resolves and parent chains are acyclic."""
    for pos, draft in enumerate(drafts):
        if draft.parent is None:
            continue
        if not 0 <= draft.parent < len(drafts) or draft.parent == pos:
            raise UnresolvedParent(namespace, pos, draft.parent)

    for start in range(len(drafts)):
        visited = {start}
        current = drafts[start].parent
        while current is not None:
            if current in visited:
                raise MalformedIndex("parent chain forms a cycle", namespace=namespace, position=start)
            visited.add(current)
            current = drafts[current].parent


def _parse_signature(
    namespace: str, pos: int, raw: object, parent: _Draft | None
) -> Signature | None:
    """Convert a raw signature record, splitting off and resolving ``self``."""
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise MalformedIndex("'signature' must be a mapping", namespace=namespace, position=pos)
    raw_inputs = raw.get("inputs") or ()
    if not isinstance(raw_inputs, (list, tuple)):
        raise MalformedIndex("signature 'inputs' must be a list", namespace=namespace, position=pos)

    try:
        inputs = [TypeRef.from_raw(entry) for entry in raw_inputs]
        raw_output = raw.get("output")
        output = TypeRef.from_raw(raw_output) if raw_output is not None else None
    except TypeSyntaxError as exc:
        raise MalformedIndex(f"bad signature: {exc}", namespace=namespace, position=pos) from exc

    self_type = TypeRef(parent.name) if parent is not None else None
    receiver = None
    if inputs and inputs[0].key == _RECEIVER_KEY:
        receiver = self_type or TypeRef("Self")
        inputs = inputs[1:]
    if self_type is not None:
        inputs = [t.replace(_RECEIVER_KEY, self_type) for t in inputs]
        if output is not None:
            output = output.replace(_RECEIVER_KEY, self_type)

    return Signature(inputs=tuple(inputs), output=output, receiver=receiver)
