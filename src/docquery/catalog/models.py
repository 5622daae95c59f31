"""Catalog value types: item kinds, type references, signatures and items."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from docquery.exceptions import TypeSyntaxError

UNIT = "()"
WILDCARD = "_"


class ItemKind(str, Enum):
    """Closed set of documentable item kinds.

    Declaration order follows the numeric codes used by rustdoc search
    indexes, so ``list(ItemKind)[code]`` is the kind for a rustdoc code.
    """

    MODULE = "module"
    EXTERN_CRATE = "extern_crate"
    IMPORT = "import"
    STRUCT = "struct"
    ENUM = "enum"
    FUNCTION = "function"
    TYPE_ALIAS = "type_alias"
    STATIC = "static"
    TRAIT = "trait"
    IMPL = "impl"
    REQUIRED_METHOD = "required_method"
    METHOD = "method"
    FIELD = "field"
    VARIANT = "variant"
    MACRO = "macro"
    PRIMITIVE = "primitive"
    ASSOCIATED_TYPE = "associated_type"
    CONSTANT = "constant"
    ASSOCIATED_CONSTANT = "associated_constant"
    UNION = "union"

    @property
    def is_function_like(self) -> bool:
        return self in _FUNCTION_LIKE

    @classmethod
    def from_raw(cls, value: object) -> ItemKind:
        """Resolve a kind given by name (``"method"``) or rustdoc code (``11``).

        Raises:
            ValueError: If the value names no known kind.
        """
        if isinstance(value, bool):
            raise ValueError(f"invalid item kind {value!r}")
        if isinstance(value, int):
            members = list(cls)
            if 0 <= value < len(members):
                return members[value]
            raise ValueError(f"unknown item kind code {value}")
        if isinstance(value, str):
            key = value.strip().lower().replace(" ", "_").replace("-", "_")
            try:
                return cls(_KIND_ALIASES.get(key, key))
            except ValueError:
                raise ValueError(f"unknown item kind {value!r}") from None
        raise ValueError(f"invalid item kind {value!r}")


_FUNCTION_LIKE: frozenset[ItemKind] = frozenset(
    {ItemKind.FUNCTION, ItemKind.METHOD, ItemKind.REQUIRED_METHOD}
)

_KIND_ALIASES: dict[str, str] = {
    "mod": "module",
    "fn": "function",
    "typedef": "type_alias",
    "type": "type_alias",
    "tymethod": "required_method",
    "structfield": "field",
    "struct_field": "field",
    "const": "constant",
    "associatedtype": "associated_type",
    "associatedconstant": "associated_constant",
    "externcrate": "extern_crate",
}


@dataclass(frozen=True, slots=True)
class TypeRef:
    """A type name plus its ordered type arguments.

    Comparison for search purposes goes through :meth:`matches`, which is
    structural and case-insensitive on the base name. Query-side arguments
    that are omitted, or spelled ``_``, act as wildcards.

    Attributes:
        name: Base type name, without module path or reference sigils.
        args: Type arguments, outermost first.
    """

    name: str
    args: tuple[TypeRef, ...] = ()

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def is_wildcard(self) -> bool:
        return self.name == WILDCARD

    @property
    def is_unit(self) -> bool:
        return self.name == UNIT

    def matches(self, candidate: TypeRef) -> bool:
        """Return True if this (query) type structurally matches ``candidate``."""
        if self.is_wildcard:
            return True
        if self.key != candidate.key:
            return False
        if len(self.args) > len(candidate.args):
            return False
        return all(q.matches(c) for q, c in zip(self.args, candidate.args))

    def replace(self, old_key: str, new: TypeRef) -> TypeRef:
        """Return a copy with every type named ``old_key`` swapped for ``new``."""
        if self.key == old_key:
            return new
        if not self.args:
            return self
        return TypeRef(self.name, tuple(a.replace(old_key, new) for a in self.args))

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}<{', '.join(str(a) for a in self.args)}>"

    @classmethod
    def parse(cls, text: str) -> TypeRef:
        """Parse a Rust-like type expression such as ``&mut Vec<Option<u8>>``.

        A leading binding (``ctx: Context``) is dropped. Module paths reduce
        to their last segment, slices become ``slice<T>`` and tuples become
        ``tuple<A, B>``.

        Raises:
            TypeSyntaxError: If the text is not a type expression.
        """
        stripped = _BINDING.sub("", text, count=1)
        return _TypeParser(stripped).parse()

    @classmethod
    def from_raw(cls, value: object) -> TypeRef:
        """Build a TypeRef from an index entry: a string or a mapping.

        Mappings use ``name`` plus an optional ``generics`` (or ``args``)
        list of nested entries.

        Raises:
            TypeSyntaxError: If the entry cannot be interpreted as a type.
        """
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, Mapping):
            name = value.get("name")
            if not isinstance(name, str) or not name.strip():
                raise TypeSyntaxError(f"type entry without a name: {value!r}")
            base = cls.parse(name)
            nested = value.get("generics", value.get("args")) or ()
            if not isinstance(nested, (list, tuple)):
                raise TypeSyntaxError(f"type arguments must be a list: {value!r}")
            if not nested:
                return base
            return cls(base.name, base.args + tuple(cls.from_raw(n) for n in nested))
        raise TypeSyntaxError(f"invalid type entry: {value!r}")


@dataclass(frozen=True, slots=True)
class Signature:
    """Input/output shape of a function-like item.

    Attributes:
        inputs: Declared parameter types, excluding the receiver.
        output: Return type, or None for functions returning nothing.
        receiver: The ``self`` parameter's type, when the item is a method.
    """

    inputs: tuple[TypeRef, ...] = ()
    output: TypeRef | None = None
    receiver: TypeRef | None = None

    def __str__(self) -> str:
        params = [str(t) for t in self.inputs]
        if self.receiver is not None:
            params.insert(0, f"self: {self.receiver}")
        text = f"({', '.join(params)})"
        if self.output is not None:
            text += f" -> {self.output}"
        return text


@dataclass(frozen=True, slots=True)
class Item:
    """A single documentable entity owned by the catalog.

    ``parent`` is the catalog position of the enclosing item, never an
    object reference. The token fields are computed once at build time.
    """

    index: int
    namespace: str
    namespace_index: int
    kind: ItemKind
    name: str
    path: tuple[str, ...] = ()
    parent: int | None = None
    description: str = ""
    signature: Signature | None = None
    deprecated: bool = False
    name_tokens: tuple[str, ...] = field(default=(), repr=False, compare=False)
    path_tokens: tuple[str, ...] = field(default=(), repr=False, compare=False)
    segment_tokens: tuple[tuple[str, ...], ...] = field(default=(), repr=False, compare=False)
    description_tokens: tuple[str, ...] = field(default=(), repr=False, compare=False)

    @property
    def tokens(self) -> tuple[str, ...]:
        """Path tokens followed by name tokens."""
        return self.path_tokens + self.name_tokens

    @property
    def display_path(self) -> str:
        return "::".join(self.path)

    @property
    def qualified_name(self) -> str:
        return "::".join((self.namespace, *self.path, self.name))


@dataclass(frozen=True, slots=True)
class Namespace:
    """An originating library and its items in insertion order."""

    name: str
    index: int
    items: tuple[Item, ...] = ()
    doc: str = ""


# Type expression parsing

_BINDING = re.compile(r"^\s*(?:mut\s+)?[A-Za-z_]\w*\s*:(?!:)")
_IDENT = re.compile(r"[A-Za-z_]\w*")
_TYPE_TOKEN = re.compile(r"::|->|'[A-Za-z_]\w*|[A-Za-z_]\w*|\d+|[<>,()\[\];&*=+]")
_SIGILS: frozenset[str] = frozenset({"&", "*", "mut", "const", "dyn", "impl"})
_CALLABLES: frozenset[str] = frozenset({"Fn", "FnMut", "FnOnce", "fn"})


class _TypeParser:
    """Recursive-descent parser over a tokenized type expression."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._tokens = self._lex(text)
        self._pos = 0

    def parse(self) -> TypeRef:
        ref = self._type()
        if self._peek() is not None:
            raise TypeSyntaxError(f"unexpected {self._peek()!r} in type {self._text!r}")
        return ref

    def _lex(self, text: str) -> list[str]:
        tokens: list[str] = []
        pos = 0
        while pos < len(text):
            if text[pos].isspace():
                pos += 1
                continue
            m = _TYPE_TOKEN.match(text, pos)
            if m is None:
                raise TypeSyntaxError(f"unexpected character {text[pos]!r} in type {text!r}")
            tokens.append(m.group(0))
            pos = m.end()
        if not tokens:
            raise TypeSyntaxError("empty type expression")
        return tokens

    def _peek(self, offset: int = 0) -> str | None:
        pos = self._pos + offset
        return self._tokens[pos] if pos < len(self._tokens) else None

    def _next(self) -> str:
        tok = self._peek()
        if tok is None:
            raise TypeSyntaxError(f"unexpected end of type {self._text!r}")
        self._pos += 1
        return tok

    def _expect(self, expected: str) -> None:
        tok = self._next()
        if tok != expected:
            raise TypeSyntaxError(f"expected {expected!r}, got {tok!r} in type {self._text!r}")

    def _ident(self) -> str:
        tok = self._next()
        if not _IDENT.fullmatch(tok):
            raise TypeSyntaxError(f"expected a type name, got {tok!r} in type {self._text!r}")
        return tok

    def _skip_sigils(self) -> None:
        while True:
            tok = self._peek()
            if tok is None or not (tok in _SIGILS or tok.startswith("'")):
                return
            self._pos += 1

    def _type(self) -> TypeRef:
        """A type followed by any ``+ Bound`` terms; only the first is kept."""
        ref = self._atom()
        while self._peek() == "+":
            self._pos += 1
            tok = self._peek()
            if tok is not None and tok.startswith("'"):
                self._pos += 1
                continue
            self._atom()
        return ref

    def _atom(self) -> TypeRef:
        self._skip_sigils()
        tok = self._peek()
        if tok == "(":
            self._pos += 1
            items, trailing_comma = self._sequence(")")
            if not items:
                return TypeRef(UNIT)
            if len(items) == 1 and not trailing_comma:
                return items[0]
            return TypeRef("tuple", tuple(items))
        if tok == "[":
            self._pos += 1
            inner = self._type()
            if self._peek() == ";":
                while self._peek() not in ("]", None):
                    self._pos += 1
            self._expect("]")
            return TypeRef("slice", (inner,))

        name = self._ident()
        while self._peek() == "::":
            self._pos += 1
            name = self._ident()
        if name in _CALLABLES and self._peek() == "(":
            return self._callable(name)
        if self._peek() != "<":
            return TypeRef(name)
        self._pos += 1
        return TypeRef(name, self._generic_args())

    def _callable(self, name: str) -> TypeRef:
        """``Fn(A, B) -> C`` becomes ``Fn<A, B, C>``; a missing output is ``()``."""
        self._pos += 1
        params, _ = self._sequence(")")
        output = TypeRef(UNIT)
        if self._peek() == "->":
            self._pos += 1
            output = self._atom()
        return TypeRef(name, (*params, output))

    def _sequence(self, close: str) -> tuple[list[TypeRef], bool]:
        items: list[TypeRef] = []
        trailing_comma = False
        while self._peek() != close:
            items.append(self._type())
            trailing_comma = self._peek() == ","
            if trailing_comma:
                self._pos += 1
            elif self._peek() != close:
                raise TypeSyntaxError(f"expected ',' or {close!r} in type {self._text!r}")
        self._expect(close)
        return items, trailing_comma

    def _generic_args(self) -> tuple[TypeRef, ...]:
        args: list[TypeRef] = []
        while self._peek() != ">":
            tok = self._peek()
            if tok is not None and tok.startswith("'"):
                self._pos += 1
            else:
                # associated type binding, e.g. Iterator<Item = u8>
                if self._peek(1) == "=":
                    self._pos += 2
                args.append(self._type())
            if self._peek() == ",":
                self._pos += 1
            elif self._peek() != ">":
                raise TypeSyntaxError(f"expected ',' or '>' in type {self._text!r}")
        self._expect(">")
        return tuple(args)
