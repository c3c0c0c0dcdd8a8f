#!/usr/bin/env python3
"""
TFDIFF CORE MODELS
------------------
Defines the fundamental data structures shared by the parser and the differ.
A Collection holds the Declarations found in one configuration document;
each Declaration carries a tree of Blocks whose leaves are tagged Values.

Author: tfdiff Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple
from collections.abc import Mapping as MappingABC


class ValueKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    LIST = "list"
    MAP = "map"
    UNKNOWN = "unknown"
    NULL = "null"


class Value:
    """
    The result of evaluating one attribute expression.

    Values are immutable and compared structurally: two values are equal only
    when they have the same kind and recursively equal contents. Unknown values
    are equal to each other unless they carry differing origins.
    """

    __slots__ = ("kind", "data", "origin")

    def __init__(self, kind: ValueKind, data: Any = None, origin: Optional[str] = None):
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "data", data)
        object.__setattr__(self, "origin", origin)

    def __setattr__(self, name, value):
        raise AttributeError("Value is immutable")

    # --- Constructors ---

    @classmethod
    def string(cls, text: str) -> "Value":
        return cls(ValueKind.STRING, str(text))

    @classmethod
    def number(cls, number: Any) -> "Value":
        if isinstance(number, bool):
            raise TypeError("booleans are not numbers")
        if not isinstance(number, Decimal):
            number = Decimal(str(number))
        return cls(ValueKind.NUMBER, number)

    @classmethod
    def boolean(cls, flag: bool) -> "Value":
        return cls(ValueKind.BOOL, bool(flag))

    @classmethod
    def list(cls, items: Iterable["Value"]) -> "Value":
        return cls(ValueKind.LIST, tuple(items))

    @classmethod
    def map(cls, items: Mapping[str, "Value"]) -> "Value":
        return cls(ValueKind.MAP, MappingProxyType(dict(items)))

    @classmethod
    def unknown(cls, origin: Optional[str] = None) -> "Value":
        return cls(ValueKind.UNKNOWN, None, origin)

    @classmethod
    def null(cls) -> "Value":
        return cls(ValueKind.NULL)

    # --- Queries ---

    @property
    def is_unknown(self) -> bool:
        return self.kind is ValueKind.UNKNOWN

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return values_equal(self, other)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def to_python(self) -> Any:
        """Converts the value into plain Python data (for reports and debugging)."""
        if self.kind is ValueKind.LIST:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.MAP:
            return {key: item.to_python() for key, item in self.data.items()}
        if self.kind is ValueKind.UNKNOWN:
            return "(unknown)"
        return self.data

    def __repr__(self):
        if self.kind is ValueKind.UNKNOWN:
            return f"Value.unknown({self.origin!r})" if self.origin else "Value.unknown()"
        if self.kind is ValueKind.NULL:
            return "Value.null()"
        return f"Value({self.kind.value}, {self.to_python()!r})"


def values_equal(left: Value, right: Value) -> bool:
    """Kind-tagged structural equality between two Values."""
    if left.kind is not right.kind:
        return False

    kind = left.kind
    if kind is ValueKind.NULL:
        return True
    if kind is ValueKind.UNKNOWN:
        return left.origin == right.origin
    if kind is ValueKind.LIST:
        if len(left.data) != len(right.data):
            return False
        return all(values_equal(a, b) for a, b in zip(left.data, right.data))
    if kind is ValueKind.MAP:
        return value_maps_equal(left.data, right.data)
    # STRING, NUMBER (Decimal compares numerically), BOOL
    return left.data == right.data


def value_maps_equal(left: Mapping[str, Value], right: Mapping[str, Value]) -> bool:
    if left.keys() != right.keys():
        return False
    return all(values_equal(left[key], right[key]) for key in left)


EMPTY_VALUES: Mapping[str, Value] = MappingProxyType({})


@dataclass(frozen=True)
class Block:
    """
    A nested, unnamed structural unit. Holds direct attributes and at most one
    nested Block per block type (the last one in source order).
    """
    attributes: Mapping[str, Value] = field(default_factory=lambda: EMPTY_VALUES)
    blocks: Mapping[str, "Block"] = field(default_factory=lambda: MappingProxyType({}))


class DeclarationKind(str, Enum):
    RESOURCE = "resource"
    MODULE = "module"


@dataclass(frozen=True)
class Location:
    source: str
    line: Optional[int] = None

    def __str__(self):
        return f"{self.source}:{self.line}" if self.line is not None else self.source


@dataclass(frozen=True)
class Declaration:
    """
    A top-level named configuration unit (resource or module).
    Only `attributes` and `blocks` take part in structural comparison.
    """
    name: str
    kind: DeclarationKind
    attributes: Mapping[str, Value] = field(default_factory=lambda: EMPTY_VALUES)
    blocks: Mapping[str, Block] = field(default_factory=lambda: MappingProxyType({}))
    location: Optional[Location] = field(default=None, compare=False)


class Collection(MappingABC):
    """
    Read-only mapping of Declaration name to Declaration for one parsed
    document (or one merged set of documents).
    """

    def __init__(self, declarations: Optional[Mapping[str, Declaration]] = None,
                 sources: Iterable[str] = ()):
        self._declarations: Dict[str, Declaration] = dict(declarations or {})
        self.sources: Tuple[str, ...] = tuple(sources)

    def __getitem__(self, name: str) -> Declaration:
        return self._declarations[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._declarations)

    def __len__(self) -> int:
        return len(self._declarations)

    def names(self) -> List[str]:
        return sorted(self._declarations)

    def __repr__(self):
        return f"Collection({self.names()!r})"


@dataclass(frozen=True)
class Document:
    """One configuration file handed from a revision source to the parser."""
    name: str
    content: bytes
