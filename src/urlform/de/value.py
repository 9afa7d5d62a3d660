"""
Deserializers over plain Python values.

StrDeserializer   one string, read as whatever scalar the visitor asks for
PairDeserializer  one (key, value) pair, read as a two-element sequence
MapDeserializer   an iterable of pairs, read as a map or as a sequence of pairs
"""
from __future__ import annotations

import re
from collections.abc import Sized
from typing import Any, Iterable, Iterator, Optional, Tuple

from urlform.de.deserializer import Deserializer, forward_to_deserialize_any
from urlform.de.impls import deserialize
from urlform.de.visitor import END, Unexpected, Visitor
from urlform.exceptions import Error

_SIGNED_RE = re.compile(r"[+-]?[0-9]+")
_UNSIGNED_RE = re.compile(r"\+?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.IGNORECASE,
)

_NOTHING: Any = object()


def into_deserializer(value: Any) -> Deserializer:
    if isinstance(value, Deserializer):
        return value
    if isinstance(value, str):
        return StrDeserializer(value)
    raise TypeError(f"no deserializer for {type(value).__name__}")


@forward_to_deserialize_any(
    "str",
    "string",
    "struct_field",
    "enum",
    "bytes",
    "byte_buf",
    "unit",
    "unit_struct",
    "seq",
    "seq_fixed_size",
    "tuple",
    "tuple_struct",
    "map",
    "struct",
    "ignored_any",
)
class StrDeserializer(Deserializer):
    """A single decoded string.

    Scalars are parsed the strict way: ``true``/``false`` only, integers
    without whitespace or digit separators, exactly one character for a
    char. Anything that does not parse is an ``invalid value`` error
    quoting the string.
    """

    def __init__(self, value: str) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"StrDeserializer({self.value!r})"

    def deserialize_any(self, visitor: Visitor) -> Any:
        return visitor.visit_str(self.value)

    def deserialize_bool(self, visitor: Visitor) -> Any:
        if self.value == "true":
            return visitor.visit_bool(True)
        if self.value == "false":
            return visitor.visit_bool(False)
        raise Error.invalid_value(Unexpected.string(self.value), visitor)

    def _visit_int(self, visitor: Visitor, signed: bool) -> Any:
        pattern = _SIGNED_RE if signed else _UNSIGNED_RE
        if pattern.fullmatch(self.value) is None:
            raise Error.invalid_value(Unexpected.string(self.value), visitor)
        try:
            value = int(self.value)
        except ValueError:
            # past the interpreter's digit limit
            raise Error.invalid_value(Unexpected.string(self.value), visitor) from None
        return visitor.visit_int(value)

    def deserialize_u8(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=False)

    def deserialize_u16(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=False)

    def deserialize_u32(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=False)

    def deserialize_u64(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=False)

    def deserialize_i8(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=True)

    def deserialize_i16(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=True)

    def deserialize_i32(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=True)

    def deserialize_i64(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=True)

    def deserialize_int(self, visitor: Visitor) -> Any:
        return self._visit_int(visitor, signed=True)

    def _visit_float(self, visitor: Visitor) -> Any:
        if _FLOAT_RE.fullmatch(self.value) is None:
            raise Error.invalid_value(Unexpected.string(self.value), visitor)
        return visitor.visit_float(float(self.value))

    def deserialize_f32(self, visitor: Visitor) -> Any:
        return self._visit_float(visitor)

    def deserialize_f64(self, visitor: Visitor) -> Any:
        return self._visit_float(visitor)

    def deserialize_char(self, visitor: Visitor) -> Any:
        if len(self.value) != 1:
            raise Error.invalid_value(Unexpected.string(self.value), visitor)
        return visitor.visit_char(self.value)

    def deserialize_option(self, visitor: Visitor) -> Any:
        return visitor.visit_some(self)

    def deserialize_newtype_struct(self, name: str, visitor: Visitor) -> Any:
        return visitor.visit_newtype_struct(self)


class _PairAccess:
    def __init__(self, key: Any, value: Any) -> None:
        self._items = [key, value]

    def next_element(self, tp: Any) -> Any:
        if not self._items:
            return END
        return deserialize(tp, into_deserializer(self._items.pop(0)))

    def size_hint(self) -> Optional[int]:
        return len(self._items)


@forward_to_deserialize_any(
    "bool", "u8", "u16", "u32", "u64", "i8", "i16", "i32", "i64", "int",
    "f32", "f64", "char", "str", "string", "bytes", "byte_buf", "option",
    "unit", "unit_struct", "newtype_struct", "seq", "map", "struct",
    "struct_field", "enum", "ignored_any",
)
class PairDeserializer(Deserializer):
    """A ``(key, value)`` entry seen as a sequence of exactly two elements."""

    def __init__(self, key: Any, value: Any) -> None:
        self.key = key
        self.value = value

    def deserialize_any(self, visitor: Visitor) -> Any:
        access = _PairAccess(self.key, self.value)
        result = visitor.visit_seq(access)
        remaining = access.size_hint()
        if remaining:
            consumed = 2 - remaining
            raise Error.invalid_length(2, f"{consumed} element{'s' if consumed != 1 else ''} in sequence")
        return result

    def _expect_pair(self, length: int, visitor: Visitor) -> Any:
        if length != 2:
            raise Error.invalid_length(2, f"{length} elements in sequence")
        return self.deserialize_any(visitor)

    def deserialize_seq_fixed_size(self, length: int, visitor: Visitor) -> Any:
        return self._expect_pair(length, visitor)

    def deserialize_tuple(self, length: int, visitor: Visitor) -> Any:
        return self._expect_pair(length, visitor)

    def deserialize_tuple_struct(self, name: str, length: int, visitor: Visitor) -> Any:
        return self._expect_pair(length, visitor)


@forward_to_deserialize_any(
    "bool", "u8", "u16", "u32", "u64", "i8", "i16", "i32", "i64", "int",
    "f32", "f64", "char", "str", "string", "bytes", "byte_buf", "option",
    "unit", "unit_struct", "newtype_struct", "tuple", "tuple_struct", "map",
    "struct", "struct_field", "enum", "ignored_any",
)
class MapDeserializer(Deserializer):
    """Entries of an iterable of ``(key, value)`` pairs.

    Keys and values are strings (read through :class:`StrDeserializer`) or
    deserializers. The same single pass serves both modes:

    * map access: ``next_key`` then ``next_value`` per entry
    * sequence access: ``next_element`` reads an entry as a pair

    A bounded instance knows how many entries to expect (the iterable has a
    ``len()``); an unbounded one stops when the iterator is exhausted.
    """

    def __init__(self, pairs: Iterable[Tuple[Any, Any]], *, bounded: bool = True) -> None:
        self._len: Optional[int] = len(pairs) if bounded and isinstance(pairs, Sized) else None
        self._iter: Iterator[Tuple[Any, Any]] = iter(pairs)
        self._peeked: Any = _NOTHING
        self._exhausted = False
        self._value: Any = _NOTHING
        self.count = 0

    @classmethod
    def unbounded(cls, pairs: Iterable[Tuple[Any, Any]]) -> "MapDeserializer":
        return cls(pairs, bounded=False)

    def _peek(self) -> Any:
        if self._peeked is _NOTHING and not self._exhausted:
            self._peeked = next(self._iter, _NOTHING)
            self._exhausted = self._peeked is _NOTHING
        return self._peeked

    def _next_pair(self) -> Any:
        pair = self._peek()
        self._peeked = _NOTHING
        if pair is not _NOTHING:
            self.count += 1
        return pair

    # ---------- MapAccess ----------

    def next_key(self, tp: Any) -> Any:
        pair = self._next_pair()
        if pair is _NOTHING:
            return END
        key, self._value = pair
        return deserialize(tp, into_deserializer(key))

    def next_value(self, tp: Any) -> Any:
        if self._value is _NOTHING:
            raise RuntimeError("next_value called before next_key")
        value, self._value = self._value, _NOTHING
        return deserialize(tp, into_deserializer(value))

    def next_entry(self, key_tp: Any, value_tp: Any) -> Any:
        key = self.next_key(key_tp)
        if key is END:
            return END
        return key, self.next_value(value_tp)

    # ---------- SeqAccess ----------

    def next_element(self, tp: Any) -> Any:
        pair = self._next_pair()
        if pair is _NOTHING:
            return END
        key, value = pair
        return deserialize(tp, PairDeserializer(key, value))

    def size_hint(self) -> Optional[int]:
        if self._len is not None:
            return self._len - self.count
        if self._peek() is _NOTHING:
            return 0
        return None

    def end(self) -> None:
        """Fail if entries are left over."""
        remaining = 0
        while self._next_pair() is not _NOTHING:
            remaining += 1
        if remaining:
            consumed = self.count - remaining
            raise Error.invalid_length(self.count, f"{consumed} elements in map")

    # ---------- Deserializer ----------

    def deserialize_any(self, visitor: Visitor) -> Any:
        value = visitor.visit_map(self)
        self.end()
        return value

    def deserialize_seq(self, visitor: Visitor) -> Any:
        value = visitor.visit_seq(self)
        self.end()
        return value

    def deserialize_seq_fixed_size(self, length: int, visitor: Visitor) -> Any:
        return self.deserialize_seq(visitor)
