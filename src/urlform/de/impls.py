"""
Type-driven deserialization.

:func:`deserialize` turns a type hint into a visitor and asks the
deserializer for the matching shape:

    bool, int, float, str, bytes, None, Any      scalars / unit / any
    U8 .. I64, F32, F64, Char                    fixed-width scalars
    Optional[X]                                  option
    List[X], Set[X], Tuple[X, ...]               seq
    Tuple[A, B]                                  tuple
    Dict[K, V], Mapping[K, V]                    map
    Enum subclasses                              enum
    dataclasses, pydantic models                 struct
    NamedTuple classes                           tuple_struct
    NewType                                      newtype_struct

A class may take over by defining ``__deserialize__(cls, deserializer)``.
"""
from __future__ import annotations

import collections
import collections.abc
import dataclasses
import enum
import functools
import types
import typing
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from urlform.de.deserializer import DESERIALIZE_KINDS, Deserializer, forward_to_deserialize_any
from urlform.de.types import UNBOUNDED_INT, CharMarker, FloatWidth, IgnoredAny, IntWidth
from urlform.de.visitor import END, MapAccess, SeqAccess, Unexpected, Visitor
from urlform.exceptions import Error, ValueConversionError

NoneType = type(None)

_SEQ_ORIGINS = {
    list: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Iterable: list,
    collections.abc.Collection: list,
    collections.deque: collections.deque,
    set: set,
    collections.abc.Set: set,
    collections.abc.MutableSet: set,
    frozenset: frozenset,
}

_MAP_ORIGINS = {
    dict: dict,
    collections.abc.Mapping: dict,
    collections.abc.MutableMapping: dict,
    collections.OrderedDict: collections.OrderedDict,
}


def deserialize(tp: Any, deserializer: Deserializer) -> Any:
    """Read a value of type ``tp`` from ``deserializer``."""
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if origin is typing.Annotated:
        return _deserialize_annotated(args[0], args[1:], deserializer)

    if isinstance(tp, type) and hasattr(tp, "__deserialize__"):
        return tp.__deserialize__(deserializer)

    if tp is Any or tp is object:
        return deserializer.deserialize_any(AnyVisitor())
    if tp is IgnoredAny:
        return deserializer.deserialize_ignored_any(IgnoredAnyVisitor())
    if tp is None or tp is NoneType:
        return deserializer.deserialize_unit(UnitVisitor())
    if tp is bool:
        return deserializer.deserialize_bool(BoolVisitor())
    if tp is int:
        return deserializer.deserialize_int(IntVisitor(UNBOUNDED_INT))
    if tp is float:
        return deserializer.deserialize_f64(FloatVisitor("f64"))
    if tp is str:
        return deserializer.deserialize_string(StrVisitor())
    if tp in (bytes, bytearray):
        return deserializer.deserialize_byte_buf(BytesVisitor(tp))

    if origin is typing.Literal:
        return deserializer.deserialize_str(LiteralVisitor(args))

    if origin is typing.Union or origin is types.UnionType:
        inner = [a for a in args if a is not NoneType]
        if len(inner) == 1 and len(args) == 2:
            return deserializer.deserialize_option(OptionVisitor(inner[0]))
        raise TypeError(f"cannot deserialize union {tp!r}")

    if origin is tuple or tp is tuple:
        if not args or (len(args) == 2 and args[1] is Ellipsis):
            elem = args[0] if args else Any
            return deserializer.deserialize_seq(SeqVisitor(elem, tuple))
        if args == ((),):
            args = ()
        return deserializer.deserialize_tuple(len(args), TupleVisitor(args, tuple))

    seq_factory = _SEQ_ORIGINS.get(origin or tp)
    if seq_factory is not None:
        elem = args[0] if args else Any
        return deserializer.deserialize_seq(SeqVisitor(elem, seq_factory))

    map_factory = _MAP_ORIGINS.get(origin or tp)
    if map_factory is not None:
        key_tp, value_tp = args if args else (Any, Any)
        return deserializer.deserialize_map(MapVisitor(key_tp, value_tp, map_factory))

    if hasattr(tp, "__supertype__"):
        return deserializer.deserialize_newtype_struct(tp.__name__, NewtypeVisitor(tp))

    if isinstance(tp, type):
        if issubclass(tp, enum.Enum):
            variants = [m.name for m in tp]
            return deserializer.deserialize_enum(tp.__name__, variants, EnumVisitor(tp))
        if issubclass(tp, tuple) and hasattr(tp, "_fields"):
            return _deserialize_named_tuple(tp, deserializer)
        if dataclasses.is_dataclass(tp) or issubclass(tp, BaseModel):
            info = _struct_info(tp)
            if not info.fields and not issubclass(tp, BaseModel):
                return deserializer.deserialize_unit_struct(info.name, UnitVisitor(tp, info.name))
            return deserializer.deserialize_struct(info.name, info.wire_names, StructVisitor(info))

    raise TypeError(f"cannot deserialize type {tp!r}")


def _deserialize_annotated(base: Any, metadata: Tuple[Any, ...], deserializer: Deserializer) -> Any:
    for marker in metadata:
        if isinstance(marker, IntWidth):
            method = getattr(deserializer, f"deserialize_{marker.name}")
            return method(IntVisitor(marker))
        if isinstance(marker, FloatWidth):
            method = getattr(deserializer, f"deserialize_{marker.name}")
            return method(FloatVisitor(marker.name))
        if isinstance(marker, CharMarker):
            return deserializer.deserialize_char(CharVisitor())
    return deserialize(base, deserializer)


def _deserialize_named_tuple(tp: type, deserializer: Deserializer) -> Any:
    hints = typing.get_type_hints(tp, include_extras=True)
    elems = tuple(hints.get(name, Any) for name in tp._fields)
    required = len(tp._fields) - len(getattr(tp, "_field_defaults", {}))
    visitor = TupleVisitor(elems, lambda items: tp(*items), name=tp.__name__, min_len=required)
    return deserializer.deserialize_tuple_struct(tp.__name__, len(elems), visitor)


def is_optional(tp: Any) -> bool:
    if typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    if tp is Any or tp is None or tp is NoneType:
        return True
    origin = typing.get_origin(tp)
    return (origin is typing.Union or origin is types.UnionType) and NoneType in typing.get_args(tp)


def _is_native(tp: Any) -> bool:
    """Whether :func:`deserialize` has a rule for ``tp`` and everything inside it."""
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin is typing.Annotated:
        return _is_native(args[0])
    if origin is typing.Literal:
        return True
    if tp in (Any, object, IgnoredAny, None, NoneType, bool, int, float, str, bytes, bytearray):
        return True
    if origin is typing.Union or origin is types.UnionType:
        inner = [a for a in args if a is not NoneType]
        return len(inner) == 1 and len(args) == 2 and _is_native(inner[0])
    if origin is tuple or tp is tuple:
        return all(_is_native(a) for a in args if a is not Ellipsis and a != ())
    if (origin or tp) in _SEQ_ORIGINS or (origin or tp) in _MAP_ORIGINS:
        return all(_is_native(a) for a in args)
    if hasattr(tp, "__supertype__"):
        return _is_native(tp.__supertype__)
    if isinstance(tp, type):
        return (
            hasattr(tp, "__deserialize__")
            or issubclass(tp, enum.Enum)
            or (issubclass(tp, tuple) and hasattr(tp, "_fields"))
            or dataclasses.is_dataclass(tp)
            or issubclass(tp, BaseModel)
        )
    return False


# ---------- Struct metadata ----------

@dataclasses.dataclass(frozen=True)
class StructField:
    attr: str
    wire: str
    tp: Any
    required: bool


@dataclasses.dataclass(frozen=True)
class StructInfo:
    cls: type
    name: str
    fields: Tuple[StructField, ...]

    @property
    def wire_names(self) -> List[str]:
        return [f.wire for f in self.fields]

    def field(self, wire: str) -> Optional[StructField]:
        for f in self.fields:
            if f.wire == wire:
                return f
        return None

    def build(self, values: Dict[str, Any]) -> Any:
        if issubclass(self.cls, BaseModel):
            data = {f.wire: values[f.attr] for f in self.fields if f.attr in values}
            try:
                return self.cls.model_validate(data)
            except ValidationError as exc:
                raise ValueConversionError(str(exc)) from exc
        return self.cls(**values)


@functools.lru_cache(maxsize=None)
def _struct_info(cls: type) -> StructInfo:
    fields: List[StructField] = []
    if issubclass(cls, BaseModel):
        for name, info in cls.model_fields.items():
            tp = info.annotation
            if not _is_native(tp):
                # left to pydantic to coerce from the raw string
                tp = Optional[str] if is_optional(tp) else str
            if info.metadata:
                tp = typing.Annotated[(tp, *info.metadata)]
            fields.append(StructField(
                attr=name,
                wire=info.alias or name,
                tp=tp,
                required=info.is_required(),
            ))
    else:
        hints = typing.get_type_hints(cls, include_extras=True)
        for f in dataclasses.fields(cls):
            if not f.init:
                continue
            fields.append(StructField(
                attr=f.name,
                wire=f.metadata.get("rename", f.name),
                tp=hints.get(f.name, Any),
                required=f.default is dataclasses.MISSING
                and f.default_factory is dataclasses.MISSING,
            ))
    return StructInfo(cls=cls, name=cls.__name__, fields=tuple(fields))


# ---------- Scalar visitors ----------

class BoolVisitor(Visitor):
    def expecting(self) -> str:
        return "a boolean"

    def visit_bool(self, v: bool) -> bool:
        return v


class IntVisitor(Visitor):
    def __init__(self, width: IntWidth) -> None:
        self.width = width

    def expecting(self) -> str:
        if self.width is UNBOUNDED_INT:
            return "an integer"
        return self.width.name

    def visit_int(self, v: int) -> int:
        lo, hi = self.width.min, self.width.max
        if (lo is not None and v < lo) or (hi is not None and v > hi):
            raise Error.invalid_value(Unexpected.integer(v), self)
        return v


class FloatVisitor(Visitor):
    def __init__(self, name: str) -> None:
        self.name = name

    def expecting(self) -> str:
        return self.name

    def visit_float(self, v: float) -> float:
        return v

    def visit_int(self, v: int) -> float:
        return float(v)


class CharVisitor(Visitor):
    def expecting(self) -> str:
        return "a character"

    def visit_char(self, v: str) -> str:
        return v

    def visit_str(self, v: str) -> str:
        if len(v) != 1:
            raise Error.invalid_value(Unexpected.string(v), self)
        return v


class StrVisitor(Visitor):
    def expecting(self) -> str:
        return "a string"

    def visit_str(self, v: str) -> str:
        return v

    def visit_bytes(self, v: bytes) -> str:
        try:
            return v.decode("utf-8")
        except UnicodeDecodeError:
            raise Error.invalid_value(Unexpected.bytes(v), self) from None


class LiteralVisitor(Visitor):
    """One of the values of a ``Literal[...]``, matched on its form spelling."""

    def __init__(self, values: Tuple[Any, ...]) -> None:
        self.values = values

    def expecting(self) -> str:
        return "one of " + ", ".join(f"`{self._spell(v)}`" for v in self.values)

    @staticmethod
    def _spell(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, enum.Enum):
            return value.name
        return str(value)

    def visit_str(self, v: str) -> Any:
        for value in self.values:
            if self._spell(value) == v:
                return value
        raise Error.invalid_value(Unexpected.string(v), self)


class BytesVisitor(Visitor):
    def __init__(self, factory: Callable[[bytes], Any] = bytes) -> None:
        self.factory = factory

    def expecting(self) -> str:
        return "a byte array"

    def visit_bytes(self, v: bytes) -> Any:
        return self.factory(v)

    def visit_str(self, v: str) -> Any:
        return self.factory(v.encode("utf-8"))


class UnitVisitor(Visitor):
    """``None`` or a field-less struct; an empty map counts as unit."""

    def __init__(self, factory: Optional[Callable[[], Any]] = None, name: Optional[str] = None) -> None:
        self.factory = factory
        self.name = name

    def expecting(self) -> str:
        if self.name is not None:
            return f"unit struct {self.name}"
        return "unit"

    def _unit(self) -> Any:
        return self.factory() if self.factory is not None else None

    def visit_unit(self) -> Any:
        return self._unit()

    def visit_map(self, map: MapAccess) -> Any:
        if map.next_key(IgnoredAny) is not END:
            raise Error.invalid_type(Unexpected.MAP, self)
        return self._unit()


class EnumVisitor(Visitor):
    """Members are looked up by name, then by value."""

    def __init__(self, cls: type) -> None:
        self.cls = cls

    def expecting(self) -> str:
        return f"enum {self.cls.__name__}"

    def visit_str(self, v: str) -> Any:
        member = self.cls.__members__.get(v)
        if member is not None:
            return member
        for m in self.cls:
            if str(m.value) == v:
                return m
        raise Error.unknown_variant(v, list(self.cls.__members__))

    def visit_int(self, v: int) -> Any:
        try:
            return self.cls(v)
        except ValueError:
            raise Error.unknown_variant(str(v), list(self.cls.__members__)) from None

    def visit_map(self, map: MapAccess) -> Any:
        # externally tagged: a single entry whose key names the variant
        variant = map.next_key(self.cls)
        if variant is END:
            raise Error.invalid_length(0, self)
        map.next_value(IgnoredAny)
        count = 1
        while map.next_key(IgnoredAny) is not END:
            map.next_value(IgnoredAny)
            count += 1
        if count != 1:
            raise Error.invalid_length(count, self)
        return variant


# ---------- Container visitors ----------

class OptionVisitor(Visitor):
    def __init__(self, inner: Any) -> None:
        self.inner = inner

    def expecting(self) -> str:
        return "option"

    def visit_none(self) -> None:
        return None

    def visit_unit(self) -> None:
        return None

    def visit_some(self, deserializer: Deserializer) -> Any:
        return deserialize(self.inner, deserializer)

    def visit_map(self, map: MapAccess) -> Any:
        if map.size_hint() == 0:
            return None
        return deserialize(self.inner, MapAccessDeserializer(map))


class NewtypeVisitor(Visitor):
    def __init__(self, newtype: Any) -> None:
        self.newtype = newtype

    def expecting(self) -> str:
        return f"newtype struct {self.newtype.__name__}"

    def visit_newtype_struct(self, deserializer: Deserializer) -> Any:
        return deserialize(self.newtype.__supertype__, deserializer)

    def visit_map(self, map: MapAccess) -> Any:
        return deserialize(self.newtype.__supertype__, MapAccessDeserializer(map))


class SeqVisitor(Visitor):
    def __init__(self, elem: Any, factory: Callable[[List[Any]], Any] = list) -> None:
        self.elem = elem
        self.factory = factory

    def expecting(self) -> str:
        return "a sequence"

    def visit_seq(self, seq: SeqAccess) -> Any:
        items = []
        while True:
            item = seq.next_element(self.elem)
            if item is END:
                break
            items.append(item)
        return self.factory(items)


class TupleVisitor(Visitor):
    def __init__(
        self,
        elems: Tuple[Any, ...],
        factory: Callable[[List[Any]], Any] = tuple,
        name: Optional[str] = None,
        min_len: Optional[int] = None,
    ) -> None:
        self.elems = elems
        self.factory = factory
        self.name = name
        self.min_len = len(elems) if min_len is None else min_len

    def expecting(self) -> str:
        if self.name is not None:
            return f"tuple struct {self.name}"
        return f"a tuple of size {len(self.elems)}"

    def visit_seq(self, seq: SeqAccess) -> Any:
        items = []
        for i, elem in enumerate(self.elems):
            item = seq.next_element(elem)
            if item is END:
                if i < self.min_len:
                    raise Error.invalid_length(i, self)
                break
            items.append(item)
        return self.factory(items)


class MapVisitor(Visitor):
    """Associative target; a repeated key keeps its last value."""

    def __init__(self, key_tp: Any, value_tp: Any, factory: Callable[[], Any] = dict) -> None:
        self.key_tp = key_tp
        self.value_tp = value_tp
        self.factory = factory

    def expecting(self) -> str:
        return "a map"

    def visit_map(self, map: MapAccess) -> Any:
        out = self.factory()
        while True:
            entry = map.next_entry(self.key_tp, self.value_tp)
            if entry is END:
                break
            key, value = entry
            out[key] = value
        return out


class StructVisitor(Visitor):
    def __init__(self, info: StructInfo) -> None:
        self.info = info

    def expecting(self) -> str:
        return f"struct {self.info.name}"

    def visit_map(self, map: MapAccess) -> Any:
        values: Dict[str, Any] = {}
        field_tp = _field_identifier(self.info.cls)
        while True:
            f = map.next_key(field_tp)
            if f is END:
                break
            if f is None:
                map.next_value(IgnoredAny)
                continue
            if f.attr in values:
                raise Error.duplicate_field(f.wire)
            values[f.attr] = map.next_value(f.tp)
        return self._finish(values)

    def visit_seq(self, seq: SeqAccess) -> Any:
        values: Dict[str, Any] = {}
        for f in self.info.fields:
            item = seq.next_element(f.tp)
            if item is END:
                break
            values[f.attr] = item
        return self._finish(values)

    def _finish(self, values: Dict[str, Any]) -> Any:
        for f in self.info.fields:
            if f.attr in values or not f.required:
                continue
            if is_optional(f.tp):
                values[f.attr] = None
            else:
                raise Error.missing_field(f.wire)
        return self.info.build(values)


class FieldVisitor(Visitor):
    """Struct key -> StructField, or None for a field the struct lacks."""

    def __init__(self, info: StructInfo) -> None:
        self.info = info

    def expecting(self) -> str:
        return "field identifier"

    def visit_str(self, v: str) -> Optional[StructField]:
        return self.info.field(v)

    def visit_bytes(self, v: bytes) -> Optional[StructField]:
        return self.info.field(v.decode("utf-8", "replace"))


@functools.lru_cache(maxsize=None)
def _field_identifier(struct_cls: type) -> type:
    info = _struct_info(struct_cls)

    class FieldIdentifier:
        @classmethod
        def __deserialize__(cls, deserializer: Deserializer) -> Optional[StructField]:
            return deserializer.deserialize_struct_field(FieldVisitor(info))

    return FieldIdentifier


# ---------- Untyped ----------

class AnyVisitor(Visitor):
    def expecting(self) -> str:
        return "any value"

    def visit_bool(self, v: bool) -> bool:
        return v

    def visit_int(self, v: int) -> int:
        return v

    def visit_float(self, v: float) -> float:
        return v

    def visit_str(self, v: str) -> str:
        return v

    def visit_bytes(self, v: bytes) -> bytes:
        return v

    def visit_none(self) -> None:
        return None

    def visit_unit(self) -> None:
        return None

    def visit_some(self, deserializer: Deserializer) -> Any:
        return deserialize(Any, deserializer)

    def visit_newtype_struct(self, deserializer: Deserializer) -> Any:
        return deserialize(Any, deserializer)

    def visit_seq(self, seq: SeqAccess) -> List[Any]:
        return SeqVisitor(Any).visit_seq(seq)

    def visit_map(self, map: MapAccess) -> Dict[Any, Any]:
        return MapVisitor(Any, Any).visit_map(map)


class IgnoredAnyVisitor(Visitor):
    def expecting(self) -> str:
        return "anything at all"

    def visit_bool(self, v: bool) -> None:
        return None

    def visit_int(self, v: int) -> None:
        return None

    def visit_float(self, v: float) -> None:
        return None

    def visit_str(self, v: str) -> None:
        return None

    def visit_bytes(self, v: bytes) -> None:
        return None

    def visit_none(self) -> None:
        return None

    def visit_unit(self) -> None:
        return None

    def visit_some(self, deserializer: Deserializer) -> None:
        return deserializer.deserialize_ignored_any(self)

    def visit_newtype_struct(self, deserializer: Deserializer) -> None:
        return deserializer.deserialize_ignored_any(self)

    def visit_seq(self, seq: SeqAccess) -> None:
        while seq.next_element(IgnoredAny) is not END:
            pass
        return None

    def visit_map(self, map: MapAccess) -> None:
        while map.next_entry(IgnoredAny, IgnoredAny) is not END:
            pass
        return None


# ---------- Helpers ----------

@forward_to_deserialize_any(*DESERIALIZE_KINDS[1:])
class MapAccessDeserializer(Deserializer):
    """Presents a partially consumed map as a deserializer of that map."""

    def __init__(self, access: MapAccess) -> None:
        self.access = access

    def deserialize_any(self, visitor: Visitor) -> Any:
        return visitor.visit_map(self.access)
