"""
Deserializer contract: one ``deserialize_<kind>`` method per requested shape.

A target type picks the method matching its shape and passes its visitor;
the deserializer answers by calling one ``visit_*`` method on it.
"""
from __future__ import annotations

from typing import Any, Callable, Sequence, Tuple, Type, TypeVar

from urlform.de.visitor import Visitor

D = TypeVar("D", bound=Type["Deserializer"])

DESERIALIZE_KINDS: Tuple[str, ...] = (
    "any",
    "bool",
    "u8",
    "u16",
    "u32",
    "u64",
    "i8",
    "i16",
    "i32",
    "i64",
    "int",
    "f32",
    "f64",
    "char",
    "str",
    "string",
    "bytes",
    "byte_buf",
    "option",
    "unit",
    "unit_struct",
    "newtype_struct",
    "seq",
    "seq_fixed_size",
    "tuple",
    "tuple_struct",
    "map",
    "struct",
    "struct_field",
    "enum",
    "ignored_any",
)


class Deserializer:
    """Base class for data formats.

    Every method raises ``NotImplementedError`` until a format overrides it
    or generates it with :func:`forward_to_deserialize_any`.
    """

    def deserialize_any(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_bool(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_u8(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_u16(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_u32(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_u64(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_i8(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_i16(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_i32(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_i64(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_int(self, visitor: Visitor) -> Any:
        """Arbitrary precision integer."""
        raise NotImplementedError

    def deserialize_f32(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_f64(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_char(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_str(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_string(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_bytes(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_byte_buf(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_option(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_unit(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_unit_struct(self, name: str, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_newtype_struct(self, name: str, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_seq(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_seq_fixed_size(self, length: int, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_tuple(self, length: int, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_tuple_struct(self, name: str, length: int, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_map(self, visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_struct(self, name: str, fields: Sequence[str], visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_struct_field(self, visitor: Visitor) -> Any:
        """Key of a struct entry, i.e. a field name."""
        raise NotImplementedError

    def deserialize_enum(self, name: str, variants: Sequence[str], visitor: Visitor) -> Any:
        raise NotImplementedError

    def deserialize_ignored_any(self, visitor: Visitor) -> Any:
        raise NotImplementedError


def _forwarder(kind: str) -> Callable[..., Any]:
    def method(self: Deserializer, *args: Any) -> Any:
        return self.deserialize_any(args[-1])

    method.__name__ = f"deserialize_{kind}"
    method.__qualname__ = method.__name__
    method.__doc__ = "Forwards to ``deserialize_any``."
    return method


def forward_to_deserialize_any(*kinds: str) -> Callable[[D], D]:
    """Class decorator generating ``deserialize_<kind>`` methods that
    ignore their extra arguments and call ``deserialize_any(visitor)``.

        @forward_to_deserialize_any("bool", "u8", "struct")
        class MyDeserializer(Deserializer): ...
    """
    known = set(DESERIALIZE_KINDS) - {"any"}
    unknown = [k for k in kinds if k not in known]
    if unknown:
        raise ValueError(f"unknown deserialize kinds: {unknown}")

    def decorate(cls: D) -> D:
        for kind in kinds:
            setattr(cls, f"deserialize_{kind}", _forwarder(kind))
        return cls

    return decorate
