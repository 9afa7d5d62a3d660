"""
Visitor protocol: how a target type tells a deserializer what it accepts.

A deserializer calls exactly one ``visit_*`` method on the visitor it is
given. Anything the visitor does not override is rejected with an
``invalid type`` error built from :meth:`Visitor.expecting`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Protocol, runtime_checkable

from urlform.exceptions import Error


class _End:
    def __repr__(self) -> str:
        return "END"


# Returned by MapAccess / SeqAccess once the input is exhausted.
END: Any = _End()


@dataclass(frozen=True)
class Unexpected:
    """What the input actually held, for error messages."""

    kind: str
    value: Any = None

    # non-scalar shapes, set below the class
    UNIT: ClassVar[Unexpected]
    OPTION: ClassVar[Unexpected]
    NEWTYPE: ClassVar[Unexpected]
    SEQ: ClassVar[Unexpected]
    MAP: ClassVar[Unexpected]

    _SCALARS = ("bool", "integer", "floating point", "char", "string", "bytes")

    @property
    def is_scalar(self) -> bool:
        return self.kind in self._SCALARS

    def __str__(self) -> str:
        if self.kind in ("string", "char"):
            return f'{self.kind} "{self.value}"'
        if self.kind == "bytes":
            return f"byte array {self.value!r}"
        if self.kind in ("bool", "integer", "floating point"):
            return f"{self.kind} `{self.value}`"
        return self.kind

    @classmethod
    def string(cls, v: str) -> "Unexpected":
        return cls("string", v)

    @classmethod
    def char(cls, v: str) -> "Unexpected":
        return cls("char", v)

    @classmethod
    def integer(cls, v: int) -> "Unexpected":
        return cls("integer", v)

    @classmethod
    def float(cls, v: float) -> "Unexpected":
        return cls("floating point", v)

    @classmethod
    def boolean(cls, v: bool) -> "Unexpected":
        return cls("bool", v)

    @classmethod
    def bytes(cls, v: bytes) -> "Unexpected":
        return cls("bytes", v)


Unexpected.UNIT = Unexpected("unit value")
Unexpected.OPTION = Unexpected("Option value")
Unexpected.NEWTYPE = Unexpected("newtype struct")
Unexpected.SEQ = Unexpected("sequence")
Unexpected.MAP = Unexpected("map")


# ---------- Access protocols ----------

@runtime_checkable
class MapAccess(Protocol):
    """Entries of a map, pulled one key and one value at a time."""

    def next_key(self, tp: Any) -> Any:
        """Next key deserialized as ``tp``, or ``END``."""
        ...

    def next_value(self, tp: Any) -> Any:
        """Value of the entry whose key was just returned."""
        ...

    def next_entry(self, key_tp: Any, value_tp: Any) -> Any:
        """``(key, value)`` or ``END``."""
        ...

    def size_hint(self) -> Optional[int]:
        ...


@runtime_checkable
class SeqAccess(Protocol):
    """Elements of a sequence."""

    def next_element(self, tp: Any) -> Any:
        """Next element deserialized as ``tp``, or ``END``."""
        ...

    def size_hint(self) -> Optional[int]:
        ...


# ---------- Visitor ----------

class Visitor:
    """Base visitor. Subclasses override the ``visit_*`` methods they accept."""

    def expecting(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.expecting()

    def visit_bool(self, v: bool) -> Any:
        raise Error.invalid_type(Unexpected.boolean(v), self)

    def visit_int(self, v: int) -> Any:
        raise Error.invalid_type(Unexpected.integer(v), self)

    def visit_float(self, v: float) -> Any:
        raise Error.invalid_type(Unexpected.float(v), self)

    def visit_char(self, v: str) -> Any:
        return self.visit_str(v)

    def visit_str(self, v: str) -> Any:
        raise Error.invalid_type(Unexpected.string(v), self)

    def visit_bytes(self, v: bytes) -> Any:
        raise Error.invalid_type(Unexpected.bytes(v), self)

    def visit_none(self) -> Any:
        raise Error.invalid_type(Unexpected.OPTION, self)

    def visit_some(self, deserializer: Any) -> Any:
        raise Error.invalid_type(Unexpected.OPTION, self)

    def visit_unit(self) -> Any:
        raise Error.invalid_type(Unexpected.UNIT, self)

    def visit_newtype_struct(self, deserializer: Any) -> Any:
        raise Error.invalid_type(Unexpected.NEWTYPE, self)

    def visit_seq(self, seq: SeqAccess) -> Any:
        raise Error.invalid_type(Unexpected.SEQ, self)

    def visit_map(self, map: MapAccess) -> Any:
        raise Error.invalid_type(Unexpected.MAP, self)
