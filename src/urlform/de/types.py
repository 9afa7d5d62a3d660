"""
Width markers for scalar targets.

Python has one ``int`` and one ``float``; wrap them with these
``Annotated`` aliases to request a fixed-width read, e.g. ``age: U32``
rejects ``-1`` and ``4294967296``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Optional


@dataclass(frozen=True)
class IntWidth:
    name: str
    min: Optional[int] = None
    max: Optional[int] = None

    @property
    def signed(self) -> bool:
        return self.min is None or self.min < 0


@dataclass(frozen=True)
class FloatWidth:
    name: str


@dataclass(frozen=True)
class CharMarker:
    name: str = "char"


def _unsigned(bits: int) -> IntWidth:
    return IntWidth(f"u{bits}", 0, (1 << bits) - 1)


def _signed(bits: int) -> IntWidth:
    return IntWidth(f"i{bits}", -(1 << (bits - 1)), (1 << (bits - 1)) - 1)


U8 = Annotated[int, _unsigned(8)]
U16 = Annotated[int, _unsigned(16)]
U32 = Annotated[int, _unsigned(32)]
U64 = Annotated[int, _unsigned(64)]
I8 = Annotated[int, _signed(8)]
I16 = Annotated[int, _signed(16)]
I32 = Annotated[int, _signed(32)]
I64 = Annotated[int, _signed(64)]

F32 = Annotated[float, FloatWidth("f32")]
F64 = Annotated[float, FloatWidth("f64")]

Char = Annotated[str, CharMarker()]

UNBOUNDED_INT = IntWidth("int")


class IgnoredAny:
    """Target that accepts and discards anything."""
