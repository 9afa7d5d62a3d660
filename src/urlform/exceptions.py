"""urlform exceptions.

Every failure of a decode call is an :class:`Error`. The classmethod
constructors build the standard messages of the visitor framework, e.g.
``invalid value: string "abc", expected i64``.
"""

from __future__ import annotations

from typing import Any, Iterable


def _describe(expected: Any) -> str:
    expecting = getattr(expected, "expecting", None)
    if callable(expecting):
        return expecting()
    return str(expected)


def _one_of(names: Iterable[str]) -> str:
    names = [f"`{n}`" for n in names]
    if not names:
        return "there are no fields"
    if len(names) == 1:
        return f"expected {names[0]}"
    if len(names) == 2:
        return f"expected {names[0]} or {names[1]}"
    return "expected one of " + ", ".join(names)


class Error(Exception):
    """Base exception."""

    @classmethod
    def custom(cls, msg: Any) -> "Error":
        return Error(str(msg))

    @classmethod
    def invalid_type(cls, unexpected: Any, expected: Any) -> "Error":
        msg = f"invalid type: {unexpected}, expected {_describe(expected)}"
        if getattr(unexpected, "is_scalar", False):
            return ValueConversionError(msg)
        return StructuralError(msg)

    @classmethod
    def invalid_value(cls, unexpected: Any, expected: Any) -> "Error":
        return ValueConversionError(
            f"invalid value: {unexpected}, expected {_describe(expected)}"
        )

    @classmethod
    def invalid_length(cls, length: int, expected: Any) -> "Error":
        return StructuralError(
            f"invalid length {length}, expected {_describe(expected)}"
        )

    @classmethod
    def unknown_variant(cls, variant: str, expected: Iterable[str]) -> "Error":
        return ValueConversionError(
            f"unknown variant `{variant}`, {_one_of(expected)}"
        )

    @classmethod
    def unknown_field(cls, field: str, expected: Iterable[str]) -> "Error":
        return StructuralError(f"unknown field `{field}`, {_one_of(expected)}")

    @classmethod
    def missing_field(cls, field: str) -> "Error":
        return StructuralError(f"missing field `{field}`")

    @classmethod
    def duplicate_field(cls, field: str) -> "Error":
        return StructuralError(f"duplicate field `{field}`")


class ValueConversionError(Error):
    """A key or value string could not be read as the requested scalar."""


class StructuralError(Error):
    """The pair stream does not have the shape of the target."""


class TooManyPairsError(Error):
    """The input holds more pairs than ``ParseConfig.max_pairs`` allows."""
