"""
Deserialization of ``application/x-www-form-urlencoded`` input.

    >>> from typing import List, Tuple
    >>> from_str("bread=baguette&cheese=comt%C3%A9", List[Tuple[str, str]])
    [('bread', 'baguette'), ('cheese', 'comté')]

Supported top-level targets are structs (dataclasses, pydantic models),
maps and sequences of pairs. Everything but ``seq`` and ``seq_fixed_size``
is read as a map.
"""
from __future__ import annotations

import logging
from typing import IO, Any, Optional, Union

from urlform.config import ParseConfig
from urlform.de import Deserializer as BaseDeserializer
from urlform.de import MapDeserializer, Visitor, deserialize, forward_to_deserialize_any
from urlform.exceptions import Error
from urlform.parse import Buffer, Parse

logger = logging.getLogger(__name__)


@forward_to_deserialize_any(
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
    "tuple",
    "tuple_struct",
    "struct",
    "struct_field",
    "enum",
    "ignored_any",
)
class Deserializer(BaseDeserializer):
    """A deserializer for the ``application/x-www-form-urlencoded`` format.

    Wraps an unbounded :class:`MapDeserializer` around a :class:`Parse`
    stream. ``deserialize_any`` visits the pairs as a map; ``deserialize_seq``
    and ``deserialize_seq_fixed_size`` visit them as a sequence of
    ``(key, value)`` pairs, ignoring any declared length.
    """

    def __init__(self, parser: Parse) -> None:
        self.inner = MapDeserializer.unbounded(parser)

    def deserialize_any(self, visitor: Visitor) -> Any:
        return self.deserialize_map(visitor)

    def deserialize_map(self, visitor: Visitor) -> Any:
        return visitor.visit_map(self.inner)

    def deserialize_seq(self, visitor: Visitor) -> Any:
        return visitor.visit_seq(self.inner)

    def deserialize_seq_fixed_size(self, length: int, visitor: Visitor) -> Any:
        return visitor.visit_seq(self.inner)


def from_bytes(input: Buffer, target: Any, *, config: Optional[ParseConfig] = None) -> Any:
    """Deserialize ``target`` from urlencoded bytes.

    ``target`` is a type hint; see :func:`urlform.de.deserialize` for the
    hints understood. Raises :class:`urlform.Error` on failure.
    """
    logger.debug("decoding %d bytes as %r", len(input), target)
    try:
        return deserialize(target, Deserializer(Parse(input, config)))
    except Error as exc:
        logger.debug("decode as %r failed: %s", target, exc)
        raise


def from_str(input: str, target: Any, *, config: Optional[ParseConfig] = None) -> Any:
    """Deserialize ``target`` from a urlencoded string."""
    return from_bytes(input.encode("utf-8"), target, config=config)


def from_reader(reader: IO[Any], target: Any, *, config: Optional[ParseConfig] = None) -> Any:
    """Read ``reader`` to the end and deserialize ``target`` from its content."""
    data: Union[str, bytes] = reader.read()
    if isinstance(data, str):
        data = data.encode("utf-8")
    return from_bytes(data, target, config=config)
