"""
Lazy parser for ``application/x-www-form-urlencoded`` bytes.

    bread=baguette&cheese=comt%C3%A9  ->  ("bread", "baguette"), ("cheese", "comté")

Segments are separated by ``&``; the first ``=`` of a segment splits key
from value (no ``=`` means an empty value). ``+`` decodes to a space and
``%XX`` to the byte it names. Malformed escapes are kept literally.
"""
from __future__ import annotations

from typing import Iterator, Optional, Tuple, Union
from urllib.parse import unquote_to_bytes

from urlform.config import DEFAULT_CONFIG, ParseConfig
from urlform.exceptions import TooManyPairsError, ValueConversionError

Buffer = Union[bytes, bytearray, memoryview]
Pair = Tuple[str, str]


class Parse:
    """Single-pass iterator over the decoded pairs of ``input``.

    Pairs come out in textual order. An empty input yields nothing; a
    trailing or doubled ``&`` yields an empty ``("", "")`` pair.
    """

    def __init__(self, input: Buffer, config: Optional[ParseConfig] = None) -> None:
        self._input = input if isinstance(input, bytes) else bytes(input)
        self._config = config or DEFAULT_CONFIG
        self._pos = 0
        self._done = len(self._input) == 0
        self._count = 0

    def __iter__(self) -> Iterator[Pair]:
        return self

    def __next__(self) -> Pair:
        if self._done:
            raise StopIteration

        end = self._input.find(b"&", self._pos)
        if end == -1:
            segment = self._input[self._pos:]
            self._done = True
        else:
            segment = self._input[self._pos:end]
            self._pos = end + 1

        self._count += 1
        limit = self._config.max_pairs
        if limit is not None and self._count > limit:
            self._done = True
            raise TooManyPairsError(f"too many pairs: more than {limit}")

        key, _, value = segment.partition(b"=")
        return self._decode(key), self._decode(value)

    def _decode(self, raw: bytes) -> str:
        if b"+" in raw:
            raw = raw.replace(b"+", b" ")
        if b"%" in raw:
            raw = unquote_to_bytes(raw)
        try:
            return raw.decode(self._config.encoding, self._config.errors)
        except UnicodeDecodeError as exc:
            raise ValueConversionError(
                f"invalid {self._config.encoding} in {raw!r}: {exc.reason}"
            ) from exc


def parse(input: Buffer, config: Optional[ParseConfig] = None) -> Parse:
    return Parse(input, config)
