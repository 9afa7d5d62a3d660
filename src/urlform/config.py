"""urlform configuration."""

from __future__ import annotations

import codecs
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ParseConfig(BaseModel):
    """How raw bytes become key/value strings.

    ``encoding`` and ``errors`` are handed to :meth:`bytes.decode` after
    percent-decoding. The default replaces invalid UTF-8 with U+FFFD.
    """

    encoding: str = "utf-8"
    errors: str = "replace"
    max_pairs: Optional[int] = Field(default=None, gt=0)

    model_config = {"frozen": True}

    @field_validator("encoding")
    @classmethod
    def _known_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError as exc:
            raise ValueError(f"unknown encoding: {v}") from exc
        return v

    @field_validator("errors")
    @classmethod
    def _known_error_handler(cls, v: str) -> str:
        try:
            codecs.lookup_error(v)
        except LookupError as exc:
            raise ValueError(f"unknown error handler: {v}") from exc
        return v


DEFAULT_CONFIG = ParseConfig()
