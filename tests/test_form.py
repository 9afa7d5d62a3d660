"""Tests for form-urlencoded deserialization."""
import datetime
import enum
import inspect
import io
import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Literal, NamedTuple, NewType, Optional, OrderedDict, Tuple

import pytest
from pydantic import BaseModel, Field

from urlform import (
    Deserializer,
    Error,
    ParseConfig,
    StructuralError,
    TooManyPairsError,
    ValueConversionError,
    from_bytes,
    from_reader,
    from_str,
    parse,
)
from urlform.de import U8, U32, Char, IgnoredAny, Visitor, deserialize
from urlform.de.impls import SeqVisitor

Pairs = List[Tuple[str, str]]


@dataclass
class Person:
    name: str
    age: U32


@dataclass
class Flags:
    flag: bool


@dataclass
class Numbered:
    n: int


@dataclass
class Search:
    q: str
    page: int = 1
    tags: List[str] = field(default_factory=list)
    lang: Optional[str] = None


@dataclass
class Renamed:
    first_name: str = field(metadata={"rename": "first-name"})


@dataclass
class Empty:
    pass


class Color(enum.Enum):
    RED = "red"
    GREEN = "green"


class Point(NamedTuple):
    x: int
    y: int


class Account(BaseModel):
    user: str
    age: U8
    nick: Optional[str] = None


class Aliased(BaseModel):
    user_id: int = Field(alias="user-id")


class Positive(BaseModel):
    n: int = Field(gt=0)


class Event(BaseModel):
    when: datetime.date
    price: Decimal
    ref: Optional[uuid.UUID] = None


class Mode(BaseModel):
    mode: Literal["a", "b"]


Query = NewType("Query", Dict[str, str])


class TestScenarios:
    def test_meal_pairs(self, meal_bytes, meal_pairs):
        assert from_bytes(meal_bytes, Pairs) == meal_pairs

    def test_record_with_unsigned_field(self):
        assert from_str("name=alice&age=30", Person) == Person(name="alice", age=30)

    def test_boolean_field(self):
        assert from_str("flag=true", Flags) == Flags(flag=True)
        assert from_str("flag=false", Flags) == Flags(flag=False)

    def test_duplicate_keys(self):
        assert from_str("x=1&x=2&x=3", Pairs) == [("x", "1"), ("x", "2"), ("x", "3")]
        assert from_str("x=1&x=2&x=3", Dict[str, str]) == {"x": "3"}

    def test_empty_input(self):
        assert from_str("", Pairs) == []

    def test_bad_integer(self):
        with pytest.raises(ValueConversionError, match='"abc"'):
            from_str("n=abc", Numbered)


class TestEntryPoints:
    def test_from_str_matches_from_bytes(self, meal_bytes):
        assert from_str(meal_bytes.decode(), Pairs) == from_bytes(meal_bytes, Pairs)

    def test_from_reader_binary(self, meal_bytes, meal_pairs):
        assert from_reader(io.BytesIO(meal_bytes), Pairs) == meal_pairs

    def test_from_reader_text(self):
        assert from_reader(io.StringIO("a=%C3%A9"), Dict[str, str]) == {"a": "é"}

    def test_config_is_passed_through(self):
        with pytest.raises(TooManyPairsError):
            from_str("a=1&b=2", Pairs, config=ParseConfig(max_pairs=1))

    def test_composed_deserializer(self, meal_bytes, meal_pairs):
        de = Deserializer(parse(meal_bytes))
        assert deserialize(Pairs, de) == meal_pairs

    def test_deserializer_is_single_pass(self):
        de = Deserializer(parse(b"a=1&b=2"))
        assert deserialize(Dict[str, str], de) == {"a": "1", "b": "2"}
        assert deserialize(Dict[str, str], de) == {}

    def test_failure_is_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="urlform.form"):
            with pytest.raises(Error):
                from_str("n=abc", Numbered)
        assert any("failed" in r.getMessage() for r in caplog.records)


class TestMaps:
    def test_typed_values(self):
        assert from_str("a=1&b=2", Dict[str, int]) == {"a": 1, "b": 2}

    def test_typed_keys(self):
        assert from_str("1=a&2=b", Dict[int, str]) == {1: "a", 2: "b"}

    def test_ordered_dict(self):
        result = from_str("b=1&a=2", OrderedDict[str, str])
        assert list(result.items()) == [("b", "1"), ("a", "2")]

    def test_untyped(self):
        assert from_str("a=1&b=x", Any) == {"a": "1", "b": "x"}
        assert from_str("a=1", dict) == {"a": "1"}

    def test_empty(self):
        assert from_str("", Dict[str, str]) == {}

    def test_value_error_propagates(self):
        with pytest.raises(ValueConversionError, match='string "x", expected an integer'):
            from_str("a=1&b=x", Dict[str, int])

    def test_long_integer_is_a_value_error(self):
        with pytest.raises(ValueConversionError):
            from_str("a=" + "1" * 5000, Dict[str, int])
        with pytest.raises(ValueConversionError):
            from_str("1" * 5000 + "=a", Dict[int, str])

    def test_newtype_is_transparent(self):
        assert from_str("a=1", Query) == {"a": "1"}


class TestSequences:
    def test_typed_pairs(self):
        assert from_str("a=1&b=2", List[Tuple[str, int]]) == [("a", 1), ("b", 2)]

    def test_tuple_of_pairs(self):
        assert from_str("a=1&b=2", Tuple[Tuple[str, str], ...]) == (("a", "1"), ("b", "2"))

    def test_named_tuple_elements(self):
        assert from_str("1=2&3=4", List[Point]) == [Point(1, 2), Point(3, 4)]

    def test_struct_elements_are_positional(self):
        assert from_str("bob=7", List[Person]) == [Person(name="bob", age=7)]

    def test_pair_of_wrong_size(self):
        with pytest.raises(StructuralError, match="invalid length 2"):
            from_str("a=1", List[Tuple[str, str, str]])

    def test_fixed_size_request_ignores_length(self):
        class FixedSize:
            @classmethod
            def __deserialize__(cls, deserializer):
                return deserializer.deserialize_seq_fixed_size(1, SeqVisitor(Tuple[str, str]))

        assert from_str("a=1&b=2&c=3", FixedSize) == [("a", "1"), ("b", "2"), ("c", "3")]

    def test_empty(self):
        assert from_str("", List[Tuple[str, str]]) == []

    def test_empty_segments_are_pairs(self):
        assert from_str("a=1&&b=2&", Pairs) == [("a", "1"), ("", ""), ("b", "2"), ("", "")]


class TestStructs:
    def test_defaults_fill_missing(self):
        assert from_str("q=rust", Search) == Search(q="rust", page=1, tags=[], lang=None)

    def test_all_fields(self):
        assert from_str("lang=fr&page=3&q=x", Search) == Search(q="x", page=3, lang="fr")

    def test_unknown_fields_ignored(self):
        assert from_str("name=a&age=1&extra=z", Person) == Person(name="a", age=1)

    def test_missing_field(self):
        with pytest.raises(StructuralError, match="missing field `age`"):
            from_str("name=alice", Person)

    def test_empty_input_reports_first_missing_field(self):
        with pytest.raises(StructuralError, match="missing field `name`"):
            from_str("", Person)

    def test_duplicate_field(self):
        with pytest.raises(StructuralError, match="duplicate field `name`"):
            from_str("name=a&name=b&age=1", Person)

    def test_long_integer_field(self):
        with pytest.raises(ValueConversionError, match="expected an integer"):
            from_str("n=" + "1" * 5000, Numbered)
        with pytest.raises(ValueConversionError, match="expected u32"):
            from_str("name=a&age=" + "9" * 5000, Person)

    def test_unsigned_rejects_negative(self):
        with pytest.raises(ValueConversionError, match='string "-1", expected u32'):
            from_str("name=a&age=-1", Person)

    def test_out_of_range(self):
        with pytest.raises(ValueConversionError, match="integer `4294967296`, expected u32"):
            from_str("name=a&age=4294967296", Person)

    def test_bad_boolean(self):
        with pytest.raises(ValueConversionError, match='string "yes", expected a boolean'):
            from_str("flag=yes", Flags)

    def test_rename(self):
        assert from_str("first-name=Ada", Renamed) == Renamed(first_name="Ada")

    def test_list_field_cannot_come_from_string(self):
        with pytest.raises(Error, match="expected a sequence"):
            from_str("q=x&tags=a", Search)

    def test_unit_struct(self):
        assert from_str("", Empty) == Empty()
        with pytest.raises(StructuralError, match="unit struct Empty"):
            from_str("a=1", Empty)


class TestPydantic:
    def test_model(self):
        assert from_str("user=bob&age=42", Account) == Account(user="bob", age=42)

    def test_optional_default(self):
        assert from_str("user=bob&age=42&nick=b", Account).nick == "b"

    def test_width_marker_survives(self):
        with pytest.raises(ValueConversionError, match="expected u8"):
            from_str("user=bob&age=300", Account)

    def test_alias(self):
        assert from_str("user-id=7", Aliased).user_id == 7

    def test_validation_error_is_value_conversion(self):
        with pytest.raises(ValueConversionError, match="greater than 0"):
            from_str("n=0", Positive)

    def test_pydantic_coerces_other_field_types(self):
        ref = uuid.UUID("12345678-1234-5678-1234-567812345678")
        event = from_str(f"when=2024-01-02&price=1.50&ref={ref}", Event)
        assert event.when == datetime.date(2024, 1, 2)
        assert event.price == Decimal("1.50")
        assert event.ref == ref

    def test_optional_coerced_field_may_be_missing(self):
        assert from_str("when=2024-01-02&price=3", Event).ref is None

    def test_bad_coerced_value(self):
        with pytest.raises(ValueConversionError):
            from_str("when=yesterday&price=1", Event)

    def test_literal_field(self):
        assert from_str("mode=a", Mode).mode == "a"
        with pytest.raises(ValueConversionError, match="expected one of `a`, `b`"):
            from_str("mode=c", Mode)


class TestDispatch:
    def test_option_empty_is_none(self):
        assert from_str("", Optional[Dict[str, str]]) is None

    def test_option_present(self):
        assert from_str("a=1", Optional[Dict[str, str]]) == {"a": "1"}

    def test_option_struct(self):
        assert from_str("name=a&age=2", Optional[Person]) == Person(name="a", age=2)

    def test_unit(self):
        assert from_str("", None) is None
        with pytest.raises(StructuralError, match="invalid type: map, expected unit"):
            from_str("a=1", None)

    def test_enum_from_single_entry(self):
        assert from_str("RED", Color) is Color.RED
        assert from_str("green=", Color) is Color.GREEN

    def test_enum_needs_exactly_one_entry(self):
        with pytest.raises(StructuralError, match="invalid length 0"):
            from_str("", Color)
        with pytest.raises(StructuralError, match="invalid length 2"):
            from_str("RED&GREEN", Color)

    def test_unknown_variant(self):
        with pytest.raises(ValueConversionError, match="unknown variant `BLUE`"):
            from_str("BLUE", Color)

    def test_tuple_is_read_as_map(self):
        with pytest.raises(StructuralError, match="invalid type: map, expected a tuple of size 2"):
            from_str("a=1", Tuple[str, str])

    def test_tuple_struct_is_read_as_map(self):
        with pytest.raises(StructuralError, match="expected tuple struct Point"):
            from_str("x=1&y=2", Point)

    @pytest.mark.parametrize("target", [str, int, bool, float, bytes, Char])
    def test_scalars_are_read_as_map(self, target):
        with pytest.raises(StructuralError, match="invalid type: map"):
            from_str("a=1", target)

    def test_ignored_any_drains(self):
        assert from_str("a=1&b=2", IgnoredAny) is None

    def test_seq_of_values_rejects_pairs(self):
        with pytest.raises(Error, match="expected a string"):
            from_str("a=1", List[str])

    def test_every_request_reaches_a_mode(self):
        seen = []

        class Recorder(Visitor):
            def expecting(self):
                return "anything"

            def visit_map(self, map):
                seen.append("map")

            def visit_seq(self, seq):
                seen.append("seq")

        for name in dir(Deserializer):
            if not name.startswith("deserialize_"):
                continue
            de = Deserializer(parse(b"a=1"))
            method = getattr(de, name)
            params = inspect.signature(method).parameters.values()
            extra = [p for p in params if p.kind is p.POSITIONAL_OR_KEYWORD][:-1]
            method(*([None] * len(extra)), Recorder())

        assert seen.count("seq") == 2
        assert seen.count("map") == 29
