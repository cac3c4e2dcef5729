import enum
from dataclasses import dataclass, field

import pytest

from selium.bincode import deserialize, serialize, serialized_size


@dataclass
class Dummy:
    foo: str
    bar: int


class Color(enum.Enum):
    RED = "r"
    GREEN = "g"


@dataclass
class Maybe:
    value: int | None


@dataclass
class Nested:
    name: str
    items: list[Dummy]
    color: Color
    flags: list[int | None] = field(default_factory=list)
    ratio: float = 0.0
    raw: bytes = b""
    enabled: bool = False


DUMMY_BYTES = b"\x03\x00\x00\x00\x00\x00\x00\x00foo*\x00\x00\x00\x00\x00\x00\x00"


def test_dataclass_wire_layout():
    assert serialize(Dummy("foo", 42)) == DUMMY_BYTES


def test_dataclass_decoding():
    assert deserialize(DUMMY_BYTES, Dummy) == Dummy("foo", 42)


def test_enum_written_as_variant_index():
    assert serialize(Color.GREEN) == b"\x01\x00\x00\x00"
    assert deserialize(serialize(Color.RED), Color) is Color.RED


def test_option_none_is_single_tag():
    assert serialize(Maybe(None)) == b"\x00"
    assert deserialize(serialize(Maybe(7)), Maybe) == Maybe(7)


def test_bool_byte():
    assert serialize(True) == b"\x01"
    assert deserialize(serialize(False), bool) is False


@pytest.mark.parametrize(
    ("value", "type_"),
    [
        ("", str),
        ("héllo wörld", str),
        (0, int),
        (2**64 - 1, int),
        (3.25, float),
        (b"\x00\xffbytes", bytes),
        ([1, 2, 3], list[int]),
        ((1, "two", 3.0), tuple[int, str, float]),
        ({"a": 1, "b": 2}, dict[str, int]),
        (["x", "yz"], list[str]),
    ],
)
def test_round_trips(value, type_):
    assert deserialize(serialize(value), type_) == value


def test_nested_round_trip():
    value = Nested(
        name="outer",
        items=[Dummy("a", 1), Dummy("bc", 2)],
        color=Color.GREEN,
        flags=[1, None, 3],
        ratio=-1.5,
        raw=b"\x01\x02",
        enabled=True,
    )
    assert deserialize(serialize(value), Nested) == value


@pytest.mark.parametrize(
    "value",
    ["foo", 42, [1, 2], Dummy("foo", 42), Maybe(None), Maybe(3), {"k": "v"}],
)
def test_serialized_size_matches_serialize(value):
    assert serialized_size(value) == len(serialize(value))


def test_trailing_bytes_are_ignored():
    assert deserialize(serialize(7) + b"xyz", int) == 7


def test_truncated_input_raises():
    with pytest.raises(ValueError):
        deserialize(DUMMY_BYTES[:-1], Dummy)


def test_length_beyond_input_raises():
    with pytest.raises(ValueError):
        deserialize(b"\x05\x00\x00\x00\x00\x00\x00\x00ab", str)


def test_invalid_bool_raises():
    with pytest.raises(ValueError):
        deserialize(b"\x02", bool)


def test_invalid_option_tag_raises():
    with pytest.raises(ValueError):
        deserialize(b"\x02", Maybe)


def test_invalid_enum_index_raises():
    with pytest.raises(ValueError):
        deserialize(b"\x05\x00\x00\x00", Color)


def test_negative_integer_rejected():
    with pytest.raises(ValueError):
        serialize(-1)


def test_oversized_integer_rejected():
    with pytest.raises(ValueError):
        serialize(2**64)


def test_unsupported_value_type():
    with pytest.raises(TypeError):
        serialize(object())


def test_unsupported_target_type():
    with pytest.raises(TypeError):
        deserialize(b"\x00" * 8, set)