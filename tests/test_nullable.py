import datetime
import json

import pytest

from naijauni.nullable import Nullable, is_nil


def test_fresh_nullable_is_unset():
    value = Nullable()
    assert value.is_set() is False
    assert value.get() is None


def test_explicit_none_is_set():
    value = Nullable(None)
    assert value.is_set() is True
    assert value.get() is None


def test_constructed_with_value():
    value = Nullable(42)
    assert value.is_set() is True
    assert value.get() == 42


def test_set_and_unset():
    value = Nullable()
    value.set("abc")
    assert value.is_set() is True
    assert value.get() == "abc"
    value.unset()
    assert value.is_set() is False
    assert value.get() is None


def test_null_encodes_as_json_null():
    assert Nullable(None).to_json() == "null"
    assert Nullable().to_json() == "null"


@pytest.mark.parametrize("payload", [True, 7, -3, 1.5, "text", None, [1, 2], {"a": 1}])
def test_json_round_trip(payload):
    original = Nullable(payload)
    decoded = Nullable.from_json(original.to_json())
    assert decoded == original
    assert decoded.is_set() is True


def test_from_json_marks_set_even_for_null():
    decoded = Nullable.from_json("null")
    assert decoded.is_set() is True
    assert decoded.get() is None


def test_from_json_accepts_bytes():
    assert Nullable.from_json(b"5").get() == 5


def test_from_json_rejects_invalid():
    with pytest.raises(json.JSONDecodeError):
        Nullable.from_json("{not json")


def test_datetime_encodes_as_iso_string():
    moment = datetime.datetime(2024, 1, 2, 3, 4, 5, tzinfo=datetime.timezone.utc)
    encoded = Nullable(moment).to_json()
    assert json.loads(encoded) == moment.isoformat()


def test_unencodable_value_raises():
    with pytest.raises(TypeError):
        Nullable(object()).to_json()


def test_equality_distinguishes_unset_from_null():
    assert Nullable() == Nullable()
    assert not (Nullable() == Nullable(None))


@pytest.mark.parametrize(
    "value, expected",
    [(None, True), (0, False), ("", False), ([], False), ({}, False)],
)
def test_is_nil(value, expected):
    assert is_nil(value) is expected