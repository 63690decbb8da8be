from datetime import date, datetime
from decimal import Decimal

import pytest

from app.sync.variable_encoder import EncodedValue, VariableEncoder

encoder = VariableEncoder()


@pytest.mark.parametrize("value, expected", [
    (None, EncodedValue("null", "")),
    (True, EncodedValue("boolean", "1")),
    (False, EncodedValue("boolean", "0")),
    (42, EncodedValue("int", "42")),
    (1.5, EncodedValue("float", "1.5")),
    (Decimal("10.25"), EncodedValue("float", "10.25")),
    ("b@x.com", EncodedValue("string", "b@x.com")),
    (datetime(2024, 3, 1, 12, 30), EncodedValue("datetime", "2024-03-01T12:30:00")),
    (date(2024, 3, 1), EncodedValue("date", "2024-03-01")),
])
def test_encode_scalar_types(value, expected):
    assert encoder.encode(value) == expected


def test_encode_collections_as_sorted_json():
    encoded = encoder.encode({"b": 1, "a": [1, 2]})

    assert encoded.type == "json"
    assert encoded.value == '{"a":[1,2],"b":1}'


def test_decode_restores_typed_values():
    assert encoder.decode(EncodedValue("null", "")) is None
    assert encoder.decode(EncodedValue("boolean", "0")) is False
    assert encoder.decode(EncodedValue("int", "7")) == 7
    assert encoder.decode(EncodedValue("datetime", "2024-03-01T12:30:00")) == datetime(2024, 3, 1, 12, 30)
    assert encoder.decode(EncodedValue("json", '{"a":1}')) == {"a": 1}


def test_decode_unknown_type():
    with pytest.raises(ValueError):
        encoder.decode(EncodedValue("resource", "x"))
