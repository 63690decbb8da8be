# app/sync/variable_encoder.py
"""
Encoding of arbitrary field values into (type tag, text) pairs for the
field change ledger, and back.

The type tag is stored next to the serialized value so the sync driver can
restore the original Python value with decode().
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import orjson

NULL_TYPE = "null"
BOOLEAN_TYPE = "boolean"
INT_TYPE = "int"
FLOAT_TYPE = "float"
STRING_TYPE = "string"
DATETIME_TYPE = "datetime"
DATE_TYPE = "date"
JSON_TYPE = "json"

TYPES = (
    NULL_TYPE, BOOLEAN_TYPE, INT_TYPE, FLOAT_TYPE, STRING_TYPE, DATETIME_TYPE, DATE_TYPE, JSON_TYPE,
)


@dataclass(frozen=True)
class EncodedValue:
    type: str
    value: str


class VariableEncoder:
    def encode(self, value: Any) -> EncodedValue:
        if value is None:
            return EncodedValue(NULL_TYPE, "")

        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return EncodedValue(BOOLEAN_TYPE, "1" if value else "0")

        if isinstance(value, int):
            return EncodedValue(INT_TYPE, str(value))

        if isinstance(value, (float, Decimal)):
            return EncodedValue(FLOAT_TYPE, str(value))

        # datetime before date: datetime is a date subclass
        if isinstance(value, datetime):
            return EncodedValue(DATETIME_TYPE, value.isoformat())

        if isinstance(value, date):
            return EncodedValue(DATE_TYPE, value.isoformat())

        if isinstance(value, (list, tuple, dict)):
            return EncodedValue(JSON_TYPE, orjson.dumps(value, option=orjson.OPT_SORT_KEYS).decode("utf-8"))

        return EncodedValue(STRING_TYPE, str(value))

    def decode(self, encoded: EncodedValue) -> Any:
        if encoded.type == NULL_TYPE:
            return None
        if encoded.type == BOOLEAN_TYPE:
            return encoded.value == "1"
        if encoded.type == INT_TYPE:
            return int(encoded.value)
        if encoded.type == FLOAT_TYPE:
            return float(encoded.value)
        if encoded.type == DATETIME_TYPE:
            return datetime.fromisoformat(encoded.value)
        if encoded.type == DATE_TYPE:
            return date.fromisoformat(encoded.value)
        if encoded.type == JSON_TYPE:
            return orjson.loads(encoded.value)
        if encoded.type == STRING_TYPE:
            return encoded.value

        raise ValueError(f"Unknown encoded value type: {encoded.type}")


variable_encoder = VariableEncoder()
