"""
Composite value encoding.

Lists and dicts are stored in plain text columns as ``JSON-<payload>``.
Tuples and other sequences are stored the same way and read back as lists.
Text that happens to start with the prefix is stored with the prefix
doubled (``JSON-JSON-...``), so reading it back yields the original text and
LIKE patterns over the text still line up with the stored value.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from roadmapdb.errors import DecodeFailure

PREFIX = "JSON-"


def is_composite(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, (Mapping, Sequence))


class ValueCodec:
    def __init__(self, prefix: str = PREFIX):
        self.prefix = prefix

    def _dump(self, value: Any) -> str:
        return self.prefix + json.dumps(value, separators=(",", ":"), ensure_ascii=False)

    def encode(self, value: Any) -> Any:
        """Encode one outbound value; scalars pass through unchanged."""
        if is_composite(value):
            return self._dump(value)
        return self.encode_pattern(value)

    def encode_pattern(self, value: Any) -> Any:
        """
        Escape a LIKE pattern the way text values are escaped.

        Patterns are never JSON-encoded. A pattern that starts with a
        wildcard is matched against the stored form, so it can also hit
        composite payloads.
        """
        if isinstance(value, str) and value.startswith(self.prefix):
            return self.prefix + value
        return value

    def encode_record(self, record: Mapping[str, Any]) -> dict[str, Any]:
        return {column: self.encode(value) for column, value in record.items()}

    def decode_value(self, column: str, value: Any) -> Any:
        if not isinstance(value, str) or not value.startswith(self.prefix):
            return value
        payload = value[len(self.prefix):]
        if payload.startswith(self.prefix):
            return payload
        try:
            return json.loads(payload)
        except json.JSONDecodeError as e:
            raise DecodeFailure(column, value) from e

    def decode(self, row: dict[str, Any]) -> dict[str, Any]:
        """Decode every prefixed text column of a fetched row, in place."""
        for column, value in row.items():
            row[column] = self.decode_value(column, value)
        return row
