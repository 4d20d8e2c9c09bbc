"""Parsing of loosely typed request values into Thrift scalar values."""

from __future__ import annotations

import base64
import json
import math
import string
from decimal import Decimal
from typing import Any

from yabkit.errors import ThriftValueError

BINARY_OBJECT_OPTIONS_MESSAGE = (
    "object input for binary/string must have one of the following keys: base64, file"
)

_TRUE = frozenset({"1", "t", "true"})
_FALSE = frozenset({"0", "f", "false"})
_BASE64_CHARS = frozenset(string.ascii_letters + string.digits + "+/")


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = repr(value)
    if value != 0 and 1e-4 <= abs(value) < 1e21 and "e" in text:
        text = format(Decimal(text), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return text


def _format(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, (bytes, bytearray)):
        return "[" + " ".join(str(b) for b in value) + "]"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_format(item) for item in value) + "]"
    if isinstance(value, dict):
        return "map[" + " ".join(f"{_format(k)}:{_format(v)}" for k, v in value.items()) + "]"
    return str(value)


def _type_name(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float64"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (bytes, bytearray)):
        return "[]uint8"
    if isinstance(value, list):
        return "[]interface {}"
    if isinstance(value, dict):
        return "map[interface {}]interface {}"
    return type(value).__name__


def parse_bool(value: Any) -> bool:
    """Parse a bool from a bool, the numbers 0 and 1, or a boolean string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value == 0:
            return False
        if value == 1:
            return True
        raise ThriftValueError(f"cannot parse bool from int {value}")
    if isinstance(value, str):
        lowered = value.lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ThriftValueError(
            f"strconv.ParseBool: parsing {json.dumps(lowered)}: invalid syntax"
        )
    raise ThriftValueError(f"cannot parse bool {_type_name(value)}: {_format(value)}")


def parse_int(value: Any, bits: int) -> int:
    """Parse an integer that must fit in a signed integer of ``bits`` bits."""
    max_val = (1 << (bits - 1)) - 1
    min_val = -max_val - 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ThriftValueError(
            f"cannot parse int{bits} from {_type_name(value)}: {_format(value)}"
        )
    if value > (1 << 63) - 1:
        raise ThriftValueError(
            f"uint64 value {value} is out of range for int{bits} [{min_val}, {max_val}]"
        )
    if value < min_val or value > max_val:
        raise ThriftValueError(
            f"value {value} is out of range for int{bits} [{min_val}, {max_val}]"
        )
    return value


def parse_double(value: Any) -> float:
    """Parse a float from an integer or a float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ThriftValueError(
            f"cannot parse double from {_type_name(value)}: {_format(value)}"
        )
    return float(value)


def _parse_binary_list(values: list) -> bytes:
    out = bytearray()
    for item in values:
        if isinstance(item, int) and not isinstance(item, bool):
            # Accept both signed and unsigned byte ranges.
            if item < -128 or item > 255:
                raise ThriftValueError(
                    f"failed to parse list of bytes: {item} is not a valid thrift byte"
                )
            out.append(item & 0xFF)
        elif isinstance(item, str):
            out += item.encode("utf-8")
        else:
            raise ThriftValueError(
                "can only parse list of bytes or characters, "
                f"invalid element: {item!r}"
            )
    return bytes(out)


def _decode_base64(text: str) -> bytes:
    text = text.rstrip("=").replace("\r", "").replace("\n", "")
    for index, ch in enumerate(text):
        if ch not in _BASE64_CHARS:
            raise ThriftValueError(f"illegal base64 data at input byte {index}")
    if len(text) % 4 == 1:
        raise ThriftValueError(f"illegal base64 data at input byte {len(text) - 1}")
    return base64.b64decode(text + "=" * (-len(text) % 4))


def _parse_binary_map(value: dict) -> bytes:
    if "base64" in value:
        encoded = value["base64"]
        if not isinstance(encoded, str):
            raise ThriftValueError(
                f"base64 must be specified as string, got: {_type_name(encoded)}"
            )
        return _decode_base64(encoded)
    if "file" in value:
        filename = value["file"]
        if not isinstance(filename, str):
            raise ThriftValueError(
                f"file requires filename as string, got {_type_name(filename)}"
            )
        with open(filename, "rb") as handle:
            return handle.read()
    raise ThriftValueError(BINARY_OBJECT_OPTIONS_MESSAGE)


def parse_binary(value: Any) -> bytes:
    """Parse bytes from a string, bytes, a list of bytes or strings, or a mapping.

    A mapping holds either ``base64`` with encoded data or ``file`` with a
    file name to read. Other scalars are used in their text form.
    """
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, list):
        return _parse_binary_list(value)
    if isinstance(value, dict):
        return _parse_binary_map(value)
    if isinstance(value, (bool, int, float)):
        return _format(value).encode("utf-8")
    raise ThriftValueError(
        f"cannot parse binary/string from {_type_name(value)}: {_format(value)}"
    )