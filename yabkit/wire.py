"""Thrift values and their binary protocol encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Iterable, Optional


class ProtocolError(ValueError):
    """Raised when bytes are not a valid Thrift binary payload."""


class WireType(IntEnum):
    """Type codes of the Thrift binary protocol."""

    BOOL = 2
    I8 = 3
    DOUBLE = 4
    I16 = 6
    I32 = 8
    I64 = 10
    BINARY = 11
    STRUCT = 12
    MAP = 13
    SET = 14
    LIST = 15


@dataclass(frozen=True)
class Field:
    """A struct field: its ID and value."""

    id: int
    value: "Value"


@dataclass(frozen=True)
class MapItem:
    """A single key and value of a map."""

    key: "Value"
    value: "Value"


@dataclass(frozen=True)
class Value:
    """A typed Thrift value.

    ``payload`` holds a bool, int, float or bytes for scalars, a tuple of
    Field for structs, a tuple of Value for lists and sets, and a tuple of
    MapItem for maps.
    """

    type: WireType
    payload: Any
    elem_type: Optional[WireType] = None
    key_type: Optional[WireType] = None
    value_type: Optional[WireType] = None

    @classmethod
    def boolean(cls, value: bool) -> "Value":
        return cls(WireType.BOOL, bool(value))

    @classmethod
    def i8(cls, value: int) -> "Value":
        return cls(WireType.I8, int(value))

    @classmethod
    def i16(cls, value: int) -> "Value":
        return cls(WireType.I16, int(value))

    @classmethod
    def i32(cls, value: int) -> "Value":
        return cls(WireType.I32, int(value))

    @classmethod
    def i64(cls, value: int) -> "Value":
        return cls(WireType.I64, int(value))

    @classmethod
    def double(cls, value: float) -> "Value":
        return cls(WireType.DOUBLE, float(value))

    @classmethod
    def binary(cls, value: bytes) -> "Value":
        return cls(WireType.BINARY, bytes(value))

    @classmethod
    def string(cls, value: str) -> "Value":
        return cls(WireType.BINARY, value.encode("utf-8"))

    @classmethod
    def struct(cls, fields: Iterable[Field] = ()) -> "Value":
        return cls(WireType.STRUCT, tuple(fields))

    @classmethod
    def list(cls, elem_type: WireType, values: Iterable["Value"]) -> "Value":
        return cls(WireType.LIST, tuple(values), elem_type=WireType(elem_type))

    @classmethod
    def set(cls, elem_type: WireType, values: Iterable["Value"]) -> "Value":
        return cls(WireType.SET, tuple(values), elem_type=WireType(elem_type))

    @classmethod
    def map(
        cls, key_type: WireType, value_type: WireType, items: Iterable[MapItem]
    ) -> "Value":
        return cls(
            WireType.MAP,
            tuple(items),
            key_type=WireType(key_type),
            value_type=WireType(value_type),
        )

    def as_string(self) -> str:
        """Decode a binary value as UTF-8 text."""
        return self.payload.decode("utf-8", errors="replace")


class EnvelopeType(IntEnum):
    """Message types of an envelope."""

    CALL = 1
    REPLY = 2
    EXCEPTION = 3
    ONEWAY = 4


@dataclass(frozen=True)
class Envelope:
    """A named message wrapping a struct value."""

    name: str
    type: EnvelopeType
    value: Value
    seq_id: int = 0


@dataclass
class ThriftOptions:
    """Controls how requests and responses are serialized."""

    use_envelopes: bool = False
    envelope_method_prefix: str = ""


class ApplicationError(Exception):
    """An exception returned by the server inside an envelope."""

    def __init__(self, message: Optional[str] = None, type_code: Optional[int] = None):
        parts = []
        if message is not None:
            parts.append(f"Message: {message}")
        if type_code is not None:
            parts.append(f"Type: {type_code}")
        super().__init__("TApplicationException{" + ", ".join(parts) + "}")
        self.message = message
        self.type_code = type_code


_SCALAR_FORMATS = {
    WireType.I8: ">b",
    WireType.I16: ">h",
    WireType.I32: ">i",
    WireType.I64: ">q",
    WireType.DOUBLE: ">d",
}

_VERSION_MASK = 0xFFFF0000
_VERSION_1 = 0x80010000


def _write(out: bytearray, value: Value) -> None:
    kind = value.type
    try:
        if kind is WireType.BOOL:
            out.append(1 if value.payload else 0)
        elif kind in _SCALAR_FORMATS:
            out += struct.pack(_SCALAR_FORMATS[kind], value.payload)
        elif kind is WireType.BINARY:
            out += struct.pack(">i", len(value.payload))
            out += value.payload
        elif kind is WireType.STRUCT:
            for item in value.payload:
                out.append(item.value.type)
                out += struct.pack(">h", item.id)
                _write(out, item.value)
            out.append(0)
        elif kind in (WireType.LIST, WireType.SET):
            out.append(value.elem_type)
            out += struct.pack(">i", len(value.payload))
            for elem in value.payload:
                _write(out, elem)
        elif kind is WireType.MAP:
            out.append(value.key_type)
            out.append(value.value_type)
            out += struct.pack(">i", len(value.payload))
            for item in value.payload:
                _write(out, item.key)
                _write(out, item.value)
        else:
            raise ProtocolError(f"unknown type {kind!r}")
    except struct.error as exc:
        raise ProtocolError(f"cannot encode {kind.name}: {exc}") from exc


def encode(value: Value) -> bytes:
    """Encode a value with the binary protocol."""
    out = bytearray()
    _write(out, value)
    return bytes(out)


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        self.pos = 0

    def take(self, count: int) -> bytes:
        if count < 0 or self.pos + count > len(self.data):
            raise ProtocolError("unexpected end of data")
        chunk = self.data[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def unpack(self, fmt: str) -> Any:
        return struct.unpack(fmt, self.take(struct.calcsize(fmt)))[0]

    def type_code(self) -> WireType:
        code = self.unpack(">B")
        try:
            return WireType(code)
        except ValueError:
            raise ProtocolError(f"unknown type code {code}") from None

    def size(self) -> int:
        size = self.unpack(">i")
        if size < 0:
            raise ProtocolError(f"negative size {size}")
        return size

    def value(self, kind: WireType) -> Value:
        if kind is WireType.BOOL:
            return Value.boolean(self.unpack(">B") != 0)
        if kind in _SCALAR_FORMATS:
            return Value(kind, self.unpack(_SCALAR_FORMATS[kind]))
        if kind is WireType.BINARY:
            return Value.binary(self.take(self.size()))
        if kind is WireType.STRUCT:
            fields = []
            while True:
                code = self.unpack(">B")
                if code == 0:
                    return Value.struct(fields)
                try:
                    field_type = WireType(code)
                except ValueError:
                    raise ProtocolError(f"unknown type code {code}") from None
                field_id = self.unpack(">h")
                fields.append(Field(field_id, self.value(field_type)))
        if kind in (WireType.LIST, WireType.SET):
            elem_type = self.type_code()
            values = [self.value(elem_type) for _ in range(self.size())]
            return Value(kind, tuple(values), elem_type=elem_type)
        if kind is WireType.MAP:
            key_type = self.type_code()
            value_type = self.type_code()
            items = [
                MapItem(self.value(key_type), self.value(value_type))
                for _ in range(self.size())
            ]
            return Value.map(key_type, value_type, items)
        raise ProtocolError(f"unknown type {kind!r}")


def decode(data: bytes, type_code: WireType) -> Value:
    """Decode a value of the given type from ``data``."""
    return _Reader(data).value(WireType(type_code))


def encode_enveloped(envelope: Envelope) -> bytes:
    """Encode an envelope in the strict binary format."""
    name = envelope.name.encode("utf-8")
    out = bytearray(struct.pack(">I", _VERSION_1 | int(envelope.type)))
    out += struct.pack(">i", len(name)) + name
    out += struct.pack(">i", envelope.seq_id)
    _write(out, envelope.value)
    return bytes(out)


def decode_enveloped(data: bytes) -> Envelope:
    """Decode an envelope in the strict or the old non-strict format."""
    reader = _Reader(data)
    first = reader.unpack(">i")
    if first < 0:
        header = first & 0xFFFFFFFF
        if header & _VERSION_MASK != _VERSION_1:
            raise ProtocolError(f"unknown envelope version {header >> 16:#x}")
        type_code = header & 0xFF
        name = reader.take(reader.size())
    else:
        name = reader.take(first)
        type_code = reader.unpack(">B")
    try:
        env_type = EnvelopeType(type_code)
    except ValueError:
        raise ProtocolError(f"unknown envelope type {type_code}") from None
    seq_id = reader.unpack(">i")
    value = reader.value(WireType.STRUCT)
    return Envelope(name.decode("utf-8", errors="replace"), env_type, value, seq_id)


def read_reply(data: bytes) -> tuple[Value, int]:
    """Read a reply envelope and return its value and sequence ID.

    An exception envelope raises ApplicationError.
    """
    envelope = decode_enveloped(data)
    if envelope.type is EnvelopeType.EXCEPTION:
        message = None
        type_code = None
        for item in envelope.value.payload:
            if item.id == 1 and item.value.type is WireType.BINARY:
                message = item.value.as_string()
            elif item.id == 2 and item.value.type is WireType.I32:
                type_code = item.value.payload
        raise ApplicationError(message, type_code)
    if envelope.type is not EnvelopeType.REPLY:
        raise ProtocolError(f"unexpected envelope type {envelope.type.name}")
    return envelope.value, envelope.seq_id