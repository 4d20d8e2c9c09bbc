"""Errors raised while converting values to and from Thrift."""

from __future__ import annotations

import json
from typing import Iterable, Optional, Sequence

from yabkit.wire import WireType


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _wire_name(code: WireType) -> str:
    return "T" + WireType(code).name.title().replace("I", "I")


_WIRE_NAMES = {
    WireType.BOOL: "TBool",
    WireType.I8: "TI8",
    WireType.DOUBLE: "TDouble",
    WireType.I16: "TI16",
    WireType.I32: "TI32",
    WireType.I64: "TI64",
    WireType.BINARY: "TBinary",
    WireType.STRUCT: "TStruct",
    WireType.MAP: "TMap",
    WireType.SET: "TSet",
    WireType.LIST: "TList",
}


def message_list(message: str, items: Sequence[str]) -> str:
    """Format a message followed by one indented line per item; empty if no items."""
    if not items:
        return ""
    return "\n\t".join([message, *items])


class ThriftValueError(ValueError):
    """Raised when a value does not fit its Thrift type."""


class FieldGroupError(ThriftValueError):
    """Collects unknown and missing required fields of a field group."""

    def __init__(
        self,
        available: Optional[Iterable[str]] = None,
        missing_required: Optional[Iterable[str]] = None,
        not_found: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__()
        self.available = list(available or ())
        self.missing_required = list(missing_required or ())
        self.not_found = list(not_found or ())

    def add_not_found(self, arg: str) -> None:
        self.not_found.append(arg)

    def add_missing_required(self, arg: str) -> None:
        self.missing_required.append(arg)

    def raise_if_any(self) -> None:
        """Raise this error if any field was unknown or missing."""
        if self.missing_required or self.not_found:
            raise self

    def __str__(self) -> str:
        messages = ["failed to parse fields"]
        if self.missing_required:
            messages.append(
                message_list(
                    "the following fields are required but not specified",
                    self.missing_required,
                )
            )
        if self.not_found:
            messages.append(
                message_list(
                    "the following fields were specified but not found", self.not_found
                )
            )
            messages.append(message_list("the available fields are", self.available))
        return "\n".join(messages)


class SpecTypeMismatch(ThriftValueError):
    """A wire value's type differs from the type in the spec."""

    def __init__(self, specified: WireType, got: WireType) -> None:
        super().__init__(
            f"type specified in Thrift field as {_WIRE_NAMES[specified]}, "
            f"got {_WIRE_NAMES[got]}"
        )
        self.specified = specified
        self.got = got


class SpecValueMismatch(ThriftValueError):
    """A value of the named type failed to convert."""

    def __init__(self, spec_name: str, underlying: BaseException) -> None:
        super().__init__(f"field {_quote(spec_name)} failed: {underlying}")
        self.spec_name = spec_name
        self.underlying = underlying


class SpecListItemMismatch(ThriftValueError):
    """An item of a list or set failed to convert."""

    def __init__(self, index: int, underlying: BaseException) -> None:
        super().__init__(f"item {index} failed: {underlying}")
        self.index = index
        self.underlying = underlying


class SpecMapItemMismatch(ThriftValueError):
    """A key or value of a map failed to convert."""

    def __init__(self, spec_type: str, underlying: BaseException) -> None:
        super().__init__(f"{spec_type} failed: {underlying}")
        self.spec_type = spec_type
        self.underlying = underlying


class SpecStructFieldMismatch(ThriftValueError):
    """A field of a struct failed to convert."""

    def __init__(self, field_name: str, underlying: BaseException) -> None:
        super().__init__(f"{_quote(field_name)} failed: {underlying}")
        self.field_name = field_name
        self.underlying = underlying