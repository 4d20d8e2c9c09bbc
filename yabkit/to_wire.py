"""Conversion of loosely typed request data into Thrift wire values."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import yaml

from yabkit.errors import FieldGroupError, ThriftValueError
from yabkit.spec import (
    EnumSpec,
    FieldSpec,
    ListSpec,
    MapSpec,
    SetSpec,
    StructKind,
    StructSpec,
    TypeSpec,
    const_to_request,
    root_type_spec,
)
from yabkit.types import parse_binary, parse_bool, parse_double, parse_int
from yabkit.wire import Field, MapItem, Value, WireType

USING_SINGLE_FIELD_MESSAGE = "union value must only have a single value"
STRUCT_USE_MAP_STRING_MESSAGE = "struct must be specified using map[string]*"
MAP_UNKNOWN_TYPE_MESSAGE = "map must be specified as a mapping"

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"
_ENUM_NUMBER = re.compile(r"[+-]?[0-9]+")
_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1


class _Loader(yaml.SafeLoader):
    """Safe loader that leaves timestamps as plain strings."""


_Loader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def fuzz(field_name: str) -> str:
    """Lowercase ``field_name`` and drop everything but ASCII letters and digits."""
    return "".join(ch.lower() for ch in field_name if ch.isascii() and ch.isalnum())


@dataclass
class Fields:
    """Lookup tables for the fields of a field group.

    ``fuzzy`` is None when two field names clash after fuzzing.
    """

    exact: dict[str, FieldSpec]
    field_ids: dict[str, FieldSpec]
    fuzzy: Optional[dict[str, FieldSpec]]

    def get_field(self, name: str) -> Optional[FieldSpec]:
        """Find a field by exact name, by field ID, or by fuzzy name."""
        found = self.exact.get(name)
        if found is None:
            found = self.field_ids.get(name)
        if found is None and self.fuzzy is not None:
            found = self.fuzzy.get(fuzz(name))
        return found


def get_fields(field_group: Sequence[FieldSpec]) -> Fields:
    """Build the lookup tables for ``field_group``."""
    exact = {spec.thrift_name: spec for spec in field_group}
    field_ids = {str(spec.id): spec for spec in field_group}
    fuzzy: Optional[dict[str, FieldSpec]] = {
        fuzz(spec.thrift_name): spec for spec in field_group
    }
    if len(exact) != len(fuzzy):
        fuzzy = None
    return Fields(exact=exact, field_ids=field_ids, fuzzy=fuzzy)


def field_group_to_value(
    field_group: Sequence[FieldSpec], request: Mapping[str, Any]
) -> list[Field]:
    """Convert the user's values for a field group into wire fields, sorted by ID.

    Unset fields take their default; unknown fields and missing required
    fields raise FieldGroupError.
    """
    fields = get_fields(field_group)
    error = FieldGroupError(available=sorted(fields.exact))
    user_fields: dict[str, Any] = {}

    for name, value in request.items():
        spec = fields.get_field(name)
        if spec is None:
            error.add_not_found(name)
            continue
        if value is None:
            continue
        user_fields[spec.thrift_name] = value

    for name, spec in fields.exact.items():
        if spec.name in user_fields:
            continue
        if spec.default is not None:
            user_fields[spec.name] = const_to_request(spec.default)
        elif spec.required:
            error.add_missing_required(name)

    error.raise_if_any()

    wire_fields = [
        Field(fields.exact[name].id, to_wire_value(fields.exact[name].type, value))
        for name, value in user_fields.items()
    ]
    wire_fields.sort(key=lambda item: item.id)
    return wire_fields


def _struct_value_map(value: Any) -> Optional[dict]:
    if not isinstance(value, dict):
        return None
    if not all(isinstance(key, str) for key in value):
        return None
    return dict(value)


def struct_to_value(field_group: Sequence[FieldSpec], value: Any) -> list[Field]:
    """Convert a mapping of field names to values into the fields of a struct."""
    mapping = _struct_value_map(value)
    if mapping is None:
        raise ThriftValueError(STRUCT_USE_MAP_STRING_MESSAGE)
    return field_group_to_value(field_group, mapping)


def _describe(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _list_to_value(kind: str, spec: TypeSpec, value: Any) -> list[Value]:
    if not isinstance(value, list):
        raise ThriftValueError(f"{kind} must be specified using list[*]")
    values = []
    for item in value:
        try:
            values.append(to_wire_value(spec, item))
        except ThriftValueError as exc:
            raise ThriftValueError(f"{kind} item failed: {exc}") from exc
    return values


def _convert_map_key(key_spec: TypeSpec, key: Any) -> Any:
    # JSON only has string keys, so a string key for a non-string type is
    # decoded as YAML when possible.
    if not isinstance(key, str) or key_spec.type_code is WireType.BINARY:
        return key
    try:
        return yaml.load(key, Loader=_Loader)
    except yaml.YAMLError:
        return key


def _map_to_value(key_spec: TypeSpec, value_spec: TypeSpec, value: Any) -> Value:
    if not isinstance(value, dict):
        raise ThriftValueError(MAP_UNKNOWN_TYPE_MESSAGE)
    items = []
    for key, item in value.items():
        if item is None:
            continue
        try:
            key_wire = to_wire_value(key_spec, _convert_map_key(key_spec, key))
        except ThriftValueError as exc:
            raise ThriftValueError(
                f"map key ({_describe(key)}) failed: {exc}"
            ) from exc
        try:
            value_wire = to_wire_value(value_spec, item)
        except ThriftValueError as exc:
            raise ThriftValueError(
                f"map value ({_describe(item)}) for key ({_describe(key)}) failed: {exc}"
            ) from exc
        items.append(MapItem(key_wire, value_wire))
    return Value.map(key_spec.type_code, value_spec.type_code, items)


def _check_struct_value(spec: StructSpec, fields: Sequence[Field]) -> None:
    if spec.kind is StructKind.UNION and len(fields) != 1:
        raise ThriftValueError(USING_SINGLE_FIELD_MESSAGE)


def _format_enum_items(spec: EnumSpec) -> str:
    return "[" + " ".join(f"{{{item.name} {item.value}}}" for item in spec.items) + "]"


def _parse_enum_string(spec: EnumSpec, value: str) -> int:
    folded = value.casefold()
    for item in spec.items:
        if item.name.casefold() == folded:
            return item.value

    # Unknown values are formatted as Name(number).
    prefix = spec.name + "("
    if value.startswith(prefix) and value.endswith(")"):
        number = value[len(prefix):-1]
        if _ENUM_NUMBER.fullmatch(number):
            parsed = int(number)
            if _I32_MIN <= parsed <= _I32_MAX:
                return parsed

    raise ThriftValueError(
        f"unrecognized enum {json.dumps(value, ensure_ascii=False)}, "
        f"expected one of {_format_enum_items(spec)}"
    )


def parse_enum(spec: EnumSpec, value: Any) -> int:
    """Parse an enum from an item name (any case), ``Name(number)``, or a number."""
    if isinstance(value, str):
        return _parse_enum_string(spec, value)
    return parse_int(value, 32)


def _convert(spec: TypeSpec, value: Any) -> Value:
    code = spec.type_code
    if code is WireType.BOOL:
        return Value.boolean(parse_bool(value))
    if code is WireType.I8:
        return Value.i8(parse_int(value, 8))
    if code is WireType.I16:
        return Value.i16(parse_int(value, 16))
    if code is WireType.I32:
        if isinstance(spec, EnumSpec):
            return Value.i32(parse_enum(spec, value))
        return Value.i32(parse_int(value, 32))
    if code is WireType.I64:
        return Value.i64(parse_int(value, 64))
    if code is WireType.DOUBLE:
        return Value.double(parse_double(value))
    if code is WireType.BINARY:
        return Value.binary(parse_binary(value))
    if code is WireType.STRUCT and isinstance(spec, StructSpec):
        fields = struct_to_value(spec.fields, value)
        _check_struct_value(spec, fields)
        return Value.struct(fields)
    if code is WireType.LIST and isinstance(spec, ListSpec):
        items = _list_to_value("list", spec.value_spec, value)
        return Value.list(spec.value_spec.type_code, items)
    if code is WireType.SET and isinstance(spec, SetSpec):
        items = _list_to_value("set", spec.value_spec, value)
        return Value.set(spec.value_spec.type_code, items)
    if code is WireType.MAP and isinstance(spec, MapSpec):
        return _map_to_value(spec.key_spec, spec.value_spec, value)
    raise TypeError(f"got unknown type code in spec: {spec}")


def to_wire_value(spec: TypeSpec, value: Any) -> Value:
    """Convert ``value`` into a wire value of the type ``spec``."""
    root = root_type_spec(spec)
    try:
        return _convert(root, value)
    except (ValueError, OSError) as exc:
        raise ThriftValueError(
            f"field {json.dumps(root.thrift_name, ensure_ascii=False)} {exc}"
        ) from exc