"""Conversion of Thrift wire values into plain response data."""

from __future__ import annotations

import base64
import json
from typing import Any, Sequence

from yabkit.errors import (
    SpecListItemMismatch,
    SpecMapItemMismatch,
    SpecStructFieldMismatch,
    SpecTypeMismatch,
    SpecValueMismatch,
    ThriftValueError,
)
from yabkit.spec import (
    EnumSpec,
    FieldSpec,
    ListSpec,
    MapSpec,
    SetSpec,
    StringSpec,
    StructSpec,
    TypeSpec,
    const_to_request,
    root_type_spec,
)
from yabkit.wire import Field, MapItem, Value, WireType

_INT_TYPES = frozenset({WireType.I8, WireType.I16, WireType.I64})

# Characters escaped when JSON is used as a map key, so keys stay safe in HTML.
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _field_map(fields: Sequence[FieldSpec]) -> dict[int, FieldSpec]:
    return {spec.id: spec for spec in fields}


def _struct_from_wire(spec: StructSpec, fields: Sequence[Field]) -> dict[str, Any]:
    specs = _field_map(spec.fields)
    result: dict[str, Any] = {}
    for item in fields:
        field_spec = specs.get(item.id)
        if field_spec is None:
            continue
        try:
            result[field_spec.name] = value_from_wire(field_spec.type, item.value)
        except ThriftValueError as exc:
            raise SpecStructFieldMismatch(field_spec.name, exc) from exc

    for field_spec in specs.values():
        if field_spec.name in result:
            continue
        if field_spec.default is not None:
            result[field_spec.name] = const_to_request(field_spec.default)
    return result


def _list_from_wire(value_spec: TypeSpec, values: Sequence[Value]) -> list[Any]:
    result = []
    for index, item in enumerate(values):
        try:
            result.append(value_from_wire(value_spec, item))
        except ThriftValueError as exc:
            raise SpecListItemMismatch(index, exc) from exc
    return result


def _json_default(obj: Any) -> Any:
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    raise TypeError(f"json: unsupported type: {type(obj).__name__}")


def _key_to_string(key: Any) -> str:
    if isinstance(key, str):
        return key
    try:
        text = json.dumps(
            key,
            default=_json_default,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
        )
    except (TypeError, ValueError) as exc:
        raise ThriftValueError(
            f"failed to marshal key object: {exc}\nkey: {key!r}"
        ) from exc
    for raw, escaped in _JSON_ESCAPES.items():
        text = text.replace(raw, escaped)
    return text


def _map_from_wire(spec: MapSpec, items: Sequence[MapItem]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for item in items:
        try:
            key = value_from_wire(spec.key_spec, item.key)
        except ThriftValueError as exc:
            raise SpecMapItemMismatch("key", exc) from exc
        try:
            value = value_from_wire(spec.value_spec, item.value)
        except ThriftValueError as exc:
            raise SpecMapItemMismatch("value", exc) from exc
        # Keys that are not strings are represented by their JSON form.
        result[_key_to_string(key)] = value
    return result


def _enum_name(spec: EnumSpec, number: int) -> str:
    for item in spec.items:
        if item.value == number:
            return item.name
    return f"{spec.name}({number})"


def value_from_wire(spec: TypeSpec, w: Value) -> Any:
    """Convert the wire value ``w`` of the type ``spec`` into plain data.

    Structs and maps become dicts keyed by strings, lists and sets become
    lists, enums become item names, and strings are decoded as text.
    """
    if spec.type_code != w.type:
        raise SpecTypeMismatch(spec.type_code, w.type)

    root = root_type_spec(spec)
    code = root.type_code
    if code is WireType.BOOL:
        return bool(w.payload)
    if code in _INT_TYPES:
        return int(w.payload)
    if code is WireType.I32:
        if isinstance(root, EnumSpec):
            return _enum_name(root, w.payload)
        return int(w.payload)
    if code is WireType.DOUBLE:
        return float(w.payload)
    if code is WireType.BINARY:
        if isinstance(root, StringSpec):
            return w.as_string()
        return bytes(w.payload)

    try:
        if code is WireType.STRUCT and isinstance(root, StructSpec):
            return _struct_from_wire(root, w.payload)
        if code is WireType.LIST and isinstance(root, ListSpec):
            return _list_from_wire(root.value_spec, w.payload)
        if code is WireType.SET and isinstance(root, SetSpec):
            return _list_from_wire(root.value_spec, w.payload)
        if code is WireType.MAP and isinstance(root, MapSpec):
            return _map_from_wire(root, w.payload)
    except ThriftValueError as exc:
        raise SpecValueMismatch(root.thrift_name, exc) from exc

    raise TypeError(f"value_from_wire got an unknown type: {root}")