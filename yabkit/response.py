"""Encoding Thrift requests and decoding Thrift responses."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from yabkit.errors import ThriftValueError
from yabkit.from_wire import value_from_wire
from yabkit.spec import FunctionSpec
from yabkit.to_wire import struct_to_value
from yabkit.wire import (
    Envelope,
    EnvelopeType,
    Field,
    ProtocolError,
    ThriftOptions,
    Value,
    WireType,
    decode,
    encode,
    encode_enveloped,
    read_reply,
)


def split_method(full_method: str) -> tuple[str, str]:
    """Split ``Service::Method`` into the service and the method.

    A name without ``::`` is a service with an empty method.
    """
    parts = full_method.split("::")
    if len(parts) == 1:
        return parts[0], ""
    if len(parts) == 2:
        return parts[0], parts[1]
    raise ThriftValueError(
        f"invalid Thrift method {json.dumps(full_method, ensure_ascii=False)}, "
        "expected Service::Method"
    )


def request_to_bytes(
    method: FunctionSpec,
    request: Mapping[str, Any],
    opts: Optional[ThriftOptions] = None,
) -> bytes:
    """Encode the user's request for ``method`` as a Thrift binary payload."""
    opts = opts or ThriftOptions()
    value = Value.struct(struct_to_value(method.args, request))
    try:
        if opts.use_envelopes:
            # Sequence IDs are unused, so the default of 0 is kept.
            envelope = Envelope(
                name=opts.envelope_method_prefix + method.name,
                type=EnvelopeType.CALL,
                value=value,
            )
            return encode_enveloped(envelope)
        return encode(value)
    except ProtocolError as exc:
        raise ThriftValueError(f"failed to convert Thrift value to bytes: {exc}") from exc


def response_bytes_to_wire(
    response_bytes: bytes, opts: Optional[ThriftOptions] = None
) -> tuple[Field, ...]:
    """Decode a response payload into the fields of its result struct.

    With envelopes, an exception envelope raises ApplicationError.
    """
    opts = opts or ThriftOptions()
    if opts.use_envelopes:
        value, _ = read_reply(response_bytes)
    else:
        try:
            value = decode(response_bytes, WireType.STRUCT)
        except ProtocolError as exc:
            raise ProtocolError(
                f"cannot parse Thrift struct from response: {exc}"
            ) from exc
    if value.type is not WireType.STRUCT:
        raise ProtocolError("got unexpected type when parsing struct")
    return tuple(value.payload)


def response_bytes_to_map(
    spec: FunctionSpec,
    response_bytes: bytes,
    opts: Optional[ThriftOptions] = None,
) -> dict[str, Any]:
    """Decode a response into a dict keyed by ``result`` or exception names."""
    fields = response_bytes_to_wire(response_bytes, opts)
    result_spec = spec.result_spec
    exceptions = (
        {ex.id: ex for ex in result_spec.exceptions} if result_spec is not None else {}
    )

    result: dict[str, Any] = {}
    for item in fields:
        if item.id == 0:
            # Field ID 0 always holds the return value.
            if result_spec is None or result_spec.return_type is None:
                raise ThriftValueError(
                    f"got unexpected result for void method: {item.value}"
                )
            key, field_type = "result", result_spec.return_type
        else:
            ex_spec = exceptions.get(item.id)
            if ex_spec is None:
                raise ThriftValueError(
                    f"got unknown exception with ID {item.id}: {item.value}"
                )
            key, field_type = ex_spec.name, ex_spec.type
        try:
            result[key] = value_from_wire(field_type, item.value)
        except ThriftValueError as exc:
            raise ThriftValueError(
                f"failed to parse result field {item.id}: {exc}"
            ) from exc
    return result


def _describe_exception(spec: FunctionSpec, field_id: int) -> str:
    result_spec = spec.result_spec
    if result_spec is None or not result_spec.exceptions:
        return "unknown, method has no exceptions"
    for ex in result_spec.exceptions:
        if ex.id == field_id:
            return f"{ex.thrift_name} {ex.type.thrift_name}"
    return "unknown"


def check_success(
    spec: FunctionSpec,
    response_bytes: bytes,
    opts: Optional[ThriftOptions] = None,
) -> None:
    """Raise unless the response decodes and holds only the expected result.

    A void method must return no fields; a method with a return type must
    return exactly field 0.
    """
    opts = opts or ThriftOptions()
    try:
        fields = response_bytes_to_wire(response_bytes, opts)
    except ProtocolError as exc:
        if opts.use_envelopes:
            raise
        raise ProtocolError(f"could not deserialize result: {exc}") from exc

    result_spec = spec.result_spec
    if result_spec is None or result_spec.return_type is None:
        if not fields:
            return
        if fields[0].id == 0:
            raise ThriftValueError(
                f"void method got unexpected result, fields: {list(fields)}"
            )
        raise ThriftValueError(
            f"void method got exception: {_describe_exception(spec, fields[0].id)}"
        )

    if len(fields) != 1:
        raise ThriftValueError(
            f"method with return did not get 1 field in result: {list(fields)}"
        )
    if fields[0].id != 0:
        raise ThriftValueError(
            "method with return got exception: "
            f"{_describe_exception(spec, fields[0].id)}"
        )