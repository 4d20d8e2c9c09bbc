# yabkit

Building blocks for describing RPC requests in YAML templates and
converting them to and from Thrift binary payloads.

## Modules

- **`yabkit.interpolate`**: `parse` turns a string containing `${name}` or
  `${name:default}` into an `InterpolatedString` of `Literal` and
  `Variable` terms. `render(resolve)` and `render_to(writer, resolve)`
  look variables up with a function that returns the value or `None`;
  `env_resolver` reads the process environment. A backslash escapes the
  next character. Bad syntax raises `InterpolationParseError`; a variable
  with no value and no default raises `UnknownVariableError`.
- **`yabkit.templateargs`**: `process_map`, `process_value` and
  `process_string` replace template arguments in keys and values of a
  request, recursively. A value that changed is read again as YAML, so
  `${count:10}` becomes the integer `10`; only strict booleans such as
  `true` or `False` become `bool`.
- **`yabkit.template`**: `read_yaml_file` and `read_yaml_request` apply a
  YAML template to an `Options` object (`transport: TransportOptions`,
  `request: RequestOptions`): peers, peer list, caller, service, Thrift
  file, procedure, shard and routing keys, routing delegate, headers,
  baggage, `jaeger`, `disableThriftEnvelope`, timeout and the request
  body (`request`, or `requests` joined as YAML documents). Aliases such
  as `method`, `sk`, `shard-key`, `rk` and `rd` are accepted; unknown or
  repeated fields raise `TemplateError`, and setting both `request` and
  `requests` raises `IncorrectRequestFieldsError`. Headers and baggage
  already in the options win over the template's (`merge`). Relative
  Thrift files and peer lists are resolved against the template's
  directory as `file://` URLs (`resolve`).
- **`yabkit.peers`**: `parse_peer` splits a peer into (protocol, host),
  `get_hosts` returns the host of each peer, and `ensure_same_protocol`
  raises `MixedProtocolsError` when peers use different protocols.
- **`yabkit.wire`**: Thrift values (`Value`, `Field`, `MapItem`,
  `WireType`), the binary protocol (`encode`, `decode`), envelopes
  (`Envelope`, `encode_enveloped`, `decode_enveloped`, `read_reply`,
  which raises `ApplicationError` for exception replies) and
  `ThriftOptions`.
- **`yabkit.spec`**: Thrift type specs built in code (`StructSpec`,
  `EnumSpec`, `ListSpec`, `MapSpec`, `TypedefSpec`, `FunctionSpec`, ...)
  and `const_to_request` for default values.
- **`yabkit.types`**: `parse_bool`, `parse_int`, `parse_double` and
  `parse_binary` for loosely typed input; binaries may be given as
  `{"base64": ...}` or `{"file": ...}`.
- **`yabkit.to_wire`** / **`yabkit.from_wire`**: `to_wire_value`,
  `struct_to_value` and `value_from_wire` convert plain data to wire
  values against a spec and back. Fields can be named exactly, by field
  ID, or fuzzily (case and punctuation ignored); enums accept item names
  or `Name(number)`.
- **`yabkit.errors`**: `ThriftValueError` and its subclasses, such as
  `FieldGroupError` for unknown and missing required fields.
- **`yabkit.response`**: `split_method`, `request_to_bytes`,
  `response_bytes_to_wire`, `response_bytes_to_map` and `check_success`.

## Example

```python
from yabkit.interpolate import parse
from yabkit.templateargs import process_map

text = parse("Hello ${user:world}")
assert text.render({"user": "alice"}.get) == "Hello alice"
assert text.render({}.get) == "Hello world"

request = process_map({"count": "${count:10}", "name": "${name}"}, {"name": "bob"})
assert request == {"count": 10, "name": "bob"}
```

```python
from yabkit.template import Options, read_yaml_file

opts = Options()
read_yaml_file("request.yab", {"user": "alice"}, opts)
print(opts.request.procedure, opts.request.request_json)
```

```python
from yabkit.response import request_to_bytes, split_method
from yabkit.spec import FieldSpec, FunctionSpec, StringSpec

assert split_method("Service::method") == ("Service", "method")

method = FunctionSpec("test", args=[FieldSpec(1, "s", StringSpec())])
payload = request_to_bytes(method, {"s": "foo"})
```

## What it does not do

- It sends no requests: there are no transports and no network code.
- It does not read Thrift IDL files; type and function specs are built in
  Python with `yabkit.spec`.
- It does not fetch peer lists; a template's peer list is only resolved
  to a URL.
- It has no command-line program.

## Installing

```
pip install yabkit
```

To run the tests:

```
pip install "yabkit[test]"
pytest
```