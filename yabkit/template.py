"""Reading request templates written in YAML."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Mapping, Optional, Union
from urllib.parse import unquote, urljoin, urlsplit

import yaml

from yabkit.templateargs import process_map

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class TemplateError(ValueError):
    """Raised when a template cannot be read."""


class IncorrectRequestFieldsError(TemplateError):
    """Raised when a template sets both ``request`` and ``requests``."""

    def __init__(self) -> None:
        super().__init__(
            "do not set `request` and `requests` fields in the template together"
        )


@dataclass
class TransportOptions:
    """Where and how a request is sent."""

    peers: list = field(default_factory=list)
    peer_list: str = ""
    caller_name: str = ""
    service_name: str = ""
    shard_key: str = ""
    routing_key: str = ""
    routing_delegate: str = ""
    jaeger: bool = False


@dataclass
class RequestOptions:
    """What is sent."""

    headers: Optional[dict] = None
    baggage: Optional[dict] = None
    thrift_file: str = ""
    procedure: str = ""
    request_json: str = ""
    thrift_disable_envelopes: bool = False
    timeout: Optional[timedelta] = None


@dataclass
class Options:
    """Transport and request options together."""

    transport: TransportOptions = field(default_factory=TransportOptions)
    request: RequestOptions = field(default_factory=RequestOptions)


@dataclass
class Template:
    """The fields a template may set."""

    peers: list = field(default_factory=list)
    peer: str = ""
    peer_list: str = ""
    caller: str = ""
    service: str = ""
    thrift: str = ""
    procedure: str = ""
    disable_thrift_envelope: Optional[bool] = None
    shard_key: str = ""
    routing_key: str = ""
    routing_delegate: str = ""
    headers: dict = field(default_factory=dict)
    baggage: dict = field(default_factory=dict)
    jaeger: bool = False
    request: Optional[dict] = None
    requests: Optional[list] = None
    timeout: timedelta = timedelta(0)


_KEYS = {
    "peers": "peers",
    "peer": "peer",
    "peerList": "peer_list",
    "peerlist": "peer_list",
    "peer-list": "peer_list",
    "caller": "caller",
    "service": "service",
    "thrift": "thrift",
    "procedure": "procedure",
    "method": "procedure",
    "disableThriftEnvelope": "disable_thrift_envelope",
    "disablethriftenvelope": "disable_thrift_envelope",
    "disable-thrift-envelope": "disable_thrift_envelope",
    "shardKey": "shard_key",
    "shardkey": "shard_key",
    "shard-key": "shard_key",
    "sk": "shard_key",
    "routingKey": "routing_key",
    "routingkey": "routing_key",
    "routing-key": "routing_key",
    "rk": "routing_key",
    "routingDelegate": "routing_delegate",
    "routingdelegate": "routing_delegate",
    "routing-delegate": "routing_delegate",
    "rd": "routing_delegate",
    "headers": "headers",
    "baggage": "baggage",
    "jaeger": "jaeger",
    "request": "request",
    "requests": "requests",
    "timeout": "timeout",
}


class _Loader(yaml.SafeLoader):
    """Safe loader that keeps timestamps as strings and rejects duplicate keys."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=True)
            try:
                duplicate = key in seen
                seen.add(key)
            except TypeError:
                continue
            if duplicate:
                raise TemplateError(f"yaml: duplicate key {key!r}")
        return super().construct_mapping(node, deep=deep)


_Loader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


class _Dumper(yaml.SafeDumper):
    """Dumper that writes empty strings as ``""``."""


def _represent_str(dumper: yaml.SafeDumper, data: str):
    style = '"' if data == "" else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


_Dumper.add_representer(str, _represent_str)


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        keys = sorted(value, key=lambda k: (type(k).__name__, str(k)))
        return {key: _sorted(value[key]) for key in keys}
    if isinstance(value, list):
        return [_sorted(item) for item in value]
    return value


def _marshal(value: Any) -> str:
    return yaml.dump(
        _sorted(value),
        Dumper=_Dumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def _scalar_string(key: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise TemplateError(f"yaml: cannot unmarshal {type(value).__name__} into {key}")


def _string_map(key: str, value: Any) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TemplateError(f"yaml: cannot unmarshal {type(value).__name__} into {key}")
    return {_scalar_string(key, k): _scalar_string(key, v) for k, v in value.items()}


def _bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise TemplateError(f"yaml: cannot unmarshal {value!r} into {key}")
    return value


_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_UNIT_NANOS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}


def _parse_duration(value: Any) -> timedelta:
    if value is None:
        return timedelta(0)
    if isinstance(value, bool):
        raise TemplateError(f"yaml: cannot unmarshal {value!r} into timeout")
    if isinstance(value, int):
        return timedelta(microseconds=value / 1000)
    if not isinstance(value, str):
        raise TemplateError(f"yaml: cannot unmarshal {value!r} into timeout")
    text = value
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if not text:
        raise TemplateError(f"yaml: invalid duration {value!r}")
    nanos = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise TemplateError(f"yaml: invalid duration {value!r}")
        nanos += float(match.group(1)) * _UNIT_NANOS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * nanos / 1000)


def parse_template(contents: Union[str, bytes]) -> Template:
    """Parse a template strictly: unknown or repeated fields are errors."""
    try:
        data = yaml.load(contents, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise TemplateError(f"yaml: {exc}") from exc
    if data is None:
        return Template()
    if not isinstance(data, dict):
        raise TemplateError("yaml: template must be a mapping")

    values: dict = {}
    for key, value in data.items():
        name = _KEYS.get(key) if isinstance(key, str) else None
        if name is None:
            raise TemplateError(f"yaml: field {key} not found in template")
        if name in values:
            raise TemplateError(f"yaml: field {key} already set")
        values[name] = value

    template = Template()
    for name, value in values.items():
        if name == "peers":
            if value is None:
                value = []
            if not isinstance(value, list):
                raise TemplateError("yaml: peers must be a list")
            template.peers = [_scalar_string(name, peer) for peer in value]
        elif name in ("headers", "baggage"):
            setattr(template, name, _string_map(name, value))
        elif name == "jaeger":
            template.jaeger = False if value is None else _bool(name, value)
        elif name == "disable_thrift_envelope":
            template.disable_thrift_envelope = (
                None if value is None else _bool(name, value)
            )
        elif name == "request":
            if value is not None and not isinstance(value, dict):
                raise TemplateError("yaml: request must be a mapping")
            template.request = value
        elif name == "requests":
            if value is not None and (
                not isinstance(value, list)
                or not all(isinstance(item, dict) for item in value)
            ):
                raise TemplateError("yaml: requests must be a list of mappings")
            template.requests = value
        elif name == "timeout":
            template.timeout = _parse_duration(value)
        else:
            setattr(template, name, _scalar_string(name, value))
    return template


def get_yaml_request_body(
    template: Template, template_args: Optional[Mapping[str, str]]
) -> str:
    """Render the request body of a template as YAML."""
    if template.request is not None and template.requests is not None:
        raise IncorrectRequestFieldsError()
    if template.request is not None:
        return _marshal(process_map(template.request, template_args))
    return "".join(
        "---\n" + _marshal(process_map(req, template_args))
        for req in template.requests or ()
    )


def merge(target: Optional[dict], source: Optional[dict]) -> Optional[dict]:
    """Merge ``source`` into ``target``; entries already in ``target`` win."""
    if not source:
        return target
    if not target:
        return source
    for key, value in source.items():
        target.setdefault(key, value)
    return target


def resolve(base: str, rel: str) -> str:
    """Resolve ``rel`` against the directory ``base`` as a file URL."""
    if rel.startswith(":"):
        raise TemplateError(f"parse {rel!r}: missing protocol scheme")
    return urljoin("file://" + base, rel)


def read_yaml_request(
    base: str,
    contents: Union[str, bytes],
    template_args: Optional[Mapping[str, str]],
    opts: Options,
) -> None:
    """Apply the template in ``contents`` to ``opts``."""
    template = parse_template(contents)
    body = get_yaml_request_body(template, template_args)
    topts, ropts = opts.transport, opts.request

    if template.peer:
        topts.peers = [template.peer]
        topts.peer_list = ""
    elif template.peers:
        topts.peers = list(template.peers)
        topts.peer_list = ""
    elif template.peer_list:
        topts.peer_list = resolve(base, template.peer_list)
        topts.peers = []

    ropts.headers = merge(ropts.headers, template.headers)
    ropts.baggage = merge(ropts.baggage, template.baggage)
    if template.jaeger:
        topts.jaeger = True

    if template.thrift:
        ropts.thrift_file = unquote(urlsplit(resolve(base, template.thrift)).path)

    for obj, attr, value in (
        (topts, "caller_name", template.caller),
        (topts, "service_name", template.service),
        (ropts, "procedure", template.procedure),
        (topts, "shard_key", template.shard_key),
        (topts, "routing_key", template.routing_key),
        (topts, "routing_delegate", template.routing_delegate),
        (ropts, "request_json", body),
    ):
        if value:
            setattr(obj, attr, value)

    if template.disable_thrift_envelope is not None:
        ropts.thrift_disable_envelopes = template.disable_thrift_envelope
    if template.timeout:
        ropts.timeout = template.timeout


def read_yaml_file(
    path: Union[str, os.PathLike],
    template_args: Optional[Mapping[str, str]],
    opts: Options,
) -> None:
    """Read the template file at ``path`` and apply it to ``opts``."""
    with open(path, "rb") as handle:
        contents = handle.read()
    base = os.path.abspath(os.path.dirname(os.fspath(path)))
    if not base.endswith("/"):
        base += "/"
    read_yaml_request(base, contents, template_args, opts)