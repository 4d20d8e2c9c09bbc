"""Substitution of template arguments inside YAML request bodies."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import yaml

from yabkit.interpolate import parse

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"

# Booleans accepted by a strict boolean parse; YAML 1.1 is looser.
_STRICT_BOOLS = frozenset(
    {"1", "t", "T", "TRUE", "true", "True", "0", "f", "F", "FALSE", "false", "False"}
)


class _Loader(yaml.SafeLoader):
    """Safe loader that leaves timestamps as plain strings."""


_Loader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def process_string(value: str, args: Optional[Mapping[str, str]]) -> Any:
    """Render template arguments in ``value`` and decode the result as YAML.

    A value that does not change is returned untouched.
    """
    lookup = args or {}
    rendered = parse(value).render(lookup.get)
    if rendered == "":
        return ""
    if rendered == value:
        return value

    loaded = yaml.load(rendered, Loader=_Loader)
    if isinstance(loaded, bool) and rendered not in _STRICT_BOOLS:
        return rendered
    return loaded


def process_value(value: Any, args: Optional[Mapping[str, str]]) -> Any:
    """Process strings, mappings and lists recursively; leave the rest."""
    if isinstance(value, str):
        return process_string(value, args)
    if isinstance(value, dict):
        return process_map(value, args)
    if isinstance(value, list):
        return [process_value(item, args) for item in value]
    return value


def process_map(req: Mapping[Any, Any], args: Optional[Mapping[str, str]]) -> dict:
    """Return a copy of ``req`` with template arguments replaced in keys and values."""
    return {
        process_value(key, args): process_value(value, args)
        for key, value in req.items()
    }