"""YAML request templates, template arguments, peer parsing and Thrift payload conversion."""

__version__ = "0.1.0"

__all__ = [
    "errors",
    "from_wire",
    "interpolate",
    "peers",
    "response",
    "spec",
    "template",
    "templateargs",
    "to_wire",
    "types",
    "wire",
]