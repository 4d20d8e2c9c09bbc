"""Thrift type specifications and constant values."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Sequence

from yabkit.wire import WireType


class TypeSpec(ABC):
    """A Thrift type."""

    @property
    @abstractmethod
    def type_code(self) -> WireType:
        """The wire type used to encode values of this type."""

    @property
    @abstractmethod
    def thrift_name(self) -> str:
        """The name of this type as written in a Thrift file."""

    def __str__(self) -> str:
        return self.thrift_name


@dataclass(frozen=True)
class _PrimitiveSpec(TypeSpec):
    _CODE: ClassVar[WireType]
    _NAME: ClassVar[str]

    @property
    def type_code(self) -> WireType:
        return self._CODE

    @property
    def thrift_name(self) -> str:
        return self._NAME


@dataclass(frozen=True)
class BoolSpec(_PrimitiveSpec):
    """The ``bool`` type."""

    _CODE = WireType.BOOL
    _NAME = "bool"


@dataclass(frozen=True)
class I8Spec(_PrimitiveSpec):
    """The ``byte``/``i8`` type."""

    _CODE = WireType.I8
    _NAME = "byte"


@dataclass(frozen=True)
class I16Spec(_PrimitiveSpec):
    """The ``i16`` type."""

    _CODE = WireType.I16
    _NAME = "i16"


@dataclass(frozen=True)
class I32Spec(_PrimitiveSpec):
    """The ``i32`` type."""

    _CODE = WireType.I32
    _NAME = "i32"


@dataclass(frozen=True)
class I64Spec(_PrimitiveSpec):
    """The ``i64`` type."""

    _CODE = WireType.I64
    _NAME = "i64"


@dataclass(frozen=True)
class DoubleSpec(_PrimitiveSpec):
    """The ``double`` type."""

    _CODE = WireType.DOUBLE
    _NAME = "double"


@dataclass(frozen=True)
class StringSpec(_PrimitiveSpec):
    """The ``string`` type."""

    _CODE = WireType.BINARY
    _NAME = "string"


@dataclass(frozen=True)
class BinarySpec(_PrimitiveSpec):
    """The ``binary`` type."""

    _CODE = WireType.BINARY
    _NAME = "binary"


@dataclass
class TypedefSpec(TypeSpec):
    """A named alias of another type."""

    name: str
    target: TypeSpec

    @property
    def type_code(self) -> WireType:
        return self.target.type_code

    @property
    def thrift_name(self) -> str:
        return self.name


@dataclass(frozen=True)
class EnumItem:
    """A named value of an enum."""

    name: str
    value: int


@dataclass
class EnumSpec(TypeSpec):
    """An enum, encoded as an i32."""

    name: str
    items: Sequence[EnumItem] = ()

    @property
    def type_code(self) -> WireType:
        return WireType.I32

    @property
    def thrift_name(self) -> str:
        return self.name


class StructKind(Enum):
    """The kind of a struct-like type."""

    STRUCT = "struct"
    UNION = "union"
    EXCEPTION = "exception"


@dataclass
class FieldSpec:
    """A field of a struct, of function arguments, or of a result.

    ``default`` is None when the field has no default value.
    """

    id: int
    name: str
    type: TypeSpec
    required: bool = False
    default: Any = None

    @property
    def thrift_name(self) -> str:
        return self.name


@dataclass
class StructSpec(TypeSpec):
    """A struct, union or exception."""

    name: str
    kind: StructKind = StructKind.STRUCT
    fields: Sequence[FieldSpec] = ()

    @property
    def type_code(self) -> WireType:
        return WireType.STRUCT

    @property
    def thrift_name(self) -> str:
        return self.name


@dataclass
class ListSpec(TypeSpec):
    """A list of values of one type."""

    value_spec: TypeSpec

    @property
    def type_code(self) -> WireType:
        return WireType.LIST

    @property
    def thrift_name(self) -> str:
        return f"list<{self.value_spec.thrift_name}>"


@dataclass
class SetSpec(TypeSpec):
    """A set of values of one type."""

    value_spec: TypeSpec

    @property
    def type_code(self) -> WireType:
        return WireType.SET

    @property
    def thrift_name(self) -> str:
        return f"set<{self.value_spec.thrift_name}>"


@dataclass
class MapSpec(TypeSpec):
    """A map from one type to another."""

    key_spec: TypeSpec
    value_spec: TypeSpec

    @property
    def type_code(self) -> WireType:
        return WireType.MAP

    @property
    def thrift_name(self) -> str:
        return f"map<{self.key_spec.thrift_name}, {self.value_spec.thrift_name}>"


@dataclass
class ResultSpec:
    """The return type and declared exceptions of a function."""

    return_type: Optional[TypeSpec] = None
    exceptions: Sequence[FieldSpec] = ()


@dataclass
class FunctionSpec:
    """A service function: its arguments and its result."""

    name: str
    args: Sequence[FieldSpec] = ()
    result_spec: Optional[ResultSpec] = None


@dataclass(frozen=True)
class ConstReference:
    """A reference to a named constant."""

    name: str
    value: Any


@dataclass(frozen=True)
class EnumItemReference:
    """A reference to an enum item."""

    item: EnumItem


@dataclass
class ConstantStruct:
    """A struct constant given by field name."""

    fields: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class ConstantMap:
    """A map constant as an ordered sequence of (key, value) pairs."""

    items: Sequence[tuple] = ()


@dataclass
class ConstantSet:
    """A set constant."""

    items: Sequence[Any] = ()


def root_type_spec(spec: TypeSpec) -> TypeSpec:
    """Follow typedefs down to the underlying type."""
    while isinstance(spec, TypedefSpec):
        spec = spec.target
    return spec


def const_to_request(value: Any) -> Any:
    """Convert a constant value into plain request data."""
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, ConstReference):
        return const_to_request(value.value)
    if isinstance(value, EnumItemReference):
        return value.item.value
    if isinstance(value, ConstantSet):
        return [const_to_request(item) for item in value.items]
    if isinstance(value, (list, tuple)):
        return [const_to_request(item) for item in value]
    if isinstance(value, ConstantMap):
        return {const_to_request(k): const_to_request(v) for k, v in value.items}
    if isinstance(value, ConstantStruct):
        return {name: const_to_request(v) for name, v in value.fields.items()}
    raise TypeError(f"unknown constant type: {type(value).__name__}")