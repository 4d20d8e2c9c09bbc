import pytest

from yabkit.errors import FieldGroupError, ThriftValueError
from yabkit.spec import (
    BinarySpec,
    BoolSpec,
    ConstantStruct,
    ConstReference,
    DoubleSpec,
    EnumItem,
    EnumSpec,
    FieldSpec,
    I8Spec,
    I16Spec,
    I32Spec,
    I64Spec,
    ListSpec,
    MapSpec,
    SetSpec,
    StringSpec,
    StructKind,
    StructSpec,
    TypedefSpec,
)
from yabkit.to_wire import (
    MAP_UNKNOWN_TYPE_MESSAGE,
    STRUCT_USE_MAP_STRING_MESSAGE,
    USING_SINGLE_FIELD_MESSAGE,
    field_group_to_value,
    fuzz,
    get_fields,
    parse_enum,
    struct_to_value,
    to_wire_value,
)
from yabkit.wire import Field, MapItem, Value, WireType

NS = StructSpec("NS", fields=[FieldSpec(1, "f1", StringSpec())])
S = StructSpec(
    "S",
    fields=[
        FieldSpec(1, "f1", StringSpec(), required=True),
        FieldSpec(2, "ns", NS),
        FieldSpec(3, "ns_", NS),
    ],
)
S_DEFAULT = ConstReference("S_default", ConstantStruct({"f1": "f1_val"}))
U = StructSpec(
    "U",
    kind=StructKind.UNION,
    fields=[FieldSpec(1, "s", StringSpec()), FieldSpec(2, "i", I32Spec())],
)
SWRAP = StructSpec(
    "SWrap",
    fields=[
        FieldSpec(1, "s", S, required=True, default=S_DEFAULT),
        FieldSpec(2, "s2", S, default=S_DEFAULT),
    ],
)
FOO = TypedefSpec("Foo", I32Spec())
OP = EnumSpec("Op", [EnumItem("Add", 1), EnumItem("MULTIPLY", 2)])

ARGS = [
    FieldSpec(1, "arg1", I8Spec()),
    FieldSpec(2, "arg2", I64Spec()),
    FieldSpec(3, "arg3", StringSpec()),
    FieldSpec(4, "arg4", BinarySpec()),
    FieldSpec(5, "s", S),
    FieldSpec(6, "foo", FOO),
    FieldSpec(7, "u", U),
    FieldSpec(8, "sWrap", SWRAP),
    FieldSpec(9, "arg_i16", I16Spec()),
    FieldSpec(10, "arg_i32", I32Spec()),
    FieldSpec(11, "arg_bool", BoolSpec()),
    FieldSpec(12, "arg_double", DoubleSpec()),
    FieldSpec(13, "str_list", ListSpec(StringSpec())),
    FieldSpec(14, "str_set", SetSpec(StringSpec())),
    FieldSpec(15, "s_i_map", MapSpec(StringSpec(), I32Spec())),
    FieldSpec(16, "i_i_map", MapSpec(I32Spec(), I32Spec())),
    FieldSpec(17, "b_i_map", MapSpec(BoolSpec(), I32Spec())),
    FieldSpec(18, "op", OP),
    FieldSpec(19, "i32_list", ListSpec(I32Spec())),
]


def _struct(*fields):
    return Value.struct(list(fields))


def _strings(*texts):
    return [Value.string(text) for text in texts]


S_DEFAULT_WIRE = _struct(Field(1, Value.string("f1_val")))


@pytest.mark.parametrize(
    "given, want",
    [("arg", "arg"), ("Arg123", "arg123"), ("_Arg_1_3", "arg13")],
)
def test_fuzz(given, want):
    assert fuzz(given) == want


SUCCESS_CASES = [
    ({}, []),
    (
        {
            "arg1": 1,
            "arg2": 2,
            "arg_i16": 3,
            "arg_i32": 4,
            "arg_bool": True,
            "arg_double": 5.6,
        },
        [
            Field(1, Value.i8(1)),
            Field(2, Value.i64(2)),
            Field(9, Value.i16(3)),
            Field(10, Value.i32(4)),
            Field(11, Value.boolean(True)),
            Field(12, Value.double(5.6)),
        ],
    ),
    ({"foo": 3}, [Field(6, Value.i32(3))]),
    (
        {"arg3": "string", "arg4": "binary"},
        [Field(3, Value.string("string")), Field(4, Value.binary(b"binary"))],
    ),
    (
        {"s": {"f1": "foo", "ns": {"f1": "f1"}}},
        [
            Field(
                5,
                _struct(
                    Field(1, Value.string("foo")),
                    Field(2, _struct(Field(1, Value.string("f1")))),
                ),
            )
        ],
    ),
    ({"u": {"s": "foo"}}, [Field(7, _struct(Field(1, Value.string("foo"))))]),
    (
        {"sWrap": {}},
        [Field(8, _struct(Field(1, S_DEFAULT_WIRE), Field(2, S_DEFAULT_WIRE)))],
    ),
    (
        {"str_list": ["a", "b", "c"]},
        [Field(13, Value.list(WireType.BINARY, _strings("a", "b", "c")))],
    ),
    (
        {"str_set": ["a", "b", "c"]},
        [Field(14, Value.set(WireType.BINARY, _strings("a", "b", "c")))],
    ),
    (
        {"s_i_map": {"a": 1, "b": 2, "c": 3}},
        [
            Field(
                15,
                Value.map(
                    WireType.BINARY,
                    WireType.I32,
                    [
                        MapItem(Value.string("a"), Value.i32(1)),
                        MapItem(Value.string("b"), Value.i32(2)),
                        MapItem(Value.string("c"), Value.i32(3)),
                    ],
                ),
            )
        ],
    ),
    (
        {"i_i_map": {2: 1, 1: 2}},
        [
            Field(
                16,
                Value.map(
                    WireType.I32,
                    WireType.I32,
                    [
                        MapItem(Value.i32(2), Value.i32(1)),
                        MapItem(Value.i32(1), Value.i32(2)),
                    ],
                ),
            )
        ],
    ),
    (
        {"i_i_map": {"2": 1, "1": 2}},
        [
            Field(
                16,
                Value.map(
                    WireType.I32,
                    WireType.I32,
                    [
                        MapItem(Value.i32(2), Value.i32(1)),
                        MapItem(Value.i32(1), Value.i32(2)),
                    ],
                ),
            )
        ],
    ),
    ({"op": 1}, [Field(18, Value.i32(1))]),
    ({"op": "Op(999)"}, [Field(18, Value.i32(999))]),
    ({"op": "Add"}, [Field(18, Value.i32(1))]),
    ({"op": "Multiply"}, [Field(18, Value.i32(2))]),
    (
        {"Arg1": 1, "argi16_": 3, "ARGi32": 4, "ArgBool": True},
        [
            Field(1, Value.i8(1)),
            Field(9, Value.i16(3)),
            Field(10, Value.i32(4)),
            Field(11, Value.boolean(True)),
        ],
    ),
    (
        {"1": 1, "9": 3, "11": True},
        [
            Field(1, Value.i8(1)),
            Field(9, Value.i16(3)),
            Field(11, Value.boolean(True)),
        ],
    ),
    (
        {
            "s": {"f1": "f1v", "ns": None},
            "s_i_map": {"a": 1, "b": None, "c": 3},
        },
        [
            Field(5, _struct(Field(1, Value.string("f1v")))),
            Field(
                15,
                Value.map(
                    WireType.BINARY,
                    WireType.I32,
                    [
                        MapItem(Value.string("a"), Value.i32(1)),
                        MapItem(Value.string("c"), Value.i32(3)),
                    ],
                ),
            ),
        ],
    ),
]


@pytest.mark.parametrize("request_data, want", SUCCESS_CASES)
def test_struct_to_value_success(request_data, want):
    assert struct_to_value(ARGS, request_data) == want


ERROR_CASES = [
    ({"foo2": 1}, str(FieldGroupError(not_found=["foo2"]))),
    ({"arg1": "asd"}, 'field "byte" cannot parse int8 from string: asd'),
    ({"s": {}}, str(FieldGroupError(missing_required=["f1"]))),
    (
        {"s": {"funknown": 1}},
        str(FieldGroupError(not_found=["funknown"], missing_required=["f1"])),
    ),
    ({"s": ["funknown"]}, STRUCT_USE_MAP_STRING_MESSAGE),
    ({"u": {}}, USING_SINGLE_FIELD_MESSAGE),
    ({"u": {"s": "foo", "i": 1}}, USING_SINGLE_FIELD_MESSAGE),
    ({"str_list": "asd"}, "must be specified using list[*]"),
    ({"i32_list": [1, "a"]}, "list item failed"),
    ({"s_i_map": "asd"}, MAP_UNKNOWN_TYPE_MESSAGE),
    ({"b_i_map": {"asd": 1}}, "map key (asd) failed"),
    ({"b_i_map": {"true": "asd"}}, "map value (asd) for key (true) failed"),
    ({"s": {"f1": "foo", "NS": "asd"}}, str(FieldGroupError(not_found=["NS"]))),
    ({"999": 1}, str(FieldGroupError(not_found=["999"]))),
    ({"op": "Divide"}, 'unrecognized enum "Divide"'),
    ({"op": "Op(NaN)"}, 'unrecognized enum "Op(NaN)"'),
]


@pytest.mark.parametrize("request_data, message", ERROR_CASES)
def test_struct_to_value_errors(request_data, message):
    with pytest.raises(ThriftValueError) as info:
        struct_to_value(ARGS, request_data)
    assert message in str(info.value)


def test_unknown_field_raises_field_group_error_with_available():
    with pytest.raises(FieldGroupError) as info:
        field_group_to_value(ARGS, {"foo2": 1})
    assert info.value.not_found == ["foo2"]
    assert info.value.available == sorted(spec.name for spec in ARGS)


def test_get_fields_disables_fuzzy_on_clash():
    fields = get_fields(S.fields)
    assert fields.fuzzy is None
    assert fields.get_field("ns_").id == 3
    assert fields.get_field("NS") is None


def test_get_field_by_id_and_fuzzy():
    fields = get_fields(ARGS)
    assert fields.get_field("12").name == "arg_double"
    assert fields.get_field("ARG_DOUBLE").name == "arg_double"
    assert fields.get_field("missing") is None


@pytest.mark.parametrize(
    "value, want",
    [("add", 1), ("MULTIPLY", 2), ("Op(-7)", -7), ("Op(+5)", 5), (2, 2)],
)
def test_parse_enum(value, want):
    assert parse_enum(OP, value) == want


def test_parse_enum_out_of_range_number():
    with pytest.raises(ThriftValueError, match="unrecognized enum"):
        parse_enum(OP, "Op(4294967296)")


def test_to_wire_value_nested_typedefs():
    spec = TypedefSpec("ListOfInts", ListSpec(TypedefSpec("Int", I32Spec())))
    got = to_wire_value(spec, [0, 1, 2])
    assert got == Value.list(WireType.I32, [Value.i32(0), Value.i32(1), Value.i32(2)])


def test_to_wire_value_wraps_error_with_type_name():
    with pytest.raises(ThriftValueError) as info:
        to_wire_value(TypedefSpec("UUID", I16Spec()), 70000)
    assert str(info.value).startswith('field "i16" value 70000 is out of range')


def test_map_of_binary_keeps_string_keys():
    spec = MapSpec(StringSpec(), BoolSpec())
    got = to_wire_value(spec, {"true": 1})
    assert got == Value.map(
        WireType.BINARY,
        WireType.BOOL,
        [MapItem(Value.string("true"), Value.boolean(True))],
    )


def test_required_field_with_default_is_filled():
    got = field_group_to_value(SWRAP.fields, {})
    assert got == [Field(1, S_DEFAULT_WIRE), Field(2, S_DEFAULT_WIRE)]