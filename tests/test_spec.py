import pytest

from yabkit.spec import (
    BinarySpec,
    BoolSpec,
    ConstantMap,
    ConstantSet,
    ConstantStruct,
    ConstReference,
    EnumItem,
    EnumItemReference,
    EnumSpec,
    I8Spec,
    I16Spec,
    I32Spec,
    ListSpec,
    MapSpec,
    SetSpec,
    StringSpec,
    StructSpec,
    TypedefSpec,
    const_to_request,
    root_type_spec,
)
from yabkit.wire import WireType


@pytest.mark.parametrize(
    "value, want",
    [
        (True, True),
        (False, False),
        (1.05, 1.05),
        (1, 1),
        ("foo", "foo"),
        (ConstReference("a", "foo"), "foo"),
        (EnumItemReference(EnumItem("a", 5)), 5),
        ([1, True, "foo"], [1, True, "foo"]),
        (ConstantSet(("foo", ConstantSet(("bar",)))), ["foo", ["bar"]]),
    ],
)
def test_const_to_request(value, want):
    got = const_to_request(value)
    assert got == want
    assert type(got) is type(want)


def test_const_to_request_bool_stays_bool():
    assert const_to_request(True) is True
    assert const_to_request(False) is False


def test_const_to_request_map():
    got = const_to_request(ConstantMap(((2, "v1"), (True, "v2"))))
    assert got == {2: "v1", True: "v2"}


def test_const_to_request_struct():
    got = const_to_request(ConstantStruct({"f1": "f1_val", "n": ConstReference("x", 3)}))
    assert got == {"f1": "f1_val", "n": 3}


def test_const_to_request_unknown_type():
    with pytest.raises(TypeError):
        const_to_request(object())


def test_const_to_request_unhashable_map_key():
    with pytest.raises(TypeError):
        const_to_request(ConstantMap((([1], "v"),)))


def test_root_type_spec_follows_typedefs():
    spec = TypedefSpec("UUID1", TypedefSpec("UUID2", StringSpec()))
    assert root_type_spec(spec) == StringSpec()
    assert spec.type_code is WireType.BINARY
    assert spec.thrift_name == "UUID1"


def test_root_type_spec_plain():
    spec = I32Spec()
    assert root_type_spec(spec) is spec


def test_thrift_names():
    assert I8Spec().thrift_name == "byte"
    assert ListSpec(I16Spec()).thrift_name == "list<i16>"
    assert MapSpec(I16Spec(), I32Spec()).thrift_name == "map<i16, i32>"
    assert str(StructSpec("S")) == "S"


def test_type_codes():
    assert BoolSpec().type_code is WireType.BOOL
    assert BinarySpec().type_code is WireType.BINARY
    assert EnumSpec("Op").type_code is WireType.I32
    assert SetSpec(StringSpec()).type_code is WireType.SET
    assert StructSpec("S").type_code is WireType.STRUCT