import pytest

from yabkit.interpolate import InterpolationParseError, UnknownVariableError
from yabkit.templateargs import process_map, process_string, process_value

ARGS = {
    "user": "prashant",
    "count": "10",
    "y": "y",
    "t": "true",
    "t_quoted": '"true"',
}


@pytest.mark.parametrize(
    "value, want",
    [
        ("s", "s"),
        ("y", "y"),
        ("${y}", "y"),
        ("${t}", True),
        ("${t_quoted}", "true"),
        ("${name:John Smith}", "John Smith"),
        ("User ${user} has ${count}", "User prashant has 10"),
        ("${user:moe}", "prashant"),
        ("\\${user}", "${user}"),
        ("\\\\${user}", "\\prashant"),
        ("${count:unknown}", 10),
        ("$notvar", "$notvar"),
        ("${no-value:}", ""),
    ],
)
def test_process_string(value, want):
    assert process_string(value, ARGS) == want


def test_process_string_unknown_variable():
    with pytest.raises(UnknownVariableError) as excinfo:
        process_string("${unknown}", ARGS)
    assert 'unknown variable "unknown"' in str(excinfo.value)


def test_process_string_invalid():
    with pytest.raises(InterpolationParseError) as excinfo:
        process_string("${invalid", ARGS)
    assert "cannot parse string" in str(excinfo.value)


def test_process_string_loose_yaml_bool_stays_string():
    assert process_string("${v}", {"v": "yes"}) == "yes"


def test_process_string_date_stays_string():
    assert process_string("${d}", {"d": "2020-01-02"}) == "2020-01-02"


@pytest.mark.parametrize(
    "req, want_default, args, want_with_args",
    [
        (
            {"user": "moe", "count": 10},
            {"user": "moe", "count": 10},
            {"user": "prashant"},
            {"user": "moe", "count": 10},
        ),
        (
            {"user": "${user:moe}"},
            {"user": "moe"},
            {"user": "prashant"},
            {"user": "prashant"},
        ),
        (
            {"authorized": "${admin:false}"},
            {"authorized": False},
            {"admin": "true"},
            {"authorized": True},
        ),
        (
            {"userCount": "${count:10}"},
            {"userCount": 10},
            {"count": "250"},
            {"userCount": 250},
        ),
        (
            {"uuids": "${users:[1,2,3]}"},
            {"uuids": [1, 2, 3]},
            {"users": "[3,4,5]"},
            {"uuids": [3, 4, 5]},
        ),
        (
            {"uuids": "${users:default}"},
            {"uuids": "default"},
            {"users": "[3,4,5]"},
            {"uuids": [3, 4, 5]},
        ),
        (
            {"uuids": "${users:default}"},
            {"uuids": "default"},
            {"users": '"[3,4,5]"'},
            {"uuids": "[3,4,5]"},
        ),
        (
            {"${user:john}": "${name:John Smith}"},
            {"john": "John Smith"},
            {"user": "p", "name": "Prashant"},
            {"p": "Prashant"},
        ),
        (
            {"body": {"name": "${name:moe}"}},
            {"body": {"name": "moe"}},
            {"name": "prashant"},
            {"body": {"name": "prashant"}},
        ),
        (
            {"uuids": ["${u1:moe}", "${u2:joe}"]},
            {"uuids": ["moe", "joe"]},
            {"u1": "prashant", "u2": "john"},
            {"uuids": ["prashant", "john"]},
        ),
    ],
)
def test_process_map_success(req, want_default, args, want_with_args):
    assert process_map(req, None) == want_default
    assert process_map(req, args) == want_with_args


@pytest.mark.parametrize(
    "req, want_err",
    [
        ({"${invalidKey": "v"}, 'cannot parse string "${invalidKey"'),
        ({"key": "${invalidValue"}, 'cannot parse string "${invalidValue"'),
        ({"key": ["${invalidValue"]}, 'cannot parse string "${invalidValue"'),
    ],
)
def test_process_map_errors(req, want_err):
    with pytest.raises(InterpolationParseError) as excinfo:
        process_map(req, None)
    assert want_err in str(excinfo.value)


def test_process_map_does_not_modify_input():
    req = {"user": "${user:moe}"}
    process_map(req, {"user": "x"})
    assert req == {"user": "${user:moe}"}


def test_process_value_passes_through_other_types():
    assert process_value(3.5, ARGS) == 3.5
    assert process_value(None, ARGS) is None
    assert process_value(["${user}", 1], ARGS) == ["prashant", 1]