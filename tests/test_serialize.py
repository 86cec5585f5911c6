import json

import pytest

from moonload.moonload_serialize import serialize, deserialize, detect_format, to_builtin


def test_to_builtin_tables(host):
    value = host.eval("{ 1, 2, { a = true, [3] = 'x' } }")
    assert to_builtin(value) == [1, 2, {"a": True, "3": "x"}]


def test_to_builtin_opaque_values(host):
    out = to_builtin(host.eval("{ f = print }"))
    assert isinstance(out["f"], str)


def test_to_builtin_rejects_cycles(host):
    table = host.run("local t = {} t.self = t return t")
    with pytest.raises(ValueError):
        to_builtin(table, identify=host.identity)


def test_serialize_json_and_yaml(host):
    value = host.eval("{ name = 'Stone', tags = { 'a', 'b' } }")
    assert json.loads(serialize(value, fmt="json")) == {"name": "Stone", "tags": ["a", "b"]}
    assert deserialize(serialize(value, fmt="yaml"), fmt="yaml") == {"name": "Stone", "tags": ["a", "b"]}


def test_serialize_unknown_format():
    with pytest.raises(ValueError):
        serialize({}, fmt="xml")


def test_deserialize_formats():
    assert deserialize(b'{"a": 1}', fmt="json") == {"a": 1}
    assert deserialize("a: [x, y]\n", fmt="yaml") == {"a": ["x", "y"]}
    assert deserialize('title = "t"\n[owner]\nname = "Tom"\n', fmt="toml") == {"title": "t", "owner": {"name": "Tom"}}


@pytest.mark.parametrize("fmt,text", [("json", "{nope"), ("toml", "= 1"), ("yaml", "a: [1"), ("ini", "")])
def test_deserialize_errors_are_value_errors(fmt, text):
    with pytest.raises(ValueError):
        deserialize(text, fmt=fmt)


@pytest.mark.parametrize(
    "name,expected",
    [("a.json", "json"), ("a.YAML", "yaml"), ("a.yml", "yaml"), ("a.toml", "toml"), ("a.lua", None)],
)
def test_detect_format(name, expected):
    assert detect_format(name) == expected
