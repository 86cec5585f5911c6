import pytest

from moonload.moonload_datatypes import (
    DataType, type_of, is_table, lookup, pairs, integer_entries, array_length, is_sequence,
    MissingKeyError, TypeMismatchError, LoaderError,
)


def test_type_of_interpreter_values(host):
    assert type_of(None) is DataType.NIL
    assert type_of(host.eval("true")) is DataType.BOOLEAN
    assert type_of(host.eval("1")) is DataType.NUMBER
    assert type_of(host.eval("1.5")) is DataType.NUMBER
    assert type_of(host.eval("'s'")) is DataType.STRING
    assert type_of(host.eval("{}")) is DataType.TABLE
    assert type_of(host.eval("print")) is DataType.OPAQUE
    assert type_of(object()) is DataType.OPAQUE


def test_is_table(host):
    assert is_table(host.eval("{}"))
    assert not is_table({})


def test_lookup_tries_lower_then_upper(host):
    t = host.eval("{ alpha = 1, BETA = 2 }")
    assert lookup(t, "Alpha") == 1
    assert lookup(t, "beta") == 2
    assert lookup(t, "gamma") is None


def test_integer_entries_are_sorted_and_skip_other_keys(host):
    t = host.eval("{ [10] = 'c', [2] = 'b', [-1] = 'a', [1.5] = 'x', [true] = 'y', name = 'n' }")
    assert integer_entries(t) == [(-1, "a"), (2, "b"), (10, "c")]


def test_array_length_stops_at_first_gap(host):
    assert array_length(host.eval("{ 1, 2, 3 }")) == 3
    assert array_length(host.eval("{ [1] = 1, [3] = 3 }")) == 1
    assert array_length(host.eval("{ a = 1 }")) == 0


def test_is_sequence(host):
    assert is_sequence(host.eval("{ 'a', 'b' }"))
    assert is_sequence(host.eval("{}"))
    assert not is_sequence(host.eval("{ 'a', k = 1 }"))
    assert not is_sequence(host.eval("{ [1] = 1, [3] = 3 }"))


def test_pairs_covers_array_and_map_parts(host):
    assert sorted(pairs(host.eval("{ 'a', k = 'b' }")), key=lambda kv: str(kv[0])) == [(1, "a"), ("k", "b")]


def test_error_hierarchy():
    missing = MissingKeyError("a.b")
    assert isinstance(missing, KeyError)
    assert isinstance(missing, LoaderError)
    assert str(missing) == "Key not found in script data: 'a.b'"

    mismatch = TypeMismatchError("version", int, "not an integer: '1.0'")
    assert isinstance(mismatch, TypeError)
    assert "version" in str(mismatch) and "int" in str(mismatch)
    with pytest.raises(LoaderError):
        raise mismatch
