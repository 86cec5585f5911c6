import pytest

from moonload.moonload_paths import PathResolver, split_path


@pytest.fixture
def resolver():
    return PathResolver()


def test_split_path():
    assert split_path("a.b/c") == ("a", "b", "c")
    assert split_path("a..b//c.") == ("a", "b", "c")
    assert split_path("") == ()


def test_empty_path_is_root(resolver, host):
    root = host.eval("{ configs = { x = 1 } }")
    assert resolver.resolve(root, "") is root


@pytest.mark.parametrize("source", ["{ Version = '1' }", "{ version = '1' }", "{ VERSION = '1' }"])
def test_any_single_case_variant_is_found(resolver, host, source):
    assert resolver.resolve(host.eval(source), "Version") == "1"


def test_exact_spelling_wins(resolver, host):
    root = host.eval("{ Name = 'exact', name = 'lower', NAME = 'upper' }")
    assert resolver.resolve(root, "Name") == "exact"
    assert resolver.resolve(root, "nAME") == "lower"


def test_nested_paths_with_either_separator(resolver, host):
    root = host.eval("{ a = { b = { c = 5 } } }")
    assert resolver.resolve(root, "a.b.c") == 5
    assert resolver.resolve(root, "a/b/c") == 5
    assert resolver.resolve(root, "A.B.C") == 5


def test_misses_are_nil(resolver, host):
    root = host.eval("{ a = { b = { c = 5 } }, s = 'text' }")
    assert resolver.resolve(root, "a.x.c") is None
    assert resolver.resolve(root, "a.b.c.d") is None
    assert resolver.resolve(root, "s.len") is None
    assert resolver.resolve(root, "missing") is None


def test_numeric_segments_are_string_keys(resolver, host):
    assert resolver.resolve(host.eval("{ items = { 'x', 'y' } }"), "items.1") is None
    assert resolver.resolve(host.eval("{ items = { ['1'] = 'x' } }"), "items.1") == "x"


def test_configs_namespace_is_preferred(resolver, host):
    root = host.eval("{ configs = { speed = 3 }, speed = 1, name = 'root' }")
    assert resolver.resolve(root, "speed") == 3
    # Falls back to the bare root when configs lacks the key
    assert resolver.resolve(root, "name") == "root"


def test_configs_namespace_can_be_disabled(host):
    root = host.eval("{ configs = { speed = 3 }, speed = 1 }")
    assert PathResolver(namespace=None).resolve(root, "speed") == 1


def test_non_table_configs_is_ignored(resolver, host):
    assert resolver.resolve(host.eval("{ configs = 5, speed = 1 }"), "speed") == 1


def test_segments_sequence_input(resolver, host):
    assert resolver.resolve(host.eval("{ a = { ['b.c'] = 2 } }"), ["a", "b.c"]) == 2


STRICT = "setmetatable({}, { __index = function(t, k) error('strict: ' .. k) end })"


def test_strict_tables_read_as_misses(resolver, host):
    root = host.run(f"local t = {STRICT} rawset(t, 'speed', 2) return t")
    assert resolver.resolve(root, "speed") == 2
    assert resolver.resolve(root, "missing") is None
    nested = host.run(f"return {{ a = {STRICT} }}")
    assert resolver.resolve(nested, "a.b") is None


def test_undecodable_strings_read_as_misses(resolver, host):
    root = host.eval("{ name = '\\255\\254', ok = 'fine' }")
    assert resolver.resolve(root, "name") is None
    assert resolver.resolve(root, "ok") == "fine"
