import logging

import pytest
from lupa import LuaError

from moonload.moonload_runtime import LuaHost


def test_sandbox_removes_dangerous_libraries(host):
    for name in ("io", "debug", "package", "dofile", "loadfile", "load", "python"):
        assert host.eval(name) is None, name
    assert host.eval("os.execute") is None
    assert host.eval("os.getenv") is None
    assert host.eval("type(os.time())") == "number"
    assert host.eval("string.upper('x')") == "X"


def test_unsandboxed_host_keeps_libraries():
    host = LuaHost(sandbox=False)
    assert host.eval("io") is not None
    assert host.eval("os.getenv") is not None


def test_run_returns_first_value(host):
    assert host.run("return 1, 2") == 1
    assert host.run("local x = 1") is None


def test_run_reports_syntax_errors(host):
    with pytest.raises(LuaError):
        host.run("return {", "broken.lua")


def test_run_file(host, tmp_path):
    path = tmp_path / "data.lua"
    path.write_text("return { answer = 42 }", encoding="utf-8")
    assert host.run_file(path)["answer"] == 42


def test_runtime_errors_name_the_chunk(host):
    with pytest.raises(LuaError, match="named.lua"):
        host.run("error('boom')", "named.lua")


def test_identity_is_stable_per_table(host):
    pair = host.run("local t = {} return { t, t, {} }")
    assert host.identity(pair[1]) == host.identity(pair[2])
    assert host.identity(pair[1]) != host.identity(pair[3])


def test_print_goes_to_log(host, caplog):
    with caplog.at_level(logging.INFO, logger="moonload.lua"):
        host.run("print('hello', 1, true, nil)")
    assert "hello\t1\ttrue\tnil" in caplog.messages


def test_register_binds_python_callables(host):
    host.register("twice", lambda x: x * 2)
    assert host.eval("twice(21)") == 42


class Probe:
    def __init__(self):
        self.public = "visible"
        self._secret = "hidden"


def test_private_attributes_are_not_reachable(host):
    host.register("probe", Probe())
    assert host.eval("probe.public") == "visible"
    with pytest.raises((AttributeError, LuaError)):
        host.eval("probe._secret")
