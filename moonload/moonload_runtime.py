"""
The embedded Lua interpreter.

``LuaHost`` owns one ``lupa.LuaRuntime`` and gives the rest of moonload the
handful of operations it needs: run a chunk, evaluate an expression, bind a
Python callable as a global, and tell Lua tables apart by identity.
"""

import logging
from pathlib import Path
from typing import Any, Callable

from lupa import LuaRuntime

from moonload.moonload_printer import to_print_string

logger = logging.getLogger(__name__)
script_logger = logging.getLogger("moonload.lua")

# Captures `load` as an upvalue so the runner survives the sandbox removing it.
_CHUNK_RUNNER = """
local load, error = load, error
return function(source, chunkname)
    local chunk, err = load(source, "@" .. chunkname, "t")
    if not chunk then
        error(err, 0)
    end
    return (chunk())
end
"""

_IDENTITY = """
local ids = setmetatable({}, { __mode = "k" })
local counter = 0
return function(t)
    local id = ids[t]
    if id == nil then
        counter = counter + 1
        id = counter
        ids[t] = id
    end
    return id
end
"""

_SANDBOX = """
local os = os
_G.os = { time = os.time, clock = os.clock, date = os.date, difftime = os.difftime }
_G.io = nil
_G.debug = nil
_G.package = nil
_G.dofile = nil
_G.loadfile = nil
_G.load = nil
_G.loadstring = nil
_G.collectgarbage = nil
_G.python = nil
"""


def _filter_attribute(obj, attr_name, is_setting):
    # Python objects reachable from Lua expose no private members
    if isinstance(attr_name, str) and not attr_name.startswith("_"):
        return attr_name
    raise AttributeError(f"access denied: {attr_name!r}")


class LuaHost:
    """A single Lua interpreter, optionally restricted to a reduced library set."""

    def __init__(self, sandbox: bool = True, print_to_log: bool = True, encoding: str = "utf-8"):
        self.sandboxed = sandbox
        self.encoding = encoding
        self.lua = LuaRuntime(
            unpack_returned_tuples=True,
            register_eval=False,
            register_builtins=False,
            attribute_filter=_filter_attribute,
            encoding=encoding,
        )
        self._run_chunk = self.lua.execute(_CHUNK_RUNNER)
        self._identity = self.lua.execute(_IDENTITY)
        if sandbox:
            self.lua.execute(_SANDBOX)
        if print_to_log:
            self.register("print", self._print)

    def globals(self):
        return self.lua.globals()

    def register(self, name: str, function: Callable[..., Any]) -> None:
        self.lua.globals()[name] = function

    def run(self, source: str, chunkname: str = "chunk") -> Any:
        """Run a text chunk and return its first return value."""
        return self._run_chunk(source, chunkname)

    def run_file(self, path) -> Any:
        path = Path(path)
        source = path.read_text(encoding=self.encoding)
        logger.debug(f"Running {path}")
        return self.run(source, str(path))

    def eval(self, expression: str) -> Any:
        return self.lua.eval(expression)

    def identity(self, table) -> int:
        return self._identity(table)

    def _print(self, *args):
        script_logger.info("\t".join(to_print_string(a) for a in args))

    def __repr__(self):
        return f"<LuaHost sandboxed={self.sandboxed}>"
