import textwrap

import pytest

from moonload.moonload_convert import Converter
from moonload.moonload_runtime import LuaHost
from moonload.moonload_session import ScriptSession


@pytest.fixture
def host():
    """A fresh, sandboxed interpreter for each test."""
    return LuaHost()


@pytest.fixture
def converter(host):
    return Converter(host.identity)


@pytest.fixture
def content(tmp_path):
    """
    Returns a writer for a content directory under tmp_path:
    ``content("manifest.lua", "return {}")`` writes the file (dedented) and
    returns its path; ``content.root`` is the directory itself.
    """
    root = tmp_path / "game"
    root.mkdir()

    def write(relative, text):
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
        return path

    write.root = root
    return write


@pytest.fixture
def session():
    return ScriptSession()
