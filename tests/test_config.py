from pathlib import Path

import pytest

from moonload.moonload_config import LoaderConfig


def test_defaults():
    cfg = LoaderConfig()
    assert cfg.entry_file == "manifest.lua"
    assert cfg.modules_dir(Path("/game")) == Path("/game")
    assert cfg.scripts_root(Path("/game")) == Path("/game")
    assert cfg.configs_namespace == "configs"
    assert cfg.sandbox is True


def test_relative_directories_hang_off_the_root():
    cfg = LoaderConfig(modules_root="Mods", scripts_dir="Content/Lua")
    assert cfg.modules_dir(Path("/game")) == Path("/game/Mods")
    assert cfg.scripts_root(Path("/game")) == Path("/game/Content/Lua")


def test_from_mapping_accepts_kebab_case():
    cfg = LoaderConfig.from_mapping({"entry-name": "main", "modules_root": "lib", "configs-namespace": None})
    assert cfg.entry_file == "main.lua"
    assert cfg.modules_root == "lib"
    assert cfg.configs_namespace is None


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ValueError, match="colour"):
        LoaderConfig.from_mapping({"colour": "red"})


def test_from_yaml_file(tmp_path):
    path = tmp_path / "loader.yaml"
    path.write_text("entry-name: init\nsandbox: false\n", encoding="utf-8")
    cfg = LoaderConfig.from_file(path)
    assert cfg.entry_name == "init"
    assert cfg.sandbox is False


def test_from_toml_section(tmp_path):
    path = tmp_path / "pyproject.toml"
    path.write_text('[moonload]\ndefs-dir = "definitions"\n', encoding="utf-8")
    assert LoaderConfig.from_file(path).defs_dir == "definitions"


def test_from_json_file(tmp_path):
    path = tmp_path / "loader.json"
    path.write_text('{"extension": ".luau"}', encoding="utf-8")
    assert LoaderConfig.from_file(path).entry_file == "manifest.luau"


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "loader.yml"
    path.write_text("", encoding="utf-8")
    assert LoaderConfig.from_file(path) == LoaderConfig()


def test_bad_config_files(tmp_path):
    ini = tmp_path / "loader.ini"
    ini.write_text("x=1", encoding="utf-8")
    with pytest.raises(ValueError):
        LoaderConfig.from_file(ini)
    listing = tmp_path / "loader.json"
    listing.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        LoaderConfig.from_file(listing)
