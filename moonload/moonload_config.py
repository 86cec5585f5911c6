"""Loader settings: where the entry script and modules live, and how Lua runs."""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from moonload.moonload_serialize import deserialize, detect_format


@dataclass(frozen=True)
class LoaderConfig:
    entry_name: str = "manifest"
    extension: str = ".lua"
    # None means "the root directory"; relative paths are taken from it
    modules_root: Optional[str] = None
    defs_dir: str = "defs"
    configs_namespace: Optional[str] = "configs"
    # Directory read by get_script_source; defaults to the modules root
    scripts_dir: Optional[str] = None
    sandbox: bool = True
    print_to_log: bool = True
    encoding: str = "utf-8"

    @property
    def entry_file(self) -> str:
        return f"{self.entry_name}{self.extension}"

    def modules_dir(self, root_directory: Path) -> Path:
        if self.modules_root is None:
            return root_directory
        return root_directory / self.modules_root

    def scripts_root(self, root_directory: Path) -> Path:
        if self.scripts_dir is None:
            return self.modules_dir(root_directory)
        return root_directory / self.scripts_dir

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LoaderConfig:
        """Build a config from a mapping; keys may be snake_case or kebab-case."""
        known = {f.name for f in dataclasses.fields(cls)}
        values = {}
        for key, value in (data or {}).items():
            name = str(key).replace("-", "_")
            if name not in known:
                raise ValueError(f"Unknown loader setting: {key!r}")
            values[name] = value
        return cls(**values)

    @classmethod
    def from_file(cls, path: str | Path) -> LoaderConfig:
        """Read settings from a .json, .yaml/.yml or .toml file."""
        path = Path(path)
        fmt = detect_format(path)
        if fmt is None:
            raise ValueError(f"Unsupported config file type: {path.suffix!r}")
        data = deserialize(path.read_bytes(), fmt=fmt)
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise ValueError(f"Config file must contain a mapping: {path}")
        # A [moonload] section (TOML) or moonload: key (YAML) is accepted too
        section = data.get("moonload")
        if isinstance(section, Mapping):
            data = section
        return cls.from_mapping(data)
