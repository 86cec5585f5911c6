"""
The ``require`` primitive: named Lua modules resolved once per interpreter.

Resolution order for ``require(name)``:

1. a global already bound under ``name`` (modules pre-registered by the host),
2. ``<modules_root>/<name>.lua``,
3. ``<modules_root>/defs/<name>.lua``,

with dots and slashes in ``name`` read as directory separators. The first hit
is cached under the name, ignoring case and separator style; so is a miss,
which makes every later ``require`` of a missing module a dictionary lookup.
"""

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from moonload.moonload_datatypes import CircularRequireError
from moonload.moonload_printer import to_print_string

logger = logging.getLogger(__name__)

_NAME_SEPARATORS = re.compile(r"[./\\]")


class ModuleOrigin(Enum):
    GLOBAL = "global"
    FILE = "file"
    DEFS = "defs"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class ModuleResolution:
    """How a module name was (or was not) resolved."""
    name: str
    value: Any
    origin: ModuleOrigin
    path: Optional[Path] = None
    cached: bool = False
    # Set when reading the global binding raised; the lookup then counts as
    # "no binding" and resolution carries on with the filesystem.
    global_lookup_error: Optional[BaseException] = None

    @property
    def found(self) -> bool:
        return self.origin is not ModuleOrigin.NOT_FOUND


def module_segments(name: str):
    return [segment for segment in _NAME_SEPARATORS.split(name) if segment]


class ModuleResolver:
    def __init__(self, host, modules_root, defs_dir: str = "defs", extension: str = ".lua"):
        self.host = host
        self.modules_root = Path(modules_root)
        self.defs_dir = defs_dir
        self.extension = extension
        self._cache: Dict[str, ModuleResolution] = {}
        self._loading = set()

    def require(self, name=None) -> Any:
        """The function bound as ``require`` inside Lua."""
        if name is None:
            return None
        if not isinstance(name, str):
            name = to_print_string(name)
        if not name:
            return None
        return self.resolve(name).value

    def resolve(self, name: str) -> ModuleResolution:
        key = self._cache_key(name)
        hit = self._cache.get(key)
        if hit is not None:
            return replace(hit, cached=True)

        resolution = self._resolve_uncached(name)
        self._cache[key] = resolution
        logger.debug(f"require({name!r}) -> {resolution.origin.value}"
                     + (f" ({resolution.path})" if resolution.path else ""))
        return resolution

    def _resolve_uncached(self, name: str) -> ModuleResolution:
        lookup_error = None
        try:
            bound = self.host.globals()[name]
        except Exception as e:
            lookup_error = e
            bound = None
            logger.debug(f"Global lookup for module {name!r} failed: {e}")
        if bound is not None:
            return ModuleResolution(name, bound, ModuleOrigin.GLOBAL)

        located = self._locate(name)
        if located is None:
            return ModuleResolution(name, None, ModuleOrigin.NOT_FOUND,
                                    global_lookup_error=lookup_error)
        origin, path = located
        key = self._cache_key(name)
        if key in self._loading:
            raise CircularRequireError(name)
        # A module that raises is not cached; the error reaches the caller
        self._loading.add(key)
        try:
            value = self.host.run_file(path)
        finally:
            self._loading.discard(key)
        return ModuleResolution(name, value, origin, path=path,
                                global_lookup_error=lookup_error)

    def _locate(self, name: str):
        segments = module_segments(name)
        if not segments:
            return None
        segments[-1] += self.extension
        candidates = [
            (ModuleOrigin.FILE, self.modules_root.joinpath(*segments)),
            (ModuleOrigin.DEFS, self.modules_root.joinpath(self.defs_dir, *segments)),
        ]
        for origin, candidate in candidates:
            if candidate.is_file():
                return origin, candidate
        return None

    @staticmethod
    def _cache_key(name: str) -> str:
        # "a.b", "A/B" and "a\\b" name the same module
        return "/".join(module_segments(name)).lower()

    def clear(self) -> None:
        self._cache.clear()

    def cached_names(self):
        return [r.name for r in self._cache.values()]

    def __contains__(self, name: str) -> bool:
        return self._cache_key(name) in self._cache

    def __len__(self) -> int:
        return len(self._cache)
