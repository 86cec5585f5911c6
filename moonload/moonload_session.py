"""
Script sessions: an entry script, the interpreter that ran it, and typed
access to the table it returned.

A session is an ordinary object the host creates and passes around; nothing
here is module-global. Use one session per thread, or serialize access to a
shared one.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Tuple

from lupa import LuaError

from moonload.moonload_config import LoaderConfig
from moonload.moonload_convert import Converter
from moonload.moonload_datatypes import (
    DataType, type_of,
    EntryNotFoundError, MalformedEntryError, MissingKeyError, ScriptError,
    TypeMismatchError, RuntimeNotInitializedError,
)
from moonload.moonload_modules import ModuleResolver
from moonload.moonload_paths import PathResolver
from moonload.moonload_runtime import LuaHost

logger = logging.getLogger(__name__)

_MISSING = object()


class SessionStatus(Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RELOADING = "reloading"
    FAILED = "failed"


@dataclass(frozen=True)
class _SessionState:
    """Everything one successful initialize produced; replaced, never patched."""
    root_directory: Path
    entry_path: Path
    host: LuaHost
    root: Any
    modules: ModuleResolver
    converter: Converter


class ScriptSession:
    """Loads an entry script and serves typed values from the table it returns."""

    def __init__(self, config: Optional[LoaderConfig] = None):
        self.config = config or LoaderConfig()
        self.paths = PathResolver(self.config.configs_namespace)
        self.status = SessionStatus.UNINITIALIZED
        self.last_error: Optional[BaseException] = None
        self._state: Optional[_SessionState] = None

    # --- Lifecycle ---

    def initialize(self, root_directory, forced: bool = False) -> None:
        """
        Run ``<root_directory>/manifest.lua`` and adopt the table it returns.

        Does nothing when the same entry file is already loaded, unless
        ``forced``. On failure the previously loaded data (if any) stays in
        place and the error is re-raised.
        """
        root_directory = Path(root_directory)
        entry_path = (root_directory / self.config.entry_file).resolve()
        state = self._state
        if not forced and state is not None and state.entry_path == entry_path:
            logger.debug(f"{entry_path} already loaded")
            return

        previous = self.status
        self.status = SessionStatus.RELOADING
        try:
            new_state = self._load(root_directory, entry_path)
        except Exception as e:
            self.last_error = e
            if self._state is not None:
                self.status = SessionStatus.READY
                logger.warning(f"Reload of {entry_path} failed, keeping previous data: {e}")
            else:
                self.status = SessionStatus.FAILED
            raise

        self._state = new_state
        self.status = SessionStatus.READY
        self.last_error = None
        verb = "Reloaded" if previous is SessionStatus.READY else "Loaded"
        logger.info(f"{verb} {entry_path}")

    def reload(self, root_directory=None) -> None:
        """Force a fresh interpreter, reusing the current root directory by default."""
        if root_directory is None:
            if self._state is None:
                raise RuntimeNotInitializedError("Nothing to reload: no entry script has been loaded.")
            root_directory = self._state.root_directory
        self.initialize(root_directory, forced=True)

    def _load(self, root_directory: Path, entry_path: Path) -> _SessionState:
        if not entry_path.is_file():
            raise EntryNotFoundError(entry_path)

        cfg = self.config
        host = LuaHost(sandbox=cfg.sandbox, print_to_log=cfg.print_to_log, encoding=cfg.encoding)
        modules = ModuleResolver(
            host,
            cfg.modules_dir(root_directory),
            defs_dir=cfg.defs_dir,
            extension=cfg.extension,
        )
        host.register("require", modules.require)

        try:
            root = host.run_file(entry_path)
        except (LuaError, OSError, UnicodeDecodeError) as e:
            raise ScriptError(entry_path, str(e)) from e

        kind = type_of(root)
        if kind is not DataType.TABLE:
            raise MalformedEntryError(entry_path, kind)

        return _SessionState(
            root_directory=root_directory,
            entry_path=entry_path,
            host=host,
            root=root,
            modules=modules,
            converter=Converter(host.identity),
        )

    def _require_state(self) -> _SessionState:
        if self._state is None:
            raise RuntimeNotInitializedError()
        return self._state

    # --- Properties ---

    @property
    def ready(self) -> bool:
        return self._state is not None

    @property
    def root(self):
        return self._require_state().root

    @property
    def host(self) -> LuaHost:
        return self._require_state().host

    @property
    def modules(self) -> ModuleResolver:
        return self._require_state().modules

    @property
    def entry_path(self) -> Optional[Path]:
        return self._state.entry_path if self._state else None

    # --- Typed access ---

    def get_value_by_path(self, path: str) -> Any:
        """The raw Lua value at ``path`` (None when absent); ``configs`` is searched first."""
        state = self._require_state()
        return self.paths.resolve(state.root, path)

    def load(self, path: str, target: Any, default: Any = _MISSING) -> Any:
        """
        Fetch the value at ``path`` converted to ``target``.

        Without ``default`` a missing key raises MissingKeyError and a value
        that cannot be converted raises TypeMismatchError. With ``default``
        both cases return the default instead.
        """
        state = self._require_state()
        raw = self.paths.resolve(state.root, path)
        if raw is None:
            if default is _MISSING:
                raise MissingKeyError(path)
            return default

        result = state.converter.convert(raw, target)
        if not result.ok:
            if default is _MISSING:
                raise TypeMismatchError(path, target, result.format_error())
            logger.debug(f"Using default for '{path}': {result.format_error()}")
            return default
        return result.value

    def try_load(self, path: str, target: Any) -> Tuple[Any, bool]:
        """(value, True) on success, (None, False) when missing or unconvertible."""
        state = self._require_state()
        raw = self.paths.resolve(state.root, path)
        if raw is None:
            return None, False
        result = state.converter.convert(raw, target)
        if not result.ok:
            return None, False
        return result.value, True

    def get_version(self) -> Optional[str]:
        return self.load("version", str, default=None)

    def get_script_source(self, relative_path: str) -> Optional[str]:
        """Text of a script below the scripts directory, or None if there is no such file."""
        state = self._require_state()
        base = self.config.scripts_root(state.root_directory).resolve()
        parts = [p for p in relative_path.replace("\\", "/").split("/") if p]
        if not parts:
            return None
        candidate = base.joinpath(*parts).resolve()
        if not candidate.is_relative_to(base) or not candidate.is_file():
            return None
        return candidate.read_text(encoding=self.config.encoding)

    def __repr__(self):
        where = f" {self._state.entry_path}" if self._state else ""
        return f"<ScriptSession {self.status.value}{where}>"
