from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Optional

import yaml

from moonload.moonload_datatypes import DataType, type_of, pairs, is_sequence, array_length
from moonload.moonload_printer import to_print_string


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        return data.decode(encoding or 'utf-8', errors='replace')
    return str(data)


def to_builtin(value: Any, identify=None, _seen=()) -> Any:
    """
    Convert a Lua value into plain Python data: tables whose keys are exactly
    1..n become lists, other tables dicts keyed by the canonical key string.
    Opaque values (functions, userdata) become their print string.
    """
    if isinstance(value, dict):
        return {str(k): to_builtin(v, identify, _seen) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_builtin(v, identify, _seen) for v in value]
    kind = type_of(value)
    if kind is DataType.TABLE:
        marker = identify(value) if identify else None
        if marker is not None and marker in _seen:
            raise ValueError("cannot serialize a table that contains itself")
        if marker is None and len(_seen) >= 64:
            raise ValueError("table nesting too deep to serialize")
        seen = _seen + (marker,)
        if is_sequence(value):
            return [to_builtin(value[i], identify, seen) for i in range(1, array_length(value) + 1)]
        return {to_print_string(k): to_builtin(v, identify, seen) for k, v in pairs(value)}
    if kind is DataType.OPAQUE:
        return to_print_string(value)
    return value


def detect_format(path: str | Path) -> Optional[str]:
    """Returns 'json', 'yaml' or 'toml' from a file name, else None."""
    ext = Path(path).suffix.lower()
    if ext == '.json':
        return 'json'
    if ext in ('.yaml', '.yml'):
        return 'yaml'
    if ext == '.toml':
        return 'toml'
    return None


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str, *, fmt: str) -> Any:
    """
    Parse JSON, YAML or TOML text into native Python structures.
    Malformed input raises ValueError.
    """
    text = _norm_text(data)
    f = (fmt or '').lower()
    if f == 'json':
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON: {e}") from e
    if f == 'yaml':
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"invalid YAML: {e}") from e
    if f == 'toml':
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"invalid TOML: {e}") from e
    raise ValueError(f"Unsupported format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True, identify=None) -> str:
    """
    Convert a Lua (or plain Python) value into text.
    - fmt: 'json' | 'yaml'
    """
    f = (fmt or '').lower()
    built = to_builtin(value, identify)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "deserialize",
    "serialize",
    "detect_format",
    "to_builtin",
]
