"""Dotted/slashed path lookup over nested Lua tables."""
import re
from typing import Any, Optional, Sequence, Tuple

from moonload.moonload_datatypes import is_table, lookup, read

_SEPARATORS = re.compile(r"[./]")


def split_path(path: str) -> Tuple[str, ...]:
    """'a.b/c' -> ('a', 'b', 'c'); empty segments are dropped."""
    if not path:
        return ()
    return tuple(segment for segment in _SEPARATORS.split(path) if segment)


class PathResolver:
    """
    Walks nested tables by string segments.

    Every segment is looked up as written, then lowercased, then uppercased.
    A miss anywhere along the way yields None for the whole path: an absent
    key, a non-table in the middle of the path, or a read that raises.
    Numeric segments stay string keys: ``items.1`` looks for the key ``"1"``,
    not the array slot 1.

    When the root holds a ``configs`` table (the namespace name is
    configurable) the path is tried there first.
    """

    def __init__(self, namespace: Optional[str] = "configs"):
        self.namespace = namespace

    def resolve(self, root, path: 'str | Sequence[str]') -> Any:
        segments = split_path(path) if isinstance(path, str) else tuple(path)
        if not segments:
            return root
        if not is_table(root):
            return None

        if self.namespace:
            scoped = read(root, self.namespace)
            if is_table(scoped):
                found = self.traverse(scoped, segments)
                if found is not None:
                    return found
        return self.traverse(root, segments)

    def traverse(self, table, segments: Sequence[str]) -> Any:
        current = table
        last = len(segments) - 1
        for i, segment in enumerate(segments):
            value = lookup(current, segment, strict=False)
            if value is None:
                return None
            if i == last:
                return value
            if not is_table(value):
                return None
            current = value
        return None
