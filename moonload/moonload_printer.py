"""
A printer for Lua values: the canonical string form used for map keys and
log lines, and a pretty-printer that renders tables as Lua constructors.
"""
import math
import re

from moonload.moonload_datatypes import DataType, type_of, pairs, array_length

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_KEYWORDS = frozenset("""
    and break do else elseif end false for function goto if in local nil not
    or repeat return then true until while
""".split())


def format_number(value) -> str:
    """Lua 5.4 ``tostring`` for numbers: ``%.14g``, floats keep a ``.0``."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "nan" if math.copysign(1.0, value) > 0 else "-nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = f"{value:.14g}"
    if re.fullmatch(r"-?\d+", text):
        text += ".0"
    return text


def to_print_string(value) -> str:
    """The canonical, unquoted string form of a value."""
    kind = type_of(value)
    if kind is DataType.NIL:
        return "nil"
    if kind is DataType.BOOLEAN:
        return "true" if value else "false"
    if kind is DataType.NUMBER:
        return format_number(value)
    if kind is DataType.STRING:
        return value
    if kind is DataType.TABLE:
        return f"table: {id(value):#x}"
    return f"userdata: {value!r}"


class Printer:
    """Formats Lua values into readable Lua source."""

    def __init__(self, indent_width=2, identify=None):
        self._indent_char = " " * indent_width
        # Without an identity function cycles are caught by the depth guard alone
        self._identify = identify
        self.max_depth = 64
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0, _seen=()):
        """Public entry point to format an object."""
        handler = self._handlers[type_of(obj)]
        return handler(obj, level, _seen)

    def _create_handlers(self):
        return {
            DataType.NIL: lambda o, l, s: "nil",
            DataType.BOOLEAN: lambda o, l, s: "true" if o else "false",
            DataType.NUMBER: lambda o, l, s: format_number(o),
            DataType.STRING: self._pformat_str,
            DataType.TABLE: self._pformat_table,
            DataType.OPAQUE: self._pformat_opaque,
        }

    def _pformat_str(self, obj, level, seen):
        escaped = (obj.replace("\\", "\\\\").replace('"', '\\"')
                   .replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t"))
        return f'"{escaped}"'

    def _pformat_opaque(self, obj, level, seen):
        return f"<{to_print_string(obj)}>"

    def _pformat_key(self, key, level, seen):
        if isinstance(key, str) and _IDENTIFIER.match(key) and key not in _KEYWORDS:
            return key
        return f"[{self.pformat(key, level, seen)}]"

    def _pformat_table(self, obj, level, seen):
        marker = self._identify(obj) if self._identify else None
        if (marker is not None and marker in seen) or level >= self.max_depth:
            return "<cycle>"
        seen = seen + (marker,) if marker is not None else seen

        n = array_length(obj)
        items = []
        for i in range(1, n + 1):
            items.append(self.pformat(obj[i], level + 1, seen))
        rest = [(k, v) for k, v in pairs(obj)
                if not (isinstance(k, int) and not isinstance(k, bool) and 1 <= k <= n)]
        rest.sort(key=lambda kv: (type_of(kv[0]).value, to_print_string(kv[0])))
        for key, value in rest:
            items.append(f"{self._pformat_key(key, level + 1, seen)} = {self.pformat(value, level + 1, seen)}")

        if not items:
            return "{}"
        one_line = "{ " + ", ".join(items) + " }"
        if len(one_line) <= 72 and "\n" not in one_line:
            return one_line
        inner = self._indent_char * (level + 1)
        outer = self._indent_char * level
        return "{\n" + ",\n".join(inner + item for item in items) + f"\n{outer}}}"
