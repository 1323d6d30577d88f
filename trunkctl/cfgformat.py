"""Reader and writer for the structured configuration file format.

The format holds named settings, ``name = value;`` (``:`` may replace ``=``
and ``,`` may replace ``;``). Values are integers (decimal or ``0x`` hex,
with an optional ``L`` suffix), floats, booleans, double-quoted strings
(adjacent strings are joined), groups ``{ ... }``, lists ``( ... )`` and
arrays ``[ ... ]`` of scalars of one type. ``#``, ``//`` and ``/* */``
start comments.

Groups map to ``dict``, lists to ``list`` and arrays to ``tuple``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

__all__ = ["ConfigParseError", "loads", "dumps", "load", "dump"]

_NAME = re.compile(r"[A-Za-z*][-A-Za-z0-9_*]*")
_BOOL = re.compile(r"(?i:true|false)\b")
_FLOAT = re.compile(
    r"[-+]?(?:(?:[0-9]*\.[0-9]+|[0-9]+\.[0-9]*)(?:[eE][-+]?[0-9]+)?"
    r"|[0-9]+[eE][-+]?[0-9]+)"
)
_HEX = re.compile(r"0[xX]([0-9A-Fa-f]+)L{0,2}")
_INT = re.compile(r"([-+]?[0-9]+)L{0,2}")

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1

_ESCAPES = {"\\": "\\", '"': '"', "n": "\n", "r": "\r", "t": "\t", "f": "\f"}
_REVERSE_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t", "\f": "\\f"}


class ConfigParseError(ValueError):
    """Raised when configuration text is malformed."""

    def __init__(self, message: str, line: int) -> None:
        super().__init__(f"line {line}: {message}")
        self.message = message
        self.line = line


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    @property
    def line(self) -> int:
        return self.text.count("\n", 0, self.pos) + 1

    def error(self, message: str) -> ConfigParseError:
        return ConfigParseError(message, self.line)

    def skip(self) -> None:
        text = self.text
        while self.pos < len(text):
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif ch == "#" or text.startswith("//", self.pos):
                end = text.find("\n", self.pos)
                self.pos = len(text) if end < 0 else end + 1
            elif text.startswith("/*", self.pos):
                end = text.find("*/", self.pos + 2)
                if end < 0:
                    raise self.error("unterminated comment")
                self.pos = end + 2
            else:
                return

    def peek(self) -> str:
        self.skip()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def parse(self) -> dict[str, Any]:
        return self.settings("")

    def settings(self, end: str) -> dict[str, Any]:
        group: dict[str, Any] = {}
        while True:
            ch = self.peek()
            if ch == "" and end:
                raise self.error(f"expected '{end}' before end of input")
            if ch == end:
                if end:
                    self.pos += 1
                return group
            match = _NAME.match(self.text, self.pos)
            if match is None:
                raise self.error(f"unexpected character {ch!r}")
            name = match.group(0)
            self.pos = match.end()
            if self.peek() not in ("=", ":") or self.pos >= len(self.text):
                raise self.error(f"expected '=' or ':' after {name!r}")
            self.pos += 1
            value = self.value()
            if name in group:
                raise self.error(f"duplicate setting name {name!r}")
            group[name] = value
            if self.peek() in (";", ",") and self.pos < len(self.text):
                self.pos += 1

    def value(self) -> Any:
        ch = self.peek()
        if ch == "{":
            self.pos += 1
            return self.settings("}")
        if ch == "(":
            self.pos += 1
            return self.elements(")", scalars_only=False)
        if ch == "[":
            self.pos += 1
            return tuple(self.elements("]", scalars_only=True))
        if ch == '"':
            return self.string()
        match = _BOOL.match(self.text, self.pos)
        if match:
            self.pos = match.end()
            return match.group(0).lower() == "true"
        for pattern in (_FLOAT, _HEX, _INT):
            match = pattern.match(self.text, self.pos)
            if match:
                end = match.end()
                if end < len(self.text) and (self.text[end].isalnum() or self.text[end] in "_."):
                    raise self.error("malformed number")
                self.pos = end
                if pattern is _FLOAT:
                    return float(match.group(0))
                if pattern is _HEX:
                    return int(match.group(1), 16)
                return int(match.group(1))
        if ch == "":
            raise self.error("expected a value before end of input")
        raise self.error(f"expected a value, found {ch!r}")

    def elements(self, end: str, scalars_only: bool) -> list[Any]:
        items: list[Any] = []
        if self.peek() == end:
            self.pos += 1
            return items
        while True:
            item = self.value()
            if scalars_only:
                if isinstance(item, (dict, list, tuple)):
                    raise self.error("arrays may hold only scalar values")
                if items and type(item) is not type(items[0]):
                    raise self.error("mixed value types in array")
            items.append(item)
            ch = self.peek()
            if ch == "," :
                self.pos += 1
            elif ch == end and ch:
                self.pos += 1
                return items
            else:
                raise self.error(f"expected ',' or '{end}'")

    def string(self) -> str:
        parts: list[str] = []
        text = self.text
        while self.peek() == '"':
            self.pos += 1
            while True:
                if self.pos >= len(text):
                    raise self.error("unterminated string")
                ch = text[self.pos]
                if ch == '"':
                    self.pos += 1
                    break
                if ch == "\\":
                    esc = text[self.pos + 1:self.pos + 2]
                    if esc in _ESCAPES:
                        parts.append(_ESCAPES[esc])
                        self.pos += 2
                    elif esc == "x" and re.fullmatch(r"[0-9A-Fa-f]{2}", text[self.pos + 2:self.pos + 4]):
                        parts.append(chr(int(text[self.pos + 2:self.pos + 4], 16)))
                        self.pos += 4
                    else:
                        raise self.error("invalid escape sequence in string")
                else:
                    parts.append(ch)
                    self.pos += 1
        return "".join(parts)


def loads(text: str) -> dict[str, Any]:
    """Parse configuration text into a dict."""
    return _Parser(text).parse()


def load(path: str | Path) -> dict[str, Any]:
    """Read and parse a configuration file."""
    return loads(Path(path).read_text(encoding="utf-8"))


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (bool, int, float, str))


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if _INT32_MIN <= value <= _INT32_MAX:
            return str(value)
        return f"{value}L"
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError("non-finite floats cannot be written")
        return repr(value)
    out = []
    for ch in value:
        if ch in _REVERSE_ESCAPES:
            out.append(_REVERSE_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return '"' + "".join(out) + '"'


def _format(value: Any, indent: int) -> str:
    pad = "  " * indent
    if _is_scalar(value):
        return _format_scalar(value)
    if isinstance(value, Mapping):
        if not value:
            return "{ }"
        lines: list[str] = []
        _write_settings(value, indent + 1, lines)
        return "{\n" + "\n".join(lines) + "\n" + pad + "}"
    if isinstance(value, tuple):
        if not all(_is_scalar(item) for item in value):
            raise TypeError("arrays may hold only scalar values")
        if value and any(type(item) is not type(value[0]) for item in value):
            raise TypeError("arrays must hold values of one type")
        if not value:
            return "[ ]"
        return "[ " + ", ".join(_format_scalar(item) for item in value) + " ]"
    if isinstance(value, list):
        if not value:
            return "( )"
        inner = "  " * (indent + 1)
        items = ",\n".join(inner + _format(item, indent + 1) for item in value)
        return "(\n" + items + "\n" + pad + ")"
    raise TypeError(f"cannot write value of type {type(value).__name__}")


def _write_settings(group: Mapping[str, Any], indent: int, lines: list[str]) -> None:
    pad = "  " * indent
    for name, value in group.items():
        if not isinstance(name, str) or not _NAME.fullmatch(name):
            raise ValueError(f"invalid setting name {name!r}")
        lines.append(f"{pad}{name} = {_format(value, indent)};")


def dumps(data: Mapping[str, Any]) -> str:
    """Serialise a mapping of settings to configuration text."""
    if not isinstance(data, Mapping):
        raise TypeError("the configuration root must be a mapping")
    lines: list[str] = []
    _write_settings(data, 0, lines)
    return "\n".join(lines) + "\n" if lines else ""


def dump(data: Mapping[str, Any], path: str | Path) -> None:
    """Serialise settings and write them to a file."""
    text = dumps(data)
    Path(path).write_text(text, encoding="utf-8")