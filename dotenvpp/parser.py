"""Parser turning `.env` text into key/value pairs.

Supports `KEY=VALUE` lines, full-line and inline comments, blank lines,
single-quoted values (literal, multiline, POSIX `'\\''` concatenation),
double-quoted values (escapes, multiline), unquoted values with common
backslash escapes, and an optional `export` prefix.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Tuple

from .errors import (
    EmptyKeyError,
    InvalidKeyError,
    MissingSeparatorError,
    UnterminatedQuoteError,
)

__all__ = ["EnvPair", "parse", "is_valid_key"]

_KEY_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_.]*")
_INLINE_COMMENT_RE = re.compile(r"[ \t]#")
_UNQUOTED_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)

_UNQUOTED_ESCAPES = {
    "n": "\n",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "$": "$",
    " ": " ",
    "#": "#",
}
_DOUBLE_QUOTED_ESCAPES = {**_UNQUOTED_ESCAPES, "t": "\t", "r": "\r"}

_Lines = Iterator[Tuple[int, str]]


@dataclass(frozen=True)
class EnvPair:
    """A key/value pair and the 1-based line where it was defined."""

    key: str
    value: str
    line: int


def parse(text: str) -> list[EnvPair]:
    """Parse `.env` content into pairs, in the order they appear.

    Raises a ParseError subclass on malformed input.
    """
    if text.startswith("\ufeff"):
        text = text[1:]

    pairs: list[EnvPair] = []
    lines: _Lines = iter(enumerate(_split_lines(text), start=1))

    for line_num, raw_line in lines:
        trimmed = raw_line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue

        effective = _strip_export_prefix(trimmed)
        raw_key, sep, after_eq = effective.partition("=")
        if not sep:
            raise MissingSeparatorError(line_num, trimmed)

        key = raw_key.strip()
        if not key:
            raise EmptyKeyError(line_num)
        if not is_valid_key(key):
            raise InvalidKeyError(line_num, key)

        value = _parse_value(after_eq, line_num, lines)
        pairs.append(EnvPair(key=key, value=value, line=line_num))

    return pairs


def is_valid_key(key: str) -> bool:
    """True for ASCII letters, digits, `_` and `.`, not starting with a digit or dot."""
    return _KEY_RE.fullmatch(key) is not None


def _split_lines(text: str) -> list[str]:
    pieces = text.split("\n")
    last = pieces.pop()
    lines = [piece[:-1] if piece.endswith("\r") else piece for piece in pieces]
    if last:
        lines.append(last)
    return lines


def _strip_export_prefix(line: str) -> str:
    for prefix in ("export ", "export\t"):
        if line.startswith(prefix):
            return line[len(prefix):].lstrip()
    return line


def _parse_value(value_start: str, line_num: int, lines: _Lines) -> str:
    trimmed = value_start.lstrip(" \t")
    if not trimmed:
        return ""
    if trimmed.startswith("#") and len(trimmed) != len(value_start):
        return ""
    if trimmed[0] == "'":
        return _parse_single_quoted(trimmed, line_num, lines)
    if trimmed[0] == '"':
        return _parse_double_quoted(trimmed, line_num, lines)
    return _parse_unquoted(trimmed)


def _parse_single_quoted(value_start: str, line_num: int, lines: _Lines) -> str:
    parts: list[str] = []
    remaining = value_start[1:]

    while True:
        close = remaining.find("'")
        if close < 0:
            parts.append(remaining)
            following = next(lines, None)
            if following is None:
                raise UnterminatedQuoteError(line_num, "'")
            parts.append("\n")
            remaining = following[1]
            continue

        parts.append(remaining[:close])
        tail = remaining[close + 1:]
        # POSIX concatenation: 'text1'\''text2'
        if tail.startswith("\\''"):
            parts.append("'")
            remaining = tail[3:]
            continue
        if tail:
            parts.append(_parse_unquoted(tail))
        return "".join(parts)


def _parse_double_quoted(value_start: str, line_num: int, lines: _Lines) -> str:
    parts: list[str] = []
    remaining = value_start[1:]

    while True:
        chars = iter(enumerate(remaining))
        for idx, ch in chars:
            if ch == '"':
                tail = remaining[idx + 1:]
                if tail:
                    parts.append(_parse_unquoted(tail))
                return "".join(parts)
            if ch == "\\":
                escaped = next(chars, None)
                if escaped is None:
                    # A backslash ending a line inside quotes is kept as is.
                    parts.append("\\")
                else:
                    char = escaped[1]
                    parts.append(_DOUBLE_QUOTED_ESCAPES.get(char, "\\" + char))
            else:
                parts.append(ch)

        following = next(lines, None)
        if following is None:
            raise UnterminatedQuoteError(line_num, '"')
        parts.append("\n")
        remaining = following[1]


def _parse_unquoted(value_start: str) -> str:
    match = _INLINE_COMMENT_RE.search(value_start)
    value = value_start[: match.start()] if match else value_start
    return _decode_escapes(value.rstrip())


def _decode_escapes(text: str) -> str:
    return _UNQUOTED_ESCAPE_RE.sub(
        lambda m: _UNQUOTED_ESCAPES.get(m.group(1), m.group(0)), text
    )