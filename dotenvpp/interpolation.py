"""Expansion of `${VAR}` references across merged `.env` entries."""

from __future__ import annotations

import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from .errors import (
    CircularReference,
    InterpolationError,
    InvalidSyntax,
    MissingRequiredVariable,
)
from .parser import EnvPair

__all__ = [
    "LoadedEntry",
    "ExpansionMode",
    "Expansion",
    "Resolver",
    "take_expansion",
    "parse_expansion",
    "is_valid_var_name",
    "merge_entries",
    "resolve_entries",
]

_OPERATOR_CHARS = frozenset(":-?+")

# Longer operators first so that `:-` wins over `-`.
_OPERATORS: Tuple[Tuple[str, "ExpansionMode"], ...] = ()


@dataclass(frozen=True)
class LoadedEntry:
    """An unexpanded assignment together with where it came from."""

    key: str
    raw_value: str
    line: int
    source: Optional[Path] = None


class ExpansionMode(enum.Enum):
    """The shell-style operator used inside `${...}`."""

    BASIC = enum.auto()
    DEFAULT_IF_UNSET_OR_EMPTY = enum.auto()
    DEFAULT_IF_UNSET = enum.auto()
    ALTERNATIVE_IF_SET_AND_NOT_EMPTY = enum.auto()
    ALTERNATIVE_IF_SET = enum.auto()
    REQUIRED_IF_UNSET_OR_EMPTY = enum.auto()
    REQUIRED_IF_UNSET = enum.auto()


_OPERATORS = (
    (":-", ExpansionMode.DEFAULT_IF_UNSET_OR_EMPTY),
    (":+", ExpansionMode.ALTERNATIVE_IF_SET_AND_NOT_EMPTY),
    (":?", ExpansionMode.REQUIRED_IF_UNSET_OR_EMPTY),
    ("-", ExpansionMode.DEFAULT_IF_UNSET),
    ("+", ExpansionMode.ALTERNATIVE_IF_SET),
    ("?", ExpansionMode.REQUIRED_IF_UNSET),
)


@dataclass(frozen=True)
class Expansion:
    """A parsed `${...}` expression: variable name, operator and operand."""

    name: str
    mode: ExpansionMode
    suffix: str = ""


def is_valid_var_name(name: str) -> bool:
    """True for ASCII letters, digits, `_` and `.`, starting with a letter or `_`."""
    if not name:
        return False
    first = name[0]
    if not (first.isascii() and (first.isalpha() or first == "_")):
        return False
    return all(ch.isascii() and (ch.isalnum() or ch in "_.") for ch in name[1:])


def take_expansion(raw: str, start: int) -> Tuple[str, int]:
    """Return the text inside the `${...}` at `start` and the index just past it.

    Nested `${` raise the depth. Raises ValueError if no closing `}` is found.
    """
    depth = 1
    cursor = start + 2
    while cursor < len(raw):
        if raw.startswith("${", cursor):
            depth += 1
            cursor += 2
            continue
        if raw[cursor] == "}":
            depth -= 1
            if depth == 0:
                return raw[start + 2:cursor], cursor + 1
        cursor += 1
    raise ValueError("missing closing `}`")


def parse_expansion(expression: str) -> Expansion:
    """Split the inside of `${...}` into name, operator and operand.

    Raises ValueError naming the problem when the expression is invalid.
    """
    if not expression:
        raise ValueError("variable name is empty")

    name_end = next(
        (idx for idx, ch in enumerate(expression) if ch in _OPERATOR_CHARS),
        len(expression),
    )
    name = expression[:name_end]
    if not is_valid_var_name(name):
        raise ValueError("variable name is invalid")

    suffix = expression[name_end:]
    if not suffix:
        return Expansion(name, ExpansionMode.BASIC, "")

    for operator, mode in _OPERATORS:
        if suffix.startswith(operator):
            return Expansion(name, mode, suffix[len(operator):])

    raise ValueError("unsupported interpolation operator")


def _environment_snapshot() -> dict[str, str]:
    snapshot = {}
    for key, value in os.environ.items():
        try:
            key.encode("utf-8")
            value.encode("utf-8")
        except UnicodeEncodeError:
            continue
        snapshot[key] = value
    return snapshot


class Resolver:
    """Expands every entry, looking up names among entries first, then the environment."""

    def __init__(
        self,
        entries: Sequence[LoadedEntry],
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.entries = list(entries)
        self._index = {entry.key: idx for idx, entry in enumerate(self.entries)}
        self._environ = dict(environ) if environ is not None else _environment_snapshot()
        self._cache: dict[int, str] = {}
        self._stack: list[int] = []

    def resolve_all(self) -> list[EnvPair]:
        """Return the expanded pairs in entry order."""
        return [
            EnvPair(key=entry.key, value=self._resolve_entry(idx), line=entry.line)
            for idx, entry in enumerate(self.entries)
        ]

    def _resolve_entry(self, idx: int) -> str:
        cached = self._cache.get(idx)
        if cached is not None:
            return cached

        if idx in self._stack:
            position = self._stack.index(idx)
            cycle = [self.entries[active].key for active in self._stack[position:]]
            cycle.append(self.entries[idx].key)
            raise self._error(idx, CircularReference(tuple(cycle)))

        self._stack.append(idx)
        try:
            value = self._expand_text(idx, self.entries[idx].raw_value)
        finally:
            self._stack.pop()
        self._cache[idx] = value
        return value

    def _expand_text(self, idx: int, raw: str) -> str:
        parts: list[str] = []
        cursor = 0
        while cursor < len(raw):
            if raw.startswith("$$", cursor):
                parts.append("$")
                cursor += 2
            elif raw.startswith("${", cursor):
                try:
                    inner, cursor_after = take_expansion(raw, cursor)
                except ValueError as exc:
                    raise self._syntax_error(idx, raw[cursor + 2:], str(exc)) from None
                parts.append(self._expand_expression(idx, inner))
                cursor = cursor_after
            else:
                parts.append(raw[cursor])
                cursor += 1
        return "".join(parts)

    def _expand_expression(self, idx: int, expression: str) -> str:
        try:
            expansion = parse_expansion(expression)
        except ValueError as exc:
            raise self._syntax_error(idx, expression, str(exc)) from None

        value = self._lookup(expansion.name)
        mode = expansion.mode

        if mode is ExpansionMode.BASIC:
            return value or ""
        if mode is ExpansionMode.DEFAULT_IF_UNSET_OR_EMPTY:
            return value if value else self._expand_text(idx, expansion.suffix)
        if mode is ExpansionMode.DEFAULT_IF_UNSET:
            return value if value is not None else self._expand_text(idx, expansion.suffix)
        if mode is ExpansionMode.ALTERNATIVE_IF_SET_AND_NOT_EMPTY:
            return self._expand_text(idx, expansion.suffix) if value else ""
        if mode is ExpansionMode.ALTERNATIVE_IF_SET:
            return self._expand_text(idx, expansion.suffix) if value is not None else ""
        if mode is ExpansionMode.REQUIRED_IF_UNSET_OR_EMPTY:
            if value:
                return value
            raise self._missing(idx, expansion)
        # REQUIRED_IF_UNSET
        if value is not None:
            return value
        raise self._missing(idx, expansion)

    def _missing(self, idx: int, expansion: Expansion) -> InterpolationError:
        message = self._expand_text(idx, expansion.suffix) if expansion.suffix else ""
        return self._error(idx, MissingRequiredVariable(expansion.name, message))

    def _lookup(self, name: str) -> Optional[str]:
        idx = self._index.get(name)
        if idx is not None:
            return self._resolve_entry(idx)
        return self._environ.get(name)

    def _error(self, idx, kind) -> InterpolationError:
        entry = self.entries[idx]
        return InterpolationError(entry.key, entry.line, kind, entry.source)

    def _syntax_error(self, idx: int, expression: str, reason: str) -> InterpolationError:
        return self._error(idx, InvalidSyntax(expression, reason))


def merge_entries(
    groups: Iterable[Tuple[Optional[Path], Iterable[EnvPair]]],
) -> list[LoadedEntry]:
    """Merge groups of pairs; a later assignment replaces an earlier one in place."""
    merged: list[LoadedEntry] = []
    positions: dict[str, int] = {}
    for source, pairs in groups:
        for pair in pairs:
            entry = LoadedEntry(pair.key, pair.value, pair.line, source)
            position = positions.get(entry.key)
            if position is None:
                positions[entry.key] = len(merged)
                merged.append(entry)
            else:
                merged[position] = entry
    return merged


def resolve_entries(
    entries: Sequence[LoadedEntry],
    environ: Optional[Mapping[str, str]] = None,
) -> list[EnvPair]:
    """Expand all entries; `environ` defaults to a snapshot of the process environment."""
    return Resolver(entries, environ).resolve_all()