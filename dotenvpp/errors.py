"""Exception hierarchy for parsing, interpolating and reading environment files."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


class DotenvError(Exception):
    """Base class for every error raised by this package."""

    _prefix = ""

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self._prefix}{self.detail}"


class ParseError(DotenvError, ValueError):
    """The `.env` content has a syntax error."""

    _prefix = "parse error: "

    def __init__(self, line: int, detail: str) -> None:
        super().__init__(detail)
        self.line = line


class MissingSeparatorError(ParseError):
    """A line has no `=` between key and value."""

    def __init__(self, line: int, content: str) -> None:
        # The offending content is kept for callers but never rendered,
        # since it may hold a secret value.
        super().__init__(line, f"line {line}: missing `=` separator")
        self.content = content


class EmptyKeyError(ParseError):
    """Nothing precedes the `=` on a line."""

    def __init__(self, line: int) -> None:
        super().__init__(line, f"line {line}: key is empty")


class InvalidKeyError(ParseError):
    """A key contains characters that are not allowed."""

    def __init__(self, line: int, key: str) -> None:
        super().__init__(
            line,
            f"line {line}: invalid key `{key}` — keys must be "
            "ASCII alphanumeric, underscores, or dots",
        )
        self.key = key


class UnterminatedQuoteError(ParseError):
    """A quoted value never reaches its closing quote."""

    def __init__(self, line: int, quote: str) -> None:
        super().__init__(line, f"line {line}: unterminated {quote}-quoted value")
        self.quote = quote


@dataclass(frozen=True)
class MissingRequiredVariable:
    """A `${VAR:?message}` or `${VAR?message}` expansion failed."""

    variable: str
    message: str = ""

    def __str__(self) -> str:
        text = f"variable `{self.variable}` is required"
        if self.message:
            text += f": {self.message}"
        return text


@dataclass(frozen=True)
class CircularReference:
    """Expanding values led back to a key already being expanded."""

    cycle: tuple[str, ...]

    def __str__(self) -> str:
        return f"circular reference detected: {' -> '.join(self.cycle)}"


@dataclass(frozen=True)
class InvalidSyntax:
    """A `${...}` expression could not be understood."""

    expression: str
    reason: str

    def __str__(self) -> str:
        return f"invalid `${{{self.expression}}}` expression: {self.reason}"


class InterpolationError(DotenvError):
    """Expanding `${VAR}` references in a value failed."""

    _prefix = "interpolation error: "

    def __init__(
        self,
        key: str,
        line: int,
        kind: Union[MissingRequiredVariable, CircularReference, InvalidSyntax],
        source: Optional[Path] = None,
    ) -> None:
        if source is not None:
            location = f"{source}:{line} for key `{key}`"
        else:
            location = f"line {line} for key `{key}`"
        super().__init__(f"{location}: {kind}")
        self.key = key
        self.line = line
        self.kind = kind
        self.source = source


class NotPresentError(DotenvError, KeyError):
    """An environment variable is not set."""

    def __init__(self, key: str) -> None:
        super().__init__(f"environment variable `{key}` not found")
        self.key = key


class NotUnicodeError(DotenvError, ValueError):
    """An environment variable holds bytes that are not valid Unicode."""

    def __init__(self, key: str) -> None:
        super().__init__(f"environment variable `{key}` contains invalid unicode")
        self.key = key