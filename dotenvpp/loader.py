"""Layered loading of `.env` files and access to the process environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import IO, Iterable, Iterator, Optional, Sequence, Tuple, Union

from .errors import NotPresentError, NotUnicodeError
from .interpolation import LoadedEntry, merge_entries, resolve_entries
from .parser import EnvPair, parse

__all__ = [
    "load",
    "load_override",
    "load_with_env",
    "load_with_env_override",
    "from_layered_env",
    "from_path",
    "from_path_override",
    "from_path_iter",
    "from_read",
    "var",
    "env_vars",
    "env_vars_os",
    "version",
    "layered_paths",
]

_VERSION = "0.0.3"

PathLike = Union[str, "os.PathLike[str]"]


def load() -> list[EnvPair]:
    """Load `.env` and `.env.local` from the current directory.

    Variables already present in the process environment are kept.
    """
    pairs = from_layered_env(None)
    _apply_pairs(pairs, override_existing=False)
    return pairs


def load_override() -> list[EnvPair]:
    """Load `.env` and `.env.local`, replacing existing process variables."""
    pairs = from_layered_env(None)
    _apply_pairs(pairs, override_existing=True)
    return pairs


def load_with_env(environment: str) -> list[EnvPair]:
    """Load the layered files for a named environment, keeping existing variables.

    Precedence: `.env` < `.env.{ENV}` < `.env.local` < `.env.{ENV}.local`.
    """
    pairs = from_layered_env(environment)
    _apply_pairs(pairs, override_existing=False)
    return pairs


def load_with_env_override(environment: str) -> list[EnvPair]:
    """Load the layered files for a named environment, replacing existing variables."""
    pairs = from_layered_env(environment)
    _apply_pairs(pairs, override_existing=True)
    return pairs


def from_layered_env(environment: Optional[str] = None) -> list[EnvPair]:
    """Resolve the layered files in the current directory without touching the environment."""
    return _resolve_layered_from_dir(Path("."), environment)


def from_path(path: PathLike) -> list[EnvPair]:
    """Load one file, keeping variables already in the environment."""
    pairs = resolve_entries(_read_entries(Path(path)))
    _apply_pairs(pairs, override_existing=False)
    return pairs


def from_path_override(path: PathLike) -> list[EnvPair]:
    """Load one file, replacing variables already in the environment."""
    pairs = resolve_entries(_read_entries(Path(path)))
    _apply_pairs(pairs, override_existing=True)
    return pairs


def from_path_iter(path: PathLike) -> Iterator[EnvPair]:
    """Resolve one file and iterate over its pairs without setting anything."""
    return iter(resolve_entries(_read_entries(Path(path))))


def from_read(reader: IO) -> list[EnvPair]:
    """Parse and resolve `.env` content from a readable text or binary stream.

    Duplicate keys are merged, last assignment wins, before interpolation.
    """
    content = reader.read()
    if isinstance(content, (bytes, bytearray)):
        content = bytes(content).decode("utf-8")
    return resolve_entries(merge_entries([(None, parse(content))]))


def var(key: str) -> str:
    """Return the value of one environment variable."""
    value = os.environ.get(key)
    if value is None:
        raise NotPresentError(key)
    if not _is_unicode(value):
        raise NotUnicodeError(key)
    return value


def env_vars() -> Iterator[Tuple[str, str]]:
    """Iterate over all environment variables as text pairs."""
    for key, value in list(os.environ.items()):
        if not (_is_unicode(key) and _is_unicode(value)):
            raise NotUnicodeError(key)
        yield key, value


def env_vars_os() -> Iterator[Tuple[Union[bytes, str], Union[bytes, str]]]:
    """Iterate over all environment variables without Unicode conversion."""
    if os.supports_bytes_environ:
        return iter(list(os.environb.items()))
    return iter(list(os.environ.items()))


def version() -> str:
    """Return the package version."""
    return _VERSION


def layered_paths(directory: PathLike, environment: Optional[str] = None) -> list[Path]:
    """Return the layered file paths in increasing order of precedence."""
    base = Path(directory)
    paths = [base / ".env"]
    if environment:
        paths.append(base / f".env.{environment}")
    paths.append(base / ".env.local")
    if environment:
        paths.append(base / f".env.{environment}.local")
    return paths


def _is_unicode(text: str) -> bool:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def _apply_pairs(pairs: Iterable[EnvPair], override_existing: bool) -> None:
    existing = frozenset() if override_existing else frozenset(os.environ)
    for pair in pairs:
        if pair.key not in existing:
            os.environ[pair.key] = pair.value


def _read_text(path: Path) -> str:
    return path.read_bytes().decode("utf-8")


def _read_entries(path: Path) -> list[LoadedEntry]:
    return merge_entries([(path, parse(_read_text(path)))])


def _maybe_parse(path: Path) -> Optional[list[EnvPair]]:
    try:
        text = _read_text(path)
    except FileNotFoundError:
        return None
    return parse(text)


def _resolve_layered_from_dir(directory: Path, environment: Optional[str]) -> list[EnvPair]:
    paths: Sequence[Path] = layered_paths(directory, environment)
    groups = []
    for path in paths:
        pairs = _maybe_parse(path)
        if pairs is not None:
            groups.append((path, pairs))

    if not groups:
        missing = paths[0] if paths else directory / ".env"
        raise FileNotFoundError(f"no environment files found starting at {missing}")

    return resolve_entries(merge_entries(groups))