# dotenvpp

Parse `.env` files, expand `${VAR}` references, and load layered
configuration into the process environment. No third-party dependencies.

## Install

```
pip install dotenvpp
```

## Library use

```python
from dotenvpp import loader

loader.load()                          # .env, then .env.local
db_url = loader.var("DATABASE_URL")
```

The loading functions live in `dotenvpp.loader`:

| Function | What it does |
|---|---|
| `load()` | Load `.env` and `.env.local` from the current directory; existing variables are kept |
| `load_override()` | Same, but file values replace existing variables |
| `load_with_env(name)` | Load `.env` < `.env.{name}` < `.env.local` < `.env.{name}.local`, keeping existing variables |
| `load_with_env_override(name)` | Same, replacing existing variables |
| `from_layered_env(name=None)` | Resolve the layered stack without touching the environment |
| `from_path(path)` / `from_path_override(path)` | Load one file, keeping or replacing existing variables |
| `from_path_iter(path)` | Resolve one file and return an iterator over its pairs without setting anything |
| `from_read(reader)` | Parse and resolve content from a text or binary file-like object (bytes are read as UTF-8) |
| `var(key)` | Read one variable |
| `env_vars()` | Iterate over all environment variables as `(str, str)` pairs |
| `env_vars_os()` | Iterate over all environment variables without Unicode conversion (bytes where the platform supports it) |
| `layered_paths(directory, name=None)` | The layered file paths, lowest precedence first |
| `version()` | The package version |

Loading functions return a list of `EnvPair` objects (frozen dataclasses with
`key`, `value` and `line`). When a key appears more than once, in one file or
across layers, the last assignment wins and keeps the position of the first.
A layered load needs at least one of the files to exist; otherwise it raises
`FileNotFoundError`.

```python
import io
from dotenvpp.loader import from_read

pairs = from_read(io.StringIO("HOST=localhost\nPORT=8080\nURL=http://${HOST}:${PORT}/api\n"))
for pair in pairs:
    print(pair.key, "=", pair.value)
```

### Lower-level pieces

- `dotenvpp.parser.parse(text)` turns `.env` text into `EnvPair` objects with
  values unexpanded; `dotenvpp.parser.is_valid_key(key)` checks a key name.
- `dotenvpp.interpolation.merge_entries(groups)` merges `(source, pairs)`
  groups into `LoadedEntry` objects, and
  `dotenvpp.interpolation.resolve_entries(entries, environ=None)` expands
  them. Pass a mapping as `environ` to look names up there instead of in a
  snapshot of the process environment. `Resolver`, `parse_expansion`,
  `take_expansion` and `is_valid_var_name` are available for finer control.

## Syntax

- `KEY=value`, with an optional `export ` prefix
- `# comments`, whole-line or after a space or tab in unquoted values
- `'single quoted'` values are literal and may span lines; `'it'\''s'` gives `it's`
- `"double quoted"` values decode `\n \t \r \\ \" \' \$ \  \#`, keep unknown
  escapes as written, and may span lines
- Unquoted values are trimmed and decode `\n \\ \" \' \$ \  \#`
- A leading UTF-8 byte order mark is ignored; `\r\n` line endings are accepted

Keys are ASCII letters, digits, underscores and dots, and start with a letter
or underscore.

## Interpolation

| Form | Result |
|---|---|
| `${VAR}` | value of `VAR`, or empty |
| `${VAR:-default}` | `default` if unset or empty |
| `${VAR-default}` | `default` if unset |
| `${VAR:+alt}` | `alt` if set and non-empty, else empty |
| `${VAR+alt}` | `alt` if set, else empty |
| `${VAR:?message}` | error if unset or empty |
| `${VAR?message}` | error if unset |
| `$$` | a literal `$` |

Defaults, alternatives and messages may themselves contain `${...}`.
References are looked up among the loaded keys first, then in the process
environment. Cycles such as `A=${B}` / `B=${A}` raise `InterpolationError`.

## Errors

Errors are in `dotenvpp.errors` and derive from `DotenvError`:

- `ParseError` (also a `ValueError`), raised as one of
  `MissingSeparatorError`, `EmptyKeyError`, `InvalidKeyError` or
  `UnterminatedQuoteError`, each with the 1-based `line`. The text of a line
  missing its `=` is kept in `content` but never shown in the message.
- `InterpolationError`, with `key`, `line`, `source` (the file, when known) and
  `kind`: one of `MissingRequiredVariable`, `CircularReference` or
  `InvalidSyntax`.
- `NotPresentError` (also a `KeyError`) and `NotUnicodeError` (also a
  `ValueError`) from `var()`.

Missing or unreadable files raise the usual `OSError` subclasses.

## Command line

```
dotenvpp check --file config.env
dotenvpp check --env production
dotenvpp run --env production -- python app.py
dotenvpp --version
```

`check` resolves a file (`-f/--file`) or the layered stack in the current
directory (`-e/--env` picks the environment) and reports how many variables it
found, exiting with 1 on any error. `run` loads the variables into the
environment, keeping ones already set, and starts the command, exiting with
its exit status (128 plus the signal number if it was killed by a signal, 1 if
loading or starting it failed). `--file` and `--env` cannot be used together.