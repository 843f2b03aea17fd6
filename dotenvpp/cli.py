"""Command line tool: check `.env` files or run a command with them loaded."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import loader

__all__ = ["check_target", "load_and_run", "describe_target", "main"]


class _RunError(Exception):
    """A failure while loading variables or starting the command."""


class _MissingCommand(_RunError):
    pass


class _LoadFailed(_RunError):
    pass


class _ExecuteFailed(_RunError):
    def __init__(self, program: str, cause: OSError) -> None:
        super().__init__(f"Failed to execute {program}: {cause}")
        self.program = program
        self.cause = cause


def check_target(file: Optional[Path], environment: Optional[str]) -> int:
    """Resolve a file or the layered stack and return how many variables it holds."""
    if file is not None:
        return sum(1 for _ in loader.from_path_iter(file))
    return len(loader.from_layered_env(environment))


def load_and_run(
    file: Optional[Path], environment: Optional[str], command: Sequence[str]
) -> int:
    """Load variables into the environment, run `command`, and return its exit code."""
    if not command:
        raise _MissingCommand("No command specified")

    try:
        if file is not None:
            loader.from_path(file)
        elif environment is not None:
            loader.load_with_env(environment)
        else:
            loader.load()
    except (loader.NotPresentError, OSError, ValueError, Exception) as exc:
        raise _LoadFailed(str(exc)) from exc

    program, *args = command
    try:
        completed = subprocess.run([program, *args])
    except OSError as exc:
        raise _ExecuteFailed(program, exc) from exc
    return _exit_code(completed.returncode)


def describe_target(file: Optional[Path], environment: Optional[str]) -> str:
    """Describe what was checked or loaded, for messages."""
    if file is not None:
        return str(file)
    if environment is not None:
        return f"layered environment for `{environment}`"
    return "layered environment"


def _exit_code(returncode: int) -> int:
    # A negative code means the child was killed by that signal.
    if returncode < 0:
        return 128 - returncode
    return returncode


def _build_parser() -> argparse.ArgumentParser:
    source = argparse.ArgumentParser(add_help=False)
    group = source.add_mutually_exclusive_group()
    group.add_argument(
        "-f", "--file", type=Path, metavar="FILE",
        help="Path to a specific .env file to load or check.",
    )
    group.add_argument(
        "-e", "--env", dest="environment", metavar="ENV",
        help="Environment name for layered loading, such as `development` or `production`.",
    )

    parser = argparse.ArgumentParser(
        prog="dotenvpp",
        description="DotenvPP CLI — next-generation environment configuration.",
    )
    parser.add_argument("--version", action="version", version=f"dotenvpp {loader.version()}")
    commands = parser.add_subparsers(dest="subcommand", required=True)

    commands.add_parser(
        "check", parents=[source],
        help="Validate a specific file or the layered environment stack.",
    )
    run = commands.add_parser(
        "run", parents=[source], help="Load .env variables and run a command."
    )
    run.add_argument(
        "command", nargs=argparse.REMAINDER, help="The command and its arguments to run."
    )
    run.set_defaults(run_parser=run)
    return parser


def _check(file: Optional[Path], environment: Optional[str]) -> int:
    target = describe_target(file, environment)
    try:
        count = check_target(file, environment)
    except Exception as exc:  # any load failure is reported, not raised
        print(f"❌ {target}: {exc}", file=sys.stderr)
        return 1
    plural = "" if count == 1 else "s"
    print(f"✅ {target} — {count} variable{plural} parsed successfully")
    return 0


def _run(file: Optional[Path], environment: Optional[str], command: Sequence[str]) -> int:
    try:
        return load_and_run(file, environment, command)
    except _MissingCommand:
        print("❌ No command specified", file=sys.stderr)
    except _LoadFailed as exc:
        target = describe_target(file, environment)
        print(f"❌ Failed to load {target}: {exc}", file=sys.stderr)
    except _ExecuteFailed as exc:
        print(f"❌ {exc}", file=sys.stderr)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line tool and return the process exit code."""
    args = _build_parser().parse_args(argv)

    if args.subcommand == "check":
        return _check(args.file, args.environment)

    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    if not command:
        args.run_parser.error("the following arguments are required: command")
    return _run(args.file, args.environment, command)


if __name__ == "__main__":
    sys.exit(main())