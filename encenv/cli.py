"""
Command line interface.

Usage:
    eval "$(encenv)"                       # export .env.enc of the current dir
    eval "$(encenv --skip-missing)"        # same, but fine without secrets
    encenv export --shell fish | source
    encenv export --format json
    encenv exec -- ./manage.py runserver   # run a command with the variables

stdout only ever carries evaluable output; diagnostics go to stderr.

Exit codes:
    0  success (or no encrypted file with --skip-missing)
    2  usage or configuration error
    3  no encrypted file found
    4  decryption failed
    5  decrypted content is malformed
    126 exec: the command exists but cannot be executed
    127 exec: the command was not found
"""
import os
import sys
import logging
import argparse
import subprocess
from typing import Optional
from collections.abc import Sequence

from pydantic import ValidationError

from .version import __version__
from .environment import EnvironmentSet
from .loader import (
    EnvLoader,
    LoaderConfig,
    NotFoundError,
    DecryptionError,
    MalformedLineError,
    render,
    render_json,
)
from .loader.render import SHELLS

logger = logging.getLogger("encenv.cli")

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_NOT_FOUND = 3
EXIT_DECRYPTION = 4
EXIT_MALFORMED = 5
EXIT_CANNOT_EXECUTE = 126
EXIT_COMMAND_NOT_FOUND = 127

SUBCOMMANDS = ("export", "exec")
# Options that consume the following argument.
_VALUE_OPTIONS = ("-C", "--dir", "-f", "--file", "--shell", "--format")


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-C", "--dir",
        default=None,
        help="Directory holding the encrypted file (default: current directory).",
    )
    parser.add_argument(
        "-f", "--file",
        default=None,
        help="Encrypted file name inside --dir (default: $ENCENV_FILENAME or .env.enc).",
    )
    parser.add_argument(
        "--skip-missing",
        action="store_true",
        help="Exit 0 with a notice on stderr when there is no encrypted file.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug information to stderr (never values).",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="encenv",
        description="Decrypt an encrypted environment file and emit shell assignments.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    export = sub.add_parser("export", help="Print assignment statements (default).")
    _add_common(export)
    export.add_argument(
        "--shell",
        choices=sorted(SHELLS),
        default="posix",
        help="Shell dialect of the statements (default: posix).",
    )
    export.add_argument(
        "--format",
        choices=("shell", "json"),
        default="shell",
        help="Emit shell statements or a single JSON object.",
    )

    run = sub.add_parser("exec", help="Run a command with the decrypted variables.")
    _add_common(run)
    run.add_argument(
        "--no-override",
        action="store_true",
        help="Keep variables already set in the environment.",
    )
    run.add_argument("argv", nargs=argparse.REMAINDER, help="Command to run, after --.")
    return parser


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if verbose else logging.WARNING,
        format="encenv: %(levelname)s: %(message)s",
    )


def _load(args: argparse.Namespace) -> Optional[EnvironmentSet]:
    """Load variables, returning None when the file is missing and skipping is allowed."""
    config = LoaderConfig.from_env(filename=args.file)
    loader = EnvLoader(config=config)
    try:
        return loader.load(args.dir)
    except NotFoundError as err:
        if args.skip_missing:
            print(f"encenv: {err}; skipping", file=sys.stderr)
            return None
        raise


def _export(args: argparse.Namespace) -> int:
    env = _load(args)
    if env is None:
        return EXIT_OK
    if args.format == "json":
        sys.stdout.write(render_json(env).decode("utf-8") + "\n")
    else:
        for line in render(env, shell=args.shell):
            sys.stdout.write(line + "\n")
    sys.stdout.flush()
    return EXIT_OK


def _exec(args: argparse.Namespace) -> int:
    argv = list(args.argv)
    if argv and argv[0] == "--":
        argv = argv[1:]
    if not argv:
        print("encenv: exec requires a command", file=sys.stderr)
        return EXIT_USAGE
    env = _load(args)
    child_env = dict(os.environ)
    if env is not None:
        written = env.apply(child_env, override=not args.no_override)
        logger.debug("Passing %d variable(s) to %s", len(written), argv[0])
    try:
        return subprocess.run(argv, env=child_env, check=False).returncode
    except FileNotFoundError:
        print(f"encenv: command not found: {argv[0]}", file=sys.stderr)
        return EXIT_COMMAND_NOT_FOUND
    except OSError as err:
        print(f"encenv: cannot execute {argv[0]}: {err}", file=sys.stderr)
        return EXIT_CANNOT_EXECUTE


def _with_subcommand(argv: list[str]) -> list[str]:
    """Put the subcommand first, inserting ``export`` when none is given.

    Options may precede the subcommand, e.g. ``encenv -v exec -- env``.
    """
    if argv and argv[0] in ("-h", "--help", "--version"):
        return argv
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--" or not arg.startswith("-"):
            break
        i += 2 if arg in _VALUE_OPTIONS else 1
    if i < len(argv) and argv[i] in SUBCOMMANDS:
        return [argv[i], *argv[:i], *argv[i + 1:]]
    return ["export", *argv]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point. Returns the process exit code."""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    argv = _with_subcommand(argv)
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    handler = _exec if args.command == "exec" else _export
    try:
        return handler(args)
    except ValidationError as err:
        print(f"encenv: invalid configuration: {err}", file=sys.stderr)
        return EXIT_USAGE
    except NotFoundError as err:
        print(f"encenv: {err}", file=sys.stderr)
        return EXIT_NOT_FOUND
    except DecryptionError as err:
        print(f"encenv: {err}", file=sys.stderr)
        return EXIT_DECRYPTION
    except MalformedLineError as err:
        print(f"encenv: {err}", file=sys.stderr)
        return EXIT_MALFORMED


if __name__ == "__main__":
    sys.exit(main())
