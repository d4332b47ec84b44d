"""
Renderers: Turn an EnvironmentSet into text a caller can consume.

Shell dialects:
    posix   export NAME='value'      (sh, bash, zsh, dash)
    fish    set -gx NAME 'value'

Values are always single-quoted so that spaces, quotes, '$', backticks,
backslashes and newlines survive evaluation byte-for-byte.
"""
import shlex
from collections.abc import Callable, Mapping

import orjson

from .parser import is_valid_name


def _quote_fish(value: str) -> str:
    """Quote for fish, where only \\\\ and \\' are special inside '...'."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


def _posix(name: str, value: str) -> str:
    return f"export {name}={shlex.quote(value)}"


def _fish(name: str, value: str) -> str:
    return f"set -gx {name} {_quote_fish(value)}"


SHELLS: dict[str, Callable[[str, str], str]] = {
    "posix": _posix,
    "fish": _fish,
}


def render(env: Mapping[str, str], shell: str = "posix") -> list[str]:
    """Produce one assignment statement per variable, in set order.

    Args:
        env: Variables to render (normally an EnvironmentSet).
        shell: Target dialect, one of ``SHELLS``.

    Raises:
        ValueError: If ``shell`` is not supported or a name is not a
            shell identifier.
    """
    try:
        statement = SHELLS[shell]
    except KeyError:
        raise ValueError(
            f"Unsupported shell dialect {shell!r} (choose from {', '.join(SHELLS)})"
        ) from None
    lines = []
    for name, value in env.items():
        if not is_valid_name(name):
            raise ValueError(f"Cannot render invalid variable name {name!r}")
        lines.append(statement(name, value))
    return lines


def render_json(env: Mapping[str, str]) -> bytes:
    """Serialize the variables as a single JSON object, keys in set order."""
    return orjson.dumps(dict(env))
