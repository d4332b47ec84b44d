"""
Plaintext Parser: Turns decrypted dotenv output into an EnvironmentSet.

Accepted line shapes:
    NAME=VALUE      assignment; VALUE is everything after the first '=',
                    kept verbatim (may be empty, may contain '=')
    # comment       skipped (leading whitespace allowed)
    <blank>         skipped (empty or whitespace-only)

Anything else raises MalformedLineError. Parsing is all-or-nothing: the
set is only returned once every line has been accepted.

Security Note:
    NAME must be a shell identifier and VALUE must not contain NUL, since
    rendered output is later evaluated by a shell.
"""
import re
import logging
from typing import NamedTuple

from ..environment import EnvironmentSet
from .exceptions import MalformedLineError

logger = logging.getLogger("encenv.loader")

_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EnvironmentLine(NamedTuple):
    """One decoded ``NAME=VALUE`` record."""
    name: str
    value: str


def is_valid_name(name: str) -> bool:
    """True when ``name`` can be assigned by a POSIX or fish shell."""
    return bool(_NAME_PATTERN.match(name))


def _split_lines(text: str) -> list[str]:
    """Split on '\\n', dropping a '\\r' that belongs to a CRLF terminator."""
    lines = text.split("\n")
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def parse_line(line: str, lineno: int | None = None) -> EnvironmentLine | None:
    """Parse a single plaintext line.

    Args:
        line: Line content without its terminator.
        lineno: 1-based line number, used in error messages.

    Returns:
        EnvironmentLine, or None for blank and comment lines.

    Raises:
        MalformedLineError: If the line is not a valid assignment.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    if "=" not in line:
        raise MalformedLineError(line, lineno)
    name, value = line.split("=", 1)
    name = name.strip()
    if not name:
        raise MalformedLineError(line, lineno, reason="empty variable name")
    if not is_valid_name(name):
        raise MalformedLineError(
            line, lineno, reason=f"invalid variable name {name!r}"
        )
    if "\x00" in value:
        raise MalformedLineError(line, lineno, reason="NUL byte in value")
    return EnvironmentLine(name, value)


def parse_plaintext(text: str) -> EnvironmentSet:
    """Parse decrypted plaintext into a fresh EnvironmentSet.

    Duplicate names keep their first position and take the last value.

    Raises:
        MalformedLineError: On the first line that is not blank, a comment
            or a valid assignment.
    """
    env = EnvironmentSet()
    duplicates = 0
    for lineno, line in enumerate(_split_lines(text), start=1):
        record = parse_line(line, lineno)
        if record is None:
            continue
        if record.name in env:
            duplicates += 1
        env[record.name] = record.value
    if duplicates:
        logger.debug("Collapsed %d duplicate assignment(s)", duplicates)
    return env


def parse_bytes(data: bytes) -> EnvironmentSet:
    """Decode provider output as UTF-8 and parse it.

    Raises:
        MalformedLineError: If the output is not valid UTF-8 or any line
            is malformed.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise MalformedLineError(
            f"<{len(data)} bytes>", reason=f"output is not UTF-8: {err.reason}"
        ) from err
    return parse_plaintext(text)
