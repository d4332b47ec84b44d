"""
Loader Exceptions: Failure classes surfaced by ``EnvLoader.load()``.

``NotFoundError`` is the only benign outcome: a directory without an
encrypted file simply has no secrets. Every ``DecryptionError`` and
``MalformedLineError`` must abort the calling workflow.

Security Note:
    Exception messages carry paths, variable names and provider stderr.
    Only MalformedLineError quotes decrypted text: the offending line.
"""
from pathlib import Path
from typing import Optional


class EncEnvError(Exception):
    """Base class for every error raised by encenv."""


class NotFoundError(EncEnvError):
    """No encrypted environment file exists in the working directory."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"No encrypted environment file at {path}")


class DecryptionError(EncEnvError):
    """The decryption provider failed to produce plaintext.

    Attributes:
        path: Encrypted file that was being decrypted.
        stderr: Diagnostic text reported by the provider (may be empty).
        returncode: Provider exit status, when it ran at all.
    """

    def __init__(
        self,
        path: Path,
        stderr: str = "",
        returncode: Optional[int] = None,
        reason: str = "decryption failed",
    ):
        self.path = path
        self.stderr = stderr
        self.returncode = returncode
        self.reason = reason
        message = f"{reason} for {path}"
        if returncode is not None:
            message += f" (exit status {returncode})"
        if stderr:
            message += f": {stderr}"
        super().__init__(message)


class DecryptionTimeout(DecryptionError):
    """The provider did not finish within the configured timeout."""

    def __init__(self, path: Path, timeout: float, stderr: str = ""):
        self.timeout = timeout
        super().__init__(
            path, stderr=stderr,
            reason=f"decryption provider timed out after {timeout:g}s",
        )


class ProviderNotInstalled(DecryptionError):
    """The provider executable could not be found or started."""

    def __init__(self, path: Path, command: str, stderr: str = ""):
        self.command = command
        super().__init__(
            path, stderr=stderr,
            reason=f"decryption provider {command!r} is not installed",
        )


class KeyReferenceNotFound(DecryptionError):
    """The configured key file does not exist."""

    def __init__(self, path: Path, key_ref: str):
        self.key_ref = key_ref
        super().__init__(path, reason=f"key file {key_ref} does not exist")


class MalformedLineError(EncEnvError):
    """Decrypted plaintext contains a line that is not ``NAME=VALUE``."""

    def __init__(self, line: str, lineno: Optional[int] = None, reason: str = "expected NAME=VALUE"):
        self.line = line
        self.lineno = lineno
        self.reason = reason
        where = f"line {lineno}" if lineno is not None else "decrypted output"
        super().__init__(f"Malformed {where} ({reason}): {line!r}")
