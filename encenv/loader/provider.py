"""
Decryption Providers: The external capability that turns ciphertext into plaintext.

The loader depends only on ``DecryptionProvider.decrypt(path, key_ref)``.
``CommandProvider`` is the production implementation: it runs an external
command (``sops`` by default) with the encrypted file path appended, passes
the key reference through an environment variable of the child process, and
reads plaintext from the child's stdout pipe.

Security Note:
    Plaintext is only ever held in the captured stdout buffer. No temporary
    files are created and plaintext is never logged.
"""
import os
import shlex
import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from collections.abc import Mapping, Sequence

from .exceptions import (
    DecryptionError,
    DecryptionTimeout,
    KeyReferenceNotFound,
    ProviderNotInstalled,
)

logger = logging.getLogger("encenv.loader")

DEFAULT_PROVIDER_COMMAND = (
    "sops", "--decrypt", "--input-type", "dotenv", "--output-type", "dotenv",
)
DEFAULT_KEY_ENV_VAR = "SOPS_AGE_KEY_FILE"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class EncryptedFile:
    """Ciphertext artifact on disk. Read-only to the loader."""
    path: Path

    @property
    def exists(self) -> bool:
        return self.path.is_file()


@dataclass(frozen=True)
class DecryptionRequest:
    """Per-invocation pairing of an encrypted file and its key reference."""
    encrypted_file: EncryptedFile
    key_ref: Optional[str] = None


class DecryptionProvider(ABC):
    """Capability that decrypts an encrypted environment file."""

    @abstractmethod
    def decrypt(self, path: Path, key_ref: Optional[str] = None) -> bytes:
        """Return the plaintext of ``path``.

        Raises:
            DecryptionError: If plaintext cannot be produced.
        """

    def handle(self, request: DecryptionRequest) -> bytes:
        return self.decrypt(request.encrypted_file.path, request.key_ref)


def _decode_stderr(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace").strip()


class CommandProvider(DecryptionProvider):
    """Decrypt by running an external command.

    The command is invoked as ``[*command, str(path)]``. When a key reference
    is given it is exported to the child as ``key_env_var``; the rest of the
    child environment is inherited from ``base_env`` (``os.environ`` at call
    time by default).

    Args:
        command: Command prefix, e.g. ``("sops", "--decrypt")``.
        key_env_var: Name of the variable carrying the key reference.
        timeout: Seconds to wait for the command before giving up.
        base_env: Environment for the child process.
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_PROVIDER_COMMAND,
        key_env_var: str = DEFAULT_KEY_ENV_VAR,
        timeout: float = DEFAULT_TIMEOUT,
        base_env: Optional[Mapping[str, str]] = None,
    ):
        if not command:
            raise ValueError("Provider command cannot be empty")
        self.command = tuple(command)
        self.key_env_var = key_env_var
        self.timeout = timeout
        self._base_env = base_env

    def __repr__(self) -> str:
        return f"<CommandProvider {shlex.join(self.command)!r} timeout={self.timeout:g}>"

    def _child_env(self, key_ref: Optional[str]) -> dict[str, str]:
        env = dict(os.environ if self._base_env is None else self._base_env)
        if key_ref:
            env[self.key_env_var] = key_ref
        return env

    def decrypt(self, path: Path, key_ref: Optional[str] = None) -> bytes:
        """Run the provider command and return its stdout.

        Raises:
            KeyReferenceNotFound: If ``key_ref`` names a missing file
                (after ``~`` expansion; the expanded path is what the child sees).
            ProviderNotInstalled: If the command executable is missing or not
                executable.
            DecryptionTimeout: If the command exceeds ``timeout``.
            DecryptionError: If the command cannot be started or exits with
                a non-zero status.
        """
        if key_ref:
            key_ref = str(Path(key_ref).expanduser())
            if not Path(key_ref).exists():
                raise KeyReferenceNotFound(path, key_ref)

        argv = [*self.command, str(path)]
        logger.debug("Running decryption provider %s", self.command[0])
        try:
            proc = subprocess.run(
                argv,
                env=self._child_env(key_ref),
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as err:
            raise ProviderNotInstalled(path, self.command[0]) from err
        except PermissionError as err:
            raise ProviderNotInstalled(
                path, self.command[0], stderr=str(err)
            ) from err
        except subprocess.TimeoutExpired as err:
            raise DecryptionTimeout(
                path, self.timeout, stderr=_decode_stderr(err.stderr)
            ) from err
        except OSError as err:
            raise DecryptionError(
                path, stderr=str(err),
                reason=f"cannot start decryption provider {self.command[0]!r}",
            ) from err

        if proc.returncode != 0:
            stderr = _decode_stderr(proc.stderr)
            logger.debug(
                "Decryption provider exited with status %d", proc.returncode
            )
            raise DecryptionError(path, stderr=stderr, returncode=proc.returncode)
        return proc.stdout or b""
