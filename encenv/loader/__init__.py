"""Encrypted environment loader.

Security Note (Threat Model):
    Decrypted variables exist only in process memory and in the stdout
    stream handed to the calling shell. Nothing decrypted is written to
    disk, including temporary files. A memory dump of the process, or of
    the shell that evaluates the output, exposes the values; this is an
    accepted limitation.
"""

from .env_loader import EnvLoader, load
from .config import LoaderConfig
from .exceptions import (
    EncEnvError,
    NotFoundError,
    DecryptionError,
    DecryptionTimeout,
    ProviderNotInstalled,
    KeyReferenceNotFound,
    MalformedLineError,
)
from .parser import EnvironmentLine, parse_plaintext
from .provider import (
    CommandProvider,
    DecryptionProvider,
    DecryptionRequest,
    EncryptedFile,
)
from .render import render, render_json

__all__ = [
    "EnvLoader",
    "load",
    "LoaderConfig",
    "EncEnvError",
    "NotFoundError",
    "DecryptionError",
    "DecryptionTimeout",
    "ProviderNotInstalled",
    "KeyReferenceNotFound",
    "MalformedLineError",
    "EnvironmentLine",
    "parse_plaintext",
    "CommandProvider",
    "DecryptionProvider",
    "DecryptionRequest",
    "EncryptedFile",
    "render",
    "render_json",
]
