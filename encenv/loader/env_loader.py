"""
EnvLoader: Decrypt the encrypted environment file of a working directory.

Provides the public API of the loader:
- ``locate(cwd)``: resolve the encrypted file for a directory
- ``load(cwd)``: decrypt and parse it into an EnvironmentSet

Each call is independent: nothing is cached between calls and the
encrypted file is only ever read. Failed decryptions are never retried.

Security Note:
    Never log decrypted values. Only variable counts, paths and provider
    exit status are logged.
"""
import os
import logging
from pathlib import Path
from typing import Optional, Union

from ..environment import EnvironmentSet
from .config import LoaderConfig
from .exceptions import NotFoundError
from .parser import parse_bytes
from .provider import DecryptionProvider, DecryptionRequest, EncryptedFile

logger = logging.getLogger("encenv.loader")

PathLike = Union[str, os.PathLike]


class EnvLoader:
    """Turn the encrypted file in a directory into an EnvironmentSet.

    Args:
        provider: Decryption capability. Built from ``config`` when omitted.
        config: Loader settings. Read from ``ENCENV_*`` variables when omitted.
    """

    def __init__(
        self,
        provider: Optional[DecryptionProvider] = None,
        config: Optional[LoaderConfig] = None,
    ):
        self.config = config if config is not None else LoaderConfig.from_env()
        self.provider = provider if provider is not None else self.config.build_provider()

    def locate(self, cwd: Optional[PathLike] = None) -> EncryptedFile:
        """Return the EncryptedFile expected in ``cwd`` (current directory by default)."""
        directory = Path(os.getcwd() if cwd is None else cwd)
        return EncryptedFile(path=directory / self.config.filename)

    def load(self, cwd: Optional[PathLike] = None) -> EnvironmentSet:
        """Decrypt and parse the encrypted file found in ``cwd``.

        Returns:
            A fresh EnvironmentSet.

        Raises:
            NotFoundError: No encrypted file in ``cwd``; the provider is not called.
            DecryptionError: The provider failed (or one of its subtypes).
            MalformedLineError: The plaintext contains an invalid line.
        """
        encrypted = self.locate(cwd)
        if not encrypted.exists:
            logger.debug("No encrypted file at %s", encrypted.path)
            raise NotFoundError(encrypted.path)

        request = DecryptionRequest(
            encrypted_file=encrypted, key_ref=self.config.key_file,
        )
        env = parse_bytes(self.provider.handle(request))

        logger.info(
            "Loaded %d variable(s) from %s", len(env), encrypted.path,
        )
        return env


def load(
    cwd: Optional[PathLike] = None,
    provider: Optional[DecryptionProvider] = None,
    config: Optional[LoaderConfig] = None,
) -> EnvironmentSet:
    """Shortcut for ``EnvLoader(provider, config).load(cwd)``."""
    return EnvLoader(provider=provider, config=config).load(cwd)
