"""
Loader Configuration: Validated settings read from the environment.

Reads settings at invocation time from:
    ENCENV_FILENAME = <bare name of the encrypted file>   (default .env.enc)
    ENCENV_KEY_FILE = <path to the provider key file>     (optional)
    ENCENV_PROVIDER = <provider command line>             (default sops ...)
    ENCENV_KEY_ENV  = <variable that carries the key ref> (default SOPS_AGE_KEY_FILE)
    ENCENV_TIMEOUT  = <seconds>                           (default 30)

Security Note:
    Key material is never read here, only the path to it.
"""
import os
import shlex
import logging
from typing import Optional
from collections.abc import Mapping

from pydantic import BaseModel, Field, field_validator

from .provider import (
    DEFAULT_KEY_ENV_VAR,
    DEFAULT_PROVIDER_COMMAND,
    DEFAULT_TIMEOUT,
    CommandProvider,
)

logger = logging.getLogger("encenv.loader")

DEFAULT_FILENAME = ".env.enc"


class LoaderConfig(BaseModel):
    """Validated loader configuration."""

    filename: str = Field(default=DEFAULT_FILENAME)
    key_file: Optional[str] = Field(default=None)
    provider_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PROVIDER_COMMAND)
    )
    key_env_var: str = Field(default=DEFAULT_KEY_ENV_VAR)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, le=600)

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """The encrypted file must sit directly in the working directory."""
        if not v or v in (".", ".."):
            raise ValueError("filename cannot be empty")
        if "/" in v or (os.sep != "/" and os.sep in v):
            raise ValueError(f"filename must be a bare file name, got {v!r}")
        return v

    @field_validator("key_file")
    @classmethod
    def validate_key_file(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty key file setting as unset."""
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("provider_command", mode="before")
    @classmethod
    def split_provider_command(cls, v):
        """Accept a command line string and split it like a shell would."""
        if isinstance(v, str):
            v = shlex.split(v)
        if not v:
            raise ValueError("provider_command cannot be empty")
        return v

    @field_validator("key_env_var")
    @classmethod
    def validate_key_env_var(cls, v: str) -> str:
        if not v or "=" in v:
            raise ValueError(f"Invalid key environment variable name: {v!r}")
        return v

    def build_provider(self) -> CommandProvider:
        """Create the subprocess provider described by this config."""
        return CommandProvider(
            command=self.provider_command,
            key_env_var=self.key_env_var,
            timeout=self.timeout,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "LoaderConfig":
        """Create LoaderConfig from ENCENV_* environment variables.

        Args:
            environ: Mapping to read from (``os.environ`` by default).
            overrides: Field values that take precedence, ``None`` ignored.

        Returns:
            Populated LoaderConfig instance.
        """
        env = os.environ if environ is None else environ
        values: dict = {}
        for field, var in (
            ("filename", "ENCENV_FILENAME"),
            ("key_file", "ENCENV_KEY_FILE"),
            ("provider_command", "ENCENV_PROVIDER"),
            ("key_env_var", "ENCENV_KEY_ENV"),
            ("timeout", "ENCENV_TIMEOUT"),
        ):
            raw = env.get(var)
            if raw is not None and raw != "":
                values[field] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        logger.debug(
            "Loader config: filename=%s provider=%s key_file=%s timeout=%g",
            config.filename,
            config.provider_command[0],
            "set" if config.key_file else "unset",
            config.timeout,
        )
        return config
