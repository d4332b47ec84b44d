"""encenv: load encrypted environment files into a shell session."""
from .version import __version__
from .environment import EnvironmentSet
from .loader import (
    EnvLoader,
    LoaderConfig,
    load,
    render,
    NotFoundError,
    DecryptionError,
    MalformedLineError,
)

__all__ = [
    "__version__",
    "EnvironmentSet",
    "EnvLoader",
    "LoaderConfig",
    "load",
    "render",
    "NotFoundError",
    "DecryptionError",
    "MalformedLineError",
]
