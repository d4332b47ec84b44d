import os
import sys
import shutil
import subprocess
from pathlib import Path
from typing import Optional

import pytest

from encenv.loader import DecryptionProvider, LoaderConfig


# A provider command that "decrypts" by echoing the file it is given.
PY_CAT = [
    sys.executable, "-c",
    "import sys; sys.stdout.buffer.write(open(sys.argv[1], 'rb').read())",
]

POSIX_SH = shutil.which("sh")

requires_sh = pytest.mark.skipif(POSIX_SH is None, reason="no POSIX shell available")


class FakeProvider(DecryptionProvider):
    """In-memory provider that records every call."""

    def __init__(self, plaintext: bytes = b"", error: Optional[Exception] = None):
        self.plaintext = plaintext
        self.error = error
        self.calls: list[tuple[Path, Optional[str]]] = []

    def decrypt(self, path: Path, key_ref: Optional[str] = None) -> bytes:
        self.calls.append((path, key_ref))
        if self.error is not None:
            raise self.error
        return self.plaintext


def eval_posix(statements: list[str], name: str) -> bytes:
    """Evaluate statements in sh and return the raw value of ``name``."""
    script = "\n".join(statements) + f'\nprintf %s "${name}"'
    proc = subprocess.run([POSIX_SH, "-c", script], capture_output=True, check=True)
    return proc.stdout


def posix_env_diff(statements: list[str]) -> dict[str, str]:
    """Evaluate statements in a clean sh and return the variables they changed."""
    marker = "__ENCENV_EVAL__"
    script = f"env\necho {marker}\n" + "\n".join(statements) + "\nenv"
    proc = subprocess.run(
        [POSIX_SH, "-c", script],
        env={"PATH": os.environ.get("PATH", "")},
        capture_output=True,
        check=True,
    )
    before_text, after_text = proc.stdout.decode("utf-8").split(marker + "\n", 1)

    def _parse(text: str) -> dict[str, str]:
        pairs = (line.split("=", 1) for line in text.splitlines() if "=" in line)
        return {k: v for k, v in pairs if k != "_"}

    before, after = _parse(before_text), _parse(after_text)
    return {k: v for k, v in after.items() if before.get(k) != v}


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every ENCENV_* variable from the environment."""
    for var in (
        "ENCENV_FILENAME",
        "ENCENV_KEY_FILE",
        "ENCENV_PROVIDER",
        "ENCENV_KEY_ENV",
        "ENCENV_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


@pytest.fixture
def config(clean_env):
    """Default config, independent of the caller's environment."""
    return LoaderConfig()


@pytest.fixture
def encrypted_dir(tmp_path):
    """A directory holding a (fake) encrypted environment file."""
    (tmp_path / ".env.enc").write_bytes(b"ENC[opaque ciphertext]")
    return tmp_path
