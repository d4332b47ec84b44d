"""
Tests for the subprocess decryption provider.

The running interpreter plays the part of the external provider.
"""
import os
import sys

import pytest

from encenv.loader import (
    CommandProvider,
    DecryptionError,
    DecryptionRequest,
    DecryptionTimeout,
    EncryptedFile,
    KeyReferenceNotFound,
    ProviderNotInstalled,
)

from .conftest import PY_CAT


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


@pytest.fixture
def plaintext_file(tmp_path):
    path = tmp_path / ".env.enc"
    path.write_bytes(b"A=1\nB=two words\n")
    return path


class TestCommandProvider:

    def test_returns_stdout(self, plaintext_file):
        provider = CommandProvider(command=PY_CAT)
        assert provider.decrypt(plaintext_file) == b"A=1\nB=two words\n"

    def test_handle_request(self, plaintext_file):
        provider = CommandProvider(command=PY_CAT)
        request = DecryptionRequest(encrypted_file=EncryptedFile(plaintext_file))
        assert provider.handle(request) == b"A=1\nB=two words\n"

    def test_file_path_is_last_argument(self, plaintext_file):
        provider = CommandProvider(
            command=_python("import sys; print('ARG=' + sys.argv[-1])")
        )
        assert provider.decrypt(plaintext_file).decode().strip() == f"ARG={plaintext_file}"

    def test_nonzero_exit_carries_stderr(self, plaintext_file):
        provider = CommandProvider(command=_python(
            "import sys; sys.stdout.write('A=partial\\n');"
            "sys.stderr.write('Failed to get the data key\\n'); sys.exit(128)"
        ))
        with pytest.raises(DecryptionError) as exc:
            provider.decrypt(plaintext_file)
        assert exc.value.returncode == 128
        assert exc.value.stderr == 'Failed to get the data key'
        assert 'Failed to get the data key' in str(exc.value)
        assert 'partial' not in str(exc.value)

    def test_missing_executable(self, plaintext_file):
        provider = CommandProvider(command=["encenv-test-no-such-provider"])
        with pytest.raises(ProviderNotInstalled) as exc:
            provider.decrypt(plaintext_file)
        assert isinstance(exc.value, DecryptionError)
        assert exc.value.command == "encenv-test-no-such-provider"

    def test_timeout(self, plaintext_file):
        provider = CommandProvider(
            command=_python("import time; time.sleep(10)"), timeout=0.5,
        )
        with pytest.raises(DecryptionTimeout) as exc:
            provider.decrypt(plaintext_file)
        assert isinstance(exc.value, DecryptionError)
        assert exc.value.timeout == 0.5

    def test_key_ref_passed_through_env(self, plaintext_file, tmp_path):
        key_file = tmp_path / "keys.txt"
        key_file.write_text("AGE-SECRET-KEY-TEST")
        provider = CommandProvider(
            command=_python("import os; print('KEY=' + os.environ['TEST_KEY_FILE'])"),
            key_env_var="TEST_KEY_FILE",
        )
        out = provider.decrypt(plaintext_file, key_ref=str(key_file))
        assert out.decode().strip() == f"KEY={key_file}"

    def test_key_ref_home_is_expanded_for_child(self, plaintext_file, tmp_path, monkeypatch):
        """The child receives the same expanded path that was checked."""
        monkeypatch.setenv("HOME", str(tmp_path))
        key_file = tmp_path / "keys.txt"
        key_file.write_text("AGE-SECRET-KEY-TEST")
        provider = CommandProvider(
            command=_python(
                "import os; p = os.environ['TEST_KEY_FILE'];"
                "print('SEEN=' + p); print('OPENS=' + str(os.path.exists(p)))"
            ),
            key_env_var="TEST_KEY_FILE",
        )
        lines = provider.decrypt(plaintext_file, key_ref="~/keys.txt").decode().splitlines()
        assert lines == [f"SEEN={key_file}", "OPENS=True"]

    def test_unlaunchable_executable(self, plaintext_file, tmp_path):
        """An executable the OS refuses to run is a DecryptionError."""
        binary = tmp_path / "provider.bin"
        binary.write_bytes(b"\x00\x01\x02not a program")
        binary.chmod(0o755)
        provider = CommandProvider(command=[str(binary)])
        with pytest.raises(DecryptionError) as exc:
            provider.decrypt(plaintext_file)
        assert exc.value.stderr
        assert str(binary) in str(exc.value)

    def test_missing_key_ref_does_not_run_provider(self, plaintext_file, tmp_path):
        marker = tmp_path / "ran"
        provider = CommandProvider(
            command=_python(f"open({str(marker)!r}, 'w').close()"),
        )
        with pytest.raises(KeyReferenceNotFound):
            provider.decrypt(plaintext_file, key_ref=str(tmp_path / "nope.txt"))
        assert not marker.exists()

    def test_base_env_replaces_inherited_env(self, plaintext_file, monkeypatch):
        monkeypatch.setenv("ENCENV_TEST_LEAK", "leaked")
        provider = CommandProvider(
            command=_python(
                "import os; print('LEAK=' + os.environ.get('ENCENV_TEST_LEAK', ''))"
            ),
            base_env={"PATH": os.environ.get("PATH", "")},
        )
        assert provider.decrypt(plaintext_file).decode().strip() == "LEAK="

    def test_empty_command_rejected(self):
        with pytest.raises(ValueError):
            CommandProvider(command=[])


class TestEncryptedFile:

    def test_exists_flag(self, tmp_path):
        missing = EncryptedFile(tmp_path / ".env.enc")
        assert missing.exists is False
        (tmp_path / ".env.enc").write_bytes(b"x")
        assert missing.exists is True

    def test_directory_is_not_a_file(self, tmp_path):
        (tmp_path / ".env.enc").mkdir()
        assert EncryptedFile(tmp_path / ".env.enc").exists is False
