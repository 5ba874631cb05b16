"""Tests for secrets loading (herald/secrets.py)."""

import logging
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from herald.secrets import read_scope, scope_path


def _write_env(root, text, name="internal.env"):
    secrets_dir = root / "secrets"
    secrets_dir.mkdir(exist_ok=True)
    (secrets_dir / name).write_text(text)


class TestScopePath:
    def test_plain_and_encrypted(self, tmp_path):
        assert scope_path(tmp_path, "internal", encrypted=False) == tmp_path / "secrets" / "internal.env"
        assert scope_path(tmp_path, "internal", encrypted=True) == tmp_path / "secrets" / "internal.env.enc"


class TestPlainDotenv:
    def test_reads_herald_values(self, tmp_path):
        _write_env(tmp_path, "HERALD_SERVER_DOMAIN=example.com\nHERALD_SMTP_PORT=2525\n")
        values = read_scope(tmp_path, "internal", use_sops=False)
        assert values == {"HERALD_SERVER_DOMAIN": "example.com", "HERALD_SMTP_PORT": "2525"}

    def test_ignores_foreign_and_valueless_keys(self, tmp_path):
        _write_env(tmp_path, "OTHER_APP_TOKEN=abc\nHERALD_SMTP_USERNAME\nHERALD_SMTP_HOST=relay\n")
        values = read_scope(tmp_path, "internal", use_sops=False)
        assert values == {"HERALD_SMTP_HOST": "relay"}

    def test_missing_file_yields_nothing(self, tmp_path, caplog):
        with caplog.at_level(logging.INFO, logger="herald.secrets"):
            assert read_scope(tmp_path, "internal", use_sops=False) == {}
        assert "internal.env" in caplog.text


class TestSops:
    def test_missing_encrypted_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_scope(tmp_path, "internal", use_sops=True)

    def test_decrypts_through_sops(self, tmp_path):
        _write_env(tmp_path, "ENC[...]", name="internal.env.enc")
        completed = MagicMock(stdout="HERALD_SMTP_PASSWORD=hunter2\n")
        with patch("herald.secrets.subprocess.run", return_value=completed) as run:
            values = read_scope(tmp_path, "internal", use_sops=True)

        assert values == {"HERALD_SMTP_PASSWORD": "hunter2"}
        assert run.call_args.args[0][:2] == ["sops", "--decrypt"]

    def test_decrypt_failure_propagates(self, tmp_path):
        _write_env(tmp_path, "ENC[...]", name="internal.env.enc")
        error = subprocess.CalledProcessError(1, ["sops"])
        with patch("herald.secrets.subprocess.run", side_effect=error):
            with pytest.raises(subprocess.CalledProcessError):
                read_scope(tmp_path, "internal", use_sops=True)
