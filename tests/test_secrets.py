"""Tests for secure secret loading from .env files."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from deskpilot.config.secrets import ENV_FILE_VAR, load_environment_secrets


def _secure_env(path: Path, body: str = "ANTHROPIC_API_KEY=from-dotenv\n") -> Path:
    path.write_text(body)
    os.chmod(path, 0o600)
    return path


class TestSecretsLoader:
    """Secret loading behavior for .env files."""

    def test_loads_api_key_from_secure_env_file(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        env_file = _secure_env(tmp_path / ".env")
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        loaded = load_environment_secrets(env_file=env_file)

        assert loaded == env_file
        assert os.environ.get("ANTHROPIC_API_KEY") == "from-dotenv"

    def test_does_not_override_existing_environment_value(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        env_file = _secure_env(tmp_path / ".env")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "already-set")

        load_environment_secrets(env_file=env_file)

        assert os.environ.get("ANTHROPIC_API_KEY") == "already-set"

    def test_env_var_selects_file(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        env_file = _secure_env(tmp_path / "keys.env", "OPENAI_API_KEY=via-env-var\n")
        monkeypatch.setenv(ENV_FILE_VAR, str(env_file))
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        loaded = load_environment_secrets()

        assert loaded == env_file
        assert os.environ.get("OPENAI_API_KEY") == "via-env-var"

    def test_relative_path_resolved_from_start_dir(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        _secure_env(tmp_path / "local.env", "DESKPILOT_TEST_SECRET=1\n")
        monkeypatch.delenv("DESKPILOT_TEST_SECRET", raising=False)

        loaded = load_environment_secrets("local.env", start_dir=tmp_path)

        assert loaded == tmp_path.resolve() / "local.env"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits differ on Windows")
    def test_rejects_group_or_world_readable_env_file(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("ANTHROPIC_API_KEY=from-dotenv\n")
        os.chmod(env_file, 0o644)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

        with pytest.raises(PermissionError):
            load_environment_secrets(env_file=env_file)

        assert os.environ.get("ANTHROPIC_API_KEY") is None

    @pytest.mark.skipif(os.name == "nt", reason="Symlink checks are POSIX only")
    def test_rejects_symlink(self, tmp_path: Path) -> None:
        target = _secure_env(tmp_path / "real.env")
        link = tmp_path / ".env"
        link.symlink_to(target)

        with pytest.raises(PermissionError, match="symlink"):
            load_environment_secrets(env_file=link)

    def test_missing_env_file_returns_none_when_not_strict(self, tmp_path: Path) -> None:
        loaded = load_environment_secrets(env_file=tmp_path / ".env", strict=False)

        assert loaded is None

    def test_missing_explicit_env_file_raises_when_strict(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_environment_secrets(env_file=tmp_path / ".env")

    def test_directory_env_path_has_actionable_error(self, tmp_path: Path) -> None:
        env_dir = tmp_path / ".env"
        env_dir.mkdir()

        with pytest.raises(ValueError, match="not a regular file"):
            load_environment_secrets(env_file=env_dir)
