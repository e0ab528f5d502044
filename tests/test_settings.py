"""Tests for jctx.settings: all 5 precedence steps and error paths."""

from pathlib import Path

import click
import pytest
import tomlkit

import jctx.settings as settings_module
from jctx.settings import _list_profiles, get_settings

_WORK = {"deployment": "cloud", "url": "https://work.atlassian.net", "email": "me@work.io", "api_token": "tok_work"}
_PERSONAL = {"deployment": "cloud", "url": "https://me.atlassian.net", "email": "me@home.io", "api_token": "tok_home"}


def _write_config(tmp_path: Path, config: dict) -> Path:
    config_path = tmp_path / "config.toml"
    config_path.write_text(tomlkit.dumps(config))
    return config_path


@pytest.fixture(autouse=True)
def reset_lru_cache():
    """Clear the lru_cache before each test."""
    settings_module._load_toml.cache_clear()
    yield
    settings_module._load_toml.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    for name in ("DEFAULT_TRACKER", "DEPLOYMENT", "URL", "EMAIL", "API_TOKEN", "USERNAME", "PASSWORD"):
        monkeypatch.delenv(f"JCTX_{name}", raising=False)
    # keep a developer's own .env out of the way
    monkeypatch.chdir(tmp_path)


class TestListProfiles:
    def test_returns_section_keys(self) -> None:
        config = {"default_tracker": "work", "work": _WORK, "personal": _PERSONAL}
        assert _list_profiles(config) == ["work", "personal"]

    def test_empty_config(self) -> None:
        assert _list_profiles({}) == []


class TestGetSettings:
    def test_tracker_arg_takes_precedence(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"default_tracker": "personal", "work": _WORK, "personal": _PERSONAL})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        s = get_settings(tracker="work")
        assert s.url == "https://work.atlassian.net"
        assert s.api_token is not None
        assert s.api_token.get_secret_value() == "tok_work"

    def test_env_var_takes_precedence_over_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"default_tracker": "personal", "work": _WORK, "personal": _PERSONAL})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)
        monkeypatch.setenv("JCTX_DEFAULT_TRACKER", "work")

        assert get_settings().email == "me@work.io"

    def test_toml_default_tracker_used(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"default_tracker": "personal", "work": _WORK, "personal": _PERSONAL})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        assert get_settings().email == "me@home.io"

    def test_cwd_env_deployment_used(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"work": _WORK})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)
        (tmp_path / ".env").write_text(
            "JCTX_DEPLOYMENT=datacenter\n"
            "JCTX_URL=https://jira.acme.internal\n"
            "JCTX_USERNAME=dev\n"
            "JCTX_PASSWORD=hunter2\n"
        )

        s = get_settings()
        assert s.deployment == "datacenter"
        assert s.username == "dev"

    def test_first_profile_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"work": _WORK, "personal": _PERSONAL})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        assert get_settings().email == "me@work.io"

    def test_env_overrides_profile_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"work": _WORK})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)
        monkeypatch.setenv("JCTX_URL", "https://override.atlassian.net")

        assert get_settings().url == "https://override.atlassian.net"

    def test_no_config_file_uses_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings_module, "CONFIG_PATH", tmp_path / "nonexistent.toml")
        monkeypatch.setenv("JCTX_URL", "https://env.atlassian.net")
        monkeypatch.setenv("JCTX_EMAIL", "env@acme.io")
        monkeypatch.setenv("JCTX_API_TOKEN", "tok_env")

        s = get_settings()
        assert s.deployment == "cloud"
        assert s.credentials().base_url == "https://env.atlassian.net"

    def test_missing_profile_exits(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"work": _WORK})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        with pytest.raises((SystemExit, click.exceptions.Exit)):
            get_settings(tracker="nonexistent")

    def test_missing_url_exits(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"work": {"deployment": "cloud", "email": "a@b.c", "api_token": "t"}})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        with pytest.raises((SystemExit, click.exceptions.Exit)):
            get_settings(tracker="work")

    def test_missing_cloud_token_exits(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(
            tmp_path, {"work": {"deployment": "cloud", "url": "https://a.atlassian.net", "email": "a@b.c"}}
        )
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        with pytest.raises((SystemExit, click.exceptions.Exit)):
            get_settings(tracker="work")

    def test_missing_datacenter_password_exits(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(
            tmp_path, {"dc": {"deployment": "datacenter", "url": "https://jira.acme.internal", "username": "dev"}}
        )
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        with pytest.raises((SystemExit, click.exceptions.Exit)):
            get_settings(tracker="dc")

    def test_unknown_deployment_exits(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"work": {**_WORK, "deployment": "server"}})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        with pytest.raises((SystemExit, click.exceptions.Exit)):
            get_settings(tracker="work")


class TestCredentials:
    def test_cloud_credentials(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"work": {**_WORK, "url": "https://work.atlassian.net/"}})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        creds = get_settings().credentials()
        assert creds.deployment == "cloud"
        assert creds.base_url == "https://work.atlassian.net"
        assert creds.username is None
