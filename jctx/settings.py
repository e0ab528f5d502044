"""Settings resolution with 5-step precedence chain and named profile support."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from jctx.models import TrackerCredentials

CONFIG_PATH = Path.home() / ".config" / "jctx" / "config.toml"
STATE_PATH = Path.home() / ".config" / "jctx" / "state.toml"


class JctxSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JCTX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tracker selection
    default_tracker: str | None = None  # profile name
    deployment: str = "cloud"  # "cloud" | "datacenter", resolved from active profile
    url: str | None = None  # https://your-domain.atlassian.net

    # Cloud
    email: str | None = None
    api_token: SecretStr | None = None

    # Data Center
    username: str | None = None
    password: SecretStr | None = None

    def credentials(self) -> TrackerCredentials:
        if self.deployment == "cloud":
            return TrackerCredentials(
                deployment="cloud",
                base_url=self.url or "",
                email=self.email,
                api_token=self.api_token,
            )
        return TrackerCredentials(
            deployment="datacenter",
            base_url=self.url or "",
            username=self.username,
            password=self.password,
        )


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/jctx/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    return tomlkit.load(CONFIG_PATH.open())


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def _cwd_env_deployment() -> str | None:
    """Read JCTX_DEPLOYMENT from .env in cwd without full settings instantiation."""
    env_file = Path(".env")
    if not env_file.exists():
        return None
    for line in env_file.read_text().splitlines():
        line = line.strip()
        if line.startswith("JCTX_DEPLOYMENT="):
            return line.split("=", 1)[1].strip().strip("\"'")
    return None


def get_settings(tracker: str | None = None) -> JctxSettings:
    """Resolve active tracker profile and return a fully populated JctxSettings.

    Precedence (highest to lowest):
    1. tracker argument (--tracker CLI flag)
    2. JCTX_DEFAULT_TRACKER env var
    3. default_tracker key in ~/.config/jctx/config.toml
    4. JCTX_DEPLOYMENT in .env in cwd
    5. First profile defined in ~/.config/jctx/config.toml
    """
    toml_config = _load_toml()

    active = (
        tracker
        or os.environ.get("JCTX_DEFAULT_TRACKER")
        or toml_config.get("default_tracker")
        or _cwd_env_deployment()
        or ((_profiles := _list_profiles(toml_config)) and _profiles[0] or None)
    )

    # Profile block supplies base defaults
    profile_defaults: dict = {}
    if active:
        if active in toml_config and isinstance(toml_config[active], Mapping):
            profile_defaults = dict(toml_config[active])
        elif active in ("cloud", "datacenter"):
            # bare deployment name: credentials come from env vars / .env
            profile_defaults = {"deployment": active}
        elif active not in toml_config:
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}")
            raise typer.Exit(1)

    # env vars + .env always override profile defaults
    settings = JctxSettings(**profile_defaults)

    section = f"[{active or 'profile'}] section of {CONFIG_PATH}"
    if settings.deployment not in ("cloud", "datacenter"):
        typer.echo(f"Unknown deployment '{settings.deployment}'. Valid: cloud, datacenter")
        raise typer.Exit(1)
    if not settings.url:
        typer.echo(f"Missing Jira URL. Set JCTX_URL or url in the {section}")
        raise typer.Exit(1)
    if settings.deployment == "cloud" and not (settings.email and settings.api_token):
        typer.echo(f"Missing Jira Cloud credentials. Set JCTX_EMAIL and JCTX_API_TOKEN or email/api_token in the {section}")
        raise typer.Exit(1)
    if settings.deployment == "datacenter" and not (settings.username and settings.password):
        typer.echo(
            "Missing Jira Data Center credentials. Set JCTX_USERNAME and JCTX_PASSWORD "
            f"or username/password in the {section}"
        )
        raise typer.Exit(1)

    return settings
