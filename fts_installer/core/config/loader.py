"""
Settings loader — installer defaults from file and environment.

Precedence, lowest first:
    built-in defaults  <  YAML file ($FTS_INSTALLER_CONFIG)  <  env vars  <  CLI flags

The CLI flags are applied later by ``resolver.validate_and_finalize``;
this module only produces the ``InstallerSettings`` they override.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel

from fts_installer.core.config.versions import FTS_PACKAGE, PACKAGE_INDEX_URL

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "FTS_INSTALLER_CONFIG"

DEFAULT_REPO = "https://github.com/FreeTAKTeam/FreeTAKHub-Installation.git"
DEFAULT_BRANCH = "main"
DEFAULT_INSTALL_TYPE = "latest"

# env var → settings field
_ENV_FIELDS: dict[str, str] = {
    "REPO": "repo_url",
    "BRANCH": "branch",
    "CBRANCH": "override_branch",
    "INSTALL_TYPE": "install_type",
    "WEBMAP_FORCE_INSTALL": "webmap_force_install",
    "FTS_PACKAGE_INDEX_URL": "package_index_url",
}

_TRUTHY = {"1", "true", "yes", "on", "y"}


class ConfigError(Exception):
    """Raised when the installer settings file is invalid."""


class InstallerSettings(BaseModel):
    """Defaults that command-line flags may override."""

    repo_url: str = DEFAULT_REPO
    branch: str = DEFAULT_BRANCH
    override_branch: str | None = None
    install_type: str = DEFAULT_INSTALL_TYPE
    default_install_type: str = DEFAULT_INSTALL_TYPE
    webmap_force_install: bool = False

    fts_package: str = FTS_PACKAGE
    package_index_url: str = PACKAGE_INDEX_URL

    home: Path | None = None
    user: str | None = None
    venv_name: str = "fts.venv"
    install_dir_name: str = "FreeTAKHub-Installation"
    apt_conf_dir: Path = Path("/etc/apt/apt.conf.d")
    apt_sources_dir: Path = Path("/etc/apt/sources.list.d")
    sudoers_dir: Path = Path("/etc/sudoers.d")

    def resolved_home(self) -> Path:
        return self.home if self.home is not None else Path.home()

    def resolved_user(self, env: Mapping[str, str] | None = None) -> str:
        """The account that is granted passwordless playbook runs."""
        if self.user:
            return self.user
        env = os.environ if env is None else env
        return env.get("SUDO_USER") or env.get("USER") or "root"


def load_settings(
    path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> InstallerSettings:
    """Build installer settings from an optional YAML file and the environment.

    Args:
        path: Explicit settings file. If None, ``$FTS_INSTALLER_CONFIG``
            is used when set.
        env: Environment mapping (default: ``os.environ``).

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    env = os.environ if env is None else env
    data: dict = {}

    if path is None and env.get(CONFIG_ENV_VAR):
        path = Path(env[CONFIG_ENV_VAR])

    if path is not None:
        data.update(_read_settings_file(path))

    for var, field_name in _ENV_FIELDS.items():
        value = env.get(var)
        if value is None or value == "":
            continue
        if field_name == "webmap_force_install":
            data[field_name] = value.strip().lower() in _TRUTHY or "=true" in value.lower()
        else:
            data[field_name] = value

    try:
        settings = InstallerSettings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid installer settings: {e}") from e

    logger.debug(
        "Settings: repo=%s branch=%s install_type=%s",
        settings.repo_url, settings.branch, settings.install_type,
    )
    return settings


def _read_settings_file(path: Path) -> dict:
    if not path.is_file():
        raise ConfigError(f"Settings file not found: {path}")

    logger.debug("Loading installer settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The file may nest everything under an "installer" key or be flat
    section = data.get("installer", data)
    if not isinstance(section, dict):
        raise ConfigError(f"Expected a mapping under 'installer' in {path}")
    return dict(section)
