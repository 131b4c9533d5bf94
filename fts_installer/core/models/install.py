"""
Install models — what gets installed, and where.

``PartialConfig`` is the raw outcome of command-line parsing: every
field is optional because an absent flag means "use the default".
``InstallConfig`` is the frozen, fully resolved record that flows into
the engine and, through ``extra_vars()``, into the playbook run.
"""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict


class InstallType(StrEnum):
    """Release channels of FreeTAK Server."""

    LATEST = "latest"
    STABLE = "stable"
    LEGACY = "legacy"


class VersionProfile(BaseModel):
    """One row of the install-type table.

    ``fts_version`` is None for channels whose version is only known at
    runtime (``latest`` is looked up on the package index).
    """

    model_config = ConfigDict(frozen=True)

    python_version: str
    fts_version: str | None
    config_relative_path: str


class ResolvedVersions(BaseModel):
    """Concrete versions and paths for one install type."""

    model_config = ConfigDict(frozen=True)

    python_version: str
    fts_version: str
    config_relative_path: str


class PartialConfig(BaseModel):
    """Options as given on the command line. None means "not given"."""

    install_type: str | None = None
    repo_url: str | None = None
    branch: str | None = None
    override_branch: str | None = None
    ip_override: str | None = None
    dry_run: bool = False
    core_only: bool = False
    verbose: bool = False
    check_mode: bool = False
    dev_test: bool = False
    no_color: bool = False


# Playbooks shipped by FreeTAKHub-Installation
PLAYBOOK_CORE = "install_mainserver"
PLAYBOOK_FULL = "install_all"


class InstallConfig(BaseModel):
    """Fully resolved installer configuration.

    Built once by ``validate_and_finalize`` and never mutated afterwards.
    ``branch`` is already the effective branch: an override branch, when
    present, has replaced it.
    """

    model_config = ConfigDict(frozen=True)

    install_type: InstallType
    default_install_type: InstallType = InstallType.LATEST
    python_version: str
    fts_version: str
    config_relative_path: str

    repo_url: str
    repo_overridden: bool = False
    branch: str
    override_branch: str | None = None
    ip_override: str | None = None
    webmap_force_install: bool = False

    dry_run: bool = False
    core_only: bool = False
    verbose: bool = False
    check_mode: bool = False
    dev_test: bool = False

    # Filesystem locations
    home: Path
    venv_dir: Path
    install_dir: Path
    apt_conf_dir: Path = Path("/etc/apt/apt.conf.d")
    apt_sources_dir: Path = Path("/etc/apt/sources.list.d")
    needrestart_backup: Path
    sudoers_dir: Path = Path("/etc/sudoers.d")
    user: str = "root"

    @property
    def playbook(self) -> str:
        """Playbook name (without ``.yml``) selected by core-only mode."""
        return PLAYBOOK_CORE if self.core_only else PLAYBOOK_FULL

    @property
    def provisions_venv(self) -> bool:
        """The dedicated venv is only built for the default install type."""
        return self.install_type == self.default_install_type

    @property
    def ssh_key(self) -> Path:
        return self.home / ".ssh" / "id_rsa"

    def extra_vars(self, codename: str) -> dict[str, Any]:
        """Named parameters handed to the playbook."""
        extra: dict[str, Any] = {
            "python3_version": self.python_version,
            "codename": codename,
            "itype": self.install_type.value,
            "fts_version": self.fts_version,
            "cfg_rpath": self.config_relative_path,
            "fts_venv": str(self.venv_dir),
        }
        if self.ip_override:
            extra["fts_ip_addr_extra"] = self.ip_override
        if self.webmap_force_install:
            extra["webmap_force_install"] = True
        return extra

    def tool_env(self) -> dict[str, str]:
        """Environment overrides for every child process."""
        env = {
            "DEBIAN_FRONTEND": "noninteractive",
            "NEEDRESTART_SUSPEND": "1",
        }
        if self.verbose:
            env.update({
                "GIT_TRACE": "true",
                "GIT_CURL_VERBOSE": "true",
                "GIT_SSH_COMMAND": "ssh -vvv",
            })
        if self.dev_test:
            env["TEST"] = "1"
        return env
