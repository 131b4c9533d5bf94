"""
Configuration resolver — settings + parsed flags → ``InstallConfig``.
"""

from __future__ import annotations

import logging

from fts_installer.core.config.loader import InstallerSettings
from fts_installer.core.config.versions import parse_install_type, resolve_versions
from fts_installer.core.models.install import InstallConfig, PartialConfig

logger = logging.getLogger(__name__)

NEEDRESTART_BACKUP_NAME = "nr-conf-temp"


def effective_branch(branch: str, override_branch: str | None) -> str:
    """An override branch, when given, always wins."""
    return override_branch or branch


def validate_and_finalize(
    partial: PartialConfig,
    settings: InstallerSettings,
    latest_version: str | None = None,
) -> InstallConfig:
    """Merge parsed flags over settings and resolve the install type.

    Raises:
        UnsupportedInstallTypeError: install type outside the table.
        NetworkFetchFailure: ``latest`` selected but its version is unknown.
    """
    install_type = parse_install_type(partial.install_type or settings.install_type)
    default_install_type = parse_install_type(settings.default_install_type)
    versions = resolve_versions(install_type, latest_version)

    branch = partial.branch or settings.branch
    override_branch = partial.override_branch or settings.override_branch
    home = settings.resolved_home()

    config = InstallConfig(
        install_type=install_type,
        default_install_type=default_install_type,
        python_version=versions.python_version,
        fts_version=versions.fts_version,
        config_relative_path=versions.config_relative_path,
        repo_url=partial.repo_url or settings.repo_url,
        repo_overridden=partial.repo_url is not None,
        branch=effective_branch(branch, override_branch),
        override_branch=override_branch,
        ip_override=partial.ip_override,
        webmap_force_install=settings.webmap_force_install,
        dry_run=partial.dry_run,
        core_only=partial.core_only,
        verbose=partial.verbose,
        check_mode=partial.check_mode,
        dev_test=partial.dev_test,
        home=home,
        venv_dir=home / settings.venv_name,
        install_dir=home / settings.install_dir_name,
        apt_conf_dir=settings.apt_conf_dir,
        apt_sources_dir=settings.apt_sources_dir,
        needrestart_backup=home / NEEDRESTART_BACKUP_NAME,
        sudoers_dir=settings.sudoers_dir,
        user=settings.resolved_user(),
    )
    logger.debug("Resolved install config: %s", config.model_dump(mode="json"))
    return config
