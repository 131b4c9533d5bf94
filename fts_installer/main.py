"""
FreeTAK Server installer — CLI entrypoint.

Usage:
    sudo fts-install --help
    sudo fts-install --stable --dry-run
    sudo python -m fts_installer.main --core
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import NoReturn

import click

from fts_installer import __version__
from fts_installer.core.config.loader import (
    DEFAULT_BRANCH,
    DEFAULT_REPO,
    ConfigError,
    InstallerSettings,
    load_settings,
)
from fts_installer.core.config.resolver import validate_and_finalize
from fts_installer.core.config.versions import (
    LEGACY_FTS_VERSION,
    STABLE_FTS_VERSION,
    fetch_latest_version,
)
from fts_installer.core.errors import InstallerError, InstallInterrupted, NetworkFetchFailure
from fts_installer.core.models.install import InstallConfig, PartialConfig
from fts_installer.core.observability.logging_config import (
    FILE_ENV_VAR,
    FILE_LEVEL_ENV_VAR,
    resolve_level,
    setup_logging,
)

logger = logging.getLogger(__name__)

_HSEP = "*" * 63
_INSTALL_TYPE_KEY = "fts_installer.install_type"


def _select_install_type(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    # Given flags are processed in command-line order, so the last one wins
    if value:
        ctx.meta[_INSTALL_TYPE_KEY] = param.name


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="fts-install")
@click.option("--verbose", "-v", is_flag=True, help="Print script debug info.")
@click.option("--check", "-c", "check_mode", is_flag=True,
              help="Check for compatibility issues while installing.")
@click.option("--core", "core_only", is_flag=True,
              help="Install FreeTAKServer, UI, and Web Map only.")
@click.option("--latest", is_flag=True, expose_value=False, callback=_select_install_type,
              help="[DEFAULT] Install the latest published version.")
@click.option("--stable", "-s", is_flag=True, expose_value=False, callback=_select_install_type,
              help=f"Install latest stable version (v{STABLE_FTS_VERSION}).")
@click.option("--legacy", "-l", is_flag=True, expose_value=False, callback=_select_install_type,
              help=f"Install legacy version (v{LEGACY_FTS_VERSION}).")
@click.option("-B", "override_branch", metavar="BRANCH", hidden=True)
@click.option("--repo", "repo_url", metavar="URL",
              help=f"Use this installer repository [default: {DEFAULT_REPO}].")
@click.option("--branch", metavar="NAME",
              help=f"Use this installer repository branch [default: {DEFAULT_BRANCH}].")
@click.option("--dev-test", is_flag=True, help="Set TEST=1 for the playbook run.")
@click.option("--dry-run", is_flag=True,
              help="Set up dependencies but exit before running any playbooks.")
@click.option("--ip-addr", "ip_override", metavar="ADDR",
              help="Explicitly set the server IP address (when http://ifconfig.me/ip is wrong).")
@click.option("--no-color", is_flag=True, help="Disable coloured output.")
@click.pass_context
def cli(ctx: click.Context, **_: object) -> None:
    """Install Free TAK Server and components."""
    partial = _partial_from_context(ctx)
    _configure_output(ctx, partial)

    if partial.override_branch:
        click.secho(
            f"{_HSEP}\n"
            "This option is not supported for public use.\n"
            "It will alter the version of this installer, which means:\n"
            "  1. it may make breaking system alterations\n"
            "  2. use at your own risk\n"
            "It is highly recommended that you do not continue\n"
            "unless you've selected this option for a specific reason\n"
            f"{_HSEP}",
            fg="red",
        )
    if partial.ip_override:
        click.echo(f"Using the IP of {partial.ip_override}")

    obj = ctx.obj or {}
    try:
        settings = load_settings()
        config = _finalize(partial, settings)
        _print_summary(config)

        from fts_installer.adapters.registry import default_registry
        from fts_installer.core.engine.executor import run_install
        from fts_installer.core.services.host_detect import OS_RELEASE_PATH

        report = run_install(
            config,
            obj.get("registry") or default_registry(),
            progress=lambda msg: click.secho(msg, fg="blue"),
            os_release=obj.get("os_release", OS_RELEASE_PATH),
        )
    except (InstallerError, ConfigError) as e:
        _die(str(e), getattr(e, "exit_code", 1))
    except InstallInterrupted as e:
        _die(str(e), e.exit_code)
    except KeyboardInterrupt:
        _die("Interrupted", 130)

    logger.info("Install finished: %s (%d actions)", report.status, len(report.receipts))

    if report.host is not None:
        click.echo("This machine is currently running: ", nl=False)
        click.secho(report.host.label, fg="green")

    if report.stopped_for_dry_run:
        click.secho("Dry run complete. Not running Ansible", fg="yellow", err=True)
        return

    click.secho("Installation complete!", fg="green", bold=True)


def parse_arguments(args: Sequence[str]) -> PartialConfig:
    """Parse installer flags without running anything.

    Raises:
        click.UsageError: unknown flag or a flag missing its value.
        click.exceptions.Exit: ``--help`` / ``--version`` (exit code 0).
    """
    ctx = cli.make_context("fts-install", list(args))
    return _partial_from_context(ctx)


def _partial_from_context(ctx: click.Context) -> PartialConfig:
    p = ctx.params
    return PartialConfig(
        install_type=ctx.meta.get(_INSTALL_TYPE_KEY),
        repo_url=p.get("repo_url"),
        branch=p.get("branch"),
        override_branch=p.get("override_branch"),
        ip_override=p.get("ip_override"),
        dry_run=p.get("dry_run", False),
        core_only=p.get("core_only", False),
        verbose=p.get("verbose", False),
        check_mode=p.get("check_mode", False),
        dev_test=p.get("dev_test", False),
        no_color=p.get("no_color", False),
    )


def _configure_output(ctx: click.Context, partial: PartialConfig) -> None:
    if (
        partial.no_color
        or partial.verbose
        or os.environ.get("NO_COLOR")
        or os.environ.get("TERM") == "dumb"
    ):
        ctx.color = False

    if partial.verbose:
        click.echo("Verbose output")

    setup_logging(
        level=resolve_level(partial.verbose),
        log_file=os.environ.get(FILE_ENV_VAR),
        log_file_level=os.environ.get(FILE_LEVEL_ENV_VAR),
        quiet_third_party=not partial.verbose,
    )


def _finalize(partial: PartialConfig, settings: InstallerSettings) -> InstallConfig:
    """Look up the latest release, then resolve the install config.

    A failed lookup only matters when ``latest`` is what gets installed.
    """
    latest_version: str | None = None
    lookup_error: NetworkFetchFailure | None = None
    try:
        latest_version = fetch_latest_version(settings.fts_package, settings.package_index_url)
    except NetworkFetchFailure as e:
        lookup_error = e
        logger.warning("%s", e)

    try:
        return validate_and_finalize(partial, settings, latest_version)
    except NetworkFetchFailure as e:
        raise (lookup_error or e) from None


def _print_summary(config: InstallConfig) -> None:
    click.echo("Selected install type is: ", nl=False)
    click.secho(f"{config.install_type} (FreeTAKServer {config.fts_version})", fg="green")
    if config.check_mode:
        click.echo("Compatibility check mode requested")
    logger.debug(
        "repo=%s branch=%s playbook=%s dry_run=%s",
        config.repo_url, config.branch, config.playbook, config.dry_run,
    )


def _die(message: str, code: int = 1) -> NoReturn:
    click.secho(message, fg="red", err=True)
    if code != 0:
        click.echo("Exiting. Installation NOT successful.", err=True)
    sys.exit(code)


if __name__ == "__main__":
    cli()
