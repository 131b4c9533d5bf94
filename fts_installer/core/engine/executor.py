"""
Engine executor — the fixed installation sequence.

Takes a resolved ``InstallConfig`` and walks the preparation steps in
order, sending every side effect through the adapter registry:

    root check → host detection → apt prerequisites → python venv
    → installation repository → sudoers grant → ssh key
    → (dry-run stop) → playbook

Any failed receipt aborts the run with ``ExternalToolFailure``.  The
whole sequence runs inside a ``SystemFileGuard`` so relocated system
files are restored on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from fts_installer.adapters.registry import AdapterRegistry
from fts_installer.core.errors import ExternalToolFailure
from fts_installer.core.models.action import Action, Receipt
from fts_installer.core.models.host import HostInfo
from fts_installer.core.models.install import InstallConfig
from fts_installer.core.services.host_detect import OS_RELEASE_PATH, detect_host, require_root
from fts_installer.core.services.system_guard import SystemFileGuard

logger = logging.getLogger(__name__)

BASE_PACKAGES = ["software-properties-common", "gnupg2", "curl"]

ANSIBLE_SOURCE_FILE = "ansible.list"
ANSIBLE_SOURCE_LINE = "deb http://ppa.launchpad.net/ansible/ansible/ubuntu focal main\n"
ANSIBLE_KEYSERVER = "keyserver.ubuntu.com"
ANSIBLE_KEY_ID = "93C4A3FD7BB9C367"

VENV_LIBRARIES = ["jinja2", "pyyaml", "psutil"]

ANSIBLE_PLAYBOOK_PATH = "/usr/bin/ansible-playbook"
ANSIBLE_VERBOSITY = 5

ProgressFn = Callable[[str], None]


@dataclass
class InstallReport:
    """Everything that happened during one run."""

    config: InstallConfig
    host: HostInfo | None = None
    receipts: list[Receipt] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    stopped_for_dry_run: bool = False
    playbook_receipt: Receipt | None = None

    @property
    def status(self) -> str:
        if self.stopped_for_dry_run:
            return "dry-run"
        if self.playbook_receipt is not None and self.playbook_receipt.ok:
            return "ok"
        return "incomplete"


def _silent(_: str) -> None:
    pass


class InstallRunner:
    """Runs the preparation steps and the playbook for one config."""

    def __init__(
        self,
        config: InstallConfig,
        registry: AdapterRegistry,
        guard: SystemFileGuard,
        progress: ProgressFn = _silent,
    ):
        self.config = config
        self.registry = registry
        self.guard = guard
        self.progress = progress
        self.report = InstallReport(config=config)
        self._env = config.tool_env()

    # ── Dispatch helpers ────────────────────────────────────────

    def _run(
        self,
        step: str,
        name: str,
        adapter: str,
        cwd: Path | None = None,
        **params,
    ) -> Receipt:
        """Execute one action; a failed receipt aborts the install."""
        action = Action(id=f"{step}:{name}", adapter=adapter, step=step, params=params)
        receipt = self.registry.execute_action(
            action,
            cwd=str(cwd) if cwd else None,
            env=self._env,
            verbose=self.config.verbose,
        )
        self.report.receipts.append(receipt)
        logger.info("%s %s → %s", receipt.marker, action.id, receipt.status)
        if receipt.failed:
            raise ExternalToolFailure(
                adapter,
                receipt.error or f"{action.id} failed",
                return_code=receipt.return_code,
            )
        return receipt

    def _begin(self, step: str, message: str) -> None:
        self.report.steps.append(step)
        logger.debug("Step %s", step)
        self.progress(message)

    # ── Steps ───────────────────────────────────────────────────

    def check_privileges(self) -> None:
        self._begin("root", "Checking if this script is running as root...")
        require_root()

    def check_host(self, os_release: Path = OS_RELEASE_PATH) -> HostInfo:
        self._begin("host", "Checking system information...")
        if not self.registry.is_available("apt"):
            raise ExternalToolFailure(
                "apt", "Could not locate apt... this installation method will not work",
            )
        host = detect_host(os_release)
        self.report.host = host
        return host

    def install_dependencies(self) -> None:
        """Apt prerequisites and Ansible. Safe to run repeatedly."""
        self._begin("deps", "Downloading dependencies...")
        cfg = self.config

        if cfg.apt_conf_dir.is_dir():
            for hook in sorted(cfg.apt_conf_dir.glob("*needrestart*")):
                if self.guard.relocate(hook, cfg.needrestart_backup):
                    break

        quiet = not cfg.verbose
        self._run("deps", "repair-bindings", "apt", operation="repair_bindings")
        self._run("deps", "update", "apt", operation="update")
        self._run("deps", "install-base", "apt", operation="install", packages=BASE_PACKAGES)
        self._run(
            "deps", "ansible-source", "filesystem",
            operation="write",
            path=str(cfg.apt_sources_dir / ANSIBLE_SOURCE_FILE),
            content=ANSIBLE_SOURCE_LINE,
        )
        self._run(
            "deps", "ansible-key", "shell",
            argv=["apt-key", "adv", "--keyserver", ANSIBLE_KEYSERVER, "--recv-keys", ANSIBLE_KEY_ID],
        )
        self._run("deps", "update-ansible", "apt", operation="update")
        self._run("deps", "install-ansible", "apt", operation="install", packages=["ansible"], quiet=quiet)
        self._run("deps", "install-git", "apt", operation="install", packages=["git"], quiet=quiet)

    def install_python_environment(self) -> None:
        """Build the FTS virtualenv with the configured interpreter."""
        self._begin("venv", f"Installing Python {self.config.python_version} environment...")
        cfg = self.config
        py = cfg.python_version

        self._run("venv", "update", "apt", operation="update")
        self._run(
            "venv", "install-pip", "apt",
            operation="install", packages=["python3-pip", "python3-setuptools"],
        )
        self._run(
            "venv", "install-python", "apt",
            operation="install",
            packages=[f"python{py}-dev", f"python{py}-venv", f"libpython{py}-dev"],
        )
        self._run(
            "venv", "create", "shell",
            argv=[f"/usr/bin/python{py}", "-m", "venv", str(cfg.venv_dir)],
            stream=True,
        )
        venv_python = str(cfg.venv_dir / "bin" / "python3")
        self._run(
            "venv", "upgrade-pip", "shell",
            argv=[venv_python, "-m", "pip", "install", "--upgrade", "pip"],
            stream=True,
        )
        self._run(
            "venv", "install-libraries", "shell",
            argv=[venv_python, "-m", "pip", "install", "--force-reinstall", *VENV_LIBRARIES],
            stream=True,
        )

    def sync_repository(self) -> None:
        """Clone the installation repository, or bring it to the branch."""
        cfg = self.config
        self._begin("repo", "Checking for FreeTAKHub-Installation in home directory...")

        if cfg.repo_overridden and cfg.install_dir.exists():
            logger.info("Repository overridden, discarding %s", cfg.install_dir)
            self._run("repo", "discard", "filesystem", operation="remove", path=str(cfg.install_dir))

        if not cfg.install_dir.exists():
            self.progress("Cloning the FreeTAKHub-Installation repository...")
            self._run(
                "repo", "clone", "git",
                operation="clone",
                repo=cfg.repo_url,
                dest=str(cfg.install_dir),
                branch=cfg.branch,
            )
            return

        self.progress("Pulling latest from the FreeTAKHub-Installation repository...")
        self._run("repo", "fetch", "git", cwd=cfg.install_dir, operation="fetch")
        self._run("repo", "checkout", "git", cwd=cfg.install_dir, operation="checkout", branch=cfg.branch)
        self._run("repo", "pull", "git", cwd=cfg.install_dir, operation="pull")

    def grant_playbook_sudo(self) -> None:
        user = self.config.user
        self._begin("sudoers", "Adding passwordless Ansible execution for the current user...")
        self._run(
            "sudoers", "grant", "filesystem",
            operation="ensure_line",
            path=str(self.config.sudoers_dir / f"dont-prompt-{user}-for-sudo-password"),
            line=f"{user} ALL=(ALL) NOPASSWD:{ANSIBLE_PLAYBOOK_PATH}",
            mode=0o440,
        )

    def ensure_ssh_key(self) -> None:
        self._begin("ssh", "Creating public and private keys if non-existent...")
        key = self.config.ssh_key
        if key.with_suffix(".pub").exists():
            logger.info("SSH key %s already present", key)
            return
        self._run("ssh", "mkdir", "filesystem", operation="mkdir", path=str(key.parent), mode=0o700)
        self._run("ssh", "keygen", "shell", argv=["ssh-keygen", "-t", "rsa", "-f", str(key), "-N", ""])

    def run_playbook(self, host: HostInfo) -> Receipt:
        cfg = self.config
        self._begin("playbook", f"Running Ansible Playbook {cfg.playbook}...")
        action = Action(
            id="playbook:run",
            adapter="ansible",
            step="playbook",
            params={
                "playbook": f"{cfg.playbook}.yml",
                "extra_vars": cfg.extra_vars(host.codename),
                "remote_user": "root",
                "verbosity": ANSIBLE_VERBOSITY if cfg.verbose else 0,
            },
        )
        receipt = self.registry.execute_action(
            action, cwd=str(cfg.install_dir), env=self._env, verbose=cfg.verbose,
        )
        self.report.receipts.append(receipt)
        self.report.playbook_receipt = receipt
        if receipt.failed:
            raise ExternalToolFailure(
                "ansible-playbook",
                receipt.error or "playbook failed",
                return_code=receipt.return_code,
                propagate_code=True,
            )
        return receipt

    # ── Whole run ───────────────────────────────────────────────

    def run(self, os_release: Path = OS_RELEASE_PATH) -> InstallReport:
        cfg = self.config
        self.check_privileges()
        host = self.check_host(os_release)
        self.install_dependencies()
        if cfg.provisions_venv:
            self.install_python_environment()
        else:
            logger.info(
                "Install type %s is not the default (%s), skipping venv",
                cfg.install_type, cfg.default_install_type,
            )
        self.sync_repository()
        self.grant_playbook_sudo()
        self.ensure_ssh_key()

        if cfg.dry_run:
            self.report.stopped_for_dry_run = True
            return self.report

        self.run_playbook(host)
        return self.report


def run_install(
    config: InstallConfig,
    registry: AdapterRegistry,
    *,
    progress: ProgressFn = _silent,
    os_release: Path = OS_RELEASE_PATH,
    handle_signals: bool = True,
) -> InstallReport:
    """Run the full installation sequence for ``config``.

    Returns the report on success and on a dry-run stop. Raises
    ``InstallerError`` subclasses on failure and ``InstallInterrupted``
    on SIGTERM / SIGHUP; the system file guard is released either way.
    """
    with SystemFileGuard(handle_signals=handle_signals) as guard:
        runner = InstallRunner(config, registry, guard, progress=progress)
        return runner.run(os_release)
