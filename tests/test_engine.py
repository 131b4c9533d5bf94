"""
Tests for engine executor — install sequence, dry run, and cleanup.
"""

import os
import shutil
import signal

import pytest

from fts_installer.core.engine.executor import (
    ANSIBLE_PLAYBOOK_PATH,
    InstallRunner,
    run_install,
)
from fts_installer.core.errors import ExternalToolFailure, InstallInterrupted, PrivilegeError
from fts_installer.core.services.system_guard import SystemFileGuard

DEPS_IDS = [
    "deps:repair-bindings",
    "deps:update",
    "deps:install-base",
    "deps:ansible-source",
    "deps:ansible-key",
    "deps:update-ansible",
    "deps:install-ansible",
    "deps:install-git",
]

VENV_IDS = [
    "venv:update",
    "venv:install-pip",
    "venv:install-python",
    "venv:create",
    "venv:upgrade-pip",
    "venv:install-libraries",
]


def _params(mock_adapter, action_id: str) -> dict:
    for ctx in mock_adapter.call_log:
        if ctx.action.id == action_id:
            return ctx.params
    raise AssertionError(f"{action_id} was not executed")


# ── Full sequence ────────────────────────────────────────────────────


@pytest.mark.usefixtures("as_root")
class TestRunInstall:
    def test_full_sequence_order(self, make_config, mock_registry, mock_adapter, os_release):
        report = run_install(make_config(), mock_registry, os_release=os_release)

        assert mock_adapter.action_ids == [
            *DEPS_IDS,
            *VENV_IDS,
            "repo:clone",
            "sudoers:grant",
            "ssh:mkdir",
            "ssh:keygen",
            "playbook:run",
        ]
        assert report.status == "ok"
        assert report.host.codename == "bookworm"
        assert report.steps == ["root", "host", "deps", "venv", "repo", "sudoers", "ssh", "playbook"]

    def test_dry_run_skips_playbook(self, make_config, mock_registry, mock_adapter, os_release):
        report = run_install(make_config(dry_run=True), mock_registry, os_release=os_release)

        assert "playbook:run" not in mock_adapter.action_ids
        assert mock_adapter.action_ids[-1] == "ssh:keygen"
        assert report.stopped_for_dry_run
        assert report.status == "dry-run"

    def test_playbook_params(self, make_config, mock_registry, mock_adapter, os_release):
        config = make_config(install_type="stable", ip_override="192.0.2.7")
        run_install(config, mock_registry, os_release=os_release)

        params = _params(mock_adapter, "playbook:run")
        assert params["playbook"] == "install_all.yml"
        assert params["remote_user"] == "root"
        assert params["verbosity"] == 0
        assert params["extra_vars"]["codename"] == "bookworm"
        assert params["extra_vars"]["fts_version"] == "2.0.66"
        assert params["extra_vars"]["fts_ip_addr_extra"] == "192.0.2.7"

        ctx = mock_adapter.calls_for("ansible")[0]
        assert ctx.cwd == str(config.install_dir)

    def test_core_selects_mainserver(self, make_config, mock_registry, mock_adapter, os_release):
        run_install(make_config(core_only=True, verbose=True), mock_registry, os_release=os_release)
        params = _params(mock_adapter, "playbook:run")
        assert params["playbook"] == "install_mainserver.yml"
        assert params["verbosity"] == 5

    @pytest.mark.parametrize("install_type", ["stable", "legacy"])
    def test_venv_only_for_default(self, make_config, mock_registry, mock_adapter, os_release, install_type):
        run_install(make_config(install_type=install_type), mock_registry, os_release=os_release)
        assert not any(a.startswith("venv:") for a in mock_adapter.action_ids)

    def test_venv_uses_python_version(self, make_config, mock_registry, mock_adapter, os_release):
        config = make_config()
        run_install(config, mock_registry, os_release=os_release)
        assert _params(mock_adapter, "venv:install-python")["packages"] == [
            "python3.11-dev", "python3.11-venv", "libpython3.11-dev",
        ]
        assert _params(mock_adapter, "venv:create")["argv"] == [
            "/usr/bin/python3.11", "-m", "venv", str(config.venv_dir),
        ]

    def test_tool_env_passed_to_every_action(self, make_config, mock_registry, mock_adapter, os_release):
        run_install(make_config(dev_test=True), mock_registry, os_release=os_release)
        for ctx in mock_adapter.call_log:
            assert ctx.env["DEBIAN_FRONTEND"] == "noninteractive"
            assert ctx.env["TEST"] == "1"

    def test_non_root_stops_before_apt(self, make_config, mock_registry, mock_adapter, os_release, monkeypatch):
        monkeypatch.setattr("fts_installer.core.services.host_detect.os.geteuid", lambda: 1000)
        with pytest.raises(PrivilegeError):
            run_install(make_config(), mock_registry, os_release=os_release)
        assert mock_adapter.call_count == 0


# ── Repository step ──────────────────────────────────────────────────


@pytest.mark.usefixtures("as_root")
class TestSyncRepository:
    def test_existing_checkout_is_updated(self, make_config, mock_registry, mock_adapter, os_release):
        config = make_config(branch="dev")
        config.install_dir.mkdir(parents=True)
        run_install(config, mock_registry, os_release=os_release)

        repo_ids = [a for a in mock_adapter.action_ids if a.startswith("repo:")]
        assert repo_ids == ["repo:fetch", "repo:checkout", "repo:pull"]
        assert _params(mock_adapter, "repo:checkout")["branch"] == "dev"

    def test_clone_uses_effective_branch(self, make_config, mock_registry, mock_adapter, os_release):
        config = make_config(branch="dev", override_branch="hotfix")
        run_install(config, mock_registry, os_release=os_release)
        params = _params(mock_adapter, "repo:clone")
        assert params["branch"] == "hotfix"
        assert params["dest"] == str(config.install_dir)

    def test_repo_override_discards_old_clone(self, make_config, mock_registry, mock_adapter, os_release):
        config = make_config(repo_url="https://example.org/fork.git")
        config.install_dir.mkdir(parents=True)
        mock_adapter.set_hook("repo:discard", lambda ctx: shutil.rmtree(ctx.params["path"]))

        run_install(config, mock_registry, os_release=os_release)

        repo_ids = [a for a in mock_adapter.action_ids if a.startswith("repo:")]
        assert repo_ids == ["repo:discard", "repo:clone"]
        assert _params(mock_adapter, "repo:clone")["repo"] == "https://example.org/fork.git"


# ── Sudoers / ssh ────────────────────────────────────────────────────


@pytest.mark.usefixtures("as_root")
class TestGrants:
    def test_sudoers_line(self, make_config, mock_registry, mock_adapter, os_release):
        config = make_config()
        run_install(config, mock_registry, os_release=os_release)
        params = _params(mock_adapter, "sudoers:grant")
        assert params["path"] == str(config.sudoers_dir / "dont-prompt-fts-for-sudo-password")
        assert params["line"] == f"fts ALL=(ALL) NOPASSWD:{ANSIBLE_PLAYBOOK_PATH}"
        assert params["mode"] == 0o440

    def test_existing_ssh_key_kept(self, make_config, mock_registry, mock_adapter, os_release):
        config = make_config()
        config.ssh_key.parent.mkdir(parents=True)
        config.ssh_key.with_suffix(".pub").write_text("ssh-rsa AAAA\n")
        run_install(config, mock_registry, os_release=os_release)
        assert "ssh:keygen" not in mock_adapter.action_ids


# ── Failures and cleanup ─────────────────────────────────────────────


@pytest.mark.usefixtures("as_root")
class TestFailures:
    def test_failed_step_aborts(self, make_config, mock_registry, mock_adapter, os_release):
        mock_adapter.set_failure("deps:install-base", error="E: Unable to locate package", return_code=100)
        with pytest.raises(ExternalToolFailure) as exc_info:
            run_install(make_config(), mock_registry, os_release=os_release)

        assert exc_info.value.exit_code == 1
        assert mock_adapter.action_ids[-1] == "deps:install-base"

    def test_playbook_exit_code_propagates(self, make_config, mock_registry, mock_adapter, os_release):
        mock_adapter.set_failure("playbook:run", error="play failed", return_code=4)
        with pytest.raises(ExternalToolFailure) as exc_info:
            run_install(make_config(), mock_registry, os_release=os_release)
        assert exc_info.value.exit_code == 4

    def test_needrestart_restored_after_success(
        self, make_config, mock_registry, mock_adapter, os_release, needrestart_conf,
    ):
        config = make_config()
        seen = {}
        mock_adapter.set_hook(
            "deps:update",
            lambda ctx: seen.update(moved=not needrestart_conf.exists(),
                                    backup=config.needrestart_backup.exists()),
        )
        run_install(config, mock_registry, os_release=os_release)

        assert seen == {"moved": True, "backup": True}
        assert needrestart_conf.exists()
        assert not config.needrestart_backup.exists()

    def test_needrestart_restored_after_failure(
        self, make_config, mock_registry, mock_adapter, os_release, needrestart_conf,
    ):
        mock_adapter.set_failure("deps:install-git")
        with pytest.raises(ExternalToolFailure):
            run_install(make_config(), mock_registry, os_release=os_release)
        assert needrestart_conf.exists()

    def test_needrestart_restored_after_sigterm(
        self, make_config, mock_registry, mock_adapter, os_release, needrestart_conf,
    ):
        mock_adapter.set_hook("deps:update", lambda ctx: os.kill(os.getpid(), signal.SIGTERM))
        with pytest.raises(InstallInterrupted) as exc_info:
            run_install(make_config(), mock_registry, os_release=os_release)

        assert exc_info.value.exit_code == 128 + signal.SIGTERM
        assert needrestart_conf.exists()
        assert "playbook:run" not in mock_adapter.action_ids

    def test_needrestart_restored_after_ctrl_c(
        self, make_config, mock_registry, mock_adapter, os_release, needrestart_conf,
    ):
        def _interrupt(ctx):
            raise KeyboardInterrupt

        mock_adapter.set_hook("venv:create", _interrupt)
        with pytest.raises(KeyboardInterrupt):
            run_install(make_config(), mock_registry, os_release=os_release)
        assert needrestart_conf.exists()

    def test_missing_apt(self, make_config, os_release):
        from fts_installer.adapters.registry import AdapterRegistry

        registry = AdapterRegistry()
        with pytest.raises(ExternalToolFailure, match="Could not locate apt"):
            run_install(make_config(), registry, os_release=os_release)


@pytest.mark.usefixtures("as_root")
def test_install_dependencies_repeatable(make_config, mock_registry, mock_adapter, needrestart_conf):
    config = make_config()
    with SystemFileGuard(handle_signals=False) as guard:
        runner = InstallRunner(config, mock_registry, guard)
        runner.install_dependencies()
        runner.install_dependencies()
        assert guard.relocated and len(guard.relocated) == 1

    assert mock_adapter.action_ids == DEPS_IDS + DEPS_IDS
    assert needrestart_conf.exists()
