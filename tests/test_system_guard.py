"""
Tests for the system file guard — relocation, restore and signals.
"""

import os
import signal
from pathlib import Path

import pytest

from fts_installer.core.errors import InstallInterrupted
from fts_installer.core.services import system_guard
from fts_installer.core.services.system_guard import SystemFileGuard


class TestSystemFileGuard:
    def test_relocate_and_restore(self, needrestart_conf: Path, tmp_path: Path):
        backup = tmp_path / "nr-conf-temp"
        original = needrestart_conf.read_text()

        with SystemFileGuard() as guard:
            assert guard.relocate(needrestart_conf, backup)
            assert not needrestart_conf.exists()
            assert backup.read_text() == original

        assert needrestart_conf.read_text() == original
        assert not backup.exists()

    def test_missing_file_is_noop(self, tmp_path: Path):
        with SystemFileGuard() as guard:
            assert guard.relocate(tmp_path / "absent", tmp_path / "bak") is False
            assert guard.relocated == []

    def test_restored_after_error(self, needrestart_conf: Path, tmp_path: Path):
        with pytest.raises(RuntimeError):
            with SystemFileGuard() as guard:
                guard.relocate(needrestart_conf, tmp_path / "bak")
                raise RuntimeError("boom")
        assert needrestart_conf.exists()

    def test_restored_once(self, needrestart_conf: Path, tmp_path: Path):
        with SystemFileGuard() as guard:
            guard.relocate(needrestart_conf, tmp_path / "bak")
            guard.restore_all()
            assert needrestart_conf.exists()
            assert guard.relocated == []
        assert needrestart_conf.exists()

    def test_relocate_outside_block(self, needrestart_conf: Path, tmp_path: Path):
        with pytest.raises(RuntimeError):
            SystemFileGuard().relocate(needrestart_conf, tmp_path / "bak")

    def test_sigterm_interrupts_and_restores(self, needrestart_conf: Path, tmp_path: Path):
        before = signal.getsignal(signal.SIGTERM)
        with pytest.raises(InstallInterrupted) as exc_info:
            with SystemFileGuard() as guard:
                guard.relocate(needrestart_conf, tmp_path / "bak")
                os.kill(os.getpid(), signal.SIGTERM)
        assert exc_info.value.signum == signal.SIGTERM
        assert exc_info.value.exit_code == 128 + signal.SIGTERM
        assert needrestart_conf.exists()
        assert signal.getsignal(signal.SIGTERM) == before

    def test_keyboard_interrupt_restores(self, needrestart_conf: Path, tmp_path: Path):
        with pytest.raises(KeyboardInterrupt):
            with SystemFileGuard() as guard:
                guard.relocate(needrestart_conf, tmp_path / "bak")
                raise KeyboardInterrupt
        assert needrestart_conf.exists()

    def test_signal_during_restore_is_ignored(self, needrestart_conf: Path, tmp_path: Path, monkeypatch):
        before = signal.getsignal(signal.SIGTERM)
        real_move = system_guard.shutil.move

        def move_after_sigterm(src, dst):
            os.kill(os.getpid(), signal.SIGTERM)
            return real_move(src, dst)

        with SystemFileGuard() as guard:
            guard.relocate(needrestart_conf, tmp_path / "bak")
            monkeypatch.setattr(system_guard.shutil, "move", move_after_sigterm)

        assert needrestart_conf.exists()
        assert not (tmp_path / "bak").exists()
        assert guard.relocated == []
        assert signal.getsignal(signal.SIGTERM) == before
