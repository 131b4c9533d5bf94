"""
System file guard — temporary relocation of system config files.

The install moves apt's needrestart hook out of the way so that package
upgrades never stop for an interactive "restart services" dialog.  The
guard puts every relocated file back exactly once when the ``with``
block ends, whatever ended it: normal return, dry-run stop, an error,
Ctrl-C, or SIGTERM / SIGHUP (turned into ``InstallInterrupted``).
"""

from __future__ import annotations

import logging
import shutil
import signal
import threading
from pathlib import Path
from types import FrameType
from typing import Any

from fts_installer.core.errors import InstallInterrupted

logger = logging.getLogger(__name__)

_GUARDED_SIGNALS = (signal.SIGTERM, signal.SIGHUP)


class SystemFileGuard:
    """Context manager owning every temporarily relocated system file."""

    def __init__(self, handle_signals: bool = True):
        self._handle_signals = handle_signals
        self._relocated: list[tuple[Path, Path]] = []
        self._previous_handlers: dict[int, Any] = {}
        self._active = False

    @property
    def relocated(self) -> list[tuple[Path, Path]]:
        """Pending ``(original, backup)`` pairs, oldest first."""
        return list(self._relocated)

    def __enter__(self) -> SystemFileGuard:
        self._active = True
        if self._handle_signals and threading.current_thread() is threading.main_thread():
            for sig in _GUARDED_SIGNALS:
                self._previous_handlers[sig] = signal.signal(sig, self._on_signal)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # A second signal must not cut a restore short
        for sig in self._previous_handlers:
            signal.signal(sig, signal.SIG_IGN)
        try:
            self.restore_all()
        finally:
            for sig, handler in self._previous_handlers.items():
                signal.signal(sig, handler)
            self._previous_handlers.clear()
            self._active = False

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        logger.warning("Received signal %d, cleaning up", signum)
        raise InstallInterrupted(signum)

    def relocate(self, path: Path, backup: Path) -> bool:
        """Move ``path`` to ``backup`` until the guard exits.

        Returns False when ``path`` does not exist (nothing to do).
        """
        if not self._active:
            raise RuntimeError("SystemFileGuard.relocate() used outside its 'with' block")
        if not path.is_file():
            return False
        backup.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(path), str(backup))
        self._relocated.append((path, backup))
        logger.info("Relocated %s → %s", path, backup)
        return True

    def restore_all(self) -> None:
        """Put relocated files back, newest first. Each is restored once."""
        while self._relocated:
            original, backup = self._relocated.pop()
            try:
                shutil.move(str(backup), str(original))
                logger.info("Restored %s", original)
            except OSError as e:
                logger.error("Could not restore %s from %s: %s", original, backup, e)
