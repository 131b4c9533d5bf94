"""
Installer errors — every fatal condition the bootstrap can hit.

Each error carries the process exit code the CLI should use. Adapters
never raise these; the engine converts failed receipts into
``ExternalToolFailure`` and everything else surfaces straight to the CLI.
"""

from __future__ import annotations

import signal


class InstallerError(Exception):
    """Base class for fatal installer errors."""

    exit_code: int = 1


class PrivilegeError(InstallerError):
    """The installer is not running with root privileges."""


class UnsupportedInstallTypeError(InstallerError):
    """Install type is not one of the known release channels."""

    def __init__(self, install_type: object):
        self.install_type = install_type
        super().__init__(f"Unsupported install type: {install_type}")


class NetworkFetchFailure(InstallerError):
    """The package index could not be queried for the latest release."""


class ExternalToolFailure(InstallerError):
    """An external tool (apt, git, ansible, ...) returned non-zero."""

    def __init__(
        self,
        tool: str,
        message: str,
        return_code: int | None = None,
        propagate_code: bool = False,
    ):
        self.tool = tool
        self.return_code = return_code
        if propagate_code and return_code:
            self.exit_code = return_code
        super().__init__(f"{tool}: {message}")


class InstallInterrupted(BaseException):
    """Raised from a signal handler so that cleanup blocks still run.

    Derives from ``BaseException`` like ``KeyboardInterrupt`` so it is
    not swallowed by ``except Exception`` handlers on its way up.
    """

    def __init__(self, signum: int):
        self.signum = signum
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = f"signal {signum}"
        super().__init__(f"Interrupted by {name}")

    @property
    def exit_code(self) -> int:
        return 128 + self.signum
