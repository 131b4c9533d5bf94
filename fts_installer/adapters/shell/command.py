"""
Shell command adapter — run one program with arguments.

Used for the odd tools that do not deserve their own adapter:
``apt-key``, ``ssh-keygen``, a venv's ``python -m pip``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.adapters.shell.runner import run_command
from fts_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute a command vector.

    Action params:
        argv (list[str]): Program and arguments.
        stream (bool): Show output on the terminal (default: False).
        timeout (float): Timeout in seconds (default: none).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.params.get("argv")
        if not argv or not isinstance(argv, list):
            return False, "Missing required param: 'argv'"

        if context.cwd and not Path(context.cwd).is_dir():
            return False, f"Working directory does not exist: {context.cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = [str(a) for a in context.params["argv"]]
        result = run_command(
            argv,
            env_overrides=context.env,
            cwd=context.cwd,
            timeout=context.params.get("timeout"),
            capture=not context.params.get("stream", False),
        )
        return self._receipt(context, result, argv)
