"""
Git adapter — version control operations on the installation repository.

Uses the git CLI. ``clone`` streams its progress to the terminal; the
rest capture output for the receipt.
"""

from __future__ import annotations

import logging
import shutil

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.adapters.shell.runner import run_command
from fts_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)


class GitAdapter(Adapter):
    """Git operations.

    Action params:
        operation (str): One of 'clone', 'fetch', 'checkout', 'pull'.
        repo (str): Remote URL (for 'clone').
        dest (str): Target directory (for 'clone').
        branch (str): Branch or ref (for 'clone' and 'checkout').
    """

    _OPERATIONS = {"clone", "fetch", "checkout", "pull"}

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in self._OPERATIONS:
            return False, (
                f"Unknown operation '{operation}'. "
                f"Valid: {', '.join(sorted(self._OPERATIONS))}"
            )

        if operation == "clone":
            for key in ("repo", "dest", "branch"):
                if not context.params.get(key):
                    return False, f"Missing required param: '{key}' for clone operation"
        elif operation == "checkout" and not context.params.get("branch"):
            return False, "Missing required param: 'branch' for checkout operation"
        elif not context.cwd:
            return False, f"Operation '{operation}' needs a working copy (cwd)"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        if operation == "clone":
            args = [
                "clone",
                "--branch", context.params["branch"],
                context.params["repo"],
                context.params["dest"],
            ]
            cwd = None
        elif operation == "checkout":
            args = ["checkout", context.params["branch"]]
            cwd = context.cwd
        else:
            args = [operation]
            cwd = context.cwd

        argv = ["git", *args]
        result = run_command(
            argv,
            env_overrides=context.env,
            cwd=cwd,
            capture=operation != "clone",
        )
        return self._receipt(context, result, argv)
