"""
Ansible adapter — runs one playbook against the local host.

The playbook output goes straight to the terminal; its exit code is
recorded on the receipt so the CLI can exit with it.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.adapters.shell.runner import run_command
from fts_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)

ANSIBLE_PLAYBOOK = "ansible-playbook"


class AnsiblePlaybookAdapter(Adapter):
    """``ansible-playbook`` invocation.

    Action params:
        playbook (str): Playbook file, relative to the working copy.
        extra_vars (dict): Named parameters for ``--extra-vars``.
        remote_user (str): ``-u`` value (default: root).
        verbosity (int): Number of ``-v`` flags (default: 0).
    """

    @property
    def name(self) -> str:
        return "ansible"

    def is_available(self) -> bool:
        return shutil.which(ANSIBLE_PLAYBOOK) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        playbook = context.params.get("playbook", "")
        if not playbook:
            return False, "Missing required param: 'playbook'"
        if context.cwd and not (Path(context.cwd) / playbook).is_file():
            return False, f"Playbook not found: {Path(context.cwd) / playbook}"
        if not isinstance(context.params.get("extra_vars", {}), dict):
            return False, "Param 'extra_vars' must be a mapping"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = build_playbook_argv(
            context.params["playbook"],
            context.params.get("extra_vars", {}),
            remote_user=context.params.get("remote_user", "root"),
            verbosity=context.params.get("verbosity", 0),
        )
        logger.info("Running %s", " ".join(argv))
        result = run_command(argv, env_overrides=context.env, cwd=context.cwd, capture=False)
        return self._receipt(context, result, argv)


def build_playbook_argv(
    playbook: str,
    extra_vars: dict,
    remote_user: str = "root",
    verbosity: int = 0,
) -> list[str]:
    """Command line for a local, inventory-less playbook run."""
    argv = [
        ANSIBLE_PLAYBOOK,
        "-u", remote_user,
        playbook,
        "--connection=local",
        "--inventory", "localhost,",
        "--extra-vars", json.dumps(extra_vars, sort_keys=True),
    ]
    if verbosity > 0:
        argv.append("-" + "v" * verbosity)
    return argv
