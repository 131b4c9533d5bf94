"""
Apt adapter — Debian package management.

``install`` is ``apt-get -y install``, which is a no-op for packages
already present, so every operation here is safe to repeat.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.adapters.shell.runner import run_command
from fts_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)

APT_GET = "apt-get"

# python3-apt extension modules that add-apt-repository imports by plain name
_APT_BINDINGS = ("pkg", "inst")


class AptAdapter(Adapter):
    """apt-get operations.

    Action params:
        operation (str): One of 'update', 'install', 'repair_bindings'.
        packages (list[str]): Packages to install (for 'install').
        quiet (bool): Pass ``-qq`` (for 'install', default: False).
        lib_dir (str): Where to look for apt bindings (default: /usr/lib).
    """

    _OPERATIONS = {"update", "install", "repair_bindings"}

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return shutil.which(APT_GET) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation not in self._OPERATIONS:
            return False, (
                f"Unknown operation '{operation}'. "
                f"Valid: {', '.join(sorted(self._OPERATIONS))}"
            )
        if operation == "install" and not context.params.get("packages"):
            return False, "Missing required param: 'packages' for install operation"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        if operation == "repair_bindings":
            return self._repair_bindings(context)

        if operation == "update":
            argv = [APT_GET, "update"]
        else:
            argv = [APT_GET, "-y"]
            if context.params.get("quiet"):
                argv.append("-qq")
            argv += ["install", *context.params["packages"]]

        result = run_command(argv, env_overrides=context.env, capture=False)
        return self._receipt(context, result, argv)

    def _repair_bindings(self, ctx: ExecutionContext) -> Receipt:
        """Symlink ``apt_pkg.so`` / ``apt_inst.so`` to the versioned builds.

        Newer python3-apt only ships ``apt_pkg.cpython-3XX-*.so``; an
        interpreter of another minor version then cannot import it.
        """
        lib_dir = Path(ctx.params.get("lib_dir", "/usr/lib"))
        linked: list[str] = []
        try:
            for binding in _APT_BINDINGS:
                plain = f"apt_{binding}.so"
                if next(lib_dir.rglob(plain), None) is not None:
                    continue
                versioned = next(lib_dir.rglob(f"apt_{binding}.cpython*.so"), None)
                if versioned is None:
                    logger.debug("No %s build found under %s", plain, lib_dir)
                    continue
                link = versioned.parent / plain
                if link.is_symlink():
                    link.unlink()
                link.symlink_to(versioned)
                linked.append(str(link))
                logger.info("Linked %s → %s", link, versioned)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"Could not repair apt bindings: {e}",
            )

        if not linked:
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason="apt bindings already importable",
            )
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=", ".join(linked),
            metadata={"linked": linked},
        )
