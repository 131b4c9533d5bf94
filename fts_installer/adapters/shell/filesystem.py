"""
Filesystem adapter — the few files and directories the installer owns.

The Ansible apt source, the sudoers drop-in, ``~/.ssh`` and the
FreeTAKHub-Installation working copy all go through here, so a dry
test run can record them without touching the host.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from pathlib import Path

from fts_installer.adapters.base import Adapter, ExecutionContext
from fts_installer.core.models.action import Receipt

logger = logging.getLogger(__name__)

# operation → params it needs besides 'path'
_REQUIRED: dict[str, tuple[str, ...]] = {
    "write": ("content",),
    "ensure_line": ("line",),
    "mkdir": (),
    "remove": (),
}


class FilesystemAdapter(Adapter):
    """File operations with receipts.

    Action params:
        operation (str): One of 'write', 'ensure_line', 'mkdir', 'remove'.
        path (str): Absolute target path.
        content (str): File body (for 'write').
        line (str): Line the file must contain (for 'ensure_line').
        mode (int): Permission bits applied after writing or creating.
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.params
        operation = params.get("operation", "")
        if operation not in _REQUIRED:
            return False, (
                f"Unknown operation '{operation}'. "
                f"Valid: {', '.join(sorted(_REQUIRED))}"
            )

        path = params.get("path", "")
        if not path:
            return False, "Missing required param: 'path'"
        if not Path(path).is_absolute():
            return False, f"Path must be absolute: {path}"

        for key in _REQUIRED[operation]:
            if key not in params:
                return False, f"Missing required param: '{key}' for {operation}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        target = Path(context.params["path"])
        handlers: dict[str, Callable[[ExecutionContext, Path], Receipt]] = {
            "write": self._write,
            "ensure_line": self._ensure_line,
            "mkdir": self._mkdir,
            "remove": self._remove,
        }
        try:
            return handlers[operation](context, target)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"{operation} {target}: {e}",
                metadata={"path": str(target)},
            )

    def _done(self, ctx: ExecutionContext, target: Path, output: str) -> Receipt:
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=output,
            metadata={"path": str(target)},
        )

    def _write(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content = ctx.params["content"]
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        self._apply_mode(ctx, target)
        return self._done(ctx, target, f"Wrote {len(content)} bytes to {target}")

    def _ensure_line(self, ctx: ExecutionContext, target: Path) -> Receipt:
        """Replace the file with ``line`` unless it already contains it."""
        line = ctx.params["line"]
        if target.is_file() and line in target.read_text(encoding="utf-8").splitlines():
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"{target} already up to date",
                metadata={"path": str(target)},
            )
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(line + "\n", encoding="utf-8")
        self._apply_mode(ctx, target)
        return self._done(ctx, target, f"Wrote {target}")

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        target.mkdir(parents=True, exist_ok=True)
        self._apply_mode(ctx, target)
        return self._done(ctx, target, f"Created {target}")

    def _remove(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if not target.exists() and not target.is_symlink():
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"{target} does not exist",
            )
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
        logger.info("Removed %s", target)
        return self._done(ctx, target, f"Removed {target}")

    @staticmethod
    def _apply_mode(ctx: ExecutionContext, target: Path) -> None:
        mode = ctx.params.get("mode")
        if mode is not None:
            os.chmod(target, mode)
