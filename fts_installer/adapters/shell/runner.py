"""
Subprocess runner — the single place where ``subprocess.run`` is called
for install operations and host detection.

Long-running tools (apt, git clone, ansible-playbook) run with their
output streamed to the terminal; short probes capture it.  There is no
timeout by default: the install waits for each tool to finish.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Mapping, Sequence
from typing import Any

logger = logging.getLogger(__name__)

_TAIL = 2000


def run_command(
    cmd: Sequence[str],
    *,
    env_overrides: Mapping[str, str] | None = None,
    cwd: str | None = None,
    timeout: float | None = None,
    capture: bool = True,
) -> dict[str, Any]:
    """Run ``cmd`` and describe the outcome.

    Args:
        cmd: Argument vector (never passed through a shell).
        env_overrides: Extra variables layered over ``os.environ``.
        cwd: Working directory.
        timeout: Seconds before giving up (None waits forever).
        capture: Capture stdout/stderr instead of inheriting the terminal.

    Returns:
        ``{"ok": True, "stdout": "...", "return_code": 0, "elapsed_ms": N}``
        on success, ``{"ok": False, "error": "...", "return_code": N, ...}``
        on failure.
    """
    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    argv = [str(part) for part in cmd]
    logger.debug("Executing: %s (cwd=%s)", " ".join(argv), cwd)
    start = time.monotonic()
    try:
        result = subprocess.run(
            argv,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {argv[0]}", "return_code": 127}
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)", "return_code": None}
    except OSError as e:
        logger.exception("Subprocess error: %s", argv)
        return {"ok": False, "error": str(e), "return_code": None}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (result.stdout or "")[-_TAIL:]
    stderr = (result.stderr or "")[-_TAIL:]

    if result.returncode == 0:
        return {
            "ok": True,
            "stdout": stdout,
            "return_code": 0,
            "elapsed_ms": elapsed_ms,
        }

    return {
        "ok": False,
        "error": stderr.strip() or f"Command failed (exit {result.returncode})",
        "stderr": stderr,
        "stdout": stdout,
        "return_code": result.returncode,
        "elapsed_ms": elapsed_ms,
    }
