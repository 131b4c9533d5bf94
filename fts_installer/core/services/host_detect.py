"""
Host detection — privilege check and operating system identity.

Read-only probes.  The only failure that stops the install here is
running without root; an unknown Debian release is a warning and the
codename reported by os-release is kept.
"""

from __future__ import annotations

import logging
import os
import platform
import shutil
from pathlib import Path

from fts_installer.adapters.shell.runner import run_command
from fts_installer.core.errors import PrivilegeError
from fts_installer.core.models.host import HostInfo

logger = logging.getLogger(__name__)

OS_RELEASE_PATH = Path("/etc/os-release")

DEBIAN_NAME = "Debian GNU/Linux"

DEBIAN_CODENAMES: dict[str, str] = {
    "13": "trixie",
    "12": "bookworm",
    "11": "bullseye",
    "10": "buster",
}


def require_root() -> None:
    """Fail unless the process runs with effective uid 0."""
    if os.geteuid() != 0:
        raise PrivilegeError(
            "This script requires running as root. Use sudo before the command."
        )


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines of an os-release file."""
    fields: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        fields[key.strip()] = value
    return fields


def detect_host(os_release: Path = OS_RELEASE_PATH) -> HostInfo:
    """Identify the running OS.

    Tries os-release first, then ``lsb_release``, then ``uname``.
    Debian releases get their codename from ``DEBIAN_CODENAMES``.
    """
    host = _from_os_release(os_release) or _from_lsb_release() or _from_uname()

    if host.is_debian:
        codename = DEBIAN_CODENAMES.get(host.version)
        if codename:
            host.codename = codename
        else:
            msg = f"Unknown Debian version {host.version!r}"
            host.warnings.append(msg)
            logger.warning("WARNING: %s, keeping codename %r", msg, host.codename)

    logger.info("Detected host %s (codename=%s, via %s)", host.label, host.codename, host.source)
    return host


def _from_os_release(path: Path) -> HostInfo | None:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot read %s: %s", path, e)
        return None
    fields = parse_os_release(text)
    return HostInfo(
        name=fields.get("NAME") or "unknown",
        version=fields.get("VERSION_ID") or "unknown",
        codename=fields.get("VERSION_CODENAME", ""),
        source="os-release",
    )


def _from_lsb_release() -> HostInfo | None:
    if not shutil.which("lsb_release"):
        return None
    name, version, codename = (_lsb_field(flag) for flag in ("-si", "-sr", "-sc"))
    if not (name or version or codename):
        return None
    return HostInfo(
        name=name or "unknown",
        version=version or "unknown",
        codename=codename,
        source="lsb_release",
    )


def _from_uname() -> HostInfo:
    return HostInfo(
        name=platform.system() or "unknown",
        version=platform.release() or "unknown",
        source="uname",
    )


def _lsb_field(flag: str) -> str:
    result = run_command(["lsb_release", flag], timeout=10)
    if not result["ok"]:
        logger.debug("lsb_release %s failed: %s", flag, result.get("error"))
        return ""
    return result.get("stdout", "").strip()
