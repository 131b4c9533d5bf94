"""
Version resolution — install type → python / FTS version / config path.

The table below is the only place release channels are described.
``latest`` has no pinned FTS version: it is looked up on PyPI at
startup with ``fetch_latest_version``.
"""

from __future__ import annotations

import json
import logging
import urllib.request

from fts_installer.core.errors import NetworkFetchFailure, UnsupportedInstallTypeError
from fts_installer.core.models.install import InstallType, ResolvedVersions, VersionProfile

logger = logging.getLogger(__name__)

FTS_PACKAGE = "FreeTAKServer"
PACKAGE_INDEX_URL = "https://pypi.org/pypi"

PY3_VER_STABLE = "3.11"
PY3_VER_LEGACY = "3.8"

STABLE_FTS_VERSION = "2.0.66"
LEGACY_FTS_VERSION = "1.9.9.6"

_VERSION_TABLE: dict[InstallType, VersionProfile] = {
    InstallType.LATEST: VersionProfile(
        python_version=PY3_VER_STABLE,
        fts_version=None,
        config_relative_path="core/configuration",
    ),
    InstallType.STABLE: VersionProfile(
        python_version=PY3_VER_STABLE,
        fts_version=STABLE_FTS_VERSION,
        config_relative_path="core/configuration",
    ),
    InstallType.LEGACY: VersionProfile(
        python_version=PY3_VER_LEGACY,
        fts_version=LEGACY_FTS_VERSION,
        config_relative_path="controllers/configuration",
    ),
}

_missing = set(InstallType) - set(_VERSION_TABLE)
if _missing:  # pragma: no cover
    raise RuntimeError(f"No version profile for: {sorted(_missing)}")


def parse_install_type(value: str | InstallType) -> InstallType:
    """Convert a user-supplied value into an ``InstallType``.

    Raises:
        UnsupportedInstallTypeError: for anything outside the table.
    """
    if isinstance(value, InstallType):
        return value
    try:
        return InstallType(str(value).strip().lower())
    except ValueError:
        raise UnsupportedInstallTypeError(value) from None


def version_profile(install_type: str | InstallType) -> VersionProfile:
    """Return the raw table row for an install type."""
    return _VERSION_TABLE[parse_install_type(install_type)]


def resolve_versions(
    install_type: str | InstallType,
    latest_version: str | None = None,
) -> ResolvedVersions:
    """Look up versions and config path for an install type.

    Args:
        install_type: One of ``latest``, ``stable``, ``legacy``.
        latest_version: Newest published FTS version. Required only
            when resolving ``latest``.

    Raises:
        UnsupportedInstallTypeError: unknown install type.
        NetworkFetchFailure: ``latest`` requested but no version known.
    """
    profile = version_profile(install_type)
    fts_version = profile.fts_version or latest_version
    if not fts_version:
        raise NetworkFetchFailure(
            f"Latest {FTS_PACKAGE} version is unknown; "
            "check network access or choose --stable / --legacy"
        )
    return ResolvedVersions(
        python_version=profile.python_version,
        fts_version=fts_version,
        config_relative_path=profile.config_relative_path,
    )


def fetch_latest_version(
    package: str = FTS_PACKAGE,
    index_url: str = PACKAGE_INDEX_URL,
    timeout: int = 15,
) -> str:
    """Ask the package index for the newest published version of ``package``.

    Raises:
        NetworkFetchFailure: on any transport, HTTP, or decoding problem.
    """
    url = f"{index_url.rstrip('/')}/{package}/json"
    logger.debug("Querying %s", url)
    req = urllib.request.Request(
        url,
        headers={"User-Agent": "fts-installer/1.0", "Accept": "application/json"},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            payload = json.loads(resp.read().decode("utf-8"))
    except Exception as exc:
        raise NetworkFetchFailure(
            f"Could not fetch latest {package} version from {url}: {exc}"
        ) from exc

    version = payload.get("info", {}).get("version") if isinstance(payload, dict) else None
    if not version:
        raise NetworkFetchFailure(f"No version field in package index response for {package}")

    logger.info("Latest %s on the package index: %s", package, version)
    return str(version)
