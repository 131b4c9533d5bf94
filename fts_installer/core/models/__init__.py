"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from fts_installer.core.models import InstallConfig, InstallType, Action, Receipt
"""

from fts_installer.core.models.action import Action, Receipt, ReceiptStatus
from fts_installer.core.models.host import HostInfo
from fts_installer.core.models.install import (
    InstallConfig,
    InstallType,
    PartialConfig,
    ResolvedVersions,
    VersionProfile,
)

__all__ = [
    # action.py
    "Action",
    # host.py
    "HostInfo",
    # install.py
    "InstallConfig",
    "InstallType",
    "PartialConfig",
    "Receipt",
    "ReceiptStatus",
    "ResolvedVersions",
    "VersionProfile",
]
