"""
Host model — what the installer learned about the machine it runs on.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class HostInfo(BaseModel):
    """Operating system identity of the target host."""

    name: str = "unknown"
    version: str = "unknown"
    codename: str = ""
    source: str = ""                # os-release | lsb_release | uname
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_debian(self) -> bool:
        return self.name == "Debian GNU/Linux"

    @property
    def label(self) -> str:
        return f"{self.name} {self.version}"
