"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from fts_installer.adapters.mock import MockAdapter
from fts_installer.adapters.registry import AdapterRegistry
from fts_installer.core.config.loader import InstallerSettings
from fts_installer.core.config.resolver import validate_and_finalize
from fts_installer.core.models.install import InstallConfig, PartialConfig

DEBIAN_12_OS_RELEASE = textwrap.dedent("""\
    PRETTY_NAME="Debian GNU/Linux 12 (bookworm)"
    NAME="Debian GNU/Linux"
    VERSION_ID="12"
    VERSION="12 (bookworm)"
    VERSION_CODENAME=bookworm
    ID=debian
""")


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """A fake filesystem root holding home, apt and sudoers directories."""
    root = tmp_path / "host"
    for sub in ("home", "apt.conf.d", "sources.list.d", "sudoers.d"):
        (root / sub).mkdir(parents=True)
    return root


@pytest.fixture
def settings(host_root: Path) -> InstallerSettings:
    return InstallerSettings(
        home=host_root / "home",
        user="fts",
        apt_conf_dir=host_root / "apt.conf.d",
        apt_sources_dir=host_root / "sources.list.d",
        sudoers_dir=host_root / "sudoers.d",
    )


@pytest.fixture
def make_config(settings: InstallerSettings):
    """Factory: ``make_config(install_type="stable", dry_run=True, ...)``."""

    def _make(latest_version: str = "2.1.0", **flags) -> InstallConfig:
        return validate_and_finalize(PartialConfig(**flags), settings, latest_version)

    return _make


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter(adapter_name="mock")


@pytest.fixture
def mock_registry(mock_adapter: MockAdapter) -> AdapterRegistry:
    """Registry that routes every action to ``mock_adapter``."""
    registry = AdapterRegistry()
    registry.set_mock_mode(True, mock_adapter=mock_adapter)
    return registry


@pytest.fixture
def os_release(tmp_path: Path) -> Path:
    path = tmp_path / "os-release"
    path.write_text(DEBIAN_12_OS_RELEASE)
    return path


@pytest.fixture
def as_root(monkeypatch):
    """Pretend the test process runs as root."""
    monkeypatch.setattr("fts_installer.core.services.host_detect.os.geteuid", lambda: 0)


@pytest.fixture
def needrestart_conf(host_root: Path) -> Path:
    """An apt needrestart hook that the install must move away and restore."""
    path = host_root / "apt.conf.d" / "99needrestart"
    path.write_text('DPkg::Post-Invoke {"test -x /usr/lib/needrestart/apt-pinvoke";};\n')
    return path
