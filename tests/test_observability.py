"""
Tests for logging setup — level ladder, file output, third-party noise.
"""

import logging
from pathlib import Path

import pytest

from fts_installer.core.observability.logging_config import _parse_level, resolve_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    noisy = logging.getLogger("urllib3").level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("urllib3").setLevel(noisy)


class TestParseLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [("debug", logging.DEBUG), ("INFO", logging.INFO), ("", logging.WARNING),
         (None, logging.WARNING), ("chatty", logging.WARNING)],
    )
    def test_names(self, name, expected):
        assert _parse_level(name) == expected


class TestSetupLogging:
    def test_default_is_warning(self):
        setup_logging()
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert root.handlers[0].formatter._fmt == "%(message)s"

    def test_debug_format_has_location(self):
        setup_logging(level="DEBUG")
        assert "%(lineno)d" in logging.getLogger().handlers[0].formatter._fmt

    def test_file_handler_lowers_root_level(self, tmp_path: Path):
        log_file = tmp_path / "install.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("fts_installer.test").debug("written to file only")
        for handler in root.handlers:
            handler.flush()
        assert "written to file only" in log_file.read_text()

    def test_third_party_quieted(self):
        logging.getLogger("urllib3").setLevel(logging.DEBUG)
        setup_logging(level="INFO")
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_third_party_left_alone_at_debug(self):
        logging.getLogger("urllib3").setLevel(logging.NOTSET)
        setup_logging(level="DEBUG")
        assert logging.getLogger("urllib3").level == logging.NOTSET


class TestResolveLevel:
    def test_verbose_wins(self):
        assert resolve_level(True, {"FTS_LOG_LEVEL": "ERROR"}) == "DEBUG"

    def test_env(self):
        assert resolve_level(False, {"FTS_LOG_LEVEL": "INFO"}) == "INFO"

    def test_default(self):
        assert resolve_level(False, {}) == "WARNING"
