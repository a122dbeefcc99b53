"""
Tests for observability — logging setup.
"""

import logging

import pytest

from frate.core.observability.logging_config import resolve_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _ours(root):
    return [h for h in root.handlers if getattr(h, "_frate_handler", False)]


class TestResolveLevel:
    def test_flags(self):
        assert resolve_level(debug=True, quiet=True) == "DEBUG"
        assert resolve_level(verbose=True) == "INFO"
        assert resolve_level(quiet=True) == "ERROR"

    def test_env(self, monkeypatch):
        monkeypatch.setenv("FRATE_LOG_LEVEL", "INFO")
        assert resolve_level() == "INFO"
        assert resolve_level(debug=True) == "DEBUG"

    def test_default(self):
        assert resolve_level() == "WARNING"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        (console,) = _ours(root)
        assert console.level == logging.INFO
        assert root.level == logging.INFO

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(_ours(logging.getLogger())) == 1

    def test_unknown_level_means_warning(self):
        setup_logging("chatty")
        assert _ours(logging.getLogger())[0].level == logging.WARNING

    def test_file_output(self, tmp_path):
        log_file = tmp_path / "frate.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

        logging.getLogger("frate.test").debug("detail for the file")
        for handler in _ours(logging.getLogger()):
            handler.flush()
        assert "detail for the file" in log_file.read_text()

    def test_third_party_quieted(self):
        setup_logging("INFO")
        assert logging.getLogger("urllib3").level == logging.WARNING
