"""
Brief: Tests for nukedns.config.logging_config.init_logging and formatters.

Inputs:
  - None

Outputs:
  - None
"""

import logging
import logging.handlers
from pathlib import Path

import pytest

from nukedns.config.logging_config import (
    BracketLevelFormatter,
    SyslogFormatter,
    init_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        if h not in handlers:
            h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


def test_init_logging_adds_stderr_handler():
    """
    Brief: init_logging configures root logger with stderr handler by default.

    Inputs:
      - cfg: minimal dict with level

    Outputs:
      - None: Asserts StreamHandler present and level applied
    """
    init_logging({"level": "debug"})
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, logging.StreamHandler) for h in root.handlers)


def test_init_logging_none_defaults_to_info():
    init_logging(None)
    assert logging.getLogger().level == logging.INFO


def test_init_logging_unknown_level_defaults_to_info():
    init_logging({"level": "chatty"})
    assert logging.getLogger().level == logging.INFO


def test_init_logging_replaces_existing_handlers():
    init_logging({})
    init_logging({})
    stream_handlers = [
        h for h in logging.getLogger().handlers if type(h) is logging.StreamHandler
    ]
    assert len(stream_handlers) == 1


def test_init_logging_file_handler_writes(tmp_path):
    """
    Brief: init_logging creates file handler and writes formatted entries.

    Inputs:
      - cfg: nested file path, stderr disabled

    Outputs:
      - None: Asserts file created and contains tagged message
    """
    log_path = tmp_path / "logs" / "nukedns.log"
    init_logging({"level": "info", "file": str(log_path), "stderr": False})
    logging.getLogger("nukedns.test").info("file message")
    for h in logging.getLogger().handlers:
        h.flush()
    content = Path(log_path).read_text()
    assert "file message" in content
    assert "[info] nukedns.test:" in content
    assert not any(
        type(h) is logging.StreamHandler for h in logging.getLogger().handlers
    )


def test_init_logging_syslog(monkeypatch):
    created = {}

    class DummySysLogHandler(logging.Handler):
        LOG_USER = 8
        LOG_DAEMON = 24
        LOG_LOCAL0 = 128

        def __init__(self, address=None, facility=None):
            super().__init__()
            created["address"] = address
            created["facility"] = facility

        def emit(self, record):
            pass

    monkeypatch.setattr(logging.handlers, "SysLogHandler", DummySysLogHandler)

    init_logging({"syslog": True})
    assert created["address"] == "/dev/log"
    assert created["facility"] == DummySysLogHandler.LOG_DAEMON

    created.clear()
    init_logging({"syslog": {"address": ("localhost", 514), "facility": "local0"}})
    assert created["address"] == ("localhost", 514)
    assert created["facility"] == DummySysLogHandler.LOG_LOCAL0


def test_formatters_produce_expected_tags():
    """
    Brief: BracketLevelFormatter and SyslogFormatter include bracketed tags.

    Inputs:
      - LogRecord instances at different levels

    Outputs:
      - None: Asserts formatted strings contain expected tags
    """
    fmt = BracketLevelFormatter(fmt="%(asctime)s %(level_tag)s %(name)s: %(message)s")
    rec = logging.LogRecord("n", logging.ERROR, __file__, 1, "m", (), None)
    out = fmt.format(rec)
    assert "[error] n: m" in out
    assert out.split(" ", 1)[0].endswith("Z")

    s = SyslogFormatter(tag="dns")
    rec2 = logging.LogRecord("n2", logging.WARNING, __file__, 2, "m2", (), None)
    assert s.format(rec2) == "dns: [warn] n2: m2"
