from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_TAGS = {
    logging.DEBUG: "[debug]",
    logging.INFO: "[info]",
    logging.WARNING: "[warn]",
    logging.ERROR: "[error]",
    logging.CRITICAL: "[crit]",
}

DEFAULT_FORMAT = "%(asctime)s %(level_tag)s %(name)s: %(message)s"


def _level_tag(levelno: int) -> str:
    return _TAGS.get(levelno, f"[lvl{levelno}]")


class SyslogFormatter(logging.Formatter):
    """Formatter for syslog output without timestamps (syslog adds its own)."""

    def __init__(self, tag: str = "nukedns") -> None:
        super().__init__()
        self.tag = tag

    def format(self, record):
        """Prefix the program tag and level tag; no timestamp."""
        record.level_tag = _level_tag(record.levelno)
        return f"{self.tag}: {record.level_tag} {record.name}: {record.getMessage()}"


class BracketLevelFormatter(logging.Formatter):
    """Formatter with bracketed lowercase level tags and UTC timestamps."""

    def formatTime(self, record, datefmt=None):
        """Format the record's creation time as UTC ISO-8601 with Z suffix."""
        return datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )

    def format(self, record):
        record.level_tag = _level_tag(record.levelno)
        return super().format(record)


def init_logging(cfg: Optional[Dict[str, Any]]) -> None:
    """
    Initialize logging configuration based on the provided config.

    Args:
        cfg: Logging configuration dictionary with optional keys:
            - level: debug, info, warn, error, crit (default: info)
            - stderr: boolean to log to stderr (default: True)
            - file: string path to log file (optional)
            - syslog: boolean or dict to enable syslog logging (optional)
                Can be a boolean (True uses defaults) or a dict with:
                - address: Unix socket path (default: /dev/log)
                - facility: syslog facility (default: DAEMON)
                - tag: program identifier to prepend (default: nukedns)

    Example config:
        {
            "level": "info",
            "stderr": True,
            "file": "/var/log/nukedns.log",
            "syslog": {"tag": "nukedns"}
        }
    """
    cfg = cfg or {}

    level = _LEVELS.get(str(cfg.get("level", "info")).lower(), logging.INFO)
    formatter = BracketLevelFormatter(fmt=DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(level)

    # Remove existing handlers to avoid duplicates on re-init
    for h in list(root.handlers):
        root.removeHandler(h)

    if cfg.get("stderr", True):
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        root.addHandler(stderr_handler)

    file_path = cfg.get("file")
    if isinstance(file_path, str) and file_path.strip():
        path = os.path.abspath(os.path.expanduser(file_path.strip()))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    syslog_cfg = cfg.get("syslog")
    if syslog_cfg:
        opts = syslog_cfg if isinstance(syslog_cfg, dict) else {}
        address = opts.get("address", "/dev/log")
        facility = getattr(
            logging.handlers.SysLogHandler,
            f"LOG_{str(opts.get('facility', 'DAEMON')).upper()}",
            logging.handlers.SysLogHandler.LOG_DAEMON,
        )
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=address, facility=facility
            )
        except (OSError, ValueError) as e:  # pragma: no cover
            root.warning("Failed to configure syslog: %s", e)
        else:
            syslog_handler.setFormatter(SyslogFormatter(str(opts.get("tag", "nukedns"))))
            root.addHandler(syslog_handler)

    logging.captureWarnings(True)
