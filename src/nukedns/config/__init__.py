"""Configuration loading, validation and logging setup."""

from .config_parser import (
    BindTarget,
    get_denylist_path,
    get_sweep_interval,
    load_config,
    resolve_bind_targets,
)
from .logging_config import init_logging

__all__ = [
    "BindTarget",
    "get_denylist_path",
    "get_sweep_interval",
    "init_logging",
    "load_config",
    "resolve_bind_targets",
]
