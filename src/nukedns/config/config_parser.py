"""Configuration parsing and normalization helpers for nukedns.

Brief:
  This module contains the configuration utilities used by the CLI
  entrypoint. It centralizes:
    - reading the optional YAML config file
    - JSON Schema validation (via validate_config)
    - bind-target selection with config/env/auto-detect/loopback precedence
    - small accessors for the denylist and cache sections

Inputs:
  - YAML config paths, parsed config dicts and the process environment

Outputs:
  - Normalized config dicts and BindTarget lists
"""

from __future__ import annotations

import ipaddress
import logging
import os
import socket
from typing import Any, Callable, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..cache import DEFAULT_SWEEP_INTERVAL
from ..errors import ConfigError
from .config_schema import validate_config

logger = logging.getLogger("nukedns.config")

DEFAULT_PORT = 53
LOOPBACK = "127.0.0.1"

# Probe target for detect_local_ip(); connect() on a UDP socket sends nothing.
_PROBE_ADDR = ("8.8.8.8", 53)


class BindTarget(BaseModel):
    """Brief: One (address, port) pair a listener binds to.

    Inputs:
      - address: IPv4 or IPv6 literal.
      - port: UDP port, 0-65535 (0 asks the OS for an ephemeral port).

    Outputs:
      - BindTarget instance.
    """

    address: str
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)

    @field_validator("address", mode="before")
    @classmethod
    def _address_is_ip(cls, value: Any) -> str:
        text = str(value).strip()
        ipaddress.ip_address(text)
        return text

    def __str__(self) -> str:
        return f"{self.address}:{self.port}"


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Brief: Read and schema-validate an optional YAML config file.

    Inputs:
      - config_path: Path to the YAML file, or None.

    Outputs:
      - dict: Parsed configuration mapping. An empty mapping is returned when
        the file is absent, unreadable, not valid YAML, or fails validation;
        callers then fall back to built-in defaults.
    """

    if not config_path:
        return {}
    if not os.path.isfile(config_path):
        logger.info("No config file at %s; using defaults", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read config %s (%s); using defaults", config_path, e)
        return {}

    if not isinstance(cfg, dict):
        logger.warning("Config root in %s must be a mapping; using defaults", config_path)
        return {}

    try:
        validate_config(cfg, config_path=config_path)
    except ConfigError as e:
        logger.warning("%s\nUsing defaults", e)
        return {}

    logger.info("Loaded config from %s", config_path)
    return cfg


def detect_local_ip() -> Optional[str]:
    """Brief: Best guess at this host's primary non-loopback IPv4 address.

    Inputs:
      - None

    Outputs:
      - str address, or None when no route is available.
    """

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(_PROBE_ADDR)
            addr = s.getsockname()[0]
    except OSError as e:
        logger.debug("Local address detection failed: %s", e)
        return None
    if not addr or addr.startswith("0."):
        return None
    return addr


def _env_host(environ: Mapping[str, str]) -> Optional[str]:
    raw = environ.get("HOST")
    if not raw:
        return None
    try:
        return str(ipaddress.ip_address(raw.strip()))
    except ValueError:
        logger.warning("Ignoring HOST=%r: not an IP address", raw)
        return None


def _env_port(environ: Mapping[str, str]) -> Optional[int]:
    raw = environ.get("PORT")
    if not raw:
        return None
    try:
        port = int(raw.strip())
    except ValueError:
        port = -1
    if not 0 <= port <= 65535:
        logger.warning("Ignoring PORT=%r: not a valid port", raw)
        return None
    return port


def resolve_bind_targets(
    cfg: Dict[str, Any],
    *,
    environ: Optional[Mapping[str, str]] = None,
    detect: Callable[[], Optional[str]] = detect_local_ip,
) -> List[BindTarget]:
    """Brief: Choose the addresses to listen on.

    Inputs:
      - cfg: Parsed configuration mapping (possibly empty).
      - environ: Environment mapping (defaults to os.environ).
      - detect: Callable returning the auto-detected local address or None.

    Outputs:
      - list[BindTarget]: Never empty.

    Precedence (highest first):
      1. cfg['listen'] list of {address, port};
      2. HOST (and PORT) from the environment;
      3. auto-detected local address on PORT or 53;
      4. 127.0.0.1 on PORT or 53.

    Example:
      >>> resolve_bind_targets({}, environ={"HOST": "10.0.0.5", "PORT": "5353"})
      [BindTarget(address='10.0.0.5', port=5353)]
    """

    listen = cfg.get("listen")
    if listen:
        try:
            return [BindTarget(**entry) for entry in listen]
        except (TypeError, ValidationError) as e:
            logger.warning("Invalid listen entries in config (%s); using defaults", e)

    env = os.environ if environ is None else environ
    port = _env_port(env)
    port = DEFAULT_PORT if port is None else port

    host = _env_host(env)
    if host is None:
        host = detect()
        if host is not None:
            logger.debug("Auto-detected local address %s", host)
    if host is None:
        host = LOOPBACK
    return [BindTarget(address=host, port=port)]


def get_denylist_path(cfg: Dict[str, Any]) -> Optional[str]:
    """Return denylist.file from cfg, or None to use the bundled list."""
    section = cfg.get("denylist") or {}
    path = section.get("file")
    if isinstance(path, str) and path.strip():
        return os.path.expanduser(path.strip())
    return None


def get_sweep_interval(cfg: Dict[str, Any]) -> float:
    """Return cache.sweep_interval in seconds (default 60)."""
    section = cfg.get("cache") or {}
    try:
        value = float(section.get("sweep_interval", DEFAULT_SWEEP_INTERVAL))
    except (TypeError, ValueError):
        return float(DEFAULT_SWEEP_INTERVAL)
    return value if value > 0 else float(DEFAULT_SWEEP_INTERVAL)
