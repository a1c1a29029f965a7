"""JSON Schema-based validation for the nukedns YAML configuration."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from jsonschema import Draft202012Validator

from ..errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "nukedns configuration",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "listen": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "additionalProperties": False,
                "required": ["address"],
                "properties": {
                    "address": {"type": "string", "minLength": 1},
                    "port": {"type": "integer", "minimum": 0, "maximum": 65535},
                },
            },
        },
        "denylist": {
            "type": "object",
            "additionalProperties": False,
            "properties": {"file": {"type": ["string", "null"]}},
        },
        "cache": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "sweep_interval": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {
                    "type": "string",
                    "enum": [
                        "debug",
                        "info",
                        "warn",
                        "warning",
                        "error",
                        "crit",
                        "critical",
                    ],
                },
                "stderr": {"type": "boolean"},
                "file": {"type": ["string", "null"]},
                "syslog": {"type": ["boolean", "object"]},
            },
        },
    },
}


def _format_errors(errors: List[Any]) -> str:
    lines = []
    for err in errors:
        path = "/".join(str(p) for p in err.absolute_path) or "<root>"
        lines.append(f"  - {path}: {err.message}")
    return "\n".join(lines)


def validate_config(cfg: Dict[str, Any], *, config_path: str = "config.yaml") -> None:
    """Brief: Validate a parsed configuration mapping against CONFIG_SCHEMA.

    Inputs:
      - cfg: Mapping produced by yaml.safe_load().
      - config_path: Path used in the error message.

    Outputs:
      - None; raises ConfigError listing every violation when invalid.

    Example:
      >>> validate_config({"listen": [{"address": "127.0.0.1", "port": 5353}]})
    """
    validator = Draft202012Validator(CONFIG_SCHEMA)
    errors = sorted(
        validator.iter_errors(cfg), key=lambda e: [str(p) for p in e.absolute_path]
    )
    if errors:
        raise ConfigError(
            f"Invalid configuration in {config_path}:\n{_format_errors(errors)}"
        )
