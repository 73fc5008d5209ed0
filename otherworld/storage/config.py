"""Global app configuration (LLM connection, pacing)."""

import json
from pathlib import Path
from typing import Any

from .core import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm_connection": {
        "provider_url": "",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
    },
    "pacing_ms": 800,
}


def _config_path() -> Path:
    return data_dir() / "config.json"


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config: dict[str, Any] = {
        "llm_connection": dict(_CONFIG_DEFAULTS["llm_connection"]),
        "pacing_ms": _CONFIG_DEFAULTS["pacing_ms"],
    }
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        if isinstance(stored.get("llm_connection"), dict):
            config["llm_connection"].update(stored["llm_connection"])
        if "pacing_ms" in stored:
            config["pacing_ms"] = stored["pacing_ms"]
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config."""
    config = get_config()
    if isinstance(fields.get("llm_connection"), dict):
        config["llm_connection"].update(fields["llm_connection"])
    if "pacing_ms" in fields:
        config["pacing_ms"] = fields["pacing_ms"]
    _config_path().write_text(json.dumps(config, indent=2))
    return config
