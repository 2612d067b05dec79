from __future__ import annotations

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

DEFAULT_CONFIG_PATH = Path("config/default.yaml")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "storage": {"dir": str(Path.home() / ".opencspaper")},
    "pipeline": {"stage_timeout": None},
    "llm": {"request_timeout": 120},
    "logging": {"level": "INFO"},
}


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load runtime settings from a YAML file layered over the defaults.

    An explicitly given path must exist; the default path is optional.
    ``CSP_HOME`` and ``CSP_STAGE_TIMEOUT`` override the file.
    """
    settings = copy.deepcopy(DEFAULT_SETTINGS)

    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    path = config_path or DEFAULT_CONFIG_PATH
    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        for section, values in loaded.items():
            if isinstance(values, dict):
                settings.setdefault(section, {}).update(values)
            else:
                settings[section] = values

    if os.getenv("CSP_HOME"):
        settings["storage"]["dir"] = os.environ["CSP_HOME"]
    if os.getenv("CSP_STAGE_TIMEOUT"):
        settings["pipeline"]["stage_timeout"] = float(os.environ["CSP_STAGE_TIMEOUT"])

    return settings


def get_storage_dir(config: Optional[Dict[str, Any]] = None) -> Path:
    if config is None:
        config = load_config()
    return Path(config["storage"]["dir"]).expanduser()


def get_stage_timeout(config: Optional[Dict[str, Any]] = None) -> Optional[float]:
    if config is None:
        config = load_config()
    value = config.get("pipeline", {}).get("stage_timeout")
    return float(value) if value else None


def get_request_timeout(config: Optional[Dict[str, Any]] = None) -> int:
    if config is None:
        config = load_config()
    return int(config.get("llm", {}).get("request_timeout") or 120)
