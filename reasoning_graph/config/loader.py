"""YAML and env loader with fail-fast validation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from reasoning_graph.models import EngineSettings

SETTINGS_ENV_VAR = "REASONING_GRAPH_SETTINGS"
DEFAULT_SETTINGS_PATH = Path(__file__).parent.parent.parent / "config" / "settings.yaml"


def _read_yaml(path: str) -> dict:
    resolved = Path(path)
    if not resolved.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with resolved.open("r", encoding="utf-8") as file_obj:
        loaded = yaml.safe_load(file_obj) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Expected object at root of YAML file: {path}")
    return loaded


def resolve_settings_path(settings_path: Optional[str] = None) -> str:
    """Explicit path, then $REASONING_GRAPH_SETTINGS (.env aware), then the packaged default."""
    if settings_path:
        return settings_path
    load_dotenv()
    return os.getenv(SETTINGS_ENV_VAR) or str(DEFAULT_SETTINGS_PATH)


def load_settings(settings_path: Optional[str] = None) -> EngineSettings:
    return EngineSettings.model_validate(_read_yaml(resolve_settings_path(settings_path)))
