"""
Configuration loading and validation.

Loads panel configuration from a YAML file. The backend API token is read
from the environment variable named in the config, never from the file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field


class BackendConfig(BaseModel):
    url: str = "http://localhost:8000"
    verify_tls: bool = True
    request_timeout_seconds: int = 30
    api_token_env: str = "FIELDOPS_API_TOKEN"

    @property
    def api_token(self) -> str | None:
        return os.environ.get(self.api_token_env)


class DisplayConfig(BaseModel):
    currency_symbol: str = "₹"
    activity_entries: int = 10


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "text"


class PanelConfig(BaseModel):
    backend: BackendConfig = Field(default_factory=BackendConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> PanelConfig:
    """Load and validate panel configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return PanelConfig.model_validate(raw)
