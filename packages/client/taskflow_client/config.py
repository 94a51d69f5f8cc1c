"""
Configuration loading and validation.

Loads client configuration from a YAML file; the password is read from the
environment variable named in the file, never from the file itself.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    url: str = "http://localhost:8000"
    verify_tls: bool = True
    request_timeout_seconds: float = 30.0


class CredentialsConfig(BaseModel):
    email: str | None = None
    password_env: str = "TASKFLOW_PASSWORD"

    @property
    def password(self) -> str | None:
        return os.environ.get(self.password_env)


class PollingConfig(BaseModel):
    board_interval_seconds: float = Field(default=5.0, gt=0)
    task_interval_seconds: float = Field(default=10.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "json"


class ClientConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> ClientConfig:
    """Load and validate client configuration from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return ClientConfig.model_validate(raw)
