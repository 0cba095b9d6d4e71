"""Workflow settings and logging setup."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def _default_settings_path() -> Path | None:
    for parent in Path(__file__).resolve().parents:
        candidate = parent / "config" / "workflow.yaml"
        if candidate.exists():
            return candidate
    return None


class WorkflowSettings(BaseModel):
    """Runtime settings for gateways, coordinators, and the pending-list cache."""

    base_url: str = Field(
        default="http://127.0.0.1:8000/api/", description="Meetings API root"
    )
    auth_scheme: Literal["Token", "Bearer"] = Field(
        default="Token", description="Authorization header scheme"
    )
    request_timeout_seconds: float = Field(
        default=15.0, gt=0, description="Upper bound on a single write round-trip"
    )
    snapshot_path: Path | None = Field(
        default=None,
        description="File backing the pending-approvals snapshot; in memory when unset",
    )
    log_level: str = Field(default="INFO", description="Root log level for the CLI")

    model_config = ConfigDict(extra="forbid")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Invalid log level: {value}")
        return level

    @classmethod
    def from_yaml(cls, content: str) -> WorkflowSettings:
        data = yaml.safe_load(content) or {}
        return cls.model_validate(data.get("workflow", data))

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> WorkflowSettings:
        target_path = Path(path) if path is not None else _default_settings_path()
        if target_path is None:
            raise FileNotFoundError("No workflow.yaml file found")
        return cls.from_yaml(target_path.read_text(encoding="utf-8"))

    @classmethod
    def from_environment(cls, env_var: str = "WORKFLOW_CONFIG") -> WorkflowSettings:
        content = os.getenv(env_var)
        if not content:
            raise ValueError(f"Environment variable '{env_var}' is not set or empty")
        return cls.from_yaml(content)

    @classmethod
    def load(cls) -> WorkflowSettings:
        """Resolve settings from the environment, then config/workflow.yaml, then defaults."""

        if os.getenv("WORKFLOW_CONFIG"):
            return cls.from_environment()
        if _default_settings_path() is not None:
            return cls.from_file()
        return cls()


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a console handler to the package logger with ISO-8601 timestamps."""

    logger = logging.getLogger("meeting_approval")
    logger.setLevel(level.upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger
