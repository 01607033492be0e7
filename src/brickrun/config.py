"""Runtime settings (brickrun.yaml)"""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel

DEFAULT_SETTINGS_FILE = "brickrun.yaml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class RetrySettings(BaseModel):
    """Defaults for the retry brick"""

    max_retries: int = 3
    interval_millis: int = 0
    backoff_factor: float = 1.0


class RuntimeSettings(BaseModel):
    """Settings shared by every pipeline run"""

    # Log rendered args and outputs (may contain sensitive data)
    log_values: bool = False
    validate_input: bool = True
    trace: bool = True
    # Set when running a deployed pipeline, enables onError alerts
    deployment_id: str | None = None
    extension_id: str | None = None
    retry: RetrySettings = RetrySettings()

    model_config = {"extra": "forbid"}

    @classmethod
    def load(cls, path: Path | None = None) -> "RuntimeSettings":
        """Load settings from yaml file, then apply BRICKRUN_* env overrides"""
        data: dict = {}
        if path is not None and path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

        settings = cls.model_validate(data)
        return settings.with_env_overrides()

    def with_env_overrides(self) -> "RuntimeSettings":
        updates: dict = {}
        if "BRICKRUN_LOG_VALUES" in os.environ:
            updates["log_values"] = os.environ["BRICKRUN_LOG_VALUES"].lower() in _TRUE_VALUES
        if "BRICKRUN_VALIDATE_INPUT" in os.environ:
            updates["validate_input"] = (
                os.environ["BRICKRUN_VALIDATE_INPUT"].lower() in _TRUE_VALUES
            )
        if os.environ.get("BRICKRUN_DEPLOYMENT_ID"):
            updates["deployment_id"] = os.environ["BRICKRUN_DEPLOYMENT_ID"]
        return self.model_copy(update=updates) if updates else self


def find_settings_file(start: Path | None = None) -> Path | None:
    """Find brickrun.yaml in the given directory or its parents."""
    cwd = start or Path.cwd()
    for parent in [cwd] + list(cwd.parents):
        candidate = parent / DEFAULT_SETTINGS_FILE
        if candidate.exists():
            return candidate
    return None
