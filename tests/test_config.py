"""Tests for runtime settings."""

import pytest
from pydantic import ValidationError

from brickrun.bricks.registry import default_registry
from brickrun.config import RuntimeSettings, find_settings_file


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ["BRICKRUN_LOG_VALUES", "BRICKRUN_VALIDATE_INPUT", "BRICKRUN_DEPLOYMENT_ID"]:
        monkeypatch.delenv(name, raising=False)


class TestRuntimeSettings:
    def test_defaults(self):
        settings = RuntimeSettings.load(None)
        assert settings.validate_input is True
        assert settings.log_values is False
        assert settings.trace is True
        assert settings.retry.max_retries == 3

    def test_load(self, tmp_path):
        path = tmp_path / "brickrun.yaml"
        path.write_text(
            "log_values: true\n"
            "deployment_id: dep-1\n"
            "retry:\n"
            "  max_retries: 5\n"
            "  interval_millis: 250\n"
        )
        settings = RuntimeSettings.load(path)
        assert settings.log_values is True
        assert settings.deployment_id == "dep-1"
        assert settings.retry.max_retries == 5
        assert settings.retry.interval_millis == 250

    def test_missing_file_uses_defaults(self, tmp_path):
        assert RuntimeSettings.load(tmp_path / "missing.yaml") == RuntimeSettings()

    def test_unknown_keys_rejected(self, tmp_path):
        path = tmp_path / "brickrun.yaml"
        path.write_text("unknown: 1\n")
        with pytest.raises(ValidationError):
            RuntimeSettings.load(path)

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "brickrun.yaml"
        path.write_text("validate_input: true\n")
        monkeypatch.setenv("BRICKRUN_VALIDATE_INPUT", "false")
        monkeypatch.setenv("BRICKRUN_LOG_VALUES", "1")
        monkeypatch.setenv("BRICKRUN_DEPLOYMENT_ID", "dep-env")

        settings = RuntimeSettings.load(path)
        assert settings.validate_input is False
        assert settings.log_values is True
        assert settings.deployment_id == "dep-env"

    def test_find_settings_file(self, tmp_path):
        (tmp_path / "brickrun.yaml").write_text("trace: false\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_settings_file(nested) == tmp_path / "brickrun.yaml"

    def test_retry_settings_reach_registry(self):
        settings = RuntimeSettings.model_validate({"retry": {"max_retries": 7}})
        retry = default_registry(settings).lookup("@brickrun/retry")
        assert retry.settings.max_retries == 7
