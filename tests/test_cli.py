"""Tests for the brickrun CLI."""

from __future__ import annotations

import json

import pytest
import typer
from typer.testing import CliRunner

from brickrun import __version__
from brickrun.cli import app, parse_option_overrides

runner = CliRunner()

GREET = """
apiVersion: v3
options:
  greeting: Hi
pipeline:
  - id: "@brickrun/echo"
    config:
      message: !mustache "{{ @options.greeting }} {{ @input.name }}"
"""


@pytest.fixture
def greet_file(tmp_path):
    path = tmp_path / "greet.yaml"
    path.write_text(GREET)
    return path


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_bricks_lists_builtins():
    result = runner.invoke(app, ["bricks"])
    assert result.exit_code == 0, result.stdout
    assert "Retry" in result.stdout


class TestRun:
    def test_prints_result_as_json(self, greet_file):
        result = runner.invoke(app, ["run", str(greet_file), "-i", '{"name": "Ada"}'])
        assert result.exit_code == 0, result.stdout
        assert json.loads(result.stdout) == {"message": "Hi Ada"}

    def test_option_overrides(self, greet_file):
        result = runner.invoke(
            app, ["run", str(greet_file), "-i", '{"name": "Ada"}', "-o", "greeting=Hey"]
        )
        assert result.exit_code == 0, result.stdout
        assert json.loads(result.stdout) == {"message": "Hey Ada"}

    def test_invalid_input_json(self, greet_file):
        result = runner.invoke(app, ["run", str(greet_file), "-i", "{not json"])
        assert result.exit_code == 1
        assert "Invalid JSON input" in result.stdout

    def test_failing_pipeline(self, tmp_path):
        path = tmp_path / "fail.yaml"
        path.write_text(
            "apiVersion: v3\n"
            "pipeline:\n"
            "  - id: '@brickrun/throw'\n"
            "    config: {message: nope}\n"
        )
        result = runner.invoke(app, ["run", str(path)])
        assert result.exit_code == 1
        assert "BusinessError: nope" in result.stdout

    def test_trace_table(self, greet_file):
        result = runner.invoke(app, ["run", str(greet_file), "--trace"])
        assert result.exit_code == 0, result.stdout
        assert "Traces" in result.stdout

    def test_missing_document(self, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestValidate:
    def test_valid(self, greet_file):
        result = runner.invoke(app, ["validate", str(greet_file)])
        assert result.exit_code == 0, result.stdout
        assert "valid" in result.stdout

    def test_unknown_nested_brick(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "apiVersion: v3\n"
            "pipeline:\n"
            "  - id: '@brickrun/try-catch'\n"
            "    config:\n"
            "      try: !pipeline\n"
            "        - id: '@acme/missing'\n"
        )
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Unknown brick: @acme/missing" in result.stdout

    def test_invalid_document(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("pipeline: []\n")
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "Invalid pipeline document" in result.stdout


def test_parse_option_overrides():
    assert parse_option_overrides(["a=1", "b=text", 'c={"x": 1}', "d=x=y"]) == {
        "a": 1,
        "b": "text",
        "c": {"x": 1},
        "d": "x=y",
    }
    with pytest.raises(typer.BadParameter):
        parse_option_overrides(["missing-equals"])
