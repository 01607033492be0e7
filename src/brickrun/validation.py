"""JSON Schema validation for brick inputs and outputs"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from jsonschema import Draft7Validator
from pydantic import BaseModel

from brickrun.exceptions import InputValidationError
from brickrun.models.expression import to_json

log = logging.getLogger(__name__)


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = []


class SchemaValidator(Protocol):
    def validate(self, schema: dict[str, Any], value: Any) -> ValidationResult: ...


def exclude_none(value: Any) -> Any:
    """Drop None-valued entries from a top-level dict."""
    if isinstance(value, dict):
        return {k: v for k, v in value.items() if v is not None}
    return value


def _format_error(error: Any) -> str:
    location = "/".join(str(p) for p in error.absolute_path)
    return f"{location}: {error.message}" if location else error.message


class JsonSchemaValidator:
    """Validates values with jsonschema (Draft 7).

    Expressions (e.g. pipeline args of control-flow bricks) are validated in
    their ``{"__type__", "__value__"}`` form.
    """

    def validate(self, schema: dict[str, Any], value: Any) -> ValidationResult:
        if not schema:
            return ValidationResult(valid=True)
        validator = Draft7Validator(schema)
        errors = sorted(validator.iter_errors(to_json(value)), key=lambda e: list(e.path))
        return ValidationResult(valid=not errors, errors=[_format_error(e) for e in errors])


def throw_if_invalid_input(
    validator: SchemaValidator, schema: dict[str, Any], brick_args: Any
) -> None:
    """Raise InputValidationError if the rendered args don't match the schema."""
    result = validator.validate(schema, exclude_none(brick_args))
    if not result.valid:
        log.debug("Invalid inputs for brick: %s", result.errors)
        raise InputValidationError(
            "Invalid inputs for brick", schema, brick_args, result.errors
        )


def log_if_invalid_output(
    validator: SchemaValidator,
    schema: dict[str, Any] | None,
    output: Any,
    logger: logging.Logger | logging.LoggerAdapter,
) -> None:
    """Log an error if the output doesn't match the schema. Never raises."""
    if not schema:
        return
    result = validator.validate(schema, exclude_none(output))
    if not result.valid:
        logger.error("Invalid outputs for brick: %s", "; ".join(result.errors))
