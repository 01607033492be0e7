"""Brick configuration model

A pipeline is an ordered list of BrickConfig. Field aliases follow the
document format (``outputKey``, ``onError``, ``if``, ...).
"""

from __future__ import annotations

import re
from typing import Any, Union

from pydantic import BaseModel, Field, field_validator

from .expression import ExpressionType, parse_expression, to_json

OUTPUT_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class OnErrorConfig(BaseModel):
    """Error handling options for a step"""

    alert: bool = False


class BrickConfig(BaseModel):
    """One step of a pipeline."""

    model_config = {"populate_by_name": True, "extra": "forbid"}

    id: str
    config: Any = Field(default_factory=dict)
    output_key: str | None = Field(default=None, alias="outputKey")
    on_error: OnErrorConfig | None = Field(default=None, alias="onError")
    label: str | None = None
    instance_id: str | None = Field(default=None, alias="instanceId")
    # Condition for running the step, coerced with boolean()
    if_: Any = Field(default=None, alias="if")
    # Engine for implicit templates (apiVersion v1/v2)
    template_engine: ExpressionType | None = Field(default=None, alias="templateEngine")

    @field_validator("config", "if_", mode="before")
    @classmethod
    def _parse_expressions(cls, v: Any) -> Any:
        return parse_expression(v)

    @field_validator("config", mode="after")
    @classmethod
    def _default_config(cls, v: Any) -> Any:
        # YAML shorthand: `config:` may be left empty
        return {} if v is None else v

    @field_validator("output_key", mode="before")
    @classmethod
    def _validate_output_key(cls, v: Any) -> Any:
        if v is None:
            return v
        key = str(v).removeprefix("@")
        if not OUTPUT_KEY_RE.match(key):
            raise ValueError(f"Invalid outputKey: {v}")
        return key

    @field_validator("template_engine", mode="after")
    @classmethod
    def _validate_engine(cls, v: ExpressionType | None) -> ExpressionType | None:
        if v in (ExpressionType.PIPELINE, ExpressionType.DEFER):
            raise ValueError(f"Not a template engine: {v.value}")
        return v

    @property
    def has_condition(self) -> bool:
        return "if_" in self.model_fields_set

    @classmethod
    def coerce(cls, value: Union["BrickConfig", dict[str, Any]]) -> "BrickConfig":
        if isinstance(value, cls):
            return value
        return cls.model_validate(value)

    def to_json(self) -> dict[str, Any]:
        """Dump back to the document format"""
        data = self.model_dump(
            mode="json", by_alias=True, exclude_none=True, exclude={"config", "if_"}
        )
        data["config"] = to_json(self.config)
        if self.has_condition:
            data["if"] = to_json(self.if_)
        return data


Pipeline = list[BrickConfig]


def coerce_pipeline(pipeline: BrickConfig | dict | list | None) -> Pipeline:
    """Accept a single step or a list of steps."""
    if pipeline is None:
        return []
    if isinstance(pipeline, (BrickConfig, dict)):
        return [BrickConfig.coerce(pipeline)]
    return [BrickConfig.coerce(step) for step in pipeline]
