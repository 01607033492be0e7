"""Pipeline documents

A pipeline document is YAML (or JSON):

    apiVersion: v3
    name: greet
    integrations:
      - id: "@acme/api"
        outputKey: api
        config: acme-prod
    options:
      greeting: Hello
    definitions:
      "@acme/shout":
        name: Shout
        inputSchema: {type: object, properties: {text: {type: string}}}
        pipeline:
          - id: "@brickrun/identity"
            config:
              text: !nunjucks "{{ @input.text | upper }}"
    pipeline:
      - id: "@acme/shout"
        outputKey: shouted
        config:
          text: !mustache "{{ @options.greeting }}, {{ @input.name }}"

Expression tags: ``!var``, ``!mustache``, ``!nunjucks``, ``!handlebars``,
``!pipeline`` and ``!defer``. Each tag becomes the
``{"__type__": ..., "__value__": ...}`` form.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from brickrun.bricks.composite import CompositeDefinition
from brickrun.exceptions import InvalidDefinitionError
from brickrun.models.brick import BrickConfig
from brickrun.models.expression import TYPE_KEY, VALUE_KEY, ExpressionType
from brickrun.models.integration import IntegrationDependency
from brickrun.runtime.api_version import ApiVersion


class DocumentLoader(yaml.SafeLoader):
    """SafeLoader that understands expression tags"""

    pass


def _expression_constructor(kind: ExpressionType):
    def construct(loader: yaml.SafeLoader, node: yaml.Node) -> dict[str, Any]:
        if isinstance(node, yaml.ScalarNode):
            value: Any = loader.construct_scalar(node)
            if kind == ExpressionType.PIPELINE:
                value = [] if value == "" else value
        elif isinstance(node, yaml.SequenceNode):
            value = loader.construct_sequence(node, deep=True)
        else:
            value = loader.construct_mapping(node, deep=True)
        return {TYPE_KEY: kind.value, VALUE_KEY: value}

    return construct


for _kind in ExpressionType:
    DocumentLoader.add_constructor(f"!{_kind.value}", _expression_constructor(_kind))


class PipelineDocument(BaseModel):
    """A runnable pipeline with its integrations and brick definitions"""

    model_config = {"populate_by_name": True}

    api_version: ApiVersion = Field(alias="apiVersion")
    name: str | None = None
    description: str | None = None
    integrations: list[IntegrationDependency] = []
    # Default `@options` values
    options: dict[str, Any] = {}
    definitions: dict[str, CompositeDefinition] = {}
    pipeline: list[BrickConfig]

    @classmethod
    def from_data(cls, data: Any) -> "PipelineDocument":
        if not isinstance(data, dict):
            raise InvalidDefinitionError("Pipeline document must be a mapping")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise InvalidDefinitionError("Invalid pipeline document", errors) from e

    @classmethod
    def from_string(cls, text: str) -> "PipelineDocument":
        """Parse a document from a YAML/JSON string"""
        try:
            data = yaml.load(text, Loader=DocumentLoader)
        except yaml.YAMLError as e:
            raise InvalidDefinitionError(f"Invalid YAML: {e}") from e
        return cls.from_data(data)

    @classmethod
    def load(cls, path: Path) -> "PipelineDocument":
        """Load a document from a file"""
        if not path.exists():
            raise InvalidDefinitionError(f"Pipeline document not found: {path}")
        return cls.from_string(path.read_text())
