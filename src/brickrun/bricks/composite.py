"""Composite bricks

A composite brick is defined in a pipeline document as a pipeline of other
bricks. It runs its pipeline with ``@input`` bound to its rendered args and
nothing else from the caller's context.

Pipeline arguments passed to a composite brick are turned into closures over
the caller's context, so they still see the caller's variables when the
composite's pipeline runs them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from brickrun.models.brick import BrickConfig
from brickrun.models.expression import (
    is_pipeline_closure_expression,
    is_pipeline_expression,
    make_pipeline_closure,
    make_pipeline_expression,
)
from brickrun.models.trace import Branch
from brickrun.runtime.context import INPUT_KEY, OPTIONS_KEY, Context

from .base import Brick, BrickOptions


class CompositeDefinition(BaseModel):
    """A brick defined by a pipeline"""

    model_config = {"populate_by_name": True}

    name: str
    description: str = ""
    version: str | None = None
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")
    output_schema: dict[str, Any] | None = Field(default=None, alias="outputSchema")
    pipeline: list[BrickConfig]

    def to_brick(self, brick_id: str) -> "CompositeBrick":
        return CompositeBrick(brick_id, self)


def init_pipeline_closures(args: dict[str, Any], ctxt: Any) -> dict[str, Any]:
    """Capture ``ctxt`` in every top-level pipeline argument."""
    return {
        key: (
            make_pipeline_closure(value, ctxt)
            if is_pipeline_expression(value) and not is_pipeline_closure_expression(value)
            else value
        )
        for key, value in args.items()
    }


class CompositeBrick(Brick):
    """Runs a document-defined pipeline as a single brick."""

    def __init__(self, brick_id: str, definition: CompositeDefinition):
        self.id = brick_id
        self.name = definition.name
        self.description = definition.description
        self.version = definition.version
        self.input_schema = definition.input_schema
        self.output_schema = definition.output_schema
        self.definition = definition

    def is_pure(self) -> bool:
        return False

    def is_root_aware(self) -> bool:
        return True

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        env = Context(
            {
                INPUT_KEY: init_pipeline_closures(args, options.ctxt),
                OPTIONS_KEY: {},
            }
        )
        body = make_pipeline_closure(make_pipeline_expression(self.definition.pipeline), env)
        return await options.run_pipeline(body, Branch(key="definition"))
