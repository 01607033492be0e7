"""Brick interface

A brick is a unit of work with an id, JSON schemas for its input and output,
and an async ``run``. Control-flow bricks run their sub-pipelines through
``options.run_pipeline``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Mapping, Protocol

from brickrun.models.expression import PipelineExpression
from brickrun.models.trace import Branch
from brickrun.telemetry import RuntimeLogger

if TYPE_CHECKING:
    from brickrun.runtime.context import Context


class RunPipeline(Protocol):
    """Runs a sub-pipeline in the calling brick's lexical environment.

    Args:
        pipeline: The pipeline expression (closures use their captured env).
        branch: Position of the sub-pipeline, recorded in traces.
        extra_context: Bindings layered over the environment, e.g. ``@element``.
        root: Root override for the sub-pipeline.
    """

    def __call__(
        self,
        pipeline: PipelineExpression | None,
        branch: Branch,
        extra_context: Mapping[str, Any] | None = None,
        root: Any = None,
    ) -> Awaitable[Any]: ...


@dataclass
class BrickOptions:
    """Runtime collaborators passed to ``Brick.run``."""

    ctxt: Context
    logger: RuntimeLogger
    run_pipeline: RunPipeline
    root: Any = None
    # Previous output for v1/v2 bricks
    previous_output: Any = None
    extra: dict[str, Any] = field(default_factory=dict)


class Brick(ABC):
    """Abstract base class for bricks."""

    id: str
    name: str
    description: str = ""
    version: str | None = None
    input_schema: dict[str, Any] = {}
    output_schema: dict[str, Any] | None = None

    def is_pure(self) -> bool:
        """True if the brick has no side effects."""
        return False

    def is_root_aware(self) -> bool:
        """True if the brick uses ``options.root``."""
        return False

    @abstractmethod
    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        """Run the brick.

        Args:
            args: Rendered (and validated) arguments.
            options: Context, logger and pipeline runner.

        Returns:
            The brick's output.
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


# =============================================================================
# Schema helpers
# =============================================================================


def properties_to_schema(
    properties: dict[str, Any], required: list[str] | None = None
) -> dict[str, Any]:
    """Object schema with ``properties``; all are required unless specified."""
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties) if required is None else required,
    }


def pipeline_schema(description: str = "") -> dict[str, Any]:
    """Schema for a pipeline expression argument."""
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "__type__": {"const": "pipeline"},
            "__value__": {"type": "array", "items": {"type": "object"}},
        },
        "required": ["__type__"],
    }
    if description:
        schema["description"] = description
    return schema
