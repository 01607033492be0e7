"""Control-flow bricks

Each brick holds its branches as pipeline expressions and runs them through
``options.run_pipeline``. A branch that isn't taken is never run.

All control-flow bricks are impure and root-aware: what they do depends on
the bricks nested inside them.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from brickrun.config import RetrySettings
from brickrun.exceptions import get_error_message, get_root_cause, serialize_error
from brickrun.models.trace import Branch
from brickrun.runtime.context import output_key_var
from brickrun.utils import boolean

from .base import Brick, BrickOptions, pipeline_schema


Sleep = Callable[[float], Awaitable[Any]]


class ControlFlowBrick(Brick):
    """Base class for bricks that run sub-pipelines."""

    def is_pure(self) -> bool:
        return False

    def is_root_aware(self) -> bool:
        return True


class IfElse(ControlFlowBrick):
    """Run ``if`` when ``condition`` is truthy, otherwise ``else``."""

    id = "@brickrun/if-else"
    name = "If-Else"
    description = "Conditionally run one of two pipelines"
    input_schema = {
        "type": "object",
        "properties": {
            "condition": {
                "type": ["boolean", "string", "number", "null"],
                "description": "Coerced to a boolean",
            },
            "if": pipeline_schema("Run when the condition is true"),
            "else": pipeline_schema("Run when the condition is false"),
        },
        "required": ["if"],
    }

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        if boolean(args.get("condition")):
            return await options.run_pipeline(args["if"], Branch(key="if"))

        if args.get("else") is not None:
            return await options.run_pipeline(args["else"], Branch(key="else"))

        return None


class ForEach(ControlFlowBrick):
    """Run ``body`` for each element, returning the last iteration's result."""

    id = "@brickrun/for-each"
    name = "For-Each Loop"
    description = "Loop over elements, running the body for each"
    input_schema = {
        "type": "object",
        "properties": {
            "elements": {"type": "array", "description": "Elements to loop over"},
            "elementKey": {
                "type": "string",
                "default": "element",
                "description": "Variable the current element is bound to",
            },
            "body": pipeline_schema("Pipeline to run for each element"),
        },
        "required": ["elements", "body"],
    }

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        element_key = output_key_var(args.get("elementKey") or "element")
        last = None
        # Sequential on purpose: iterations may have ordered side effects
        for index, element in enumerate(args["elements"]):
            last = await options.run_pipeline(
                args["body"],
                Branch(key="body", counter=index),
                {element_key: element},
            )
        return last


class TryExcept(ControlFlowBrick):
    """Run ``try``; if it fails, run ``except`` with the error bound."""

    id = "@brickrun/try-catch"
    name = "Try-Except"
    description = "Run a pipeline, running another pipeline if it fails"
    input_schema = {
        "type": "object",
        "properties": {
            "try": pipeline_schema("Pipeline to try"),
            "except": pipeline_schema("Pipeline to run if try fails"),
            "errorKey": {
                "type": "string",
                "default": "error",
                "description": "Variable the serialized error is bound to",
            },
        },
        "required": ["try"],
    }

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        try:
            return await options.run_pipeline(args["try"], Branch(key="try"))
        except Exception as e:
            options.logger.info("Caught error: %s", get_error_message(get_root_cause(e)))
            except_pipeline = args.get("except")
            if except_pipeline is None:
                return None
            error_key = output_key_var(args.get("errorKey") or "error")
            return await options.run_pipeline(
                except_pipeline,
                Branch(key="except"),
                {error_key: serialize_error(get_root_cause(e))},
            )


class Retry(ControlFlowBrick):
    """Run ``body`` until it succeeds or ``maxRetries`` attempts have failed."""

    id = "@brickrun/retry"
    name = "Retry"
    description = "Retry a pipeline with a delay between attempts"
    input_schema = {
        "type": "object",
        "properties": {
            "body": pipeline_schema("Pipeline to run"),
            "maxRetries": {
                "type": "integer",
                "minimum": 1,
                "description": "Maximum number of attempts",
            },
            "intervalMillis": {
                "type": "number",
                "minimum": 0,
                "description": "Delay before the second attempt",
            },
            "backoffFactor": {
                "type": "number",
                "minimum": 1,
                "description": "Multiplier applied to the delay after each failure",
            },
        },
        "required": ["body"],
    }

    def __init__(self, settings: RetrySettings | None = None, sleep: Sleep | None = None):
        self.settings = settings or RetrySettings()
        self.sleep = sleep or asyncio.sleep

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        max_retries = max(1, int(args.get("maxRetries", self.settings.max_retries)))
        interval = float(args.get("intervalMillis", self.settings.interval_millis))
        backoff = float(args.get("backoffFactor", self.settings.backoff_factor))

        last_error: Exception | None = None
        for attempt in range(max_retries):
            try:
                return await options.run_pipeline(
                    args["body"], Branch(key="body", counter=attempt)
                )
            except Exception as e:
                last_error = e
                options.logger.info(
                    "Attempt %d/%d failed: %s",
                    attempt + 1,
                    max_retries,
                    get_error_message(get_root_cause(e)),
                )

            if attempt < max_retries - 1:
                if interval > 0:
                    await self.sleep(interval / 1000)
                interval *= backoff

        assert last_error is not None
        raise last_error


def control_flow_bricks(retry: RetrySettings | None = None) -> list[Brick]:
    return [IfElse(), ForEach(), TryExcept(), Retry(settings=retry)]
