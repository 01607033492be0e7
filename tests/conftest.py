"""Shared fixtures and test bricks."""

import asyncio
import logging
from typing import Any

import pytest

from brickrun.bricks.base import Brick, BrickOptions, properties_to_schema
from brickrun.bricks.builtin import builtin_bricks
from brickrun.bricks.control_flow import IfElse, ForEach, Retry, TryExcept
from brickrun.bricks.registry import BrickRegistry
from brickrun.exceptions import BusinessError
from brickrun.runtime.reducer import InitialValues, PipelineExecutor, ReduceOptions
from brickrun.telemetry import DeploymentAlert, MemoryTraceSink


# =============================================================================
# Test bricks
# =============================================================================


class EchoBrick(Brick):
    id = "test/echo"
    name = "Echo Brick"
    input_schema = properties_to_schema({"message": {"type": "string"}})

    async def run(self, args, options):
        return {"message": args["message"]}


class ContextBrick(Brick):
    id = "test/context"
    name = "Context Brick"
    input_schema = properties_to_schema({})

    async def run(self, args, options):
        ctxt = options.ctxt
        return ctxt.to_dict() if hasattr(ctxt, "to_dict") else ctxt


class IdentityBrick(Brick):
    id = "test/identity"
    name = "Identity Brick"
    input_schema = {"type": "object"}

    async def run(self, args, options):
        return args


class TeapotBrick(Brick):
    id = "test/teapot"
    name = "Teapot Brick"
    input_schema = properties_to_schema({})

    async def run(self, args, options):
        return {"prop": "I'm a teapot"}


class ThrowBrick(Brick):
    id = "test/throw"
    name = "Throw Brick"
    input_schema = properties_to_schema({"message": {"type": "string"}})

    def __init__(self):
        self.calls = 0

    async def run(self, args, options):
        self.calls += 1
        raise BusinessError(args["message"])


class NoopBrick(Brick):
    """Returns nothing, like an effect."""

    id = "test/noop"
    name = "Noop Brick"
    input_schema = {"type": "object"}

    async def run(self, args, options):
        return None


class RecordBrick(Brick):
    """Records each value it sees; fails on ``failOn``."""

    id = "test/record"
    name = "Record Brick"
    input_schema = {"type": "object", "properties": {"value": {}, "failOn": {}}}

    def __init__(self):
        self.seen: list[Any] = []

    async def run(self, args, options):
        self.seen.append(args.get("value"))
        if "failOn" in args and args.get("value") == args["failOn"]:
            raise BusinessError(f"Failed on {args['value']}")
        return {"value": args.get("value")}


class FlakyBrick(Brick):
    """Fails until it has been called ``failures + 1`` times."""

    id = "test/flaky"
    name = "Flaky Brick"
    input_schema = {"type": "object", "properties": {"failures": {"type": "integer"}}}

    def __init__(self):
        self.calls = 0

    async def run(self, args, options):
        self.calls += 1
        if self.calls <= args.get("failures", 0):
            raise BusinessError(f"Attempt {self.calls} failed")
        return {"calls": self.calls}


class MutateBrick(Brick):
    """Writes into the value it was given."""

    id = "test/mutate"
    name = "Mutate Brick"
    input_schema = {"type": "object", "properties": {"target": {}}}

    async def run(self, args, options):
        target = args["target"]
        if isinstance(target, dict):
            target["leaked"] = True
        else:
            target.append("leaked")
        return None


class RecordingAlerter:
    def __init__(self, fail: bool = False):
        self.sent: list[DeploymentAlert] = []
        self.fail = fail

    async def send(self, alert: DeploymentAlert) -> None:
        self.sent.append(alert)
        if self.fail:
            raise RuntimeError("alert channel down")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_brickrun_logger():
    """CLI tests install a non-propagating handler; undo it."""
    yield
    logger = logging.getLogger("brickrun")
    logger.handlers = []
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def bricks(sleeps):
    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return {
        "echo": EchoBrick(),
        "context": ContextBrick(),
        "identity": IdentityBrick(),
        "teapot": TeapotBrick(),
        "throw": ThrowBrick(),
        "noop": NoopBrick(),
        "record": RecordBrick(),
        "flaky": FlakyBrick(),
        "mutate": MutateBrick(),
        "if_else": IfElse(),
        "for_each": ForEach(),
        "try_except": TryExcept(),
        "retry": Retry(sleep=fake_sleep),
    }


@pytest.fixture
def registry(bricks) -> BrickRegistry:
    return BrickRegistry([*builtin_bricks(), *bricks.values()])


@pytest.fixture
def trace_sink() -> MemoryTraceSink:
    return MemoryTraceSink()


@pytest.fixture
def alerter() -> RecordingAlerter:
    return RecordingAlerter()


@pytest.fixture
def make_alerter():
    """Factory for alerters, e.g. ``make_alerter(fail=True)``."""
    return RecordingAlerter


@pytest.fixture
def executor(registry, trace_sink, alerter) -> PipelineExecutor:
    return PipelineExecutor(registry=registry, trace_sink=trace_sink, alerter=alerter)


@pytest.fixture
def run(executor):
    """Run a pipeline synchronously: run(pipeline, input, api_version="v3", ...)."""

    def _run(
        pipeline,
        input: Any = None,
        api_version: str = "v3",
        options_args: dict | None = None,
        service_context: dict | None = None,
        **options,
    ):
        return asyncio.run(
            executor.reduce_pipeline(
                pipeline,
                InitialValues(
                    input=input if input is not None else {},
                    options_args=options_args,
                    service_context=service_context,
                ),
                ReduceOptions(api_version=api_version, **options),
            )
        )

    return _run
