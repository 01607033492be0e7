"""Built-in utility bricks"""

from __future__ import annotations

import logging
from typing import Any

from brickrun.exceptions import BusinessError, PropError
from brickrun.models.expression import is_defer_expression
from brickrun.runtime.context import as_context, output_key_var
from brickrun.runtime.map_args import map_args

from .base import Brick, BrickOptions, properties_to_schema


class Echo(Brick):
    """Return the message it was given."""

    id = "@brickrun/echo"
    name = "Echo"
    description = "Return the message"
    input_schema = properties_to_schema({"message": {"type": "string"}})
    output_schema = properties_to_schema({"message": {"type": "string"}})

    def is_pure(self) -> bool:
        return True

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        return {"message": args["message"]}


class Identity(Brick):
    """Return the rendered arguments unchanged."""

    id = "@brickrun/identity"
    name = "Identity"
    description = "Return the arguments"
    input_schema = {"type": "object", "additionalProperties": True}

    def is_pure(self) -> bool:
        return True

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        return args


class GetContext(Brick):
    """Return the current context (useful for debugging)."""

    id = "@brickrun/context"
    name = "Context"
    description = "Return the current context"
    input_schema = properties_to_schema({})

    def is_pure(self) -> bool:
        return True

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        ctxt = options.ctxt
        return ctxt.to_dict() if hasattr(ctxt, "to_dict") else ctxt


class Throw(Brick):
    """Raise a BusinessError with the given message."""

    id = "@brickrun/throw"
    name = "Throw Error"
    description = "Fail with an error message"
    input_schema = properties_to_schema({"message": {"type": "string"}})

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        raise BusinessError(args["message"])


class Log(Brick):
    """Write a message to the run log."""

    id = "@brickrun/log"
    name = "Log"
    description = "Log a message"
    input_schema = properties_to_schema(
        {
            "message": {"type": "string"},
            "level": {"type": "string", "enum": ["debug", "info", "warning", "error"]},
            "data": {},
        },
        required=["message"],
    )

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        level = logging.getLevelName(args.get("level", "info").upper())
        if "data" in args:
            options.logger.log(level, "%s %r", args["message"], args["data"])
        else:
            options.logger.log(level, "%s", args["message"])
        return None


class MapElements(Brick):
    """Render a deferred expression once per element.

    ``item`` must be a defer expression; it's rendered with the current
    context plus ``@<elementKey>`` bound to each element.
    """

    id = "@brickrun/map"
    name = "Map Elements"
    description = "Render a template for each element"
    input_schema = {
        "type": "object",
        "properties": {
            "elements": {"type": "array"},
            "elementKey": {"type": "string", "default": "element"},
            "item": {
                "type": "object",
                "properties": {"__type__": {"const": "defer"}},
                "required": ["__type__"],
            },
        },
        "required": ["elements", "item"],
    }

    def is_pure(self) -> bool:
        return True

    async def run(self, args: dict[str, Any], options: BrickOptions) -> Any:
        item = args["item"]
        if not is_defer_expression(item):
            raise PropError("Expected a defer expression", self.id, "item", item)

        element_key = output_key_var(args.get("elementKey") or "element")
        ctxt = as_context(options.ctxt)
        return [
            map_args(
                item.value,
                ctxt.extend({element_key: element}),
                implicit_render=None,
                autoescape=False,
            )
            for element in args["elements"]
        ]


def builtin_bricks() -> list[Brick]:
    return [Echo(), Identity(), GetContext(), Throw(), Log(), MapElements()]
