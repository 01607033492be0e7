"""Expression model

Brick arguments are either plain literals or typed expressions. On the wire an
expression is ``{"__type__": <kind>, "__value__": <value>}``; in memory it is one
of the frozen dataclasses below, discriminated by ``kind``.

Only template and variable expressions are rendered eagerly. Pipeline and
defer expressions are handed to the consuming brick unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from brickrun.models.brick import BrickConfig

TYPE_KEY = "__type__"
VALUE_KEY = "__value__"


class ExpressionType(str, Enum):
    """Expression kinds."""

    MUSTACHE = "mustache"
    NUNJUCKS = "nunjucks"
    HANDLEBARS = "handlebars"
    VAR = "var"
    PIPELINE = "pipeline"
    DEFER = "defer"


TemplateEngine = ExpressionType

TEMPLATE_ENGINES = frozenset(
    {
        ExpressionType.MUSTACHE,
        ExpressionType.NUNJUCKS,
        ExpressionType.HANDLEBARS,
        ExpressionType.VAR,
    }
)


@dataclass(frozen=True)
class Expression:
    """Base class for typed expressions."""

    kind: ExpressionType
    value: Any

    def to_json(self) -> dict[str, Any]:
        return {TYPE_KEY: self.kind.value, VALUE_KEY: to_json(self.value)}


@dataclass(frozen=True)
class TemplateExpression(Expression):
    """A template string for one of the template engines (or a variable path)."""

    value: str | None


@dataclass(frozen=True)
class PipelineExpression(Expression):
    """A sub-pipeline embedded in a brick's arguments.

    ``env`` is the lexical environment captured when the expression became a
    closure. It is never serialized.
    """

    value: list[BrickConfig]
    env: Mapping[str, Any] | None = field(default=None, compare=False)

    @property
    def is_closure(self) -> bool:
        return self.env is not None


@dataclass(frozen=True)
class DeferExpression(Expression):
    """A value whose rendering is left to the consuming brick."""

    pass


# =============================================================================
# Constructors
# =============================================================================


def make_template_expression(
    engine: ExpressionType | str, value: str | None
) -> TemplateExpression:
    engine = ExpressionType(engine)
    if engine not in TEMPLATE_ENGINES:
        raise ValueError(f"Not a template engine: {engine.value}")
    return TemplateExpression(kind=engine, value=value)


def make_var_expression(path: str | None) -> TemplateExpression:
    return TemplateExpression(kind=ExpressionType.VAR, value=path)


def make_pipeline_expression(pipeline: list[Any]) -> PipelineExpression:
    """Create a pipeline expression from brick configs or their dict form."""
    from brickrun.models.brick import BrickConfig

    return PipelineExpression(
        kind=ExpressionType.PIPELINE,
        value=[BrickConfig.coerce(step) for step in pipeline],
    )


def make_defer_expression(value: Any) -> DeferExpression:
    return DeferExpression(kind=ExpressionType.DEFER, value=parse_expression(value))


def make_pipeline_closure(
    expression: PipelineExpression, env: Mapping[str, Any]
) -> PipelineExpression:
    """Attach a lexical environment to a pipeline expression."""
    return replace(expression, env=env)


# =============================================================================
# Predicates
# =============================================================================


def is_expression(value: Any) -> bool:
    return isinstance(value, Expression)


def is_template_expression(value: Any) -> bool:
    return isinstance(value, TemplateExpression) and value.kind in TEMPLATE_ENGINES


def is_var_expression(value: Any) -> bool:
    return is_template_expression(value) and value.kind == ExpressionType.VAR


def is_nunjucks_expression(value: Any) -> bool:
    return is_template_expression(value) and value.kind == ExpressionType.NUNJUCKS


def is_pipeline_expression(value: Any) -> bool:
    return isinstance(value, PipelineExpression)


def is_pipeline_closure_expression(value: Any) -> bool:
    return is_pipeline_expression(value) and value.is_closure


def is_defer_expression(value: Any) -> bool:
    return isinstance(value, DeferExpression)


def is_wire_expression(value: Any) -> bool:
    """True for the ``{"__type__", "__value__"}`` dict form of a known kind."""
    if not isinstance(value, dict) or TYPE_KEY not in value:
        return False
    return value[TYPE_KEY] in ExpressionType._value2member_map_


# =============================================================================
# Conversion
# =============================================================================


def parse_expression(value: Any) -> Any:
    """Recursively convert wire-form expressions into Expression objects.

    Anything that is not an expression is returned with its containers rebuilt.
    """
    if isinstance(value, Expression):
        return value

    if is_wire_expression(value):
        kind = ExpressionType(value[TYPE_KEY])
        inner = value.get(VALUE_KEY)
        if kind == ExpressionType.PIPELINE:
            steps = inner if isinstance(inner, list) else [inner] if inner else []
            return make_pipeline_expression(steps)
        if kind == ExpressionType.DEFER:
            return make_defer_expression(inner)
        if inner is not None and not isinstance(inner, str):
            raise ValueError(
                f"Expected string value for {kind.value} expression, got {type(inner).__name__}"
            )
        return TemplateExpression(kind=kind, value=inner)

    if isinstance(value, dict):
        return {k: parse_expression(v) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [parse_expression(v) for v in value]

    return value


def to_json(value: Any) -> Any:
    """Recursively convert Expression objects (and brick configs) to plain data."""
    from brickrun.models.brick import BrickConfig

    if isinstance(value, Expression):
        return value.to_json()
    if isinstance(value, BrickConfig):
        return value.to_json()
    if isinstance(value, Mapping):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value
