"""Argument rendering

Renders a brick's configuration against the current context.

Two modes, selected by the pipeline's apiVersion:
- explicit (v3): only template/var expressions are rendered, plain strings are
  literals
- implicit (v1/v2): every string is a template, or a property path when it
  names a context key
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from brickrun.models.expression import (
    ExpressionType,
    is_defer_expression,
    is_expression,
    is_pipeline_expression,
    is_template_expression,
)
from brickrun.utils import copy_plain

from .paths import get_prop_by_path, is_simple_path
from .renderers import SERVICE_KEY, TemplateRenderer, engine_renderer


@dataclass(frozen=True)
class MapOptions:
    """Rendering options.

    Both fields are required so that every call site picks a mode.
    """

    # Renderer for v1/v2 implicit templates, None for explicit rendering
    implicit_render: TemplateRenderer | None
    autoescape: bool | None


def _prune(rendered: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in rendered.items() if v is not None}


def render_explicit(config: Any, ctxt: Mapping[str, Any], *, autoescape: bool | None) -> Any:
    """Recursively render explicit expressions."""
    if is_template_expression(config):
        if config.value is None:
            return None if config.kind == ExpressionType.VAR else ""
        render = engine_renderer(config.kind, autoescape=bool(autoescape))
        return render(config.value, ctxt)

    if is_pipeline_expression(config) or is_defer_expression(config):
        # Rendered (or run) by the brick that consumes them
        return config

    if isinstance(config, list):
        return [render_explicit(x, ctxt, autoescape=autoescape) for x in config]

    if isinstance(config, Mapping):
        return _prune(
            {k: render_explicit(v, ctxt, autoescape=autoescape) for k, v in config.items()}
        )

    return config


def render_implicit(config: Any, ctxt: Mapping[str, Any], render: TemplateRenderer) -> Any:
    """Recursively render every string with ``render`` (v1/v2 behavior)."""
    if is_expression(config):
        return config

    if isinstance(config, list):
        return [render_implicit(x, ctxt, render) for x in config]

    if isinstance(config, Mapping):
        return _prune({k: render_implicit(v, ctxt, render) for k, v in config.items()})

    if isinstance(config, str):
        if is_simple_path(config, ctxt):
            prop = get_prop_by_path(ctxt, config)
            if isinstance(prop, Mapping) and SERVICE_KEY in prop:
                # The root of an integration context is the configured integration itself
                return copy_plain(prop[SERVICE_KEY])
            return copy_plain(prop)

        return render(config, ctxt)

    return config


def map_args(
    config: Any,
    ctxt: Mapping[str, Any],
    *,
    implicit_render: TemplateRenderer | None,
    autoescape: bool | None,
) -> Any:
    """Render ``config`` against ``ctxt``.

    Args:
        config: Brick configuration (literals and expressions).
        ctxt: Context to render against.
        implicit_render: Renderer for implicit templates, or None for explicit mode.
        autoescape: Whether template engines escape HTML.

    Returns:
        The rendered configuration.
    """
    if implicit_render is not None:
        return render_implicit(config, ctxt, implicit_render)
    return render_explicit(config, ctxt, autoescape=autoescape)


def map_args_with(config: Any, ctxt: Mapping[str, Any], options: MapOptions) -> Any:
    return map_args(
        config,
        ctxt,
        implicit_render=options.implicit_render,
        autoescape=options.autoescape,
    )
