"""Template renderers

One renderer per engine name. A renderer takes a template string and a context
mapping and returns the rendered value: a string for the template engines, any
value for ``var``.

Engines:
- mustache: pystache
- nunjucks: jinja2 (Nunjucks is a port of Jinja2, so the syntax matches)
- handlebars: pybars3
- var: property path lookup
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Callable, Mapping

import pystache
from jinja2 import BaseLoader, ChainableUndefined, Environment, TemplateError
from pybars import Compiler, PybarsError
from pystache.parser import ParsingError

from brickrun.exceptions import TemplateRenderError
from brickrun.models.expression import TEMPLATE_ENGINES, ExpressionType
from brickrun.utils import copy_plain

from .paths import get_prop_by_path


TemplateRenderer = Callable[[str, Mapping[str, Any]], Any]

DEFAULT_IMPLICIT_TEMPLATE_ENGINE = ExpressionType.MUSTACHE

SERVICE_KEY = "__service"


def unwrap_service(value: Any) -> Any:
    """Return the configured integration for an integration context entry."""
    if isinstance(value, Mapping) and SERVICE_KEY in value:
        return value[SERVICE_KEY]
    return value


# =============================================================================
# mustache
# =============================================================================


class _MustacheRenderer(pystache.Renderer):
    """pystache renderer that coerces values like mustache.js."""

    def str_coerce(self, val: Any) -> str:
        if val is None:
            return ""
        if isinstance(val, bool):
            return "true" if val else "false"
        if isinstance(val, list):
            return ",".join(self.str_coerce(v) for v in val)
        return str(val)


def _no_escape(value: str) -> str:
    return value


@lru_cache(maxsize=2)
def _mustache(autoescape: bool) -> _MustacheRenderer:
    if autoescape:
        return _MustacheRenderer(missing_tags="ignore")
    return _MustacheRenderer(missing_tags="ignore", escape=_no_escape)


def render_mustache(template: str, ctxt: Mapping[str, Any], *, autoescape: bool) -> str:
    try:
        return _mustache(autoescape).render(template, dict(ctxt))
    except ParsingError as e:
        raise TemplateRenderError("mustache", template, e)


# =============================================================================
# nunjucks
# =============================================================================

# Jinja identifiers can't start with "@", so `@input` is exposed as `_at_input`
AT_VAR_PREFIX = "_at_"
_TAG_RE = re.compile(r"({{.*?}}|{%.*?%})", re.DOTALL)
_AT_VAR_RE = re.compile(r"(?<![\w.@])@([A-Za-z_][A-Za-z0-9_]*)")


def rewrite_at_vars(template: str) -> str:
    """Rewrite ``@name`` references inside ``{{ }}`` and ``{% %}`` tags."""

    def _rewrite_tag(match: re.Match[str]) -> str:
        return _AT_VAR_RE.sub(rf"{AT_VAR_PREFIX}\1", match.group(0))

    return _TAG_RE.sub(_rewrite_tag, template)


def _nunjucks_context(ctxt: Mapping[str, Any]) -> dict[str, Any]:
    variables: dict[str, Any] = {}
    for key, value in ctxt.items():
        if key.startswith("@"):
            variables[AT_VAR_PREFIX + key[1:]] = value
        else:
            variables[key] = value
    return variables


@lru_cache(maxsize=2)
def _jinja_env(autoescape: bool) -> Environment:
    return Environment(
        loader=BaseLoader(),
        autoescape=autoescape,
        undefined=ChainableUndefined,
    )


def render_nunjucks(template: str, ctxt: Mapping[str, Any], *, autoescape: bool) -> str:
    try:
        tmpl = _jinja_env(autoescape).from_string(rewrite_at_vars(template))
        return tmpl.render(**_nunjucks_context(ctxt))
    except TemplateError as e:
        raise TemplateRenderError("nunjucks", template, e)


# =============================================================================
# handlebars
# =============================================================================

_handlebars_compiler = Compiler()

# Escaped {{expr}} tags only, not helpers, comments, partials or {{{raw}}}
_HANDLEBARS_ESCAPED_RE = re.compile(r"(?<!\{)\{\{(?![{#/^!>&~]|\s*else\b)([^{}]*)\}\}")


def unescape_handlebars(template: str) -> str:
    """Rewrite ``{{expr}}`` to the raw ``{{{expr}}}`` form."""
    return _HANDLEBARS_ESCAPED_RE.sub(r"{{{\1}}}", template)


@lru_cache(maxsize=256)
def _compile_handlebars(template: str, autoescape: bool) -> Callable[..., Any]:
    if not autoescape:
        template = unescape_handlebars(template)
    return _handlebars_compiler.compile(template)


def render_handlebars(template: str, ctxt: Mapping[str, Any], *, autoescape: bool) -> str:
    try:
        return str(_compile_handlebars(template, autoescape)(dict(ctxt)))
    except PybarsError as e:
        raise TemplateRenderError("handlebars", template, e)


# =============================================================================
# var
# =============================================================================


def render_var(template: str, ctxt: Mapping[str, Any]) -> Any:
    return copy_plain(unwrap_service(get_prop_by_path(ctxt, template)))


# =============================================================================
# Registry
# =============================================================================


def engine_renderer(engine: ExpressionType | str, *, autoescape: bool) -> TemplateRenderer:
    """Return the renderer for a template engine.

    Raises:
        ValueError: If ``engine`` is not a template engine.
    """
    engine = ExpressionType(engine)
    if engine not in TEMPLATE_ENGINES:
        raise ValueError(f"Unsupported template engine: {engine.value}")

    if engine == ExpressionType.VAR:
        return render_var

    renderers = {
        ExpressionType.MUSTACHE: render_mustache,
        ExpressionType.NUNJUCKS: render_nunjucks,
        ExpressionType.HANDLEBARS: render_handlebars,
    }
    render = renderers[engine]

    def _render(template: str, ctxt: Mapping[str, Any]) -> str:
        return render(template, ctxt, autoescape=autoescape)

    return _render
