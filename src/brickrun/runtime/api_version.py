"""apiVersion runtime options"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from brickrun.models.expression import ExpressionType

from .map_args import MapOptions
from .renderers import DEFAULT_IMPLICIT_TEMPLATE_ENGINE, engine_renderer


class ApiVersion(str, Enum):
    """Pipeline document versions."""

    V1 = "v1"
    V2 = "v2"
    V3 = "v3"


LATEST_API_VERSION = ApiVersion.V3


@dataclass(frozen=True)
class ApiVersionOptions:
    """Runtime behavior selected by apiVersion."""

    # Bricks receive the context (not the previous output) as `ctxt`
    explicit_arg: bool
    # Data flows only through `@outputKey` bindings, not the previous output
    explicit_data_flow: bool
    # Only explicit expressions are rendered
    explicit_render: bool
    autoescape: bool

    def map_options(self, template_engine: ExpressionType | None = None) -> MapOptions:
        if self.explicit_render:
            return MapOptions(implicit_render=None, autoescape=self.autoescape)
        return MapOptions(
            implicit_render=engine_renderer(
                template_engine or DEFAULT_IMPLICIT_TEMPLATE_ENGINE,
                autoescape=self.autoescape,
            ),
            autoescape=self.autoescape,
        )


_OPTIONS = {
    ApiVersion.V1: ApiVersionOptions(
        explicit_arg=False,
        explicit_data_flow=False,
        explicit_render=False,
        autoescape=True,
    ),
    ApiVersion.V2: ApiVersionOptions(
        explicit_arg=False,
        explicit_data_flow=True,
        explicit_render=False,
        autoescape=True,
    ),
    ApiVersion.V3: ApiVersionOptions(
        explicit_arg=True,
        explicit_data_flow=True,
        explicit_render=True,
        autoescape=False,
    ),
}


def api_version_options(version: ApiVersion | str) -> ApiVersionOptions:
    """Options for an apiVersion.

    Raises:
        ValueError: If the version is unknown.
    """
    return _OPTIONS[ApiVersion(version)]


def is_api_version_at_least(version: ApiVersion | str, minimum: ApiVersion | str) -> bool:
    return int(ApiVersion(version).value[1:]) >= int(ApiVersion(minimum).value[1:])
