"""Pipeline runtime: context, rendering and execution"""

from .api_version import (
    ApiVersion,
    ApiVersionOptions,
    api_version_options,
    is_api_version_at_least,
)
from .context import Context
from .map_args import map_args, render_explicit, render_implicit
from .reducer import InitialValues, PipelineExecutor, ReduceOptions

__all__ = [
    "ApiVersion",
    "ApiVersionOptions",
    "api_version_options",
    "is_api_version_at_least",
    "Context",
    "map_args",
    "render_explicit",
    "render_implicit",
    "InitialValues",
    "PipelineExecutor",
    "ReduceOptions",
]
