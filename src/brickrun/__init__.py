"""brickrun - Brick Pipeline Runtime"""

__version__ = "0.1.0"

# Re-export from runtime
from brickrun.runtime import (
    ApiVersion,
    Context,
    InitialValues,
    PipelineExecutor,
    ReduceOptions,
    map_args,
)

# Re-export from models
from brickrun.models import (
    BrickConfig,
    ExpressionType,
    make_pipeline_expression,
    make_template_expression,
    make_var_expression,
)

# Re-export from bricks
from brickrun.bricks import Brick, BrickOptions, BrickRegistry, default_registry

from brickrun.document import PipelineDocument
from brickrun.runner import DocumentRunner

__all__ = [
    "__version__",
    # runtime
    "ApiVersion",
    "Context",
    "InitialValues",
    "PipelineExecutor",
    "ReduceOptions",
    "map_args",
    # models
    "BrickConfig",
    "ExpressionType",
    "make_pipeline_expression",
    "make_template_expression",
    "make_var_expression",
    # bricks
    "Brick",
    "BrickOptions",
    "BrickRegistry",
    "default_registry",
    # documents
    "PipelineDocument",
    "DocumentRunner",
]
