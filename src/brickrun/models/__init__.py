"""brickrun models"""

from .brick import BrickConfig, OnErrorConfig, Pipeline, coerce_pipeline
from .expression import (
    DeferExpression,
    Expression,
    ExpressionType,
    PipelineExpression,
    TemplateEngine,
    TemplateExpression,
    is_defer_expression,
    is_expression,
    is_nunjucks_expression,
    is_pipeline_closure_expression,
    is_pipeline_expression,
    is_template_expression,
    is_var_expression,
    make_defer_expression,
    make_pipeline_closure,
    make_pipeline_expression,
    make_template_expression,
    make_var_expression,
    parse_expression,
    to_json,
)
from .integration import (
    IntegrationConfig,
    IntegrationDependency,
    SanitizedIntegrationConfig,
)
from .trace import Branch, TraceRecord

__all__ = [
    "BrickConfig",
    "OnErrorConfig",
    "Pipeline",
    "coerce_pipeline",
    "Expression",
    "ExpressionType",
    "TemplateEngine",
    "TemplateExpression",
    "PipelineExpression",
    "DeferExpression",
    "is_expression",
    "is_template_expression",
    "is_var_expression",
    "is_nunjucks_expression",
    "is_pipeline_expression",
    "is_pipeline_closure_expression",
    "is_defer_expression",
    "make_template_expression",
    "make_var_expression",
    "make_pipeline_expression",
    "make_defer_expression",
    "make_pipeline_closure",
    "parse_expression",
    "to_json",
    "IntegrationConfig",
    "IntegrationDependency",
    "SanitizedIntegrationConfig",
    "Branch",
    "TraceRecord",
]
