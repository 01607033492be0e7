"""Pipeline executor

Runs a pipeline of bricks sequentially, threading the context, output keys and
the root element from step to step.

Per step:
1. resolve the brick from the registry
2. check the step's ``if`` condition
3. render the step config against the context
4. validate the rendered args against the brick's input schema
5. run the brick
6. bind ``@outputKey`` (or make the output the running value)
7. record traces

A failing step is wrapped in a ContextError; steps after it never run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, NoReturn

from uuid_extensions import uuid7str

from brickrun.bricks.base import Brick, BrickOptions
from brickrun.bricks.registry import BrickRegistry, default_registry
from brickrun.config import RuntimeSettings
from brickrun.exceptions import BrickrunError, BusinessError, ContextError, serialize_error
from brickrun.models.brick import BrickConfig, Pipeline, coerce_pipeline
from brickrun.models.expression import PipelineExpression, to_json
from brickrun.models.trace import Branch, TraceRecord
from brickrun.telemetry import (
    DeploymentAlert,
    DeploymentAlerter,
    LoggingDeploymentAlerter,
    MessageContext,
    RuntimeLogger,
    TraceSink,
)
from brickrun.utils import boolean, is_plain_object
from brickrun.validation import (
    JsonSchemaValidator,
    SchemaValidator,
    log_if_invalid_output,
    throw_if_invalid_input,
)

from .api_version import ApiVersion, ApiVersionOptions, api_version_options
from .context import INPUT_KEY, OPTIONS_KEY, Context, as_context
from .map_args import map_args_with

log = logging.getLogger(__name__)


@dataclass
class InitialValues:
    """Values the top-level context is built from."""

    input: Any = None
    options_args: Mapping[str, Any] | None = None
    # `@<outputKey>` entries from make_integration_context
    service_context: Mapping[str, Any] | None = None
    root: Any = None


@dataclass(frozen=True)
class ReduceOptions:
    """Options for a pipeline run.

    ``api_version`` has no default: the rendering mode must always come from
    the document being run.
    """

    api_version: ApiVersion
    run_id: str | None = None
    extension_id: str | None = None
    deployment_id: str | None = None
    branches: tuple[Branch, ...] = ()
    validate_input: bool | None = None
    log_values: bool | None = None
    logger: RuntimeLogger | None = None


@dataclass
class IntermediateState:
    root: Any
    index: int
    is_last_brick: bool
    previous_output: Any
    context: Context


@dataclass
class BrickOutput:
    # Running value passed to the next step (v1 data flow)
    output: Any
    context: Context
    # What the brick itself returned, even if bound to an outputKey
    brick_output: Any = None


@dataclass
class _ResolvedOptions:
    """ReduceOptions with defaults applied."""

    api_version: ApiVersion
    run_id: str
    extension_id: str | None
    deployment_id: str | None
    branches: tuple[Branch, ...]
    validate_input: bool
    log_values: bool
    logger: RuntimeLogger
    version: ApiVersionOptions = field(init=False)

    def __post_init__(self) -> None:
        self.version = api_version_options(self.api_version)


def get_pipeline_lexical_environment(
    pipeline: PipelineExpression | None,
    ctxt: Mapping[str, Any],
    extra_context: Mapping[str, Any] | None,
) -> Context:
    """Environment for a sub-pipeline.

    A closure runs in the environment it captured, otherwise the caller's
    context is used. ``extra_context`` is layered on top either way.
    """
    base = pipeline.env if pipeline is not None and pipeline.env is not None else ctxt
    return as_context(base).extend(extra_context or {})


class PipelineExecutor:
    """Interprets pipelines of bricks.

    Usage:
        executor = PipelineExecutor()
        result = await executor.reduce_pipeline(
            pipeline,
            InitialValues(input={"name": "World"}),
            ReduceOptions(api_version=ApiVersion.V3),
        )
    """

    def __init__(
        self,
        registry: BrickRegistry | None = None,
        validator: SchemaValidator | None = None,
        trace_sink: TraceSink | None = None,
        alerter: DeploymentAlerter | None = None,
        settings: RuntimeSettings | None = None,
    ):
        """Initialize the executor.

        Args:
            registry: Brick registry. Defaults to the built-in bricks.
            validator: Input/output schema validator.
            trace_sink: Receives trace records. None disables tracing.
            alerter: Receives deployment alerts for ``onError.alert`` steps.
            settings: Runtime settings used for option defaults.
        """
        self.settings = settings or RuntimeSettings()
        self.registry = registry if registry is not None else default_registry(self.settings)
        self.validator = validator or JsonSchemaValidator()
        self.trace_sink = trace_sink
        self.alerter = alerter or LoggingDeploymentAlerter()

    # =========================================================================
    # Entry points
    # =========================================================================

    async def reduce_extension_pipeline(
        self,
        pipeline: BrickConfig | Pipeline | list[dict[str, Any]],
        initial_values: InitialValues,
        options: ReduceOptions,
    ) -> Any:
        """Run a pipeline after clearing the extension's previous traces."""
        extension_id = options.extension_id or self.settings.extension_id
        if self.trace_sink is not None:
            self.trace_sink.clear(extension_id)
        return await self.reduce_pipeline(pipeline, initial_values, options)

    async def reduce_pipeline(
        self,
        pipeline: BrickConfig | Pipeline | list[dict[str, Any]],
        initial_values: InitialValues,
        options: ReduceOptions,
    ) -> Any:
        """Run a top-level pipeline and return the final running value.

        Args:
            pipeline: A single step or a list of steps.
            initial_values: Input, options args, integration context and root.
            options: Run options. ``api_version`` selects the data flow and
                rendering mode.

        Returns:
            The output of the last step that produced the running value. With
            explicit data flow a trailing step bound to an outputKey leaves the
            running value unchanged.

        Raises:
            ContextError: If any step fails.
        """
        resolved = self._apply_defaults(options)
        steps = coerce_pipeline(pipeline)
        log.debug(
            "Running %d step(s) with apiVersion %s (run %s)",
            len(steps),
            resolved.api_version.value,
            resolved.run_id,
        )

        context = Context(
            {
                # Integrations first so they can't override the input/options
                **(initial_values.service_context or {}),
                INPUT_KEY: initial_values.input,
                OPTIONS_KEY: dict(initial_values.options_args or {}),
            }
        )

        # With explicit data flow, steps read `@input` from the context
        output: Any = {} if resolved.version.explicit_data_flow else initial_values.input

        for index, brick_config in enumerate(steps):
            state = IntermediateState(
                root=initial_values.root,
                index=index,
                is_last_brick=index == len(steps) - 1,
                previous_output=output,
                context=context,
            )
            step_options = replace(resolved, logger=self._step_logger(brick_config, resolved.logger))
            try:
                next_values = await self.brick_reducer(brick_config, state, step_options)
            except Exception as e:
                await self._throw_brick_error(brick_config, state, e, step_options)

            output = next_values.output
            context = next_values.context

        return output

    async def reduce_pipeline_expression(
        self,
        pipeline: Pipeline,
        context: Mapping[str, Any],
        root: Any,
        options: ReduceOptions | _ResolvedOptions,
    ) -> Any:
        """Run a sub-pipeline (the value of a pipeline expression).

        Returns the output of the last step, even if it has an outputKey.
        Returns None for an empty pipeline.

        Raises:
            BrickrunError: If the options don't use explicit data flow.
            ContextError: If any step fails.
        """
        resolved = options if isinstance(options, _ResolvedOptions) else self._apply_defaults(options)
        if not resolved.version.explicit_data_flow:
            raise BrickrunError(
                "Pipeline expressions require explicit data flow (apiVersion v2 or later)"
            )

        ctxt = as_context(context)
        steps = coerce_pipeline(pipeline)
        legacy_output: Any = None
        last_brick_output: Any = None

        for index, brick_config in enumerate(steps):
            state = IntermediateState(
                root=root,
                index=index,
                is_last_brick=index == len(steps) - 1,
                previous_output=legacy_output,
                context=ctxt,
            )
            step_options = replace(resolved, logger=self._step_logger(brick_config, resolved.logger))
            try:
                next_values = await self.brick_reducer(brick_config, state, step_options)
            except Exception as e:
                await self._throw_brick_error(brick_config, state, e, step_options)

            legacy_output = next_values.output
            last_brick_output = next_values.brick_output
            ctxt = next_values.context

        return last_brick_output

    # =========================================================================
    # Steps
    # =========================================================================

    async def brick_reducer(
        self,
        brick_config: BrickConfig,
        state: IntermediateState,
        options: _ResolvedOptions,
    ) -> BrickOutput:
        """Run a single step and compute the next running value and context."""
        logger = options.logger
        version = options.version
        previous_output = state.previous_output

        # In v1 the previous output overrides anything in the context
        if version.explicit_data_flow or not is_plain_object(previous_output):
            context_with_previous_output = state.context
        else:
            context_with_previous_output = state.context.extend(previous_output)

        brick = self.registry.lookup(brick_config.id)

        rendered_args: Any = None
        render_error: Exception | None = None
        try:
            rendered_args = self._render_brick_args(brick_config, state, version)
        except Exception as e:
            render_error = e

        self._add_trace_entry(brick_config, state, options, rendered_args, render_error)

        if not self._should_run_brick(brick_config, context_with_previous_output, version):
            logger.debug("Skipping step %s because condition not met", brick_config.id)
            self._add_trace_exit(brick_config, options, skipped_run=True)
            return BrickOutput(output=previous_output, context=state.context)

        if render_error is not None:
            raise render_error

        output = await self.run_brick(
            brick,
            rendered_args,
            context_with_previous_output,
            state,
            options,
        )

        if options.log_values:
            logger.debug(
                "Output for step #%d %s%s: %r",
                state.index + 1,
                brick_config.id,
                f" (@{brick_config.output_key})" if brick_config.output_key else "",
                output,
            )

        self._add_trace_exit(brick_config, options, output=output)
        log_if_invalid_output(self.validator, brick.output_schema, output, logger)

        if brick_config.output_key:
            return BrickOutput(
                output=previous_output,
                # Overwrites a previous binding with the same key
                context=state.context.bind(brick_config.output_key, output),
                brick_output=output,
            )

        if not state.is_last_brick and version.explicit_data_flow:
            if output is None:
                # Nothing to bind
                return BrickOutput(output=previous_output, context=state.context)
            raise BusinessError(
                "outputKey is required for bricks that return data (since apiVersion: v2)"
            )

        return BrickOutput(output=output, context=state.context, brick_output=output)

    async def run_brick(
        self,
        brick: Brick,
        args: Any,
        context: Context,
        state: IntermediateState,
        options: _ResolvedOptions,
    ) -> Any:
        """Validate the rendered args and run the brick."""
        if options.validate_input:
            throw_if_invalid_input(self.validator, brick.input_schema, args)

        # v1: a non-object previous output is passed to the brick as its context
        if options.version.explicit_arg or is_plain_object(state.previous_output):
            ctxt = context
        else:
            ctxt = state.previous_output

        async def run_pipeline(
            pipeline: PipelineExpression | None,
            branch: Branch,
            extra_context: Mapping[str, Any] | None = None,
            root: Any = None,
        ) -> Any:
            if not isinstance(ctxt, Mapping):
                raise BrickrunError("Expected object context for v3+ runtime")

            return await self.reduce_pipeline_expression(
                pipeline.value if pipeline is not None else [],
                get_pipeline_lexical_environment(pipeline, ctxt, extra_context),
                root if root is not None else state.root,
                replace(options, branches=(*options.branches, branch)),
            )

        brick_options = BrickOptions(
            ctxt=ctxt,
            logger=options.logger,
            run_pipeline=run_pipeline,
            root=state.root,
            previous_output=state.previous_output,
        )
        return await brick.run(args, brick_options)

    def _render_brick_args(
        self,
        brick_config: BrickConfig,
        state: IntermediateState,
        version: ApiVersionOptions,
    ) -> Any:
        if not version.explicit_arg and not is_plain_object(state.previous_output):
            # v1: never render against a non-object context, pass the config through
            return brick_config.config

        if version.explicit_data_flow:
            ctxt = state.context
        else:
            ctxt = state.context.extend(state.previous_output)

        return map_args_with(
            brick_config.config,
            ctxt,
            version.map_options(brick_config.template_engine),
        )

    def _should_run_brick(
        self,
        brick_config: BrickConfig,
        context: Context,
        version: ApiVersionOptions,
    ) -> bool:
        if not brick_config.has_condition:
            return True
        condition = map_args_with(
            brick_config.if_,
            context,
            version.map_options(brick_config.template_engine),
        )
        return boolean(condition)

    async def _throw_brick_error(
        self,
        brick_config: BrickConfig,
        state: IntermediateState,
        error: Exception,
        options: _ResolvedOptions,
    ) -> NoReturn:
        logger = options.logger
        self._add_trace_exit(brick_config, options, error=error)

        if brick_config.on_error is not None and brick_config.on_error.alert:
            if options.deployment_id:
                alert = DeploymentAlert(
                    deployment_id=options.deployment_id,
                    brick_id=brick_config.id,
                    context=to_json(state.context.to_dict()),
                    error=serialize_error(error),
                )
                try:
                    await self.alerter.send(alert)
                except Exception as alert_error:
                    # Never mask the step's error
                    logger.warning("Error sending deployment alert: %s", alert_error)
            else:
                logger.warning("Can only send alert from deployment context")

        raise ContextError(
            f"An error occurred running pipeline stage #{state.index + 1}: {brick_config.id}",
            cause=error,
            brick_id=brick_config.id,
            context=state.context.to_dict(),
            message_context=logger.context.model_dump(exclude_none=True),
        ) from error

    # =========================================================================
    # Helpers
    # =========================================================================

    def _apply_defaults(self, options: ReduceOptions) -> _ResolvedOptions:
        run_id = options.run_id or uuid7str()
        extension_id = options.extension_id or self.settings.extension_id
        deployment_id = options.deployment_id or self.settings.deployment_id
        logger = options.logger or RuntimeLogger(
            context=MessageContext(
                run_id=run_id,
                extension_id=extension_id,
                deployment_id=deployment_id,
            )
        )
        return _ResolvedOptions(
            api_version=ApiVersion(options.api_version),
            run_id=run_id,
            extension_id=extension_id or logger.context.extension_id,
            deployment_id=deployment_id or logger.context.deployment_id,
            branches=tuple(options.branches),
            validate_input=(
                self.settings.validate_input
                if options.validate_input is None
                else options.validate_input
            ),
            log_values=self.settings.log_values if options.log_values is None else options.log_values,
            logger=logger,
        )

    def _step_logger(self, brick_config: BrickConfig, pipeline_logger: RuntimeLogger) -> RuntimeLogger:
        brick = self.registry.lookup(brick_config.id) if brick_config.id in self.registry else None
        return pipeline_logger.child(
            brick_id=brick_config.id,
            brick_version=brick.version if brick is not None else None,
            # Most customized name for the step
            label=brick_config.label or (brick.name if brick is not None else None),
        )

    def _tracing(self) -> bool:
        return self.trace_sink is not None and self.settings.trace

    def _add_trace_entry(
        self,
        brick_config: BrickConfig,
        state: IntermediateState,
        options: _ResolvedOptions,
        rendered_args: Any,
        render_error: Exception | None,
    ) -> None:
        if not self._tracing():
            return
        self.trace_sink.add_entry(
            TraceRecord(
                run_id=options.run_id,
                extension_id=options.extension_id,
                brick_id=brick_config.id,
                brick_instance_id=brick_config.instance_id,
                branches=list(options.branches),
                is_entry=True,
                rendered_args=to_json(rendered_args),
                render_error=serialize_error(render_error) if render_error else None,
            )
        )

    def _add_trace_exit(
        self,
        brick_config: BrickConfig,
        options: _ResolvedOptions,
        output: Any = None,
        error: Exception | None = None,
        skipped_run: bool = False,
    ) -> None:
        if not self._tracing():
            return
        self.trace_sink.add_exit(
            TraceRecord(
                run_id=options.run_id,
                extension_id=options.extension_id,
                brick_id=brick_config.id,
                brick_instance_id=brick_config.instance_id,
                branches=list(options.branches),
                output_key=brick_config.output_key,
                output=to_json(output),
                error=serialize_error(error) if error is not None else None,
                skipped_run=skipped_run,
            )
        )
