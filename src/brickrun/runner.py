"""DocumentRunner - runs pipeline documents"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from uuid_extensions import uuid7str

from brickrun.bricks.registry import BrickRegistry, default_registry
from brickrun.config import RuntimeSettings
from brickrun.document import PipelineDocument
from brickrun.integrations.context import make_integration_context
from brickrun.integrations.locator import IntegrationLocator, LocalIntegrationLocator
from brickrun.runtime.reducer import InitialValues, PipelineExecutor, ReduceOptions
from brickrun.telemetry import DeploymentAlerter, MessageContext, RuntimeLogger, TraceSink

log = logging.getLogger(__name__)


class DocumentRunner:
    """Runs a PipelineDocument end to end.

    Registers the document's composite brick definitions, resolves its
    integrations, then runs its pipeline with the document's apiVersion.
    """

    def __init__(
        self,
        settings: RuntimeSettings | None = None,
        registry: BrickRegistry | None = None,
        locator: IntegrationLocator | None = None,
        trace_sink: TraceSink | None = None,
        alerter: DeploymentAlerter | None = None,
    ):
        self.settings = settings or RuntimeSettings()
        self.registry = registry if registry is not None else default_registry(self.settings)
        self.locator = locator or LocalIntegrationLocator.from_configs([])
        self.executor = PipelineExecutor(
            registry=self.registry,
            trace_sink=trace_sink,
            alerter=alerter,
            settings=self.settings,
        )

    def register_definitions(self, document: PipelineDocument) -> None:
        for brick_id, definition in document.definitions.items():
            log.debug("Registering composite brick %s", brick_id)
            self.registry.register(definition.to_brick(brick_id))

    async def run(
        self,
        document: PipelineDocument,
        input: Any = None,
        options_args: Mapping[str, Any] | None = None,
        root: Any = None,
        run_id: str | None = None,
    ) -> Any:
        """Run a document.

        Args:
            document: The parsed document.
            input: Bound to ``@input``.
            options_args: Overrides for the document's ``options`` (``@options``).
            root: Opaque root element passed to root-aware bricks.
            run_id: Run id for traces. Generated if not given.

        Returns:
            The pipeline's result.
        """
        self.register_definitions(document)

        service_context = await make_integration_context(document.integrations, self.locator)

        run_id = run_id or uuid7str()
        logger = RuntimeLogger(
            context=MessageContext(
                run_id=run_id,
                extension_id=self.settings.extension_id,
                deployment_id=self.settings.deployment_id,
                label=document.name,
            )
        )
        log.info("Running %s (run %s)", document.name or "pipeline", run_id)

        return await self.executor.reduce_extension_pipeline(
            document.pipeline,
            InitialValues(
                input=input,
                options_args={**document.options, **(options_args or {})},
                service_context=service_context,
                root=root,
            ),
            ReduceOptions(api_version=document.api_version, run_id=run_id, logger=logger),
        )
