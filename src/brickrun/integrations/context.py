"""Integration context

Builds the ``@<outputKey>`` context entries for a pipeline's integration
dependencies. Each entry holds the sanitized config fields plus a ``__service``
reference to the whole configuration.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

from brickrun.exceptions import MissingConfigurationError
from brickrun.models.integration import IntegrationDependency, SanitizedIntegrationConfig
from brickrun.runtime.context import output_key_var
from brickrun.runtime.renderers import SERVICE_KEY

from .locator import IntegrationLocator

log = logging.getLogger(__name__)


async def locate_with_retry(
    locator: IntegrationLocator, service_id: str, config_id: str | None
) -> SanitizedIntegrationConfig:
    """Locate a configuration, refreshing the locator once if it's missing."""
    try:
        return await locator.locate(service_id, config_id)
    except MissingConfigurationError:
        log.debug("Configuration %s not found for %s, refreshing", config_id, service_id)
        await locator.refresh()
        return await locator.locate(service_id, config_id)


def integration_context_entry(config: SanitizedIntegrationConfig) -> dict[str, Any]:
    entry = {k: v for k, v in config.config.items() if v is not None}
    entry[SERVICE_KEY] = config.to_context()
    return entry


async def make_integration_context(
    dependencies: Iterable[IntegrationDependency],
    locator: IntegrationLocator,
) -> dict[str, dict[str, Any]]:
    """Resolve all dependencies concurrently.

    Identical dependencies share one lookup.

    Raises:
        MissingConfigurationError: If a configuration is missing after a refresh.
        NotConfiguredError: If a dependency has no configuration selected.
    """
    dependencies = list(dependencies)
    lookups: dict[tuple[str, str | None], asyncio.Task[SanitizedIntegrationConfig]] = {}
    for dependency in dependencies:
        key = (dependency.id, dependency.config)
        if key not in lookups:
            lookups[key] = asyncio.ensure_future(
                locate_with_retry(locator, dependency.id, dependency.config)
            )

    try:
        await asyncio.gather(*lookups.values())
    finally:
        for task in lookups.values():
            if not task.done():
                task.cancel()

    return {
        output_key_var(dependency.output_key): integration_context_entry(
            lookups[(dependency.id, dependency.config)].result()
        )
        for dependency in dependencies
    }
