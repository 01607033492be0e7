"""Integration locator

Resolves an integration dependency (definition id + configuration id) to a
sanitized configuration. The locator caches configurations; ``refresh``
reloads them from the source.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Protocol

import yaml

from brickrun.exceptions import (
    IncompatibleServiceError,
    MissingConfigurationError,
    NotConfiguredError,
)
from brickrun.models.integration import IntegrationConfig, SanitizedIntegrationConfig

log = logging.getLogger(__name__)


class IntegrationLocator(Protocol):
    async def locate(
        self, service_id: str, config_id: str | None
    ) -> SanitizedIntegrationConfig: ...

    async def refresh(self) -> None: ...


def exclude_secrets(config: IntegrationConfig) -> SanitizedIntegrationConfig:
    """Drop secret fields from a configuration."""
    return SanitizedIntegrationConfig(
        id=config.id,
        service_id=config.service_id,
        proxy=config.proxy,
        config={k: v for k, v in config.config.items() if k not in set(config.secrets)},
    )


class LocalIntegrationLocator:
    """Locator over configurations loaded by a callable (e.g. from a file)."""

    def __init__(self, source: Callable[[], Iterable[IntegrationConfig]]):
        self._source = source
        self._configs: dict[str, IntegrationConfig] = {}
        self._loaded = False

    @classmethod
    def from_configs(cls, configs: Iterable[IntegrationConfig]) -> "LocalIntegrationLocator":
        configs = list(configs)
        return cls(lambda: configs)

    @classmethod
    def from_file(cls, path: Path) -> "LocalIntegrationLocator":
        """Load configurations from a yaml file with an ``integrations`` list."""

        def _load() -> list[IntegrationConfig]:
            if not path.exists():
                return []
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            return [IntegrationConfig.model_validate(c) for c in data.get("integrations", [])]

        return cls(_load)

    async def refresh(self) -> None:
        self._configs = {c.id: c for c in self._source()}
        self._loaded = True
        log.debug("Loaded %d integration configurations", len(self._configs))

    async def locate(self, service_id: str, config_id: str | None) -> SanitizedIntegrationConfig:
        """Find a configuration.

        Raises:
            NotConfiguredError: If no configuration is selected.
            MissingConfigurationError: If the configuration doesn't exist.
            IncompatibleServiceError: If it belongs to another integration.
        """
        if not config_id:
            raise NotConfiguredError(
                f"No configuration selected for {service_id}", service_id
            )

        if not self._loaded:
            await self.refresh()

        config = self._configs.get(config_id)
        if config is None:
            raise MissingConfigurationError(
                f"Configuration not found for {service_id}", service_id, config_id
            )
        if config.service_id != service_id:
            raise IncompatibleServiceError(
                f"Configuration {config_id} is for {config.service_id}, not {service_id}"
            )
        return exclude_secrets(config)
