"""Integration (service) models"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class IntegrationDependency(BaseModel):
    """An integration a pipeline depends on, bound to ``@<outputKey>``."""

    model_config = {"populate_by_name": True}

    id: str  # integration definition id, e.g. "@acme/api"
    output_key: str = Field(alias="outputKey")
    config: str | None = None  # configuration (auth) id, None if not selected


class IntegrationConfig(BaseModel):
    """A stored integration configuration, including secrets."""

    model_config = {"populate_by_name": True}

    id: str
    service_id: str = Field(alias="serviceId")
    label: str | None = None
    config: dict[str, Any] = {}
    # Names of config fields that must not be exposed to bricks
    secrets: list[str] = []
    proxy: bool = False


class SanitizedIntegrationConfig(BaseModel):
    """An integration configuration with secrets removed."""

    model_config = {"populate_by_name": True}

    id: str
    service_id: str = Field(alias="serviceId")
    proxy: bool = False
    config: dict[str, Any] = {}

    def to_context(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
