"""Integration configuration and context"""

from .context import locate_with_retry, make_integration_context
from .locator import IntegrationLocator, LocalIntegrationLocator, exclude_secrets

__all__ = [
    "IntegrationLocator",
    "LocalIntegrationLocator",
    "exclude_secrets",
    "locate_with_retry",
    "make_integration_context",
]
