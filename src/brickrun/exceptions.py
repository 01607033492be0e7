"""brickrun Exceptions

Error taxonomy for the pipeline runtime.

Business errors are expected failures caused by user data or configuration
(bad input, missing integration config, explicit ``throw`` bricks). Everything
else is treated as an application error. A failing pipeline step is always
wrapped in a ContextError carrying the brick id and a snapshot of the context.
"""

from __future__ import annotations

from typing import Any


class BrickrunError(Exception):
    """Base exception for all brickrun errors."""

    pass


class BusinessError(BrickrunError):
    """Error caused by user data or configuration rather than the runtime."""

    pass


class CancelError(BusinessError):
    """Raised when the user or a brick cancels the run."""

    pass


class PropError(BusinessError):
    """Raised when a brick receives an invalid argument value."""

    def __init__(self, message: str, brick_id: str, prop: str, value: Any):
        self.brick_id = brick_id
        self.prop = prop
        self.value = value
        super().__init__(message)


class InvalidDefinitionError(BusinessError):
    """Raised when a pipeline or brick definition is malformed."""

    def __init__(self, message: str, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class InputValidationError(BusinessError):
    """Raised when rendered brick arguments do not match the input schema."""

    def __init__(
        self,
        message: str,
        schema: dict[str, Any],
        brick_args: Any,
        errors: list[str],
    ):
        self.schema = schema
        self.brick_args = brick_args
        self.errors = errors
        super().__init__(message)


class MissingConfigurationError(BusinessError):
    """Raised when a configured integration cannot be located."""

    def __init__(self, message: str, service_id: str, id: str | None = None):
        self.service_id = service_id
        self.id = id
        super().__init__(message)


class NotConfiguredError(BusinessError):
    """Raised when an integration dependency has no configuration selected."""

    def __init__(
        self,
        message: str,
        service_id: str,
        missing_properties: list[str] | None = None,
    ):
        self.service_id = service_id
        self.missing_properties = missing_properties or []
        super().__init__(message)


class SuspiciousOperationError(BrickrunError):
    """Raised when a brick attempts an operation it is not allowed to do."""

    pass


class IncompatibleServiceError(SuspiciousOperationError):
    """Raised when an integration is used with a brick that does not accept it."""

    pass


class RegistryError(BrickrunError):
    """Raised for brick registry problems."""

    pass


class BrickNotFoundError(RegistryError):
    """Raised when a brick id is not registered."""

    def __init__(self, brick_id: str):
        self.brick_id = brick_id
        super().__init__(f"Unknown brick: {brick_id}")


class TemplateRenderError(BusinessError):
    """Raised when a template engine fails to render a template."""

    def __init__(self, engine: str, template: str, cause: Exception):
        self.engine = engine
        self.template = template
        super().__init__(f"Error rendering {engine} template: {cause}")
        self.__cause__ = cause


class ContextError(BrickrunError):
    """Wraps an error raised by a pipeline step.

    The original error is available as ``cause`` (and ``__cause__``).
    """

    def __init__(
        self,
        message: str,
        cause: BaseException,
        brick_id: str | None = None,
        context: dict[str, Any] | None = None,
        message_context: dict[str, Any] | None = None,
    ):
        self.cause = cause
        self.brick_id = brick_id
        self.context = context or {}
        self.message_context = message_context or {}
        super().__init__(message)
        self.__cause__ = cause


# =============================================================================
# Helpers
# =============================================================================


def get_root_cause(error: BaseException) -> BaseException:
    """Follow the ``__cause__`` chain to the innermost error."""
    seen = set()
    while error.__cause__ is not None and id(error) not in seen:
        seen.add(id(error))
        error = error.__cause__
    return error


def has_business_root_cause(error: BaseException) -> bool:
    """True if the error or its root cause is a BusinessError."""
    return isinstance(error, BusinessError) or isinstance(
        get_root_cause(error), BusinessError
    )


def has_cancel_root_cause(error: BaseException) -> bool:
    """True if the error or its root cause is a CancelError."""
    return isinstance(error, CancelError) or isinstance(
        get_root_cause(error), CancelError
    )


def get_error_message(error: Any, default: str = "Unknown error") -> str:
    """Return a human readable message for an error-like value."""
    if isinstance(error, BaseException):
        message = str(error)
        return message or default
    if isinstance(error, str):
        return error or default
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return default


def serialize_error(error: BaseException) -> dict[str, Any]:
    """Convert an exception into a JSON-friendly dict, including its causes."""
    data: dict[str, Any] = {
        "name": type(error).__name__,
        "message": get_error_message(error, default=""),
    }
    if isinstance(error, ContextError) and error.brick_id:
        data["brickId"] = error.brick_id
    if isinstance(error, InputValidationError):
        data["errors"] = list(error.errors)
    if error.__cause__ is not None:
        data["cause"] = serialize_error(error.__cause__)
    return data
