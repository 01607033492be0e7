"""Console output and log handlers for the brickrun CLI

Pipeline messages are logged through RuntimeLogger and carry a
``message_context`` with the run, deployment and brick ids. The console only
shows the ids that help find a failing run; the step label is already part of
the message.
"""

from __future__ import annotations

import logging
import os
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler

console = Console()
err_console = Console(stderr=True)

DEBUG_ENV = "BRICKRUN_DEBUG"

RUN_FIELDS = ("run_id",)
DEBUG_FIELDS = ("run_id", "extension_id", "deployment_id", "brick_version")


class MessageContextFormatter(logging.Formatter):
    """Appends selected ``message_context`` ids to a record's message."""

    def __init__(self, fields: Sequence[str] = RUN_FIELDS):
        super().__init__("%(message)s")
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "message_context", None) or {}
        ids = " ".join(f"{name}={context[name]}" for name in self.fields if context.get(name))
        return f"{message} ({ids})" if ids else message


def log_level(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def setup_logging(verbose: bool = False, debug: bool | None = None) -> logging.Handler:
    """Send ``brickrun`` logs to stderr.

    WARNING by default, INFO with ``-v`` (runs, caught errors, retries) and
    DEBUG with ``BRICKRUN_DEBUG=1`` (every step and trace, with source paths
    and all context ids).
    """
    if debug is None:
        debug = bool(os.environ.get(DEBUG_ENV))

    handler = RichHandler(
        console=err_console,
        show_time=verbose or debug,
        show_path=debug,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(MessageContextFormatter(DEBUG_FIELDS if debug else RUN_FIELDS))

    logger = logging.getLogger("brickrun")
    logger.setLevel(log_level(verbose, debug))
    logger.handlers = [handler]
    logger.propagate = False
    return handler
