"""Tests for CLI logging setup."""

import logging

from brickrun.logging_utils import DEBUG_FIELDS, MessageContextFormatter, setup_logging
from brickrun.telemetry import MessageContext, RuntimeLogger


def make_record(**context):
    return logging.makeLogRecord({"msg": "[Echo] started", "message_context": context})


class TestMessageContextFormatter:
    def test_appends_run_id(self):
        record = make_record(run_id="run-1", brick_id="test/echo", deployment_id="dep-1")
        assert MessageContextFormatter().format(record) == "[Echo] started (run_id=run-1)"

    def test_debug_fields(self):
        record = make_record(run_id="run-1", deployment_id="dep-1")
        formatter = MessageContextFormatter(DEBUG_FIELDS)
        assert formatter.format(record) == "[Echo] started (run_id=run-1 deployment_id=dep-1)"

    def test_plain_records_are_unchanged(self):
        record = logging.makeLogRecord({"msg": "Loaded %d configurations", "args": (2,)})
        assert MessageContextFormatter().format(record) == "Loaded 2 configurations"

    def test_runtime_logger_records(self, caplog):
        logger = RuntimeLogger(context=MessageContext(run_id="run-1")).child(label="Echo")
        logger.warning("started")

        [record] = caplog.records
        assert MessageContextFormatter().format(record) == "[Echo] started (run_id=run-1)"


class TestSetupLogging:
    def test_levels(self, monkeypatch):
        monkeypatch.delenv("BRICKRUN_DEBUG", raising=False)
        logger = logging.getLogger("brickrun")

        setup_logging()
        assert logger.level == logging.WARNING

        setup_logging(verbose=True)
        assert logger.level == logging.INFO

        monkeypatch.setenv("BRICKRUN_DEBUG", "1")
        setup_logging()
        assert logger.level == logging.DEBUG

    def test_single_handler_with_context_formatter(self):
        handler = setup_logging(debug=True)
        logger = logging.getLogger("brickrun")

        assert logger.handlers == [handler]
        assert not logger.propagate
        assert handler.formatter.fields == DEBUG_FIELDS
