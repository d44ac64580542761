"""Tests for the structured logging system (stock_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from stock_kernel.domain.dtos import WorkflowState
from stock_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests, then restore the suite's setup."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "stock_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("movement_appended", extra={"line_count": 3, "direction": "out"})

        record = _parse_log(stream)
        assert record["line_count"] == 3
        assert record["direction"] == "out"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        LogContext.set(workflow="produce_batch", document_ref="MFD-250822-A")
        logger.info("test_msg")

        record = _parse_log(stream)
        assert record["workflow"] == "produce_batch"
        assert record["document_ref"] == "MFD-250822-A"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        try:
            raise ValueError("boom")
        except ValueError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_stock_exception_code_extracted(self):
        """Stock kernel exceptions carry .code and structured fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        from stock_kernel.exceptions import ValidationError

        try:
            raise ValidationError("receipt_number", "already recorded: RCV-1")
        except ValidationError:
            logger.error("rejected", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "VALIDATION_ERROR"
        assert record["exc_type"] == "ValidationError"
        assert record["exc_field"] == "receipt_number"
        assert record["exc_reason"] == "already recorded: RCV-1"

    def test_foreign_exception_attributes_not_logged(self):
        """Only stock kernel errors contribute structured exc_ fields."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")

        class DriverError(Exception):
            def __init__(self, statement):
                super().__init__("lock timeout")
                self.statement = statement

        try:
            raise DriverError("SELECT ... FOR UPDATE")
        except DriverError:
            logger.error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "DriverError"
        assert "exc_statement" not in record
        assert "exc_code" not in record

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("bare_message")

        record = _parse_log(stream)
        assert "workflow" not in record
        assert "actor_id" not in record

    def test_value_types_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        uid = uuid4()
        logger.info(
            "typed",
            extra={"item_id": uid, "quantity": Decimal("12.500"), "state": WorkflowState.FAILED},
        )

        record = _parse_log(stream)
        assert record["item_id"] == str(uid)
        assert record["quantity"] == "12.500"
        assert record["state"] == "failed"

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert "ts" in record
            assert "level" in record
            assert "logger" in record
            assert "message" in record


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(workflow="x", document_ref="y")
        assert LogContext.get_all() == {"workflow": "x", "document_ref": "y"}

    def test_clear(self):
        LogContext.set(workflow="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(workflow="outer")
        with LogContext.bind(workflow="inner"):
            assert LogContext.get_all()["workflow"] == "inner"
        assert LogContext.get_all()["workflow"] == "outer"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        assert "document_ref" not in LogContext.get_all()
        with LogContext.bind(document_ref="RCV-1"):
            assert LogContext.get_all()["document_ref"] == "RCV-1"
        assert "document_ref" not in LogContext.get_all()

    def test_bind_skips_none_values(self):
        with LogContext.bind(workflow="ship_batch_items", document_ref=None):
            assert LogContext.get_all() == {"workflow": "ship_batch_items"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="batch_code"):
            LogContext.set(batch_code="MFD-A")
        with pytest.raises(ValueError):
            with LogContext.bind(shipment="SHP-1"):
                pass

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_id="a",
            workflow="w",
            document_ref="d",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 4
        assert ctx["correlation_id"] == "c"


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        kernel_logger = logging.getLogger("stock_kernel")
        # pytest may attach its own capture handlers; count only ours
        ours = [h for h in kernel_logger.handlers if isinstance(h.formatter, StructuredFormatter)]
        assert ours == [h1]
        assert h2 not in kernel_logger.handlers

    def test_reset_keeps_foreign_handlers(self):
        foreign = logging.NullHandler()
        kernel_logger = logging.getLogger("stock_kernel")
        kernel_logger.addHandler(foreign)
        try:
            h1, _ = _make_handler()
            configure_logging(handler=h1)
            reset_logging()

            assert h1 not in kernel_logger.handlers
            assert foreign in kernel_logger.handlers
        finally:
            kernel_logger.removeHandler(foreign)

    def test_level_by_name(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level="debug")
        get_logger("test").debug("named_level")

        assert _parse_log(stream)["message"] == "named_level"

    def test_get_logger_returns_child(self):
        logger = get_logger("services.workflow")
        assert logger.name == "stock_kernel.services.workflow"

    def test_logger_hierarchy(self):
        """Child loggers inherit the stock_kernel root config."""
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        child = get_logger("deep.nested.module")
        child.debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "stock_kernel.deep.nested.module"
