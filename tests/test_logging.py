"""
Tests for structured logging and operation tracking.
"""
import io
import json
import logging

import pytest

from roads.core.logging import (
    HumanFormatter,
    JSONFormatter,
    get_logger,
    log_operation,
    operation_var,
    setup_logging,
)


def make_record(msg="hello", level=logging.INFO):
    return logging.LogRecord("roads.test", level, __file__, 10, msg, (), None)


class TestFormatters:
    """Tests for the JSON and human formatters."""

    def test_json_fields(self):
        payload = json.loads(JSONFormatter().format(make_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "roads.test"
        assert payload["message"] == "hello"
        assert payload["timestamp"].endswith("Z")
        assert "operation" not in payload

    def test_json_operation_and_extra(self):
        record = make_record()
        record.extra_fields = {"graph_base": "hamburg.osrm"}
        token = operation_var.set("partition")
        try:
            payload = json.loads(JSONFormatter().format(record))
        finally:
            operation_var.reset(token)

        assert payload["operation"] == "partition"
        assert payload["graph_base"] == "hamburg.osrm"

    def test_human_format(self):
        token = operation_var.set("table")
        try:
            line = HumanFormatter().format(make_record("Computed 4x4 matrix"))
        finally:
            operation_var.reset(token)

        assert "[table]" in line
        assert "Computed 4x4 matrix" in line


class TestLogOperation:
    """Tests for the log_operation context manager."""

    def test_success(self, caplog):
        with caplog.at_level(logging.INFO, logger="roads.operations"):
            with log_operation("extract", osm_path="hamburg.osm.pbf"):
                assert operation_var.get() == "extract"

        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["Operation started: extract", "Operation completed: extract"]
        assert "duration_ms" in caplog.records[-1].extra_fields
        assert caplog.records[-1].extra_fields["osm_path"] == "hamburg.osm.pbf"
        assert operation_var.get() == ""

    def test_failure_is_logged_and_reraised(self, caplog):
        with caplog.at_level(logging.INFO, logger="roads.operations"):
            with pytest.raises(RuntimeError):
                with log_operation("customize"):
                    raise RuntimeError("disk full")

        failed = caplog.records[-1]
        assert failed.getMessage() == "Operation failed: customize"
        assert failed.levelno == logging.ERROR
        assert failed.extra_fields["error"] == "disk full"
        assert failed.exc_info is not None
        assert operation_var.get() == ""


def test_structured_logger_respects_level(caplog):
    logger = get_logger("roads.test")

    with caplog.at_level(logging.WARNING, logger="roads.test"):
        logger.info("hidden")
        logger.warning("shown %s", "here", extra={"k": 1})

    assert [r.getMessage() for r in caplog.records] == ["shown here"]
    assert caplog.records[0].extra_fields == {"k": 1}


def test_structured_logger_records_call_site(caplog):
    logger = get_logger("roads.test")

    with caplog.at_level(logging.INFO, logger="roads.test"):
        logger.info("from the caller")

    record = caplog.records[0]
    assert record.funcName == "test_structured_logger_records_call_site"
    assert record.lineno > 0


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_loggers(self):
        roads_logger = logging.getLogger("roads")
        root_logger = logging.getLogger()
        saved = (roads_logger.handlers[:], roads_logger.level, root_logger.handlers[:], root_logger.level)
        yield
        roads_logger.handlers[:] = saved[0]
        roads_logger.setLevel(saved[1])
        root_logger.handlers[:] = saved[2]
        root_logger.setLevel(saved[3])

    def test_configures_library_logger_only(self):
        root_logger = logging.getLogger()
        root_handlers = root_logger.handlers[:]
        root_level = root_logger.level

        handler = setup_logging(level="debug", json_format=True, stream=io.StringIO())

        roads_logger = logging.getLogger("roads")
        assert handler in roads_logger.handlers
        assert roads_logger.level == logging.DEBUG
        assert isinstance(handler.formatter, JSONFormatter)
        assert root_logger.handlers == root_handlers
        assert root_logger.level == root_level

    def test_repeated_calls_replace_handler(self):
        first = setup_logging(level="INFO", stream=io.StringIO())
        second = setup_logging(level="WARNING", json_format=False, stream=io.StringIO())

        handlers = logging.getLogger("roads").handlers
        assert first not in handlers
        assert second in handlers
        assert isinstance(second.formatter, HumanFormatter)

    def test_writes_json_records(self):
        stream = io.StringIO()
        setup_logging(level="INFO", json_format=True, stream=stream)

        get_logger("roads.services.matrix").info("Computed matrix", extra={"rows": 4})

        payload = json.loads(stream.getvalue().splitlines()[-1])
        assert payload["message"] == "Computed matrix"
        assert payload["rows"] == 4
        assert ":test_writes_json_records:" in payload["source"]
