"""
Tests for uciforms logging utilities.
"""

import json
import logging
import sys

import pytest
from rich.logging import RichHandler

from uciforms.monitoring.logger import (
    FieldLogAdapter,
    JSONFormatter,
    get_logger,
    log_field_event,
    setup_logging,
)


@pytest.fixture()
def formatter() -> JSONFormatter:
    """Provide a reusable formatter instance."""
    return JSONFormatter()


@pytest.fixture()
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def make_record(msg: str = "Option committed", **extras) -> logging.LogRecord:
    record = logging.LogRecord(
        name="uciforms.selection.orchestrator",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extras.items():
        setattr(record, key, value)
    return record


def test_json_formatter_promotes_field_extras(formatter: JSONFormatter) -> None:
    """Field context should surface as top-level JSON keys."""
    record = make_record(label="Customer", field_kind="lookup", state="found", scrolls=3)

    payload = json.loads(formatter.format(record))

    assert payload["message"] == "Option committed"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "uciforms.selection.orchestrator"
    assert payload["label"] == "Customer"
    assert payload["field_kind"] == "lookup"
    assert payload["state"] == "found"
    assert payload["scrolls"] == 3


def test_json_formatter_skips_unknown_extras(formatter: JSONFormatter) -> None:
    """Only the known field extras are promoted."""
    payload = json.loads(formatter.format(make_record(secret="value")))

    assert "secret" not in payload
    assert "label" not in payload


def test_json_formatter_includes_exception(formatter: JSONFormatter) -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = make_record()
        record.exc_info = sys.exc_info()

    payload = json.loads(formatter.format(record))

    assert "ValueError: boom" in payload["exception"]


def test_get_logger_with_context_returns_adapter(caplog: pytest.LogCaptureFixture) -> None:
    """Context passed to get_logger should be stamped on every record."""
    logger = get_logger("uciforms.test", label="Customer")
    assert isinstance(logger, FieldLogAdapter)

    with caplog.at_level(logging.INFO, logger="uciforms.test"):
        logger.info("Resolved", extra={"role": "combobox"})

    record = caplog.records[-1]
    assert record.label == "Customer"
    assert record.role == "combobox"


def test_get_logger_without_context() -> None:
    assert isinstance(get_logger("uciforms.test"), logging.Logger)


def test_log_field_event_never_logs_values(caplog: pytest.LogCaptureFixture) -> None:
    """Field events carry the value length, not the value."""
    with caplog.at_level(logging.DEBUG, logger="uciforms.field_events"):
        log_field_event("text", "Email", "resolving", value_length=15)

    record = caplog.records[-1]
    assert record.getMessage() == "text 'Email' -> resolving"
    assert record.value_length == 15
    assert record.field_kind == "text"


def test_setup_logging_json(restore_root_logger) -> None:
    root = setup_logging(log_level="DEBUG", log_format="json")

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JSONFormatter)
    assert logging.getLogger("playwright").level == logging.WARNING


def test_setup_logging_text_uses_rich(restore_root_logger) -> None:
    root = setup_logging(log_level="warning", log_format="text")

    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0], RichHandler)


def test_setup_logging_file(restore_root_logger, tmp_path) -> None:
    log_file = tmp_path / "uciforms.log"

    root = setup_logging(log_level="INFO", log_format="text", log_file=str(log_file))
    logging.getLogger("uciforms.test").info("Scenario finished")
    for handler in root.handlers:
        handler.flush()

    assert len(root.handlers) == 2
    assert "Scenario finished" in log_file.read_text()
