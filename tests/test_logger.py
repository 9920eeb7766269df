"""Unit tests for structured logging."""
import sys
sys.path.insert(0, 'backend')

import json
import logging
from logger import JSONFormatter, setup_logging


def _record(msg="Rendered page 3", exc_info=None, **extra):
    record = logging.LogRecord("services.document_renderer", logging.INFO, __file__, 10, msg, (), exc_info)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_fields():
    entry = json.loads(JSONFormatter().format(_record()))

    assert entry["level"] == "INFO"
    assert entry["logger"] == "services.document_renderer"
    assert entry["message"] == "Rendered page 3"
    assert entry["timestamp"].endswith("Z")


def test_json_formatter_includes_extra_fields():
    entry = json.loads(JSONFormatter().format(
        _record(error_code="PAGE_RENDER_ERROR", error_details={"page_index": 2})
    ))

    assert entry["error_code"] == "PAGE_RENDER_ERROR"
    assert entry["error_details"] == {"page_index": 2}


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("corrupt page")
    except RuntimeError:
        record = _record(exc_info=sys.exc_info())

    entry = json.loads(JSONFormatter().format(record))

    assert "RuntimeError: corrupt page" in entry["exception"]


def test_setup_logging_json_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_logging("DEBUG", "json")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
