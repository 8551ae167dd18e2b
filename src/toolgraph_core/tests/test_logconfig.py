# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import logging

from toolgraph_core.logconfig import (
    JSON_FORMAT,
    LOGGER_NAMES,
    TEXT_FORMAT,
    DescriptorContext,
    DescriptorContextFilter,
    configure_logging,
)


def _capture_record(message: str) -> logging.LogRecord:
    """Emit one log record through a Capture handler and return it."""
    records = []

    class Capture(logging.Handler):
        def emit(self, record: logging.LogRecord):
            records.append(record)

    logger = logging.getLogger("test_logconfig_capture")
    logger.setLevel(logging.DEBUG)
    h = Capture()
    h.addFilter(DescriptorContextFilter())
    logger.addHandler(h)
    try:
        logger.info(message)
    finally:
        logger.removeHandler(h)
    return records[0]


def test_formats_contain_descriptor_fields():
    for fmt in (TEXT_FORMAT, JSON_FORMAT):
        assert "repository_id" in fmt
        assert "version" in fmt
        assert "descriptor_path" in fmt


def test_filter_defaults_to_empty():
    DescriptorContext.clear()
    record = _capture_record("hello")
    assert record.repository_id == ""
    assert record.version == ""
    assert record.descriptor_path == ""


def test_filter_injects_values():
    DescriptorContext.set("repo-1", "main", "/Dockstore.wdl")
    try:
        record = _capture_record("hello")
        assert record.repository_id == "repo-1"
        assert record.version == "main"
        assert record.descriptor_path == "/Dockstore.wdl"
    finally:
        DescriptorContext.clear()


def test_bind_restores_outer_context():
    DescriptorContext.set("outer", "v1", "/outer.cwl")
    try:
        with DescriptorContext.bind("inner", "v2"):
            record = _capture_record("inside")
            assert (record.repository_id, record.version, record.descriptor_path) == ("inner", "v2", "")
        record = _capture_record("outside")
        assert (record.repository_id, record.version, record.descriptor_path) == ("outer", "v1", "/outer.cwl")
    finally:
        DescriptorContext.clear()


def test_configure_logging_replaces_previous_handler():
    loggers = [logging.getLogger(name) for name in LOGGER_NAMES]
    saved = [(logger.level, list(logger.handlers)) for logger in loggers]
    try:
        first = configure_logging("DEBUG", "text")
        second = configure_logging("WARNING", "json")
        for logger in loggers:
            assert second in logger.handlers
            assert first not in logger.handlers
            assert logger.level == logging.WARNING
        assert second.formatter._fmt == JSON_FORMAT
    finally:
        for logger, (level, handlers) in zip(loggers, saved):
            logger.setLevel(level)
            logger.handlers[:] = handlers
