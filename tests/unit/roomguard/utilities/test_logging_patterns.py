"""Tests for the structured logger wrapper."""

import logging

import pytest

from roomguard.utilities.logging_patterns import get_logger, log_error_with_context

LOGGER_NAME = "roomguard.tests.structured"


def _emit_warning(log):
    log.warning("Security event: auth_failure", operation="security_event", user_id="user123")


def _emit_at(log, level):
    log.log(level, "Environment alert raised", operation="environment_alert")


@pytest.fixture
def structured(caplog):
    caplog.set_level(logging.DEBUG, logger=LOGGER_NAME)
    return get_logger(LOGGER_NAME, component="security_monitor")


class TestStructuredLogger:
    def test_level_methods_point_at_the_caller(self, structured, caplog):
        _emit_warning(structured)
        record = caplog.records[-1]
        assert record.funcName == "_emit_warning"
        assert record.filename == "test_logging_patterns.py"
        assert record.levelno == logging.WARNING

    def test_log_points_at_the_caller(self, structured, caplog):
        _emit_at(structured, logging.ERROR)
        assert caplog.records[-1].funcName == "_emit_at"

    def test_kwargs_become_record_fields(self, structured, caplog):
        _emit_warning(structured)
        record = caplog.records[-1]
        assert record.operation == "security_event"
        assert record.user_id == "user123"
        assert record.component == "security_monitor"

    def test_exception_attaches_traceback(self, structured, caplog):
        try:
            raise RuntimeError("alert state broken")
        except RuntimeError:
            structured.exception("Detection failed")
        record = caplog.records[-1]
        assert record.exc_info is not None
        assert record.funcName == "test_exception_attaches_traceback"

    def test_disabled_level_is_skipped(self, caplog):
        caplog.set_level(logging.WARNING, logger=LOGGER_NAME)
        get_logger(LOGGER_NAME).debug("noise", operation="debug")
        assert caplog.records == []


def test_log_error_with_context(caplog):
    caplog.set_level(logging.ERROR, logger="error")
    log_error_with_context(ValueError("bad rule"), "threshold_load", component="thresholds")
    record = caplog.records[-1]
    assert record.getMessage() == "bad rule"
    assert record.error_type == "ValueError"
    assert record.component == "thresholds"
