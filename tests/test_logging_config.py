"""Tests for logging_config.py module."""

import io
import logging

import colorlog
import pytest

from ircclient.logging_config import ErrorAggregator, LoggerConfigurator, log_structured_error


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLoggerConfigurator:
    """LoggerConfigurator installs a single colorlog handler on the root logger."""

    def test_configure_info_level(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("DEBUG", "false")
        handler = LoggerConfigurator({"stream": io.StringIO()}).configure()
        assert restore_root_logger.handlers == [handler]
        assert restore_root_logger.level == logging.INFO
        assert isinstance(handler.formatter, colorlog.ColoredFormatter)

    def test_configure_debug_level(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("DEBUG", "yes")
        LoggerConfigurator({"stream": io.StringIO()}).configure()
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("asyncio").level == logging.WARNING

    def test_output_goes_to_configured_stream(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("DEBUG", "false")
        stream = io.StringIO()
        LoggerConfigurator({"stream": stream}).configure()
        logging.getLogger("ircclient.test").warning("hello there")
        output = stream.getvalue()
        assert "hello there" in output
        assert "WARNING" in output


class TestErrorAggregator:
    def test_summary_counts(self):
        agg = ErrorAggregator()
        agg.record_error("network", "a")
        agg.record_error("network", "b", {"k": 1})
        summary = agg.get_error_summary()
        assert summary["network"]["total_count"] == 2
        assert summary["network"]["recent_count"] == 2
        assert summary["network"]["last_occurrence"]["context"] == {"k": 1}

    def test_history_is_bounded(self):
        agg = ErrorAggregator(max_per_type=3)
        for i in range(10):
            agg.record_error("parsing", str(i))
        assert [e["message"] for e in agg.errors["parsing"]] == ["7", "8", "9"]

    def test_should_alert_threshold(self):
        agg = ErrorAggregator()
        assert not agg.should_alert("network")
        for _ in range(11):
            agg.record_error("network", "x")
        assert agg.should_alert("network")

    def test_reset(self):
        agg = ErrorAggregator()
        agg.record_error("config", "x")
        agg.reset()
        assert agg.get_error_summary() == {}


def test_log_structured_error_format(caplog):
    caplog.set_level(logging.WARNING)
    log_structured_error(
        "protocol",
        "Odd reply",
        ValueError("bad"),
        {"code": "999"},
        level=logging.WARNING,
    )
    msg = caplog.records[0].message
    assert msg == "[PROTOCOL] Odd reply | Exception: ValueError: bad | Context: code=999"
