"""
Tests for DoH Logging System

This module tests the structured logging functionality including:
- Structured logging configuration
- JSON file output
- DoH transaction tracking and timing
- Recent-history filtering and counters
"""

import json
import logging

import pytest
import structlog

from doh_server.config.schema import LoggingConfig
from doh_server.dns_logging import (
    DoHRequestLogger,
    DoHRequestTracker,
    get_logger,
    get_structured_logger,
    log_exception,
    setup_logging,
)
from doh_server.dns_logging.logger import JSON_LOGGER_NAME, StructuredLogger


@pytest.fixture
def restore_logging():
    """Put the console-only test logging back after a test reconfigures it."""
    yield
    json_logger = logging.getLogger(JSON_LOGGER_NAME)
    for handler in list(json_logger.handlers):
        handler.close()
        json_logger.removeHandler(handler)
    setup_logging(LoggingConfig(level="WARNING", format="simple", file=""))


def _tracked(tracker, **overrides):
    fields = {
        "client_ip": "192.0.2.1",
        "provider": None,
        "query_type": "A",
        "domain": "acme.shop",
        "resolution": "authoritative",
        "status": 200,
        "rcode": "NOERROR",
        "answer_count": 1,
        "response_data": ["A 203.0.113.5"],
    }
    fields.update(overrides)
    request_id = tracker.start_request()
    tracker.end_request(request_id, **fields)
    return request_id


class TestStructuredLogger:
    """Test structured logging framework."""

    def test_structured_logger_creation(self):
        config = LoggingConfig(level="INFO", format="structured", file="")

        logger = StructuredLogger(config)
        assert logger.config == config
        assert not logger._configured

    def test_structured_format_uses_console_renderer(self):
        logger = StructuredLogger(LoggingConfig(format="structured", file=""))

        processors = logger._get_processors()

        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_simple_format_uses_key_value_renderer(self):
        logger = StructuredLogger(LoggingConfig(format="simple", file=""))

        processors = logger._get_processors()

        assert isinstance(processors[-1], structlog.processors.KeyValueRenderer)
        assert structlog.processors.format_exc_info in processors

    def test_configure_without_file(self, restore_logging):
        logger = setup_logging(LoggingConfig(level="ERROR", format="detailed", file=""))

        assert logger._configured
        assert logger._json_logger is None
        assert logging.getLogger().level == logging.ERROR
        assert get_structured_logger() is logger

    def test_json_file_output(self, tmp_path, restore_logging):
        log_file = tmp_path / "logs" / "doh.log"
        setup_logging(LoggingConfig(level="INFO", format="simple", file=str(log_file)))

        try:
            raise ValueError("bad record")
        except ValueError as e:
            log_exception(get_logger("test"), "Record failed", e)

        lines = log_file.read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[-1])

        assert entry["message"] == "Record failed"
        assert entry["level"] == "ERROR"
        assert entry["exception_type"] == "ValueError"
        assert "bad record" in entry["traceback"]

    def test_request_log_written_to_json_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "doh.log"
        setup_logging(LoggingConfig(level="INFO", format="simple", file=str(log_file)))

        entry = DoHRequestLogger().log_request(
            request_id="req-1",
            client_ip="192.0.2.1",
            provider="cf",
            query_type="A",
            domain="example.com",
            resolution="proxied",
            status=200,
            rcode=None,
            answer_count=0,
            response_time_ms=12.3456,
        )

        written = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert entry["response_time_ms"] == 12.35
        assert written["request_id"] == "req-1"
        assert written["provider"] == "cf"
        assert written["resolution"] == "proxied"

    def test_get_logger_returns_bound_logger(self):
        logger = get_logger("test_component")
        assert hasattr(logger, "info")
        assert hasattr(logger, "bind")


class TestDoHRequestTracker:
    """Test DoH transaction tracking."""

    def test_request_tracking_lifecycle(self):
        tracker = DoHRequestTracker(enable_logging=False)

        request_id = tracker.start_request()
        assert request_id in tracker.active_requests

        elapsed = tracker.end_request(
            request_id,
            client_ip="192.0.2.1",
            provider=None,
            query_type="MX",
            domain="acme.shop",
            resolution="authoritative",
            status=200,
            rcode="NOERROR",
            answer_count=1,
            response_data=["MX 20 mail.acme.shop."],
        )

        assert request_id not in tracker.active_requests
        assert elapsed >= 0
        record = tracker.get_recent_requests()[0]
        assert record["request_id"] == request_id
        assert record["response_data"] == ["MX 20 mail.acme.shop."]
        assert "error" not in record

    def test_custom_request_id(self):
        tracker = DoHRequestTracker(enable_logging=False)
        assert tracker.start_request("custom-id") == "custom-id"

    def test_error_recorded(self):
        tracker = DoHRequestTracker(enable_logging=False)
        _tracked(tracker, resolution="rejected", status=400, rcode=None, error="Invalid Query")

        record = tracker.get_recent_requests()[0]
        assert record["error"] == "Invalid Query"
        assert record["status"] == 400

    def test_newest_first_and_window_size(self):
        tracker = DoHRequestTracker(max_recent_requests=3, enable_logging=False)
        for index in range(5):
            _tracked(tracker, domain=f"host{index}.acme.shop")

        domains = [r["domain"] for r in tracker.get_recent_requests()]
        assert domains == ["host4.acme.shop", "host3.acme.shop", "host2.acme.shop"]
        assert tracker.get_request_count() == 3

    def test_filters(self):
        tracker = DoHRequestTracker(enable_logging=False)
        _tracked(tracker, domain="www.acme.shop", query_type="A")
        _tracked(tracker, domain="example.com", query_type="AAAA", resolution="proxied")
        _tracked(tracker, domain="ACME.shop", query_type="MX", client_ip="198.51.100.7")

        assert len(tracker.get_recent_requests(filters={"domain": "acme"})) == 2
        assert len(tracker.get_recent_requests(filters={"query_type": "AAAA"})) == 1
        assert len(tracker.get_recent_requests(filters={"resolution": "proxied"})) == 1
        assert len(tracker.get_recent_requests(filters={"client_ip": "198.51.100.7"})) == 1

    def test_limit_and_offset(self):
        tracker = DoHRequestTracker(enable_logging=False)
        for index in range(4):
            _tracked(tracker, domain=f"host{index}.acme.shop")

        page = tracker.get_recent_requests(limit=2, offset=1)
        assert [r["domain"] for r in page] == ["host2.acme.shop", "host1.acme.shop"]

    def test_stats(self):
        tracker = DoHRequestTracker(enable_logging=False)
        _tracked(tracker)
        _tracked(tracker, resolution="proxied")
        _tracked(tracker, resolution="error", status=500)
        tracker.start_request()

        stats = tracker.get_stats()
        assert stats["authoritative"] == 1
        assert stats["proxied"] == 1
        assert stats["error"] == 1
        assert stats["rejected"] == 0
        assert stats["total"] == 3
        assert stats["active"] == 1

    def test_clear_keeps_totals(self):
        tracker = DoHRequestTracker(enable_logging=False)
        _tracked(tracker)
        tracker.clear_recent_requests()

        assert tracker.get_request_count() == 0
        assert tracker.get_stats()["total"] == 1

    def test_logging_enabled(self):
        tracker = DoHRequestTracker(enable_logging=True)
        _tracked(tracker)

        assert isinstance(tracker.request_logger, DoHRequestLogger)
