"""Tests for the DoH request pipeline."""

import asyncio

import pytest
from conftest import make_query

from doh_server.config.schema import (
    DoHServerConfig,
    LoggingConfig,
    ServerConfig,
)
from doh_server.core.exceptions import InvalidQuery, NameNotResolvable
from doh_server.core.resolver import ResolutionResult
from doh_server.core.server import DoHServer
from doh_server.dns_logging import DoHRequestTracker


class StubStore:
    def __init__(self, available=True):
        self.available = available

    def is_available(self):
        return self.available


class StubResolver:
    """Resolver returning a canned result, raising, or stalling."""

    def __init__(self, result=None, error=None, delay=0.0):
        self.store = StubStore()
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    async def resolve(self, query, provider=None):
        self.calls.append((query.question.name, provider))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.result


def make_server(resolver, **server_options):
    config = DoHServerConfig(
        server=ServerConfig(**server_options),
        logging=LoggingConfig(file="", enable_request_logging=False),
    )
    tracker = DoHRequestTracker(enable_logging=False)
    return DoHServer(config, resolver, tracker=tracker), tracker


AUTHORITATIVE_RESULT = ResolutionResult(
    resolution="authoritative",
    status=200,
    body=b"wire-answer",
    rcode="NOERROR",
    answer_count=1,
    response_data=["A 203.0.113.5"],
)


class TestDoHServer:
    @pytest.mark.asyncio
    async def test_successful_request(self):
        resolver = StubResolver(result=AUTHORITATIVE_RESULT)
        server, tracker = make_server(resolver)

        response = await server.handle_doh_request(make_query("acme.shop"), "cf", "192.0.2.1")

        assert response.status == 200
        assert response.body == b"wire-answer"
        assert response.content_type == "application/dns-message"
        assert resolver.calls == [("acme.shop", "cf")]

        [entry] = tracker.get_recent_requests()
        assert entry["client_ip"] == "192.0.2.1"
        assert entry["resolution"] == "authoritative"
        assert entry["response_data"] == ["A 203.0.113.5"]
        assert server.get_stats()["authoritative"] == 1

    @pytest.mark.asyncio
    async def test_malformed_query(self):
        resolver = StubResolver(result=AUTHORITATIVE_RESULT)
        server, tracker = make_server(resolver)

        response = await server.handle_doh_request(b"\x01", None, "192.0.2.1")

        assert response.status == 400
        assert response.body == b"Invalid Query"
        assert response.content_type == "text/plain"
        assert resolver.calls == []
        assert tracker.get_recent_requests()[0]["resolution"] == "rejected"

    @pytest.mark.asyncio
    async def test_oversized_query(self):
        server, _ = make_server(StubResolver(result=AUTHORITATIVE_RESULT), max_query_size=16)

        response = await server.handle_doh_request(make_query("a-long-name.acme.shop"))

        assert response.status == 400
        assert server.get_stats()["rejected"] == 1

    @pytest.mark.asyncio
    async def test_pipeline_errors_keep_their_status(self):
        server, _ = make_server(StubResolver(error=InvalidQuery()))
        response = await server.handle_doh_request(make_query("acme.shop"))
        assert (response.status, response.body) == (400, b"Invalid Query")

    @pytest.mark.asyncio
    async def test_unexpected_error_is_server_error(self):
        server, tracker = make_server(StubResolver(error=RuntimeError("database is locked")))

        response = await server.handle_doh_request(make_query("acme.shop"))

        assert response.status == 500
        assert response.body == b"Server Error"
        assert tracker.get_recent_requests()[0]["error"] == "database is locked"
        assert server.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_deadline(self):
        server, _ = make_server(
            StubResolver(result=AUTHORITATIVE_RESULT, delay=1.0), request_timeout=0.05
        )

        response = await server.handle_doh_request(make_query("acme.shop"))

        assert response.status == 500

    @pytest.mark.asyncio
    async def test_bare_tld_query(self):
        server, _ = make_server(StubResolver(error=NameNotResolvable()))
        response = await server.handle_doh_request(make_query("shop"))
        assert (response.status, response.body) == (404, b"NXDOMAIN")

    @pytest.mark.asyncio
    async def test_health_check(self):
        server, _ = make_server(StubResolver(result=AUTHORITATIVE_RESULT))
        health = await server.health_check()
        assert health["status"] == "healthy"

        server.resolver.store.available = False
        assert (await server.health_check())["status"] == "unhealthy"

    def test_stats_without_requests(self):
        server, _ = make_server(StubResolver())
        stats = server.get_stats()
        assert stats["total_queries"] == 0
        assert stats["avg_response_time_ms"] == 0
        assert "response_times" not in stats

    def test_own_tracker_follows_config(self):
        config = DoHServerConfig(logging=LoggingConfig(file="", enable_request_logging=False))

        first = DoHServer(config, StubResolver())
        second = DoHServer(DoHServerConfig(logging=LoggingConfig(file="")), StubResolver())

        assert first.tracker is not second.tracker
        assert first.tracker.enable_logging is False
        assert second.tracker.enable_logging is True

    def test_given_tracker_is_left_unchanged(self):
        tracker = DoHRequestTracker(enable_logging=True)
        config = DoHServerConfig(logging=LoggingConfig(file="", enable_request_logging=False))

        server = DoHServer(config, StubResolver(), tracker=tracker)

        assert server.tracker is tracker
        assert tracker.enable_logging is True
