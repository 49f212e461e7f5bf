#  Voice Tutor - Rate Limit Dependency Tests
#
#  Tests for client key derivation and the RateLimit route dependency,
#  called directly with a fake request.
#
#  Depends on: backend/rate_limit.py, backend/services/rate_limiter.py
#  Used by:    pytest

import logging

import pytest
from starlette.requests import Request

from backend.exceptions import RateLimitExceededError
from backend.logging_config import clear_request_context, client_key_var
from backend.models.enums import OperationClass
from backend.rate_limit import UNKNOWN_CLIENT, RateLimit, client_key


def _request(headers: dict | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestClientKey:
    def test_forwarded_for_first_hop(self):
        req = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1, 10.0.0.2"})
        assert client_key(req) == "203.0.113.7"

    def test_forwarded_for_single(self):
        assert client_key(_request({"X-Forwarded-For": " 198.51.100.4 "})) == "198.51.100.4"

    def test_forwarded_for_wins_over_others(self):
        req = _request({
            "X-Forwarded-For": "203.0.113.7",
            "CF-Connecting-IP": "198.51.100.1",
            "X-Real-IP": "192.0.2.1",
        })
        assert client_key(req) == "203.0.113.7"

    def test_cloudflare_header(self):
        req = _request({"CF-Connecting-IP": "198.51.100.1", "X-Real-IP": "192.0.2.1"})
        assert client_key(req) == "198.51.100.1"

    def test_real_ip_header(self):
        assert client_key(_request({"X-Real-IP": "192.0.2.1"})) == "192.0.2.1"

    def test_empty_forwarded_for_falls_through(self):
        req = _request({"X-Forwarded-For": " , 10.0.0.1", "X-Real-IP": "192.0.2.1"})
        assert client_key(req) == "192.0.2.1"

    def test_no_headers_share_unknown_bucket(self):
        assert client_key(_request()) == UNKNOWN_CLIENT


class TestRateLimitDependency:
    async def test_allows_under_limit(self, rate_limiter):
        gate = RateLimit(OperationClass.AUTH)
        for _ in range(5):
            await gate(_request({"X-Real-IP": "192.0.2.1"}), limiter=rate_limiter)

    async def test_raises_over_limit(self, rate_limiter):
        gate = RateLimit(OperationClass.AUTH)
        req = _request({"X-Real-IP": "192.0.2.1"})
        for _ in range(5):
            await gate(req, limiter=rate_limiter)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await gate(req, limiter=rate_limiter)
        assert exc_info.value.operation_class == "auth"
        assert exc_info.value.limit == 5
        assert exc_info.value.retry_after == 900
        assert str(exc_info.value) == "Too many requests. Please try again later."

    async def test_denial_is_logged_with_client(self, rate_limiter, caplog):
        gate = RateLimit(OperationClass.AUTH)
        req = _request({"X-Real-IP": "192.0.2.44"})
        for _ in range(5):
            await gate(req, limiter=rate_limiter)

        with caplog.at_level(logging.WARNING, logger="tutor.rate_limit"):
            with pytest.raises(RateLimitExceededError):
                await gate(req, limiter=rate_limiter)
        assert "Throttled 192.0.2.44 on auth (retry in 900s)" in caplog.text

    async def test_sets_client_key_in_log_context(self, rate_limiter):
        await RateLimit()(_request({"X-Real-IP": "192.0.2.45"}), limiter=rate_limiter)
        assert client_key_var.get() == "192.0.2.45"
        clear_request_context()

    async def test_default_class(self, rate_limiter):
        gate = RateLimit()
        assert gate.operation_class is OperationClass.DEFAULT
        for _ in range(100):
            await gate(_request(), limiter=rate_limiter)
        with pytest.raises(RateLimitExceededError):
            await gate(_request(), limiter=rate_limiter)

    def test_string_class_accepted(self):
        assert RateLimit("points").operation_class is OperationClass.POINTS
