"""Unit tests for middleware."""
import pytest
from unittest.mock import Mock

import structlog

from app.middleware.logging import LoggingMiddleware


def _mock_request(headers=None, method="GET", path="/test"):
    request = Mock()
    request.state = Mock()
    request.method = method
    request.url = Mock()
    request.url.path = path
    request.client = Mock()
    request.client.host = "127.0.0.1"
    request.query_params = {}
    request.headers = headers or {}
    return request


def _mock_response(status_code=200):
    response = Mock()
    response.headers = {}
    response.status_code = status_code
    return response


@pytest.mark.unit
class TestLoggingMiddleware:
    """Test logging middleware."""

    @pytest.mark.asyncio
    async def test_request_id_added_to_state_and_response(self):
        request = _mock_request()
        response = _mock_response()

        async def call_next(req):
            assert isinstance(req.state.request_id, str)
            return response

        result = await LoggingMiddleware(Mock()).dispatch(request, call_next)

        assert result.headers["X-Request-ID"] == request.state.request_id
        assert len(request.state.request_id) == 36

    @pytest.mark.asyncio
    async def test_incoming_request_id_is_reused(self):
        request = _mock_request(headers={"X-Request-ID": "edge-abc-123"})

        async def call_next(req):
            return _mock_response()

        result = await LoggingMiddleware(Mock()).dispatch(request, call_next)

        assert result.headers["X-Request-ID"] == "edge-abc-123"

    @pytest.mark.asyncio
    async def test_oversized_request_id_is_replaced(self):
        request = _mock_request(headers={"X-Request-ID": "x" * 500})

        async def call_next(req):
            return _mock_response()

        result = await LoggingMiddleware(Mock()).dispatch(request, call_next)

        assert result.headers["X-Request-ID"] != "x" * 500

    @pytest.mark.asyncio
    async def test_request_id_bound_to_log_context(self):
        request = _mock_request(headers={"X-Request-ID": "ctx-1"}, method="POST", path="/api/v1/polls")
        seen = {}

        async def call_next(req):
            seen.update(structlog.contextvars.get_contextvars())
            return _mock_response(201)

        await LoggingMiddleware(Mock()).dispatch(request, call_next)

        assert seen["request_id"] == "ctx-1"
        assert seen["method"] == "POST"
        assert seen["path"] == "/api/v1/polls"

    @pytest.mark.asyncio
    async def test_exceptions_propagate(self):
        request = _mock_request()

        async def call_next(req):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await LoggingMiddleware(Mock()).dispatch(request, call_next)
