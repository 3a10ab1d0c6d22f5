"""
Unit tests for TraceIDMiddleware.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Request, Response

from scepserver.core.trace_context import trace_id_context
from scepserver.middleware import TRACE_ID_HEADER, TraceIDMiddleware


@pytest.fixture
def request_mock():
    request = MagicMock(spec=Request)
    request.method = "GET"
    request.url.path = "/scep"
    request.query_params = {"operation": "GetCACaps"}
    return request


@pytest.mark.asyncio
async def test_trace_id_header_added(request_mock):
    """Test that the response carries a UUID trace id."""
    # Arrange
    middleware = TraceIDMiddleware(app=AsyncMock())
    seen = {}

    async def call_next(request):
        seen["trace_id"] = trace_id_context.get()
        return Response(content=b"ok")

    # Act
    response = await middleware.dispatch(request_mock, call_next)

    # Assert
    trace_id = response.headers[TRACE_ID_HEADER]
    assert uuid.UUID(trace_id)
    assert seen["trace_id"] == trace_id


@pytest.mark.asyncio
async def test_trace_id_context_reset(request_mock):
    """Test that the trace id does not leak past the request."""
    middleware = TraceIDMiddleware(app=AsyncMock())

    await middleware.dispatch(request_mock, AsyncMock(return_value=Response()))

    assert trace_id_context.get() is None


@pytest.mark.asyncio
async def test_trace_id_unique_per_request(request_mock):
    """Test that each request gets its own trace id."""
    middleware = TraceIDMiddleware(app=AsyncMock())

    first = await middleware.dispatch(request_mock, AsyncMock(return_value=Response()))
    second = await middleware.dispatch(request_mock, AsyncMock(return_value=Response()))

    assert first.headers[TRACE_ID_HEADER] != second.headers[TRACE_ID_HEADER]


@pytest.mark.asyncio
async def test_trace_id_exception_propagates(request_mock):
    """Test that handler errors propagate and the context is reset."""
    middleware = TraceIDMiddleware(app=AsyncMock())
    call_next = AsyncMock(side_effect=RuntimeError("handler failed"))

    with pytest.raises(RuntimeError, match="handler failed"):
        await middleware.dispatch(request_mock, call_next)

    assert trace_id_context.get() is None
