"""Unit tests for mdns_discovery.rpc.grpc_util.async_grpc_exception_interceptor."""

from unittest.mock import AsyncMock, MagicMock, patch

import grpc
import grpc.aio
import pytest

from mdns_discovery.rpc.grpc_util.async_grpc_exception_interceptor import (
    AsyncGrpcExceptionInterceptor,
)
from mdns_discovery.threading.error_watcher import ErrorWatcher


@pytest.fixture
def mock_watcher(mocker):
    watcher = mocker.MagicMock(spec=ErrorWatcher)
    watcher.on_exception_seen = mocker.MagicMock()
    return watcher


@pytest.fixture
def call_details(mocker):
    details = mocker.MagicMock(spec=grpc.HandlerCallDetails)
    details.method = "/v0.DiscoveryHandler/Discover"
    return details


@pytest.fixture
def servicer_context(mocker):
    context = mocker.MagicMock(spec=grpc.aio.ServicerContext)
    context.abort = AsyncMock()
    return context


@pytest.mark.asyncio
async def test_intercept_service_unknown_method(mock_watcher, call_details):
    interceptor = AsyncGrpcExceptionInterceptor(mock_watcher)
    continuation = AsyncMock(return_value=None)

    assert await interceptor.intercept_service(continuation, call_details) is None
    continuation.assert_awaited_once_with(call_details)


@pytest.mark.asyncio
async def test_intercept_service_wraps_unary_stream(
    mock_watcher, call_details
):
    interceptor = AsyncGrpcExceptionInterceptor(mock_watcher)

    async def discover(request, context):
        yield request

    handler = grpc.unary_stream_rpc_method_handler(discover)
    continuation = AsyncMock(return_value=handler)

    wrapped = await interceptor.intercept_service(continuation, call_details)

    assert wrapped.unary_stream is not discover
    assert wrapped.unary_unary is None
    responses = [r async for r in wrapped.unary_stream("req", MagicMock())]
    assert responses == ["req"]


@pytest.mark.asyncio
async def test_wrap_unary_unary_success(
    mock_watcher, call_details, servicer_context
):
    interceptor = AsyncGrpcExceptionInterceptor(mock_watcher)
    method = AsyncMock(return_value="response")

    wrapped = interceptor._wrap_unary_unary(method, call_details)

    assert await wrapped("request", servicer_context) == "response"
    mock_watcher.on_exception_seen.assert_not_called()


@pytest.mark.asyncio
async def test_wrap_unary_stream_exception_reported(
    mock_watcher, call_details, servicer_context
):
    interceptor = AsyncGrpcExceptionInterceptor(mock_watcher)
    error = ValueError("Stream error")

    async def failing(request, context):
        yield "data1"
        raise error

    wrapped = interceptor._wrap_unary_stream(failing, call_details)

    with patch.object(
        interceptor, "_handle_exception", new=AsyncMock()
    ) as handle_exception:
        with pytest.raises(ValueError, match="Stream error"):
            async for _ in wrapped("request", servicer_context):
                pass

    handle_exception.assert_awaited_once_with(
        error, call_details, servicer_context
    )


@pytest.mark.asyncio
async def test_handle_exception_general_error(
    mock_watcher, call_details, servicer_context
):
    interceptor = AsyncGrpcExceptionInterceptor(mock_watcher)
    error = ValueError("General error")

    await interceptor._handle_exception(error, call_details, servicer_context)

    mock_watcher.on_exception_seen.assert_called_once_with(error)
    servicer_context.abort.assert_awaited_once_with(
        grpc.StatusCode.UNKNOWN,
        "Exception in /v0.DiscoveryHandler/Discover: General error",
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "special_error",
    [
        grpc.aio.AbortError("aborted"),
        StopAsyncIteration(),
        AssertionError("Oops"),
    ],
)
async def test_handle_exception_passes_through(
    mock_watcher, call_details, servicer_context, special_error
):
    interceptor = AsyncGrpcExceptionInterceptor(mock_watcher)

    with pytest.raises(type(special_error)):
        await interceptor._handle_exception(
            special_error, call_details, servicer_context
        )

    mock_watcher.on_exception_seen.assert_not_called()
    servicer_context.abort.assert_not_called()
