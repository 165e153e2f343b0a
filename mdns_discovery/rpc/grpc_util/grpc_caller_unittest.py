"""Unit tests for mdns_discovery.rpc.grpc_util.grpc_caller."""

from unittest.mock import MagicMock, patch

import grpc
import pytest
from google.rpc.status_pb2 import Status

from mdns_discovery.rpc.grpc_util.grpc_caller import (
    delay_before_retry,
    get_grpc_status_code,
    is_server_unavailable_error,
)


class CallError(grpc.RpcError, grpc.Call):  # type: ignore[misc]
    """Shape of errors raised by synchronous gRPC calls."""


def make_call_error(code, rich_status=None):
    error = MagicMock(spec=CallError)
    error.code.return_value = code

    rpc_status = MagicMock()
    rpc_status.from_call.return_value = rich_status
    grpc_status_module = MagicMock()
    grpc_status_module.rpc_status = rpc_status
    return error, grpc_status_module


def test_aio_rpc_error():
    error = MagicMock(spec=grpc.aio.AioRpcError)
    error.code.return_value = grpc.StatusCode.UNAVAILABLE
    assert get_grpc_status_code(error) == grpc.StatusCode.UNAVAILABLE


def test_call_error_prefers_rich_status():
    rich_status = Status(code=grpc.StatusCode.INTERNAL.value[0])
    error, module = make_call_error(grpc.StatusCode.UNKNOWN, rich_status)

    with patch.dict("sys.modules", {"grpc_status": module}):
        assert get_grpc_status_code(error) == grpc.StatusCode.INTERNAL
        module.rpc_status.from_call.assert_called_once_with(error)


def test_call_error_without_rich_status_uses_code():
    error, module = make_call_error(grpc.StatusCode.DEADLINE_EXCEEDED)

    with patch.dict("sys.modules", {"grpc_status": module}):
        assert get_grpc_status_code(error) == grpc.StatusCode.DEADLINE_EXCEEDED


class BareRpcError(grpc.RpcError):
    pass


def test_bare_rpc_error_has_no_code():
    assert get_grpc_status_code(BareRpcError()) is None


def test_non_grpc_error():
    assert get_grpc_status_code(ValueError("Test error")) is None
    assert not is_server_unavailable_error(ValueError("Test error"))


@pytest.mark.parametrize(
    "code, expected",
    [
        (grpc.StatusCode.UNAVAILABLE, True),
        (grpc.StatusCode.DEADLINE_EXCEEDED, True),
        (grpc.StatusCode.INVALID_ARGUMENT, False),
        (grpc.StatusCode.INTERNAL, False),
    ],
)
def test_is_server_unavailable_error(code, expected):
    error = MagicMock(spec=grpc.aio.AioRpcError)
    error.code.return_value = code
    assert is_server_unavailable_error(error) == expected


@pytest.mark.asyncio
async def test_delay_before_retry(mocker):
    mock_sleep = mocker.patch("asyncio.sleep", new_callable=mocker.AsyncMock)
    await delay_before_retry(10.0)
    mock_sleep.assert_awaited_once_with(10.0)
