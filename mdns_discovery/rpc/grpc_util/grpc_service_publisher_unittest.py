"""Unit tests for mdns_discovery.rpc.grpc_util.grpc_service_publisher."""

import os
from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest
from grpc_health.v1 import health_pb2, health_pb2_grpc

from mdns_discovery.rpc.grpc_util.grpc_service_publisher import (
    GrpcServicePublisher,
    unix_socket_address,
)
from mdns_discovery.threading.error_watcher import ErrorWatcher


@pytest.fixture
def mock_server(mocker):
    server = MagicMock(spec=grpc.aio.Server)
    server.start = AsyncMock()
    server.stop = AsyncMock()
    server.add_insecure_port.return_value = 1
    mocker.patch(
        "mdns_discovery.rpc.grpc_util.grpc_service_publisher.grpc.aio.server",
        return_value=server,
    )
    return server


def test_unix_socket_address():
    assert unix_socket_address("/var/lib/akri/mdns.sock") == (
        "unix:///var/lib/akri/mdns.sock"
    )


@pytest.mark.asyncio
async def test_start_removes_stale_socket(mock_server, tmp_path):
    socket_path = tmp_path / "mdns.sock"
    socket_path.write_text("stale")
    address = unix_socket_address(str(socket_path))
    publisher = GrpcServicePublisher(ErrorWatcher(), address)
    connect_call = MagicMock()

    await publisher.start_async(connect_call)

    assert not os.path.exists(socket_path)
    connect_call.assert_called_once_with(mock_server)
    mock_server.add_insecure_port.assert_called_once_with(address)
    mock_server.start.assert_awaited_once()


@pytest.mark.asyncio
async def test_start_raises_when_bind_fails(mock_server):
    mock_server.add_insecure_port.side_effect = RuntimeError("in use")
    publisher = GrpcServicePublisher(ErrorWatcher(), "127.0.0.1:1")

    with pytest.raises(RuntimeError, match="Failed to host"):
        await publisher.start_async(MagicMock())

    mock_server.start.assert_not_awaited()


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    publisher = GrpcServicePublisher(ErrorWatcher(), "127.0.0.1:0")
    await publisher.stop_async()


@pytest.mark.asyncio
async def test_serves_health_over_tcp():
    publisher = GrpcServicePublisher(ErrorWatcher(), "127.0.0.1:0")
    await publisher.start_async(lambda server: None)
    assert publisher.port

    try:
        async with grpc.aio.insecure_channel(
            f"127.0.0.1:{publisher.port}"
        ) as channel:
            stub = health_pb2_grpc.HealthStub(channel)
            response = await stub.Check(
                health_pb2.HealthCheckRequest(service=""), timeout=5
            )
        assert response.status == health_pb2.HealthCheckResponse.SERVING
    finally:
        await publisher.stop_async()
