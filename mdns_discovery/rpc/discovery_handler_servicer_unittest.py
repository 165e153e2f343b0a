from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest

from mdns_discovery.discovery.device_list_channel import DeviceListChannel
from mdns_discovery.discovery.device_record import DeviceRecord
from mdns_discovery.discovery.discovery_handler import (
    DiscoveryHandler,
    InvalidArgumentError,
)
from mdns_discovery.rpc.discovery_handler_servicer import (
    DiscoveryHandlerServicer,
    to_discover_response,
)
from mdns_discovery.rpc.proto import DiscoverRequest


class AbortCalled(Exception):
    pass


@pytest.fixture
def context():
    context = MagicMock(spec=grpc.aio.ServicerContext)
    context.abort = AsyncMock(side_effect=AbortCalled())
    return context


@pytest.fixture
def handler():
    return MagicMock(spec=DiscoveryHandler)


def test_to_discover_response():
    response = to_discover_response(
        [DeviceRecord("a", {"MDNS_PORT": "80"}), DeviceRecord("b")]
    )
    assert [device.id for device in response.devices] == ["a", "b"]
    assert dict(response.devices[0].properties) == {"MDNS_PORT": "80"}


@pytest.mark.asyncio
async def test_invalid_argument_aborts(handler, context):
    handler.discover.side_effect = InvalidArgumentError("Invalid service name")
    servicer = DiscoveryHandlerServicer(handler)

    stream = servicer.Discover(
        DiscoverRequest(discovery_details="bad"), context
    )
    with pytest.raises(AbortCalled):
        await stream.__anext__()

    context.abort.assert_awaited_once_with(
        grpc.StatusCode.INVALID_ARGUMENT, "Invalid service name"
    )


@pytest.mark.asyncio
async def test_streams_snapshots_until_finished(handler, context):
    channel = DeviceListChannel()
    await channel.send([DeviceRecord("a")])
    await channel.send([])
    channel.finish()
    handler.discover.return_value = channel
    servicer = DiscoveryHandlerServicer(handler)

    responses = [
        response
        async for response in servicer.Discover(
            DiscoverRequest(discovery_details="serviceName: x"), context
        )
    ]

    handler.discover.assert_called_once_with("serviceName: x")
    assert [len(r.devices) for r in responses] == [1, 0]
    assert channel.is_closed


@pytest.mark.asyncio
async def test_consumer_leaving_closes_channel(handler, context):
    channel = DeviceListChannel()
    await channel.send([DeviceRecord("a")])
    handler.discover.return_value = channel
    servicer = DiscoveryHandlerServicer(handler)

    stream = servicer.Discover(DiscoverRequest(), context)
    await stream.__anext__()
    await stream.aclose()

    assert channel.is_closed


def test_add_to_server_registers_generic_handler(handler):
    server = MagicMock(spec=grpc.aio.Server)
    DiscoveryHandlerServicer(handler).add_to_server(server)

    server.add_generic_rpc_handlers.assert_called_once()
    (handlers,) = server.add_generic_rpc_handlers.call_args.args
    assert len(handlers) == 1
    assert handlers[0].service_name() == "v0.DiscoveryHandler"
