import asyncio
from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest

from mdns_discovery.config.handler_config import HandlerConfig
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.rpc.proto import (
    REGISTER_DISCOVERY_HANDLER_METHOD,
    Empty,
    RegisterDiscoveryHandlerRequest,
)
from mdns_discovery.rpc.registration.registration_client import (
    RegistrationClient,
)


def unavailable_error():
    return grpc.aio.AioRpcError(
        grpc.StatusCode.UNAVAILABLE,
        grpc.aio.Metadata(),
        grpc.aio.Metadata(),
        details="agent not running",
    )


class FakeChannelFactory:
    """Hands out mock channels whose register call fails `failures` times."""

    __test__ = False

    def __init__(self, failures=0):
        self.failures = failures
        self.targets = []
        self.channels = []
        self.requests = []

    def __call__(self, target):
        self.targets.append(target)
        channel = MagicMock(spec=grpc.aio.Channel)
        channel.close = AsyncMock()

        async def register(request, timeout=None):
            self.requests.append(request)
            if self.failures > 0:
                self.failures -= 1
                raise unavailable_error()
            return Empty()

        channel.unary_unary.return_value = register
        self.channels.append(channel)
        return channel


@pytest.fixture
def config():
    return HandlerConfig(discovery_handlers_directory="/tmp/akri")


@pytest.fixture
def delay():
    return AsyncMock()


def test_build_request_for_uds(config):
    client = RegistrationClient(config, RegistrationSignal())
    request = client.build_request()

    assert request.name == "mdns"
    assert request.endpoint == "/tmp/akri/mdns.sock"
    assert request.endpoint_type == RegisterDiscoveryHandlerRequest.UDS
    assert request.shared


def test_build_request_for_network():
    config = HandlerConfig(network_endpoint="10.0.0.5:10000", shared=False)
    request = RegistrationClient(config, RegistrationSignal()).build_request()

    assert request.endpoint == "10.0.0.5:10000"
    assert request.endpoint_type == RegisterDiscoveryHandlerRequest.NETWORK
    assert not request.shared


@pytest.mark.asyncio
async def test_register_succeeds_first_time(config, delay):
    factory = FakeChannelFactory()
    client = RegistrationClient(
        config,
        RegistrationSignal(),
        channel_factory=factory,
        delay_before_retry_func=delay,
    )

    await client.register()

    assert factory.targets == ["unix:///tmp/akri/agent-registration.sock"]
    factory.channels[0].unary_unary.assert_called_once()
    assert (
        factory.channels[0].unary_unary.call_args.args[0]
        == REGISTER_DISCOVERY_HANDLER_METHOD
    )
    factory.channels[0].close.assert_awaited_once()
    delay.assert_not_awaited()
    assert client.registrations == 1


@pytest.mark.asyncio
async def test_register_retries_until_agent_available(config, delay):
    factory = FakeChannelFactory(failures=2)
    client = RegistrationClient(
        config,
        RegistrationSignal(),
        channel_factory=factory,
        delay_before_retry_func=delay,
    )

    await client.register()

    assert len(factory.requests) == 3
    assert delay.await_count == 2
    delay.assert_awaited_with(config.register_again_delay_seconds)
    for channel in factory.channels:
        channel.close.assert_awaited_once()
    assert client.registrations == 1


@pytest.mark.asyncio
async def test_run_reregisters_on_signal(config, delay):
    factory = FakeChannelFactory()
    signal = RegistrationSignal()
    client = RegistrationClient(
        config, signal, channel_factory=factory, delay_before_retry_func=delay
    )

    task = asyncio.create_task(client.run())
    for _ in range(5):
        await asyncio.sleep(0)
    assert client.registrations == 1

    await signal.notify()
    for _ in range(5):
        await asyncio.sleep(0)
    assert client.registrations == 2

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
