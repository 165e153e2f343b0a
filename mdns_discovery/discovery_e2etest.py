"""End-to-end tests of the Discover RPC over a real gRPC server."""

import asyncio

import grpc
import pytest
import pytest_asyncio

from mdns_discovery.discovery.discovery_handler import DiscoveryHandler
from mdns_discovery.discovery.mdns.service_event import (
    SearchStopped,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.discovery.resolved_service import ResolvedService
from mdns_discovery.rpc.discovery_handler_servicer import (
    DiscoveryHandlerServicer,
)
from mdns_discovery.rpc.grpc_util.grpc_service_publisher import (
    GrpcServicePublisher,
)
from mdns_discovery.rpc.proto import (
    DISCOVER_METHOD,
    DiscoverRequest,
    DiscoverResponse,
)
from mdns_discovery.test.fake_service_browser import FakeServiceBrowser
from mdns_discovery.threading.error_watcher import ErrorWatcher

SERVICE_TYPE = "_http._tcp.local."
INSTANCE = f"X.{SERVICE_TYPE}"


class DiscoveryEnvironment:
    __test__ = False

    def __init__(self) -> None:
        self.browser = FakeServiceBrowser()
        self.registration_signal = RegistrationSignal()
        self.watcher = ErrorWatcher()
        self.handler = DiscoveryHandler(
            self.browser, self.registration_signal, self.watcher
        )
        self.publisher = GrpcServicePublisher(self.watcher, "127.0.0.1:0")
        self.channel: grpc.aio.Channel | None = None

    async def start(self) -> None:
        servicer = DiscoveryHandlerServicer(self.handler)
        await self.publisher.start_async(servicer.add_to_server)
        self.channel = grpc.aio.insecure_channel(
            f"127.0.0.1:{self.publisher.port}"
        )

    def discover(self, discovery_details: str):
        assert self.channel is not None
        call = self.channel.unary_stream(
            DISCOVER_METHOD,
            request_serializer=DiscoverRequest.SerializeToString,
            response_deserializer=DiscoverResponse.FromString,
        )
        return call(DiscoverRequest(discovery_details=discovery_details))

    async def stop(self) -> None:
        if self.channel is not None:
            await self.channel.close()
        await self.handler.stop()
        await self.publisher.stop_async()


@pytest_asyncio.fixture
async def environment():
    env = DiscoveryEnvironment()
    await env.start()
    yield env
    await env.stop()


async def wait_for_subscription(browser: FakeServiceBrowser, count: int = 1):
    for _ in range(200):
        if len(browser.subscriptions) >= count:
            return browser.subscriptions[count - 1]
        await asyncio.sleep(0.01)
    raise AssertionError("Discover call never reached the browser.")


@pytest.mark.asyncio
async def test_discover_streams_resolved_and_removed(environment):
    call = environment.discover('{"serviceName": "_http._tcp.local"}')
    subscription = await wait_for_subscription(environment.browser)
    assert subscription.service_type == SERVICE_TYPE

    subscription.push(
        ServiceResolved(
            ResolvedService.create(
                INSTANCE, "h", 1234, ["10.0.0.1"], [("foo bar", "1")]
            )
        ),
        ServiceRemoved(SERVICE_TYPE, INSTANCE),
        SearchStopped(SERVICE_TYPE),
    )

    responses = [response async for response in call]

    assert len(responses) == 2
    (device,) = responses[0].devices
    assert device.id == INSTANCE
    assert dict(device.properties) == {
        "MDNS_HOSTNAME": "h",
        "MDNS_PORT": "1234",
        "MDNS_IP_ADDRESS_0": "10.0.0.1",
        "MDNS_TXT_FOO_BAR": "1",
    }
    assert list(responses[1].devices) == []
    assert await call.code() == grpc.StatusCode.OK


@pytest.mark.asyncio
async def test_malformed_details_are_invalid_argument(environment):
    call = environment.discover('{"wrongField":1}')

    with pytest.raises(grpc.aio.AioRpcError) as error_info:
        async for _ in call:
            pass

    assert error_info.value.code() == grpc.StatusCode.INVALID_ARGUMENT
    assert environment.browser.subscriptions == []
    assert environment.handler.active_sessions == 0


@pytest.mark.asyncio
async def test_invalid_service_name_is_invalid_argument(environment):
    call = environment.discover('{"serviceName": "bogus"}')

    with pytest.raises(grpc.aio.AioRpcError) as error_info:
        async for _ in call:
            pass

    assert error_info.value.code() == grpc.StatusCode.INVALID_ARGUMENT
    assert error_info.value.details() == "Invalid service name"


@pytest.mark.asyncio
async def test_cancelled_consumer_triggers_reregistration(environment):
    call = environment.discover('{"serviceName": "_http._tcp.local"}')
    subscription = await wait_for_subscription(environment.browser)

    subscription.push(
        ServiceResolved(ResolvedService.create(INSTANCE, "h", 1234))
    )
    first = await asyncio.wait_for(call.read(), timeout=5)
    assert [device.id for device in first.devices] == [INSTANCE]

    call.cancel()
    # The session only notices on its next event.
    for _ in range(200):
        subscription.push(
            ServiceResolved(ResolvedService.create(INSTANCE, "h", 1235))
        )
        await asyncio.sleep(0.01)
        if environment.registration_signal.pending():
            break

    assert environment.registration_signal.pending() == 1
    for _ in range(100):
        if environment.handler.active_sessions == 0:
            break
        await asyncio.sleep(0.01)
    assert environment.handler.active_sessions == 0
    assert subscription.stop_calls == 1
    environment.watcher.check_for_exception()
