import asyncio

import pytest

from mdns_discovery.discovery.device_list_channel import DeviceListChannel
from mdns_discovery.discovery.discovery_session import DiscoverySession
from mdns_discovery.discovery.mdns.service_event import (
    SearchStarted,
    SearchStopped,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.discovery.resolved_service import ResolvedService
from mdns_discovery.test.fake_service_browser import FakeBrowseSubscription

SERVICE_TYPE = "_http._tcp.local."


def resolved(name, host="h", port=1234, addresses=("10.0.0.1",), txt=()):
    return ServiceResolved(
        ResolvedService.create(
            fullname=name,
            hostname=host,
            port=port,
            addresses=list(addresses),
            properties=list(txt),
        )
    )


@pytest.fixture
def subscription():
    return FakeBrowseSubscription(SERVICE_TYPE)


@pytest.fixture
def registration_signal():
    return RegistrationSignal()


async def drain(channel):
    return [devices async for devices in channel]


@pytest.mark.asyncio
async def test_resolved_service_is_published(subscription, registration_signal):
    channel = DeviceListChannel()
    session = DiscoverySession(subscription, channel, registration_signal)
    subscription.push(
        resolved("X", txt=[("foo bar", "1")]), SearchStopped(SERVICE_TYPE)
    )

    await asyncio.wait_for(session.run(), timeout=1)

    snapshots = await drain(channel)
    assert len(snapshots) == 1
    (device,) = snapshots[0]
    assert device.id == "X"
    assert device.properties == {
        "MDNS_HOSTNAME": "h",
        "MDNS_PORT": "1234",
        "MDNS_IP_ADDRESS_0": "10.0.0.1",
        "MDNS_TXT_FOO_BAR": "1",
    }


@pytest.mark.asyncio
async def test_resolve_then_remove_publishes_twice(
    subscription, registration_signal
):
    channel = DeviceListChannel()
    session = DiscoverySession(subscription, channel, registration_signal)
    subscription.push(
        resolved("X"),
        ServiceRemoved(SERVICE_TYPE, "X"),
        SearchStopped(SERVICE_TYPE),
    )

    await asyncio.wait_for(session.run(), timeout=1)

    snapshots = await drain(channel)
    assert len(snapshots) == 2
    assert [device.id for device in snapshots[0]] == ["X"]
    assert snapshots[1] == []
    assert len(session.device_cache) == 0


@pytest.mark.asyncio
async def test_every_snapshot_is_the_full_list(subscription, registration_signal):
    channel = DeviceListChannel()
    session = DiscoverySession(subscription, channel, registration_signal)
    subscription.push(
        resolved("A"),
        resolved("B"),
        resolved("A", port=99),
        SearchStopped(SERVICE_TYPE),
    )

    await asyncio.wait_for(session.run(), timeout=1)

    snapshots = await drain(channel)
    assert [sorted(d.id for d in s) for s in snapshots] == [
        ["A"],
        ["A", "B"],
        ["A", "B"],
    ]
    last = {device.id: device for device in snapshots[-1]}
    assert last["A"].properties["MDNS_PORT"] == "99"


@pytest.mark.asyncio
async def test_other_events_are_not_published(subscription, registration_signal):
    channel = DeviceListChannel()
    session = DiscoverySession(subscription, channel, registration_signal)
    subscription.push(
        SearchStarted(SERVICE_TYPE),
        ServiceFound(SERVICE_TYPE, "X"),
        SearchStopped(SERVICE_TYPE),
    )

    await asyncio.wait_for(session.run(), timeout=1)

    assert await drain(channel) == []
    assert registration_signal.pending() == 0


@pytest.mark.asyncio
async def test_search_stopped_ends_session_and_stream(
    subscription, registration_signal
):
    channel = DeviceListChannel()
    session = DiscoverySession(subscription, channel, registration_signal)
    subscription.push(SearchStopped(SERVICE_TYPE), resolved("late"))

    await asyncio.wait_for(session.run(), timeout=1)

    assert channel.is_finished
    assert subscription.stop_calls == 1
    assert len(session.device_cache) == 0
    assert registration_signal.pending() == 0


@pytest.mark.asyncio
async def test_consumer_gone_requests_reregistration_once(
    subscription, registration_signal
):
    channel = DeviceListChannel()
    session = DiscoverySession(subscription, channel, registration_signal)
    task = asyncio.create_task(session.run())

    subscription.push(resolved("A"))
    first = await asyncio.wait_for(channel.receive(), timeout=1)
    assert [device.id for device in first] == ["A"]

    channel.close()
    subscription.push(resolved("B"), resolved("C"))

    await asyncio.wait_for(task, timeout=1)

    assert registration_signal.pending() == 1
    assert len(channel) == 0
    # Detected at the top of the loop, before "B" was applied.
    assert session.device_cache.names() == ["A"]
    assert subscription.stop_calls == 1


@pytest.mark.asyncio
async def test_closed_while_sending_requests_reregistration(
    subscription, registration_signal
):
    channel = DeviceListChannel(1)
    session = DiscoverySession(subscription, channel, registration_signal)
    task = asyncio.create_task(session.run())

    subscription.push(resolved("A"), resolved("B"))
    for _ in range(10):
        await asyncio.sleep(0)
    assert not task.done()

    channel.close()
    await asyncio.wait_for(task, timeout=1)

    assert registration_signal.pending() == 1
    assert subscription.stop_calls == 1


@pytest.mark.asyncio
async def test_cancelled_session_stops_subscription(
    subscription, registration_signal
):
    channel = DeviceListChannel()
    session = DiscoverySession(subscription, channel, registration_signal)
    task = asyncio.create_task(session.run())
    await asyncio.sleep(0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert subscription.stop_calls == 1
    assert channel.is_finished
