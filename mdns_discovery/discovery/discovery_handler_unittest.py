import asyncio

import pytest

from mdns_discovery.discovery.discovery_handler import (
    DiscoveryHandler,
    InvalidArgumentError,
)
from mdns_discovery.discovery.mdns.service_event import (
    SearchStopped,
    ServiceResolved,
)
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.discovery.resolved_service import ResolvedService
from mdns_discovery.test.fake_service_browser import FakeServiceBrowser
from mdns_discovery.threading.error_watcher import ErrorWatcher


@pytest.fixture
def browser():
    return FakeServiceBrowser()


@pytest.fixture
def handler(browser):
    return DiscoveryHandler(browser, RegistrationSignal(), ErrorWatcher())


@pytest.mark.asyncio
async def test_malformed_details_fail_without_subscription(browser, handler):
    with pytest.raises(InvalidArgumentError):
        handler.discover('{"wrongField":1}')

    assert browser.subscriptions == []
    assert browser.rejected_names == []
    assert handler.active_sessions == 0


@pytest.mark.asyncio
async def test_rejected_service_name_is_invalid_argument(browser, handler):
    with pytest.raises(InvalidArgumentError, match="Invalid service name"):
        handler.discover('{"serviceName": "not a service"}')

    assert browser.rejected_names == ["not a service."]
    assert handler.active_sessions == 0


@pytest.mark.asyncio
async def test_service_name_is_normalized_before_browsing(browser, handler):
    handler.discover('{"serviceName": "_http._tcp.local"}')
    handler.discover("serviceName: _ipp._tcp.local.")

    assert [s.service_type for s in browser.subscriptions] == [
        "_http._tcp.local.",
        "_ipp._tcp.local.",
    ]
    await handler.stop()


@pytest.mark.asyncio
async def test_discover_streams_devices(browser, handler):
    channel = handler.discover('{"serviceName": "_http._tcp.local"}')
    assert handler.active_sessions == 1

    (subscription,) = browser.subscriptions
    subscription.push(
        ServiceResolved(
            ResolvedService.create("dev._http._tcp.local.", "dev.local.", 80)
        ),
        SearchStopped("_http._tcp.local."),
    )

    snapshots = [devices async for devices in channel]
    assert [[d.id for d in s] for s in snapshots] == [["dev._http._tcp.local."]]

    for _ in range(3):
        await asyncio.sleep(0)
    assert handler.active_sessions == 0


@pytest.mark.asyncio
async def test_sessions_are_independent(browser, handler):
    first = handler.discover('{"serviceName": "_http._tcp.local"}')
    second = handler.discover('{"serviceName": "_http._tcp.local"}')

    browser.subscriptions[0].push(
        ServiceResolved(ResolvedService.create("a._http._tcp.local.", "a", 1)),
        SearchStopped("_http._tcp.local."),
    )
    browser.subscriptions[1].push(SearchStopped("_http._tcp.local."))

    assert len([s async for s in first]) == 1
    assert [s async for s in second] == []


@pytest.mark.asyncio
async def test_stop_cancels_sessions(browser, handler):
    handler.discover('{"serviceName": "_http._tcp.local"}')
    await asyncio.sleep(0)

    await handler.stop()

    assert handler.active_sessions == 0
    assert browser.subscriptions[0].stop_calls == 1


@pytest.mark.asyncio
async def test_session_errors_reach_watcher(browser, mocker):
    watcher = ErrorWatcher()
    handler = DiscoveryHandler(browser, RegistrationSignal(), watcher)
    mocker.patch(
        "mdns_discovery.discovery.discovery_session.DeviceCache.apply",
        side_effect=KeyError("boom"),
    )

    handler.discover('{"serviceName": "_http._tcp.local"}')
    browser.subscriptions[0].push(
        ServiceResolved(ResolvedService.create("a._http._tcp.local.", "a", 1))
    )

    with pytest.raises(KeyError):
        await asyncio.wait_for(watcher.run_until_exception(), timeout=1)
