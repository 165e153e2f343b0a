import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from zeroconf.asyncio import AsyncServiceBrowser, AsyncZeroconf

from mdns_discovery.discovery.device_list_channel import DeviceListChannel
from mdns_discovery.discovery.discovery_session import DiscoverySession
from mdns_discovery.discovery.mdns.service_browser import (
    InvalidServiceNameError,
)
from mdns_discovery.discovery.mdns.service_event import (
    SearchStarted,
    SearchStopped,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_discovery.discovery.mdns.zeroconf_browser import (
    ZeroconfServiceBrowser,
    to_resolved_service,
)
from mdns_discovery.discovery.registration_signal import RegistrationSignal

SERVICE_TYPE = "_http._tcp.local."
INSTANCE = "printer._http._tcp.local."


def make_info(resolved=True, port=8080):
    info = MagicMock()
    info.async_request = AsyncMock(return_value=resolved)
    info.name = INSTANCE
    info.server = "printer.local."
    info.port = port
    info.properties = {b"foo bar": b"1", b"empty": None}
    info.parsed_scoped_addresses.return_value = ["192.168.1.7", "fe80::7%eth0"]
    return info


def make_gated_info(gate, port=8080):
    info = make_info(port=port)

    async def request(*args):
        await gate.wait()
        return True

    info.async_request = AsyncMock(side_effect=request)
    return info


@pytest.fixture
def mock_zc():
    zc = AsyncMock(spec=AsyncZeroconf)
    zc.zeroconf = MagicMock()
    return zc


@pytest.fixture
def mock_browser_cls():
    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncServiceBrowser"
    ) as browser_cls:
        browser_cls.return_value = AsyncMock(spec=AsyncServiceBrowser)
        yield browser_cls


async def next_event(events):
    return await asyncio.wait_for(events.__anext__(), timeout=1)


def test_to_resolved_service_decodes_txt():
    info = make_info()
    info.properties = {b"ok": b"v", b"bad\xff": b"\xfeval", b"none": None}

    service = to_resolved_service(info)

    assert service.fullname == INSTANCE
    assert service.hostname == "printer.local."
    assert service.port == 8080
    assert service.addresses == ("192.168.1.7", "fe80::7%eth0")
    assert service.properties == (
        ("ok", "v"),
        ("bad�", "�val"),
        ("none", ""),
    )


@pytest.mark.asyncio
async def test_browse_rejects_malformed_name(mock_browser_cls):
    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncZeroconf"
    ) as zc_cls:
        browser = ZeroconfServiceBrowser()
        with pytest.raises(InvalidServiceNameError):
            browser.browse("not-a-service.")

        zc_cls.assert_not_called()
        mock_browser_cls.assert_not_called()


@pytest.mark.asyncio
async def test_browse_starts_async_service_browser(mock_zc, mock_browser_cls):
    browser = ZeroconfServiceBrowser(mock_zc)

    subscription = browser.browse(SERVICE_TYPE)

    mock_browser_cls.assert_called_once_with(
        mock_zc.zeroconf, [SERVICE_TYPE], listener=subscription
    )
    events = subscription.__aiter__()
    assert await next_event(events) == SearchStarted(SERVICE_TYPE)


@pytest.mark.asyncio
async def test_add_service_resolves(mock_zc, mock_browser_cls):
    browser = ZeroconfServiceBrowser(mock_zc, resolve_timeout_ms=1500)
    subscription = browser.browse(SERVICE_TYPE)
    events = subscription.__aiter__()
    await next_event(events)

    info = make_info()
    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncServiceInfo",
        return_value=info,
    ) as info_cls:
        subscription.add_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)

        assert await next_event(events) == ServiceFound(SERVICE_TYPE, INSTANCE)
        event = await next_event(events)

    info_cls.assert_called_once_with(SERVICE_TYPE, INSTANCE)
    info.async_request.assert_awaited_once_with(mock_zc.zeroconf, 1500)
    assert isinstance(event, ServiceResolved)
    assert event.service.fullname == INSTANCE
    assert event.service.properties == (("foo bar", "1"), ("empty", ""))


@pytest.mark.asyncio
async def test_update_service_resolves_again(mock_zc, mock_browser_cls):
    browser = ZeroconfServiceBrowser(mock_zc)
    subscription = browser.browse(SERVICE_TYPE)
    events = subscription.__aiter__()
    await next_event(events)

    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncServiceInfo",
        return_value=make_info(port=9090),
    ):
        subscription.update_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
        event = await next_event(events)

    assert isinstance(event, ServiceResolved)
    assert event.service.port == 9090


@pytest.mark.asyncio
async def test_unresolved_service_is_dropped(mock_zc, mock_browser_cls):
    browser = ZeroconfServiceBrowser(mock_zc)
    subscription = browser.browse(SERVICE_TYPE)
    events = subscription.__aiter__()
    await next_event(events)

    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncServiceInfo",
        return_value=make_info(resolved=False),
    ):
        subscription.update_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
        await asyncio.sleep(0)
        await asyncio.sleep(0)

    subscription.remove_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
    assert await next_event(events) == ServiceRemoved(SERVICE_TYPE, INSTANCE)


@pytest.mark.asyncio
async def test_stop_cancels_browser_and_ends_iteration(
    mock_zc, mock_browser_cls
):
    browser = ZeroconfServiceBrowser(mock_zc)
    subscription = browser.browse(SERVICE_TYPE)
    events = subscription.__aiter__()
    await next_event(events)

    await subscription.stop()
    await subscription.stop()

    mock_browser_cls.return_value.async_cancel.assert_awaited_once()
    assert await next_event(events) == SearchStopped(SERVICE_TYPE)
    with pytest.raises(StopAsyncIteration):
        await next_event(events)

    # Callbacks after stop are ignored.
    subscription.remove_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)


@pytest.mark.asyncio
async def test_close_with_owned_zc_closes_zc(mock_zc, mock_browser_cls):
    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncZeroconf",
        return_value=mock_zc,
    ) as zc_cls:
        browser = ZeroconfServiceBrowser()
        subscription = browser.browse(SERVICE_TYPE)
        browser.browse(SERVICE_TYPE)

        zc_cls.assert_called_once()
        await browser.close()

    mock_zc.async_close.assert_awaited_once()
    events = subscription.__aiter__()
    assert await next_event(events) == SearchStarted(SERVICE_TYPE)
    assert await next_event(events) == SearchStopped(SERVICE_TYPE)


@pytest.mark.asyncio
async def test_close_with_shared_zc_does_not_close_it(mock_zc, mock_browser_cls):
    browser = ZeroconfServiceBrowser(mock_zc)
    browser.browse(SERVICE_TYPE)

    await browser.close()

    mock_zc.async_close.assert_not_called()
    mock_browser_cls.return_value.async_cancel.assert_awaited_once()


@pytest.mark.asyncio
async def test_removal_during_resolve_does_not_resurrect_instance(
    mock_zc, mock_browser_cls
):
    browser = ZeroconfServiceBrowser(mock_zc)
    subscription = browser.browse(SERVICE_TYPE)
    session = DiscoverySession(
        subscription, DeviceListChannel(), RegistrationSignal()
    )
    task = asyncio.create_task(session.run())

    gate = asyncio.Event()
    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncServiceInfo",
        return_value=make_gated_info(gate),
    ):
        subscription.add_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
        await asyncio.sleep(0)
        subscription.remove_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)

    await subscription.stop()
    await asyncio.wait_for(task, timeout=1)

    assert session.device_cache.names() == []


@pytest.mark.asyncio
async def test_newer_update_supersedes_pending_resolve(
    mock_zc, mock_browser_cls
):
    browser = ZeroconfServiceBrowser(mock_zc)
    subscription = browser.browse(SERVICE_TYPE)
    events = subscription.__aiter__()
    await next_event(events)

    gate = asyncio.Event()
    stale = make_gated_info(gate, port=1111)
    fresh = make_info(port=2222)
    with patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncServiceInfo",
        side_effect=[stale, fresh],
    ):
        subscription.update_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
        await asyncio.sleep(0)
        subscription.update_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
        event = await next_event(events)
        gate.set()
        for _ in range(5):
            await asyncio.sleep(0)

    await subscription.stop()

    assert isinstance(event, ServiceResolved)
    assert event.service.port == 2222
    assert await next_event(events) == SearchStopped(SERVICE_TYPE)


@pytest.mark.asyncio
async def test_resolve_error_is_logged_and_dropped(
    mock_zc, mock_browser_cls, caplog
):
    browser = ZeroconfServiceBrowser(mock_zc)
    subscription = browser.browse(SERVICE_TYPE)
    events = subscription.__aiter__()
    await next_event(events)

    info = make_info()
    info.async_request = AsyncMock(side_effect=OSError("socket gone"))
    with caplog.at_level(logging.WARNING), patch(
        "mdns_discovery.discovery.mdns.zeroconf_browser.AsyncServiceInfo",
        return_value=info,
    ):
        subscription.update_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
        for _ in range(3):
            await asyncio.sleep(0)

    assert "socket gone" in caplog.text
    subscription.remove_service(mock_zc.zeroconf, SERVICE_TYPE, INSTANCE)
    assert await next_event(events) == ServiceRemoved(SERVICE_TYPE, INSTANCE)
