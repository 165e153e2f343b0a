import asyncio

import pytest

from mdns_discovery.discovery.device_list_channel import (
    ChannelClosedError,
    DeviceListChannel,
)
from mdns_discovery.discovery.device_record import DeviceRecord


def snapshot(*ids):
    return [DeviceRecord(id=device_id) for device_id in ids]


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        DeviceListChannel(0)


@pytest.mark.asyncio
async def test_send_then_receive_in_order():
    channel = DeviceListChannel(4)
    await channel.send(snapshot("a"))
    await channel.send(snapshot("a", "b"))

    assert await channel.receive() == snapshot("a")
    assert await channel.receive() == snapshot("a", "b")


@pytest.mark.asyncio
async def test_finish_drains_then_stops():
    channel = DeviceListChannel(4)
    await channel.send(snapshot("a"))
    channel.finish()

    received = [devices async for devices in channel]
    assert received == [snapshot("a")]
    assert channel.is_finished
    assert not channel.is_closed


@pytest.mark.asyncio
async def test_send_blocks_when_full_until_receive():
    channel = DeviceListChannel(1)
    await channel.send(snapshot("a"))

    pending_send = asyncio.create_task(channel.send(snapshot("b")))
    await asyncio.sleep(0)
    assert not pending_send.done()
    assert len(channel) == 1

    assert await channel.receive() == snapshot("a")
    await asyncio.wait_for(pending_send, timeout=1)
    assert await channel.receive() == snapshot("b")


@pytest.mark.asyncio
async def test_close_wakes_blocked_sender():
    channel = DeviceListChannel(1)
    await channel.send(snapshot("a"))

    pending_send = asyncio.create_task(channel.send(snapshot("b")))
    await asyncio.sleep(0)
    channel.close()

    with pytest.raises(ChannelClosedError):
        await asyncio.wait_for(pending_send, timeout=1)


@pytest.mark.asyncio
async def test_send_after_close_raises():
    channel = DeviceListChannel()
    channel.close()
    assert channel.is_closed

    with pytest.raises(ChannelClosedError):
        await channel.send(snapshot("a"))


@pytest.mark.asyncio
async def test_receive_waits_for_send():
    channel = DeviceListChannel()
    pending_receive = asyncio.create_task(channel.receive())
    await asyncio.sleep(0)
    assert not pending_receive.done()

    await channel.send(snapshot("a"))
    assert await asyncio.wait_for(pending_receive, timeout=1) == snapshot("a")


@pytest.mark.asyncio
async def test_close_ends_iteration():
    channel = DeviceListChannel()
    await channel.send(snapshot("a"))
    channel.close()

    with pytest.raises(StopAsyncIteration):
        await channel.receive()
