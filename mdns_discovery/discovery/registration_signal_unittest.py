import asyncio

import pytest

from mdns_discovery.discovery.registration_signal import RegistrationSignal


@pytest.mark.asyncio
async def test_notify_then_wait():
    signal = RegistrationSignal()
    await signal.notify()
    assert signal.pending() == 1

    await asyncio.wait_for(signal.wait(), timeout=1)
    assert signal.pending() == 0


@pytest.mark.asyncio
async def test_wait_blocks_until_notified():
    signal = RegistrationSignal()
    waiter = asyncio.create_task(signal.wait())
    await asyncio.sleep(0)
    assert not waiter.done()

    await signal.notify()
    await asyncio.wait_for(waiter, timeout=1)
