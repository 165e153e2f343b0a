"""Provides DeviceListChannel, a bounded single-producer snapshot channel.

The producer (a discovery session) sends full device-list snapshots; the
consumer (the RPC stream) iterates them. Either end can end the channel:

- The producer calls `finish()` when it has nothing more to send. The
  consumer drains what is buffered and then stops iterating.
- The consumer calls `close()` when it goes away. `is_closed` becomes True,
  buffered snapshots are dropped, and any blocked or later `send()` raises
  `ChannelClosedError`.
"""

import asyncio
from collections import deque
from typing import AsyncIterator, Deque, List

from mdns_discovery.discovery.device_record import DeviceRecord

DISCOVERED_DEVICES_CHANNEL_CAPACITY = 4

DeviceList = List[DeviceRecord]


class ChannelClosedError(RuntimeError):
    """Raised when sending into a channel whose consumer has gone away."""


class DeviceListChannel:
    """Bounded asyncio channel of device-list snapshots.

    Must only be used from a single event loop.
    """

    def __init__(
        self, capacity: int = DISCOVERED_DEVICES_CHANNEL_CAPACITY
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}.")

        self.__capacity = capacity
        self.__items: Deque[DeviceList] = deque()
        self.__is_closed = False
        self.__is_finished = False

        # Signalled whenever an item is taken or the consumer closes.
        self.__space_available = asyncio.Event()
        # Signalled whenever an item is added or either end is ended.
        self.__item_available = asyncio.Event()

    @property
    def is_closed(self) -> bool:
        """Whether the consumer has closed its end."""
        return self.__is_closed

    @property
    def is_finished(self) -> bool:
        """Whether the producer has finished sending."""
        return self.__is_finished

    def __len__(self) -> int:
        return len(self.__items)

    async def send(self, devices: DeviceList) -> None:
        """Sends one snapshot, waiting while the channel is full.

        Raises:
            ChannelClosedError: If the consumer has closed the channel, either
                before or while waiting for capacity.
        """
        while True:
            if self.__is_closed:
                raise ChannelClosedError("Device list receiver has been closed.")
            if len(self.__items) < self.__capacity:
                break
            self.__space_available.clear()
            await self.__space_available.wait()

        self.__items.append(devices)
        self.__item_available.set()

    async def receive(self) -> DeviceList:
        """Receives the next snapshot.

        Raises:
            StopAsyncIteration: Once the producer has finished and all
                buffered snapshots were received, or the channel was closed.
        """
        while True:
            if self.__is_closed:
                raise StopAsyncIteration
            if self.__items:
                devices = self.__items.popleft()
                self.__space_available.set()
                return devices
            if self.__is_finished:
                raise StopAsyncIteration
            self.__item_available.clear()
            await self.__item_available.wait()

    def finish(self) -> None:
        """Marks the producer side as done. Idempotent."""
        self.__is_finished = True
        self.__item_available.set()

    def close(self) -> None:
        """Marks the consumer side as gone. Idempotent."""
        self.__is_closed = True
        self.__items.clear()
        self.__space_available.set()
        self.__item_available.set()

    def __aiter__(self) -> AsyncIterator[DeviceList]:
        return self

    async def __anext__(self) -> DeviceList:
        return await self.receive()
