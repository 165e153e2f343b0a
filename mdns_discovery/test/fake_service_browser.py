"""In-memory ServiceBrowser used by tests to script browse events."""

import asyncio
from typing import AsyncIterator, List

from mdns_discovery.discovery.mdns.service_browser import (
    BrowseSubscription,
    InvalidServiceNameError,
    ServiceBrowser,
)
from mdns_discovery.discovery.mdns.service_event import (
    SearchStopped,
    ServiceEvent,
)


class FakeBrowseSubscription(BrowseSubscription):
    __test__ = False

    def __init__(self, service_type: str) -> None:
        self.service_type = service_type
        self.events: asyncio.Queue[ServiceEvent] = asyncio.Queue()
        self.stop_calls = 0

    def push(self, *events: ServiceEvent) -> None:
        for event in events:
            self.events.put_nowait(event)

    async def __aiter__(self) -> AsyncIterator[ServiceEvent]:  # type: ignore[override]
        while True:
            event = await self.events.get()
            yield event
            if isinstance(event, SearchStopped):
                return

    async def stop(self) -> None:
        self.stop_calls += 1


class FakeServiceBrowser(ServiceBrowser):
    __test__ = False

    def __init__(self) -> None:
        self.subscriptions: List[FakeBrowseSubscription] = []
        self.rejected_names: List[str] = []
        self.is_closed = False

    def browse(self, service_type: str) -> FakeBrowseSubscription:
        if not service_type.endswith(".local."):
            self.rejected_names.append(service_type)
            raise InvalidServiceNameError(service_type)
        subscription = FakeBrowseSubscription(service_type)
        self.subscriptions.append(subscription)
        return subscription

    async def close(self) -> None:
        self.is_closed = True
