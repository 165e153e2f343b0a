"""ServiceBrowser implementation backed by `zeroconf`."""

import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, Optional, Set

from zeroconf import (
    BadTypeInNameException,
    ServiceListener,
    Zeroconf,
    service_type_name,
)
from zeroconf.asyncio import (
    AsyncServiceBrowser,
    AsyncServiceInfo,
    AsyncZeroconf,
)

from mdns_discovery.discovery.mdns.service_browser import (
    BrowseSubscription,
    InvalidServiceNameError,
    ServiceBrowser,
)
from mdns_discovery.discovery.mdns.service_event import (
    SearchStarted,
    SearchStopped,
    ServiceEvent,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_discovery.discovery.resolved_service import ResolvedService

DEFAULT_RESOLVE_TIMEOUT_MS = 3000


def to_resolved_service(info: AsyncServiceInfo) -> ResolvedService:
    """Converts resolved `zeroconf` service info to a `ResolvedService`.

    TXT keys and values are decoded as UTF-8, replacing undecodable bytes.
    A TXT entry with no value maps to an empty string.
    """
    properties = []
    for key, value in info.properties.items():
        key_str = key.decode("utf-8", errors="replace")
        value_str = (
            value.decode("utf-8", errors="replace") if value is not None else ""
        )
        properties.append((key_str, value_str))

    return ResolvedService.create(
        fullname=info.name,
        hostname=info.server or "",
        port=info.port or 0,
        addresses=info.parsed_scoped_addresses(),
        properties=properties,
    )


class ZeroconfBrowseSubscription(BrowseSubscription, ServiceListener):
    """One `AsyncServiceBrowser` for one service type.

    Implements `zeroconf.ServiceListener`. Callbacks are translated into
    `ServiceEvent`s and queued for the single consumer iterating this
    subscription.
    """

    def __init__(
        self,
        mdns: AsyncZeroconf,
        service_type: str,
        resolve_timeout_ms: int = DEFAULT_RESOLVE_TIMEOUT_MS,
        on_stopped: Optional[
            Callable[["ZeroconfBrowseSubscription"], None]
        ] = None,
    ) -> None:
        self.__mdns = mdns
        self.__service_type = service_type
        self.__resolve_timeout_ms = resolve_timeout_ms
        self.__on_stopped = on_stopped

        self.__events: asyncio.Queue[ServiceEvent] = asyncio.Queue()
        # At most one pending resolve per instance name.
        self.__resolve_tasks: Dict[str, asyncio.Task[None]] = {}
        self.__browser: AsyncServiceBrowser | None = None
        self.__is_stopped = False

    @property
    def service_type(self) -> str:
        return self.__service_type

    def start(self) -> None:
        """Starts the underlying `AsyncServiceBrowser`."""
        self.__events.put_nowait(SearchStarted(self.__service_type))
        self.__browser = AsyncServiceBrowser(
            self.__mdns.zeroconf, [self.__service_type], listener=self
        )
        logging.info("Started browsing for '%s'", self.__service_type)

    async def __aiter__(self) -> AsyncIterator[ServiceEvent]:  # type: ignore[override]
        while True:
            event = await self.__events.get()
            yield event
            if isinstance(event, SearchStopped):
                return

    # --- ServiceListener interface methods ---

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when a new instance is discovered."""
        if self.__is_stopped:
            return
        self.__events.put_nowait(ServiceFound(type_, name))
        self.__schedule_resolve(type_, name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when an instance's records change."""
        if self.__is_stopped:
            return
        self.__schedule_resolve(type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        """Called by `zeroconf` when an instance leaves the network."""
        if self.__is_stopped:
            return
        self.__cancel_resolve(name)
        self.__events.put_nowait(ServiceRemoved(type_, name))

    def __schedule_resolve(self, type_: str, name: str) -> None:
        # A newer resolve supersedes any still in flight for the same name.
        self.__cancel_resolve(name)
        task = asyncio.create_task(self.__resolve(type_, name))
        self.__resolve_tasks[name] = task
        task.add_done_callback(
            lambda done: self.__on_resolve_done(name, done)
        )

    def __cancel_resolve(self, name: str) -> None:
        task = self.__resolve_tasks.pop(name, None)
        if task is not None:
            task.cancel()

    def __on_resolve_done(self, name: str, task: "asyncio.Task[None]") -> None:
        if self.__resolve_tasks.get(name) is task:
            del self.__resolve_tasks[name]

    async def __resolve(self, type_: str, name: str) -> None:
        info = AsyncServiceInfo(type_, name)
        try:
            resolved = await info.async_request(
                self.__mdns.zeroconf, self.__resolve_timeout_ms
            )
        except Exception as e:
            logging.warning(
                "Error resolving service '%s' type '%s': %s", name, type_, e
            )
            return

        if not resolved:
            logging.warning(
                "Failed to resolve service '%s' type '%s'.", name, type_
            )
            return

        if info.port is None:
            logging.error("No port for service '%s' type '%s'.", name, type_)
            return

        if self.__is_stopped:
            return

        self.__events.put_nowait(ServiceResolved(to_resolved_service(info)))

    async def stop(self) -> None:
        if self.__is_stopped:
            return
        self.__is_stopped = True

        for task in list(self.__resolve_tasks.values()):
            task.cancel()

        if self.__browser is not None:
            await self.__browser.async_cancel()
            self.__browser = None

        self.__events.put_nowait(SearchStopped(self.__service_type))
        logging.info("Stopped browsing for '%s'", self.__service_type)

        if self.__on_stopped is not None:
            self.__on_stopped(self)


class ZeroconfServiceBrowser(ServiceBrowser):
    """Hands out browse subscriptions sharing one `AsyncZeroconf` instance."""

    def __init__(
        self,
        zc_instance: Optional[AsyncZeroconf] = None,
        resolve_timeout_ms: int = DEFAULT_RESOLVE_TIMEOUT_MS,
    ) -> None:
        """Initializes the ZeroconfServiceBrowser.

        Args:
            zc_instance: Shared `AsyncZeroconf` to browse with. When omitted
                one is created on first use and closed by `close()`.
            resolve_timeout_ms: Time allowed for resolving one instance.
        """
        self.__mdns: AsyncZeroconf | None = zc_instance
        self.__is_shared_zc = zc_instance is not None
        self.__resolve_timeout_ms = resolve_timeout_ms
        self.__subscriptions: Set[ZeroconfBrowseSubscription] = set()

    def browse(self, service_type: str) -> ZeroconfBrowseSubscription:
        try:
            service_type_name(service_type)
        except BadTypeInNameException as e:
            raise InvalidServiceNameError(
                f"Invalid service name '{service_type}': {e}"
            ) from e

        if self.__mdns is None:
            logging.info("Creating AsyncZeroconf instance for browsing.")
            self.__mdns = AsyncZeroconf()

        subscription = ZeroconfBrowseSubscription(
            self.__mdns,
            service_type,
            self.__resolve_timeout_ms,
            on_stopped=self.__subscriptions.discard,
        )
        self.__subscriptions.add(subscription)
        subscription.start()
        return subscription

    async def close(self) -> None:
        for subscription in list(self.__subscriptions):
            await subscription.stop()

        if self.__mdns is None:
            return

        if self.__is_shared_zc:
            logging.info("Not closing shared AsyncZeroconf instance.")
            return

        logging.info("Closing owned AsyncZeroconf instance.")
        await self.__mdns.async_close()
        self.__mdns = None
