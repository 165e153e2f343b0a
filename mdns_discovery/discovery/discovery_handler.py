"""Defines DiscoveryHandler, the entry point for discovery requests."""

import asyncio
import logging
from typing import Optional, Set

from mdns_discovery.discovery.device_list_channel import (
    DISCOVERED_DEVICES_CHANNEL_CAPACITY,
    DeviceListChannel,
)
from mdns_discovery.discovery.discovery_details import (
    InvalidArgumentError,
    deserialize_discovery_details,
    normalize_service_name,
)
from mdns_discovery.discovery.discovery_session import DiscoverySession
from mdns_discovery.discovery.mdns.service_browser import (
    InvalidServiceNameError,
    ServiceBrowser,
)
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.threading.error_watcher import ErrorWatcher

__all__ = ["DiscoveryHandler", "InvalidArgumentError"]


class DiscoveryHandler:
    """Starts one independent discovery session per request.

    Each call to `discover` validates the request, opens one browse
    subscription and spawns one background task that owns the session's
    device cache. Sessions share nothing but the browser and the
    registration signal.
    """

    def __init__(
        self,
        browser: ServiceBrowser,
        registration_signal: RegistrationSignal,
        watcher: Optional[ErrorWatcher] = None,
        channel_capacity: int = DISCOVERED_DEVICES_CHANNEL_CAPACITY,
    ) -> None:
        """Initializes the DiscoveryHandler.

        Args:
            browser: Browser used to open one subscription per request.
            registration_signal: Notified when a session loses its consumer.
            watcher: Receives exceptions escaping session tasks.
            channel_capacity: Capacity of each session's device-list channel.
        """
        self.__browser = browser
        self.__registration_signal = registration_signal
        self.__watcher = watcher
        self.__channel_capacity = channel_capacity
        self.__sessions: Set[asyncio.Task[None]] = set()

    @property
    def active_sessions(self) -> int:
        return len(self.__sessions)

    def discover(self, discovery_details: str) -> DeviceListChannel:
        """Starts a discovery session.

        Must be called from the event loop that will run the session.

        Args:
            discovery_details: YAML blob of the form `{serviceName: <name>}`.

        Returns:
            The channel on which device-list snapshots will be published.

        Raises:
            InvalidArgumentError: If the details cannot be parsed or the
                service name is rejected by the browser.
        """
        details = deserialize_discovery_details(discovery_details)
        service_name = normalize_service_name(details.service_name)

        try:
            subscription = self.__browser.browse(service_name)
        except InvalidServiceNameError as e:
            raise InvalidArgumentError("Invalid service name") from e

        channel = DeviceListChannel(self.__channel_capacity)
        session = DiscoverySession(
            subscription, channel, self.__registration_signal
        )

        task = asyncio.create_task(session.run())
        self.__sessions.add(task)
        task.add_done_callback(self.__sessions.discard)
        if self.__watcher is not None:
            self.__watcher.watch_task(task)

        logging.info("Started discovery session for '%s'", service_name)
        return channel

    async def stop(self) -> None:
        """Cancels all running sessions and waits for them to end."""
        sessions = list(self.__sessions)
        for task in sessions:
            task.cancel()
        await asyncio.gather(*sessions, return_exceptions=True)
