"""Defines DiscoverySession, the per-request event loop."""

import logging

from mdns_discovery.discovery.device_cache import DeviceCache
from mdns_discovery.discovery.device_list_channel import (
    ChannelClosedError,
    DeviceListChannel,
)
from mdns_discovery.discovery.mdns.service_browser import BrowseSubscription
from mdns_discovery.discovery.mdns.service_event import SearchStopped
from mdns_discovery.discovery.registration_signal import RegistrationSignal


class DiscoverySession:
    """Drives one browse subscription into one device-list channel.

    The session owns its `DeviceCache`. Every resolved or removed event
    updates the cache and publishes the full device list. The session ends
    when the browser stops or when the consumer of the channel goes away,
    in which case re-registration with the agent is requested exactly once.
    """

    def __init__(
        self,
        subscription: BrowseSubscription,
        channel: DeviceListChannel,
        registration_signal: RegistrationSignal,
    ) -> None:
        self.__subscription = subscription
        self.__channel = channel
        self.__registration_signal = registration_signal
        self.__cache = DeviceCache()

    @property
    def device_cache(self) -> DeviceCache:
        return self.__cache

    async def run(self) -> None:
        """Processes browse events until the session ends."""
        try:
            async for event in self.__subscription:
                if self.__channel.is_closed:
                    await self.__request_reregistration()
                    return

                logging.debug("got event: %s", event)
                if isinstance(event, SearchStopped):
                    break

                if not self.__cache.apply(event):
                    continue

                try:
                    await self.__channel.send(self.__cache.devices())
                except ChannelClosedError:
                    await self.__request_reregistration()
                    return
        finally:
            self.__channel.finish()
            await self.__subscription.stop()

    async def __request_reregistration(self) -> None:
        logging.error(
            "discover - channel closed ... attempting to re-register with Agent"
        )
        await self.__registration_signal.notify()
