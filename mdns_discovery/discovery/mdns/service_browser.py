"""ServiceBrowser ABC and the subscription type it hands out."""

from abc import ABC, abstractmethod
from typing import AsyncIterator

from mdns_discovery.discovery.mdns.service_event import ServiceEvent


class InvalidServiceNameError(ValueError):
    """Raised when a service name is rejected as malformed."""


class BrowseSubscription(ABC):
    """A single active browse for one service type.

    Iterating yields `ServiceEvent`s in delivery order. Iteration ends after
    the terminal `SearchStopped` event has been yielded.
    """

    @abstractmethod
    def __aiter__(self) -> AsyncIterator[ServiceEvent]:
        raise NotImplementedError()

    @abstractmethod
    async def stop(self) -> None:
        """Stops browsing. Idempotent."""
        raise NotImplementedError()


class ServiceBrowser(ABC):
    """Produces browse subscriptions for fully qualified service types."""

    @abstractmethod
    def browse(self, service_type: str) -> BrowseSubscription:
        """Starts browsing for `service_type`.

        Args:
            service_type: Fully qualified mDNS service type, e.g.
                "_http._tcp.local.".

        Returns:
            A new, already started `BrowseSubscription`.

        Raises:
            InvalidServiceNameError: If `service_type` is malformed.
        """
        raise NotImplementedError()

    @abstractmethod
    async def close(self) -> None:
        """Stops all browsing and releases network resources."""
        raise NotImplementedError()
