"""mDNS browsing: lifecycle events and the zeroconf-backed browser."""

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
from mdns_discovery.discovery.mdns.zeroconf_browser import (
    ZeroconfServiceBrowser,
)

__all__ = [
    "BrowseSubscription",
    "InvalidServiceNameError",
    "SearchStarted",
    "SearchStopped",
    "ServiceBrowser",
    "ServiceEvent",
    "ServiceFound",
    "ServiceRemoved",
    "ServiceResolved",
    "ZeroconfServiceBrowser",
]
