"""Discovery core: request intake, device cache, translation and streaming.

Contains everything needed to turn a stream of mDNS lifecycle events into
a stream of device-list snapshots for a single discovery request.
"""

from mdns_discovery.discovery.device_cache import DeviceCache
from mdns_discovery.discovery.device_list_channel import (
    ChannelClosedError,
    DeviceListChannel,
)
from mdns_discovery.discovery.device_record import DeviceRecord
from mdns_discovery.discovery.discovery_handler import (
    DiscoveryHandler,
    InvalidArgumentError,
)
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.discovery.resolved_service import ResolvedService

__all__ = [
    "ChannelClosedError",
    "DeviceCache",
    "DeviceListChannel",
    "DeviceRecord",
    "DiscoveryHandler",
    "InvalidArgumentError",
    "RegistrationSignal",
    "ResolvedService",
]
