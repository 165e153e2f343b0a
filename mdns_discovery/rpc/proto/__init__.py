from mdns_discovery.rpc.proto.discovery_pb import (
    DISCOVER_METHOD,
    REGISTER_DISCOVERY_HANDLER_METHOD,
    ByteData,
    Device,
    DeviceSpec,
    DiscoverRequest,
    DiscoverResponse,
    Empty,
    Mount,
    RegisterDiscoveryHandlerRequest,
)

__all__ = [
    "DISCOVER_METHOD",
    "REGISTER_DISCOVERY_HANDLER_METHOD",
    "ByteData",
    "Device",
    "DeviceSpec",
    "DiscoverRequest",
    "DiscoverResponse",
    "Empty",
    "Mount",
    "RegisterDiscoveryHandlerRequest",
]
