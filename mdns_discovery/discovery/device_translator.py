"""Translates resolved mDNS services into wire-ready device records."""

from typing import Dict

from mdns_discovery.discovery.device_record import DeviceRecord
from mdns_discovery.discovery.resolved_service import ResolvedService

HOSTNAME_PROPERTY = "MDNS_HOSTNAME"
PORT_PROPERTY = "MDNS_PORT"
IP_ADDRESS_PROPERTY_PREFIX = "MDNS_IP_ADDRESS_"
TXT_PROPERTY_PREFIX = "MDNS_TXT_"


def txt_property_key(key: str) -> str:
    """Returns the device property key used for TXT attribute `key`."""
    return f"{TXT_PROPERTY_PREFIX}{key.upper().replace(' ', '_')}"


def translate_service(service: ResolvedService) -> DeviceRecord:
    """Maps one resolved service to a `DeviceRecord`.

    Properties are inserted in a fixed order: hostname and port, then one
    `MDNS_IP_ADDRESS_<n>` per address, then one `MDNS_TXT_<KEY>` per TXT
    attribute. Later insertions win on key collisions. TXT attributes whose
    key is not pure ASCII are dropped.

    Address indices are assigned from the order addresses are reported in,
    so the same address may get a different index if upstream order changes.
    """
    properties: Dict[str, str] = {
        HOSTNAME_PROPERTY: service.hostname,
        PORT_PROPERTY: str(service.port),
    }

    for index, address in enumerate(service.addresses):
        properties[f"{IP_ADDRESS_PROPERTY_PREFIX}{index}"] = address

    for key, value in service.properties:
        if not key.isascii():
            continue
        properties[txt_property_key(key)] = value

    return DeviceRecord(id=service.fullname, properties=properties)
