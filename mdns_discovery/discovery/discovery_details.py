"""Parsing and normalization of the discovery details sent by the agent."""

import dataclasses
from typing import Any

import yaml


class InvalidArgumentError(ValueError):
    """Raised when a discovery request carries invalid arguments."""


@dataclasses.dataclass(frozen=True)
class MdnsDiscoveryDetails:
    """Configuration for one mDNS discovery request.

    Attributes:
        service_name: mDNS service type to browse, e.g. "_http._tcp.local".
    """

    service_name: str


def deserialize_discovery_details(discovery_details: str) -> MdnsDiscoveryDetails:
    """Parses the YAML (or JSON) discovery details blob.

    The blob must be a mapping containing a string `serviceName`. Other keys
    are ignored.

    Raises:
        InvalidArgumentError: If the blob does not have the expected shape.
    """
    try:
        parsed: Any = yaml.safe_load(discovery_details)
    except yaml.YAMLError as e:
        raise InvalidArgumentError(
            f"Failed to parse discovery details: {e}"
        ) from e

    if not isinstance(parsed, dict):
        raise InvalidArgumentError(
            "Discovery details must be a mapping, got "
            f"{type(parsed).__name__}."
        )

    if "serviceName" not in parsed:
        raise InvalidArgumentError(
            "Discovery details are missing field `serviceName`."
        )

    service_name = parsed["serviceName"]
    if not isinstance(service_name, str):
        raise InvalidArgumentError(
            "Discovery details field `serviceName` must be a string, got "
            f"{type(service_name).__name__}."
        )

    return MdnsDiscoveryDetails(service_name=service_name)


def normalize_service_name(service_name: str) -> str:
    """Returns `service_name` fully qualified, with a trailing '.'."""
    if service_name.endswith("."):
        return service_name
    return f"{service_name}."
