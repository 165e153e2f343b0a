"""Lifecycle events produced while browsing for an mDNS service type."""

import dataclasses
from typing import Union

from mdns_discovery.discovery.resolved_service import ResolvedService


@dataclasses.dataclass(frozen=True)
class SearchStarted:
    """A browse for `service_type` has started."""

    service_type: str


@dataclasses.dataclass(frozen=True)
class ServiceFound:
    """An instance was seen but has not been resolved yet."""

    service_type: str
    fullname: str


@dataclasses.dataclass(frozen=True)
class ServiceResolved:
    """An instance became visible with complete host, port and TXT info."""

    service: ResolvedService


@dataclasses.dataclass(frozen=True)
class ServiceRemoved:
    """A previously visible instance went away."""

    service_type: str
    fullname: str


@dataclasses.dataclass(frozen=True)
class SearchStopped:
    """Terminal event. No further events follow for this browse."""

    service_type: str


ServiceEvent = Union[
    SearchStarted, ServiceFound, ServiceResolved, ServiceRemoved, SearchStopped
]
