"""Defines DeviceCache, the set of currently visible resolved services."""

import logging
from typing import Dict, List

from mdns_discovery.discovery.device_record import DeviceRecord
from mdns_discovery.discovery.device_translator import translate_service
from mdns_discovery.discovery.mdns.service_event import (
    ServiceEvent,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_discovery.discovery.resolved_service import ResolvedService


class DeviceCache:
    """Maps instance names to their most recently resolved service.

    Not thread-safe. A cache is owned by exactly one discovery session and
    only ever touched from that session's task.
    """

    def __init__(self) -> None:
        self.__services: Dict[str, ResolvedService] = {}

    def apply(self, event: ServiceEvent) -> bool:
        """Applies one lifecycle event to the cache.

        Args:
            event: The event to apply.

        Returns:
            True if `event` is a resolved or removed event, meaning a fresh
            device list should be published. False for any other event.
        """
        if isinstance(event, ServiceResolved):
            self.__services[event.service.fullname] = event.service
            return True

        if isinstance(event, ServiceRemoved):
            if self.__services.pop(event.fullname, None) is None:
                logging.debug(
                    "Removal for unknown instance '%s' ignored.", event.fullname
                )
            return True

        return False

    def devices(self) -> List[DeviceRecord]:
        """Returns the translated device list for every cached service."""
        return [
            translate_service(service) for service in self.__services.values()
        ]

    def __contains__(self, fullname: object) -> bool:
        return fullname in self.__services

    def __len__(self) -> int:
        return len(self.__services)

    def names(self) -> List[str]:
        """Returns the instance names currently cached."""
        return list(self.__services.keys())
