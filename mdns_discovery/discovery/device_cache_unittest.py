import itertools

import pytest

from mdns_discovery.discovery.device_cache import DeviceCache
from mdns_discovery.discovery.mdns.service_event import (
    SearchStarted,
    ServiceFound,
    ServiceRemoved,
    ServiceResolved,
)
from mdns_discovery.discovery.resolved_service import ResolvedService

SERVICE_TYPE = "_http._tcp.local."


def resolved(name, port=80):
    return ServiceResolved(
        ResolvedService.create(
            fullname=name, hostname=f"{name}.host.", port=port
        )
    )


def removed(name):
    return ServiceRemoved(SERVICE_TYPE, name)


class TestDeviceCache:
    def setup_method(self) -> None:
        self.cache = DeviceCache()

    def test_resolved_inserts(self) -> None:
        assert self.cache.apply(resolved("a"))
        assert "a" in self.cache
        assert len(self.cache) == 1

    def test_resolved_overwrites_wholesale(self) -> None:
        self.cache.apply(resolved("a", port=80))
        self.cache.apply(resolved("a", port=81))

        devices = self.cache.devices()
        assert len(devices) == 1
        assert devices[0].properties["MDNS_PORT"] == "81"

    def test_removed_deletes(self) -> None:
        self.cache.apply(resolved("a"))
        assert self.cache.apply(removed("a"))
        assert "a" not in self.cache
        assert self.cache.devices() == []

    def test_removed_unknown_is_noop_but_still_publishes(self) -> None:
        self.cache.apply(resolved("a"))
        assert self.cache.apply(removed("b"))
        assert self.cache.names() == ["a"]

    @pytest.mark.parametrize(
        "event",
        [SearchStarted(SERVICE_TYPE), ServiceFound(SERVICE_TYPE, "a")],
    )
    def test_other_events_do_not_mutate(self, event) -> None:
        self.cache.apply(resolved("b"))
        assert not self.cache.apply(event)
        assert self.cache.names() == ["b"]

    def test_devices_are_translated(self) -> None:
        self.cache.apply(resolved("a"))
        self.cache.apply(resolved("b"))

        devices = {device.id: device for device in self.cache.devices()}
        assert set(devices) == {"a", "b"}
        assert devices["a"].properties["MDNS_HOSTNAME"] == "a.host."


def test_result_independent_of_interleaving_between_instances():
    per_instance = {
        "a": [resolved("a"), removed("a"), resolved("a")],
        "b": [resolved("b"), removed("b")],
        "c": [removed("c"), resolved("c")],
    }
    expected = {"a", "c"}

    # Every interleaving that keeps each instance's own order.
    labels = [name for name, events in per_instance.items() for _ in events]
    for order in set(itertools.permutations(labels)):
        positions = {name: 0 for name in per_instance}
        cache = DeviceCache()
        for name in order:
            cache.apply(per_instance[name][positions[name]])
            positions[name] += 1
        assert set(cache.names()) == expected
