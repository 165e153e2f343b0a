from mdns_discovery.discovery.device_translator import (
    HOSTNAME_PROPERTY,
    PORT_PROPERTY,
    translate_service,
    txt_property_key,
)
from mdns_discovery.discovery.resolved_service import ResolvedService


def make_service(**kwargs):
    values = dict(
        fullname="X._http._tcp.local.",
        hostname="h",
        port=1234,
        addresses=["10.0.0.1"],
        properties=[("foo bar", "1")],
    )
    values.update(kwargs)
    return ResolvedService.create(**values)


def test_translates_all_properties():
    record = translate_service(make_service())

    assert record.id == "X._http._tcp.local."
    assert record.properties == {
        "MDNS_HOSTNAME": "h",
        "MDNS_PORT": "1234",
        "MDNS_IP_ADDRESS_0": "10.0.0.1",
        "MDNS_TXT_FOO_BAR": "1",
    }


def test_addresses_are_indexed_in_reported_order():
    service = make_service(addresses=["10.0.0.2", "fe80::1%eth0", "10.0.0.3"])
    record = translate_service(service)

    assert record.properties["MDNS_IP_ADDRESS_0"] == "10.0.0.2"
    assert record.properties["MDNS_IP_ADDRESS_1"] == "fe80::1%eth0"
    assert record.properties["MDNS_IP_ADDRESS_2"] == "10.0.0.3"


def test_address_indices_follow_upstream_reordering():
    first = translate_service(make_service(addresses=["10.0.0.1", "10.0.0.2"]))
    second = translate_service(make_service(addresses=["10.0.0.2", "10.0.0.1"]))

    assert first.properties["MDNS_IP_ADDRESS_0"] == "10.0.0.1"
    assert second.properties["MDNS_IP_ADDRESS_0"] == "10.0.0.2"


def test_non_ascii_txt_keys_are_dropped():
    service = make_service(
        properties=[("näme", "x"), ("model", "m1"), ("名前", "y")]
    )
    record = translate_service(service)

    assert record.properties["MDNS_TXT_MODEL"] == "m1"
    assert not any(
        key.startswith("MDNS_TXT_N") or not key.isascii()
        for key in record.properties
    )
    assert len(record.properties) == 4


def test_no_addresses_or_txt():
    record = translate_service(make_service(addresses=[], properties=[]))
    assert record.properties == {HOSTNAME_PROPERTY: "h", PORT_PROPERTY: "1234"}


def test_later_txt_key_wins_on_collision():
    service = make_service(properties=[("a b", "first"), ("A_B", "second")])
    record = translate_service(service)
    assert record.properties["MDNS_TXT_A_B"] == "second"


def test_txt_property_key():
    assert txt_property_key("foo bar baz") == "MDNS_TXT_FOO_BAR_BAZ"
    assert txt_property_key("Version") == "MDNS_TXT_VERSION"


def test_translation_is_deterministic():
    service = make_service(
        addresses=["10.0.0.1", "10.0.0.2"], properties=[("k", "v"), ("z", "")]
    )
    first = translate_service(service)
    second = translate_service(service)
    assert first == second
    assert list(first.properties) == list(second.properties)


def test_translation_does_not_mutate_service():
    service = make_service()
    translate_service(service).properties["MDNS_PORT"] = "1"
    assert service.port == 1234
