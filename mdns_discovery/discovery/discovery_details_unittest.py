import pytest

from mdns_discovery.discovery.discovery_details import (
    InvalidArgumentError,
    MdnsDiscoveryDetails,
    deserialize_discovery_details,
    normalize_service_name,
)


def test_deserialize_json_details():
    details = deserialize_discovery_details('{"serviceName": "_http._tcp.local"}')
    assert details == MdnsDiscoveryDetails(service_name="_http._tcp.local")


def test_deserialize_yaml_details_ignores_unknown_keys():
    details = deserialize_discovery_details(
        "serviceName: _printer._tcp.local.\nextra: 5\n"
    )
    assert details.service_name == "_printer._tcp.local."


@pytest.mark.parametrize(
    "blob",
    [
        '{"wrongField": 1}',
        '{"serviceName": 5}',
        '{"serviceName": null}',
        "[1, 2, 3]",
        "",
        "just a string",
        "{unclosed: [",
    ],
)
def test_deserialize_rejects_malformed_details(blob):
    with pytest.raises(InvalidArgumentError):
        deserialize_discovery_details(blob)


def test_invalid_argument_error_is_value_error():
    assert issubclass(InvalidArgumentError, ValueError)


def test_normalize_appends_separator():
    assert normalize_service_name("_http._tcp.local") == "_http._tcp.local."


@pytest.mark.parametrize(
    "name", ["_http._tcp.local", "_http._tcp.local.", "", "."]
)
def test_normalize_is_idempotent(name):
    once = normalize_service_name(name)
    assert normalize_service_name(once) == once
    assert once.endswith(".")
