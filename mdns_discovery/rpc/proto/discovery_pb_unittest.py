from mdns_discovery.rpc.proto import (
    DISCOVER_METHOD,
    REGISTER_DISCOVERY_HANDLER_METHOD,
    ByteData,
    Device,
    DiscoverRequest,
    DiscoverResponse,
    Mount,
    RegisterDiscoveryHandlerRequest,
)


def test_discover_response_carries_devices():
    response = DiscoverResponse(
        devices=[
            Device(id="a", properties={"MDNS_PORT": "80"}),
            Device(id="b", mounts=[Mount(container_path="/c", read_only=True)]),
        ]
    )

    parsed = DiscoverResponse.FromString(response.SerializeToString())

    assert [device.id for device in parsed.devices] == ["a", "b"]
    assert dict(parsed.devices[0].properties) == {"MDNS_PORT": "80"}
    assert parsed.devices[1].mounts[0].read_only


def test_discover_request_fields():
    request = DiscoverRequest(
        discovery_details="serviceName: _http._tcp.local",
        discovery_properties={"key": ByteData(vec=b"\x01")},
    )

    parsed = DiscoverRequest.FromString(request.SerializeToString())

    assert parsed.discovery_details == "serviceName: _http._tcp.local"
    assert parsed.discovery_properties["key"].vec == b"\x01"


def test_register_request_endpoint_type():
    request = RegisterDiscoveryHandlerRequest(
        name="mdns",
        endpoint="/var/lib/akri/mdns.sock",
        endpoint_type=RegisterDiscoveryHandlerRequest.UDS,
        shared=True,
    )
    assert request.endpoint_type == 0
    assert RegisterDiscoveryHandlerRequest.NETWORK == 1
    assert request.DESCRIPTOR.full_name == "v0.RegisterDiscoveryHandlerRequest"


def test_method_paths():
    assert DISCOVER_METHOD == "/v0.DiscoveryHandler/Discover"
    assert (
        REGISTER_DISCOVERY_HANDLER_METHOD
        == "/v0.Registration/RegisterDiscoveryHandler"
    )
