import pytest

from mdns_discovery.config.handler_config import HandlerConfig


def test_defaults():
    config = HandlerConfig.from_environment({})

    assert config == HandlerConfig()
    assert config.name == "mdns"
    assert config.shared
    assert config.endpoint_type == "uds"
    assert config.socket_path == "/var/lib/akri/mdns.sock"
    assert config.endpoint == "/var/lib/akri/mdns.sock"
    assert config.agent_registration_socket == (
        "/var/lib/akri/agent-registration.sock"
    )


def test_from_environment_overrides():
    config = HandlerConfig.from_environment(
        {
            "DISCOVERY_HANDLERS_DIRECTORY": "/run/akri",
            "DISCOVERY_HANDLER_NAME": "mdns-printers",
            "DISCOVERY_HANDLER_SHARED": "false",
            "MDNS_RESOLVE_TIMEOUT_MS": "1500",
            "REGISTER_AGAIN_DELAY_SECS": "2.5",
            "LOG_LEVEL": "debug",
        }
    )

    assert config.socket_path == "/run/akri/mdns-printers.sock"
    assert not config.shared
    assert config.resolve_timeout_ms == 1500
    assert config.register_again_delay_seconds == 2.5
    assert config.log_level == "DEBUG"


def test_network_endpoint():
    config = HandlerConfig.from_environment(
        {"DISCOVERY_HANDLER_ENDPOINT": "0.0.0.0:10000"}
    )
    assert config.endpoint_type == "network"
    assert config.endpoint == "0.0.0.0:10000"


@pytest.mark.parametrize(
    "environ",
    [
        {"DISCOVERY_HANDLER_SHARED": "maybe"},
        {"MDNS_RESOLVE_TIMEOUT_MS": "soon"},
        {"MDNS_RESOLVE_TIMEOUT_MS": "0"},
        {"REGISTER_AGAIN_DELAY_SECS": "-1"},
        {"DISCOVERY_HANDLER_ENDPOINT": "no-port"},
        {"DISCOVERY_HANDLER_NAME": ""},
    ],
)
def test_invalid_values_raise(environ):
    with pytest.raises(ValueError):
        HandlerConfig.from_environment(environ)
