# mdns_discovery/config/handler_config.py
import os
from dataclasses import dataclass
from typing import Literal, Mapping, Optional

EndpointType = Literal["uds", "network"]

DEFAULT_DISCOVERY_HANDLERS_DIRECTORY = "/var/lib/akri"
AGENT_REGISTRATION_SOCKET_NAME = "agent-registration.sock"
DEFAULT_DISCOVERY_HANDLER_NAME = "mdns"


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got '{value}'.")


def _parse_positive(name: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got '{value}'.") from e
    if parsed <= 0:
        raise ValueError(f"{name} must be positive, got '{value}'.")
    return parsed


@dataclass(frozen=True)
class HandlerConfig:
    """Process configuration of the mDNS discovery handler."""

    discovery_handlers_directory: str = DEFAULT_DISCOVERY_HANDLERS_DIRECTORY
    name: str = DEFAULT_DISCOVERY_HANDLER_NAME
    shared: bool = True

    # TCP "host:port" to serve on instead of a Unix domain socket.
    network_endpoint: Optional[str] = None

    resolve_timeout_ms: int = 3000
    register_again_delay_seconds: float = 10.0
    log_level: str = "INFO"

    @property
    def endpoint_type(self) -> EndpointType:
        return "network" if self.network_endpoint else "uds"

    @property
    def socket_path(self) -> str:
        """Unix domain socket this handler serves on."""
        return os.path.join(self.discovery_handlers_directory, f"{self.name}.sock")

    @property
    def endpoint(self) -> str:
        """Endpoint reported to the agent on registration."""
        return self.network_endpoint or self.socket_path

    @property
    def agent_registration_socket(self) -> str:
        return os.path.join(
            self.discovery_handlers_directory, AGENT_REGISTRATION_SOCKET_NAME
        )

    @classmethod
    def from_environment(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "HandlerConfig":
        """Builds a HandlerConfig from environment variables.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ

        shared = True
        if "DISCOVERY_HANDLER_SHARED" in env:
            shared = _parse_bool(
                "DISCOVERY_HANDLER_SHARED", env["DISCOVERY_HANDLER_SHARED"]
            )

        resolve_timeout_ms = 3000
        if "MDNS_RESOLVE_TIMEOUT_MS" in env:
            resolve_timeout_ms = int(
                _parse_positive(
                    "MDNS_RESOLVE_TIMEOUT_MS", env["MDNS_RESOLVE_TIMEOUT_MS"]
                )
            )

        register_again_delay_seconds = 10.0
        if "REGISTER_AGAIN_DELAY_SECS" in env:
            register_again_delay_seconds = _parse_positive(
                "REGISTER_AGAIN_DELAY_SECS", env["REGISTER_AGAIN_DELAY_SECS"]
            )

        network_endpoint = env.get("DISCOVERY_HANDLER_ENDPOINT") or None
        if network_endpoint is not None and ":" not in network_endpoint:
            raise ValueError(
                "DISCOVERY_HANDLER_ENDPOINT must be host:port, got "
                f"'{network_endpoint}'."
            )

        name = env.get("DISCOVERY_HANDLER_NAME", DEFAULT_DISCOVERY_HANDLER_NAME)
        if not name:
            raise ValueError("DISCOVERY_HANDLER_NAME must not be empty.")

        return cls(
            discovery_handlers_directory=env.get(
                "DISCOVERY_HANDLERS_DIRECTORY",
                DEFAULT_DISCOVERY_HANDLERS_DIRECTORY,
            ),
            name=name,
            shared=shared,
            network_endpoint=network_endpoint,
            resolve_timeout_ms=resolve_timeout_ms,
            register_again_delay_seconds=register_again_delay_seconds,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
