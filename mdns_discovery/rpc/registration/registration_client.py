"""Registers this discovery handler with the orchestration agent."""

import logging
from typing import Any, Callable, Coroutine, Optional

import grpc

from mdns_discovery.config.handler_config import HandlerConfig
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.rpc.grpc_util.grpc_caller import (
    delay_before_retry as default_delay_before_retry,
    is_server_unavailable_error,
)
from mdns_discovery.rpc.proto import (
    REGISTER_DISCOVERY_HANDLER_METHOD,
    Empty,
    RegisterDiscoveryHandlerRequest,
)

ChannelFactory = Callable[[str], grpc.aio.Channel]

REGISTRATION_TIMEOUT_SECONDS = 5.0


class RegistrationClient:
    """Registers with the agent, and re-registers whenever asked to.

    Registration is retried until it succeeds. After the initial
    registration, `run()` waits on the `RegistrationSignal` and registers
    again each time a discovery session reports that its consumer is gone.
    """

    def __init__(
        self,
        config: HandlerConfig,
        registration_signal: RegistrationSignal,
        *,
        channel_factory: Optional[ChannelFactory] = None,
        delay_before_retry_func: Optional[
            Callable[[float], Coroutine[Any, Any, None]]
        ] = None,
    ) -> None:
        self.__config = config
        self.__registration_signal = registration_signal
        self.__channel_factory: ChannelFactory = (
            channel_factory or grpc.aio.insecure_channel
        )
        self.__delay_before_retry = (
            delay_before_retry_func or default_delay_before_retry
        )
        self.__registrations = 0

    @property
    def registrations(self) -> int:
        """Number of successful registrations so far."""
        return self.__registrations

    def build_request(self) -> Any:
        """Returns the registration request describing this handler."""
        endpoint_type = (
            RegisterDiscoveryHandlerRequest.NETWORK
            if self.__config.endpoint_type == "network"
            else RegisterDiscoveryHandlerRequest.UDS
        )
        return RegisterDiscoveryHandlerRequest(
            name=self.__config.name,
            endpoint=self.__config.endpoint,
            endpoint_type=endpoint_type,
            shared=self.__config.shared,
        )

    async def register(self) -> None:
        """Registers with the agent, retrying until it succeeds."""
        target = f"unix://{self.__config.agent_registration_socket}"
        request = self.build_request()

        while True:
            logging.info(
                "Registering discovery handler '%s' with agent at %s",
                self.__config.name,
                target,
            )
            channel = self.__channel_factory(target)
            try:
                register_call = channel.unary_unary(
                    REGISTER_DISCOVERY_HANDLER_METHOD,
                    request_serializer=RegisterDiscoveryHandlerRequest.SerializeToString,
                    response_deserializer=Empty.FromString,
                )
                await register_call(
                    request, timeout=REGISTRATION_TIMEOUT_SECONDS
                )
            except grpc.RpcError as e:
                if is_server_unavailable_error(e):
                    logging.warning("Agent unavailable for registration: %s", e)
                else:
                    logging.warning("Registration with agent failed: %s", e)
            else:
                self.__registrations += 1
                logging.info(
                    "Registered discovery handler '%s' with agent.",
                    self.__config.name,
                )
                return
            finally:
                await channel.close()

            await self.__delay_before_retry(
                self.__config.register_again_delay_seconds
            )

    async def run(self) -> None:
        """Registers, then re-registers on every signal. Runs until cancelled."""
        await self.register()
        while True:
            await self.__registration_signal.wait()
            logging.info("Re-registration with agent requested.")
            await self.register()
