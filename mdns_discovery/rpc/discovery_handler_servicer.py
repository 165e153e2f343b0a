"""gRPC servicer exposing `v0.DiscoveryHandler/Discover`."""

import logging
from typing import Any, AsyncIterator, List

import grpc

from mdns_discovery.discovery.device_record import DeviceRecord
from mdns_discovery.discovery.discovery_handler import (
    DiscoveryHandler,
    InvalidArgumentError,
)
from mdns_discovery.rpc.proto import Device, DiscoverRequest, DiscoverResponse

_SERVICE_NAME = "v0.DiscoveryHandler"


def to_discover_response(devices: List[DeviceRecord]) -> Any:
    """Converts one device-list snapshot to a `DiscoverResponse`."""
    return DiscoverResponse(
        devices=[
            Device(id=device.id, properties=device.properties)
            for device in devices
        ]
    )


class DiscoveryHandlerServicer:
    """Streams device-list snapshots for each `Discover` call."""

    def __init__(self, handler: DiscoveryHandler) -> None:
        self.__handler = handler

    async def Discover(  # pylint: disable=invalid-name
        self, request: Any, context: grpc.aio.ServicerContext
    ) -> AsyncIterator[Any]:
        """Starts a discovery session and relays its snapshots.

        Aborts with INVALID_ARGUMENT if the request is rejected. When the
        caller goes away the session's channel is closed so the session can
        notice and request re-registration.
        """
        try:
            channel = self.__handler.discover(request.discovery_details)
        except InvalidArgumentError as e:
            logging.warning("Rejected discover request: %s", e)
            await context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(e))
            return

        try:
            async for devices in channel:
                yield to_discover_response(devices)
        finally:
            channel.close()

    def add_to_server(self, server: grpc.aio.Server) -> None:
        """Registers this servicer's methods on `server`."""
        handler = grpc.method_handlers_generic_handler(
            _SERVICE_NAME,
            {
                "Discover": grpc.unary_stream_rpc_method_handler(
                    self.Discover,
                    request_deserializer=DiscoverRequest.FromString,
                    response_serializer=DiscoverResponse.SerializeToString,
                ),
            },
        )
        server.add_generic_rpc_handlers((handler,))
