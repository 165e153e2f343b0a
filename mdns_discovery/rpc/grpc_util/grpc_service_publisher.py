"""Provides GrpcServicePublisher for hosting the discovery handler service."""

import asyncio
import logging
import os
from collections.abc import Callable

import grpc
from grpc_health.v1 import health_pb2, health_pb2_grpc
from grpc_health.v1._async import HealthServicer

from mdns_discovery.rpc.grpc_util.async_grpc_exception_interceptor import (
    AsyncGrpcExceptionInterceptor,
)
from mdns_discovery.threading.error_watcher import ErrorWatcher

AddServicerCB = Callable[["grpc.aio.Server"], None]

_UNIX_PREFIX = "unix://"


def unix_socket_address(path: str) -> str:
    """Returns the gRPC address for the Unix domain socket at `path`."""
    return f"{_UNIX_PREFIX}{os.path.abspath(path)}"


class GrpcServicePublisher:
    """Hosts gRPC services on a single address.

    The address is either a Unix domain socket (`unix:///path/to.sock`) or a
    TCP `host:port`. A stale socket file left behind by a previous run is
    removed before binding.
    """

    def __init__(self, watcher: ErrorWatcher, address: str):
        self.__address = address
        self.__watcher = watcher
        self._health_servicer = HealthServicer()
        self.__server: grpc.aio.Server | None = None
        self.__port: int | None = None

    @property
    def address(self) -> str:
        return self.__address

    @property
    def port(self) -> int | None:
        """Port bound for TCP addresses, once started."""
        return self.__port

    async def start_async(self, connect_call: AddServicerCB) -> None:
        """Start the asynchronous server and wait for it to be serving.

        Args:
            connect_call: Callback to add servicer implementations to the server.

        Raises:
            RuntimeError: If the server could not bind to its address.
        """
        interceptor = AsyncGrpcExceptionInterceptor(self.__watcher)
        self.__server = grpc.aio.server(interceptors=[interceptor])
        connect_call(self.__server)
        health_pb2_grpc.add_HealthServicer_to_server(
            self._health_servicer, self.__server
        )
        # Empty string for service_name sets the overall server health.
        await self._health_servicer.set("", health_pb2.HealthCheckResponse.SERVING)
        await asyncio.sleep(0)

        if not self._connect():
            raise RuntimeError(f"Failed to host gRPC service on {self.__address}")
        await self.__server.start()

    def _connect(self) -> bool:
        """Binds the server to the configured address.

        Returns:
            True if the server bound successfully, False otherwise.
        """
        assert self.__server is not None
        if self.__address.startswith(_UNIX_PREFIX):
            path = self.__address[len(_UNIX_PREFIX) :]
            if os.path.exists(path):
                logging.info("Removing stale socket file %s", path)
                os.remove(path)

        try:
            port_out = self.__server.add_insecure_port(self.__address)
        except RuntimeError as e:
            logging.error(
                "Failed to bind gRPC server to %s. Error: %s", self.__address, e
            )
            return False

        # Older grpcio releases report bind failures as port 0.
        if port_out == 0:
            logging.error("Failed to bind gRPC server to %s.", self.__address)
            return False

        self.__port = port_out
        logging.info("Running gRPC Server on %s (port %s)", self.__address, port_out)
        return True

    async def stop_async(self) -> None:
        """Stop the asynchronous gRPC server gracefully."""
        if self.__server is None:
            logging.warning(
                "GrpcServicePublisher: Server not started or already stopped "
                "when calling stop_async()."
            )
            return

        logging.info("GrpcServicePublisher: Stopping gRPC Server...")
        await self._health_servicer.enter_graceful_shutdown()
        await self.__server.stop(grace=1.0)
        self.__server = None
        logging.info("GrpcServicePublisher: gRPC Server stopped.")
