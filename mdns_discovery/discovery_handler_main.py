"""Runs the mDNS discovery handler process."""

import asyncio
import logging
import os

from mdns_discovery.config.handler_config import HandlerConfig
from mdns_discovery.discovery.discovery_handler import DiscoveryHandler
from mdns_discovery.discovery.mdns.zeroconf_browser import (
    ZeroconfServiceBrowser,
)
from mdns_discovery.discovery.registration_signal import RegistrationSignal
from mdns_discovery.rpc.discovery_handler_servicer import (
    DiscoveryHandlerServicer,
)
from mdns_discovery.rpc.grpc_util.grpc_service_publisher import (
    GrpcServicePublisher,
    unix_socket_address,
)
from mdns_discovery.rpc.registration.registration_client import (
    RegistrationClient,
)
from mdns_discovery.threading.error_watcher import ErrorWatcher


def configure_logging(config: HandlerConfig) -> None:
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def run_discovery_handler(config: HandlerConfig) -> None:
    """Serves discovery requests until a fatal error is reported.

    Raises:
        Exception: The first fatal error seen by the error watcher.
    """
    watcher = ErrorWatcher()
    registration_signal = RegistrationSignal()
    browser = ZeroconfServiceBrowser(resolve_timeout_ms=config.resolve_timeout_ms)
    handler = DiscoveryHandler(browser, registration_signal, watcher)
    servicer = DiscoveryHandlerServicer(handler)

    if config.endpoint_type == "network":
        assert config.network_endpoint is not None
        address = config.network_endpoint
    else:
        os.makedirs(config.discovery_handlers_directory, exist_ok=True)
        address = unix_socket_address(config.socket_path)

    publisher = GrpcServicePublisher(watcher, address)
    await publisher.start_async(servicer.add_to_server)

    registration_client = RegistrationClient(config, registration_signal)
    registration_task = asyncio.create_task(registration_client.run())
    watcher.watch_task(registration_task)

    try:
        await watcher.run_until_exception()
    finally:
        logging.info("Shutting down discovery handler '%s'.", config.name)
        registration_task.cancel()
        await asyncio.gather(registration_task, return_exceptions=True)
        await handler.stop()
        await publisher.stop_async()
        await browser.close()


def main() -> None:
    config = HandlerConfig.from_environment()
    configure_logging(config)
    logging.info("Starting mDNS discovery handler with %s", config)
    try:
        asyncio.run(run_discovery_handler(config))
    except KeyboardInterrupt:
        logging.info("Interrupted.")
