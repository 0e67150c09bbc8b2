"""Daemon that broadcasts Ingress hostnames via mDNS until interrupted."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from dataclasses import dataclass

from kubernetes_asyncio import client

from ingress_mdns.advertisement import ZeroconfAdvertiser
from ingress_mdns.dispatch import IngressEventHandler
from ingress_mdns.errors import FatalStartupError
from ingress_mdns.kube import create_api_client
from ingress_mdns.network import locate_interface
from ingress_mdns.ports import (
    STATIC_SERVICE_NAME,
    PortIdentifier,
    PortResolver,
    fetch_port_map,
    parse_port_identifier,
    static_port_map,
)
from ingress_mdns.records import DEFAULT_DOMAIN_SUFFIX
from ingress_mdns.registry import AdvertisementRegistry
from ingress_mdns.utils import cancel_and_wait
from ingress_mdns.watcher import IngressEvent, IngressWatcher

logger = logging.getLogger(__name__)

DEFAULT_INTERFACE = "eth0"


@dataclass
class DaemonConfig:
    """Configuration for the ingress-mdns daemon."""

    interface: str = DEFAULT_INTERFACE
    service: str | None = None
    cleartext_port: PortIdentifier = 80
    tls_port: PortIdentifier = 443
    domain_suffix: str = DEFAULT_DOMAIN_SUFFIX
    namespace: str | None = None
    kubeconfig: str | None = None


class IngressMdnsDaemon:
    """Keeps mDNS advertisements in line with the cluster's Ingress hostnames."""

    def __init__(self, config: DaemonConfig) -> None:
        """Initialize the daemon."""
        self._config = config
        self._shutdown_event = asyncio.Event()

    def request_shutdown(self) -> None:
        """Stop consuming events and tear down all advertisements."""
        self._shutdown_event.set()

    async def run(self) -> int:
        """Run the daemon.

        Returns:
            Process exit status: 0 after a clean shutdown, 1 if startup failed.
        """
        try:
            await self._run()
        except FatalStartupError as err:
            logger.error("%s", err)
            return 1
        return 0

    async def _run(self) -> None:
        config = self._config
        interface = locate_interface(config.interface)
        api_client = await create_api_client(config.kubeconfig)

        async with api_client:
            ports = await self.create_port_resolver(api_client)

            advertiser = ZeroconfAdvertiser(interface)
            await advertiser.start()
            try:
                registry = AdvertisementRegistry(
                    advertiser, ports, interface.advertised_addresses
                )
                handler = IngressEventHandler(registry, config.domain_suffix)
                watcher = IngressWatcher(api_client, namespace=config.namespace)

                loop = asyncio.get_running_loop()

                def signal_handler() -> None:
                    logger.debug("Received interrupt signal, shutting down...")
                    self.request_shutdown()

                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(signal.SIGINT, signal_handler)
                    loop.add_signal_handler(signal.SIGTERM, signal_handler)

                logger.info(
                    "Broadcasting *%s ingress hostnames on %s",
                    config.domain_suffix,
                    interface.name,
                )
                try:
                    await self.consume(watcher, handler)
                finally:
                    with contextlib.suppress(NotImplementedError):
                        loop.remove_signal_handler(signal.SIGINT)
                        loop.remove_signal_handler(signal.SIGTERM)
                    await registry.teardown()
            finally:
                await advertiser.stop()
                logger.info("Daemon stopped")

    async def create_port_resolver(self, api_client: client.ApiClient) -> PortResolver:
        """Build the port resolver from the ingress controller service, if one is set."""
        config = self._config
        cleartext_port = parse_port_identifier(config.cleartext_port)
        tls_port = parse_port_identifier(config.tls_port)

        if config.service is None:
            return PortResolver(
                static_port_map(cleartext_port, tls_port),
                cleartext_port,
                tls_port,
                STATIC_SERVICE_NAME,
            )
        port_map = await fetch_port_map(api_client, config.service)
        return PortResolver(port_map, cleartext_port, tls_port, config.service)

    async def consume(self, watcher: IngressWatcher, handler: IngressEventHandler) -> None:
        """Handle watch events one at a time until shutdown is requested."""
        queue: asyncio.Queue[IngressEvent] = asyncio.Queue()
        watch_task = asyncio.create_task(watcher.run(queue), name="ingress-watch")
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())

        try:
            while True:
                get_task = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {get_task, shutdown_task, watch_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if shutdown_task in done or watch_task in done:
                    await cancel_and_wait(get_task)
                    break
                await handler.handle(get_task.result())
        finally:
            await cancel_and_wait(watch_task, shutdown_task)
