"""mDNS service advertisement for ingress hostnames."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from zeroconf import Error as ZeroconfError
from zeroconf import IPVersion
from zeroconf.asyncio import AsyncServiceInfo, AsyncZeroconf

from ingress_mdns.errors import AdvertiserError

if TYPE_CHECKING:
    from ingress_mdns.network import IPAddress, NetworkInterface

logger = logging.getLogger(__name__)


class AdvertisementHandle:
    """A single registered service; shutting it down stops the broadcast."""

    def __init__(self, zeroconf: AsyncZeroconf, service_info: AsyncServiceInfo) -> None:
        """Initialize the handle."""
        self._zeroconf = zeroconf
        self._service_info = service_info
        self._active = True

    @property
    def name(self) -> str:
        """Fully qualified service instance name."""
        return self._service_info.name

    @property
    def active(self) -> bool:
        """Whether the service is still being broadcast."""
        return self._active

    async def shutdown(self) -> None:
        """Withdraw the service. Calling this more than once does nothing."""
        if not self._active:
            return
        self._active = False
        try:
            await self._zeroconf.async_unregister_service(self._service_info)
        except Exception:
            logger.exception("Error unregistering service %s", self._service_info.name)
        else:
            logger.debug("Withdrew %s", self._service_info.name)


class ZeroconfAdvertiser:
    """Broadcasts services via mDNS on one network interface."""

    def __init__(self, interface: NetworkInterface) -> None:
        """Initialize the advertiser.

        Args:
            interface: Interface to bind the mDNS responder to.
        """
        self._interface = interface
        self._zeroconf: AsyncZeroconf | None = None

    async def start(self) -> None:
        """Start the mDNS responder."""
        if self._zeroconf is not None:
            return

        addresses = self._interface.addresses
        ip_version = (
            IPVersion.All if any(a.version == 6 for a in addresses) else IPVersion.V4Only
        )
        self._zeroconf = AsyncZeroconf(
            interfaces=[str(a) for a in addresses],
            ip_version=ip_version,
        )
        logger.info(
            "mDNS responder bound to %s (%s)",
            self._interface.name,
            ", ".join(str(a) for a in addresses),
        )

    async def stop(self) -> None:
        """Stop the mDNS responder and release its sockets."""
        if self._zeroconf is not None:
            await self._zeroconf.async_close()
            self._zeroconf = None
            logger.debug("mDNS responder stopped")

    async def register(
        self,
        name: str,
        service_type: str,
        domain: str,
        port: int,
        target: str,
        addresses: Iterable[IPAddress],
        txt_records: Mapping[str, str],
    ) -> AdvertisementHandle:
        """Start broadcasting a service.

        Args:
            name: Service instance name, also used as the advertised hostname.
            service_type: Service type without domain (e.g. ``_http._tcp``).
            domain: mDNS domain, normally ``local.``.
            port: Port clients should connect to.
            target: Host the SRV record points at, without domain.
            addresses: Addresses of the target host.
            txt_records: TXT key/value pairs.

        Raises:
            AdvertiserError: The responder is not running or registration failed.
        """
        if self._zeroconf is None:
            raise AdvertiserError(f"Cannot register {name}, mDNS responder is not running")

        type_ = f"{service_type}.{domain}"
        try:
            service_info = AsyncServiceInfo(
                type_,
                f"{name}.{type_}",
                port=port,
                properties=dict(txt_records),
                server=f"{target}.{domain}",
                parsed_addresses=[str(a) for a in addresses],
            )
            await self._zeroconf.async_register_service(service_info)
        except (ZeroconfError, OSError, ValueError) as err:
            raise AdvertiserError(f"Unable to register {name}: {err}") from err

        logger.debug("Advertising %s on port %d", service_info.name, port)
        return AdvertisementHandle(self._zeroconf, service_info)

    async def __aenter__(self) -> ZeroconfAdvertiser:
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.stop()
