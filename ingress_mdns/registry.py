"""Registry of the hostnames currently advertised via mDNS."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ingress_mdns.network import IPAddress
    from ingress_mdns.ports import PortResolver
    from ingress_mdns.records import NamedRecord

logger = logging.getLogger(__name__)

SERVICE_TYPE = "_http._tcp"
DOMAIN = "local."
TXT_RECORDS = {"txtv": "0", "lo": "1", "la": "2"}


class Handle(Protocol):
    """What the registry needs from an advertiser handle."""

    async def shutdown(self) -> None: ...


class Advertiser(Protocol):
    """What the registry needs from an advertiser."""

    async def register(
        self,
        name: str,
        service_type: str,
        domain: str,
        port: int,
        target: str,
        addresses: Iterable[IPAddress],
        txt_records: Mapping[str, str],
    ) -> Handle: ...


@dataclass
class Advertisement:
    """A live broadcast and the record it was created for."""

    record: NamedRecord
    handle: Handle


class AdvertisementRegistry:
    """Owns every live advertisement, keyed by record.

    The registry does no locking. It must be driven by a single consumer that
    awaits each call before making the next one; the watch loop does this by
    handling one Ingress event at a time.
    """

    def __init__(
        self,
        advertiser: Advertiser,
        ports: PortResolver,
        addresses: Iterable[IPAddress],
    ) -> None:
        """Initialize the registry.

        Args:
            advertiser: Advertiser used to start broadcasts.
            ports: Resolves the port each record points at.
            addresses: Addresses advertised for every hostname.
        """
        self._advertiser = advertiser
        self._ports = ports
        self._addresses = tuple(addresses)
        self._advertisements: dict[NamedRecord, Advertisement] = {}

    def __len__(self) -> int:
        return len(self._advertisements)

    def __contains__(self, record: object) -> bool:
        return record in self._advertisements

    @property
    def records(self) -> set[NamedRecord]:
        """Records currently being advertised."""
        return set(self._advertisements)

    async def register_all(self, records: Iterable[NamedRecord]) -> None:
        """Advertise each record in order.

        Re-registering a record withdraws its previous advertisement first.
        The first failure stops the batch: records after it are not attempted.

        Raises:
            PortLookupError: No port for the record's connection kind.
            AdvertiserError: The advertiser refused the registration.
        """
        for record in records:
            logger.info("Registering %s", record.hostname)
            port = self._ports.resolve(record)

            previous = self._advertisements.pop(record, None)
            if previous is not None:
                await previous.handle.shutdown()

            handle = await self._advertiser.register(
                record.hostname,
                SERVICE_TYPE,
                DOMAIN,
                port,
                record.hostname,
                self._addresses,
                TXT_RECORDS,
            )
            self._advertisements[record] = Advertisement(record=record, handle=handle)

    async def unregister_all(self, records: Iterable[NamedRecord]) -> None:
        """Withdraw each record that is advertised; others are skipped."""
        for record in records:
            advertisement = self._advertisements.pop(record, None)
            if advertisement is None:
                continue
            logger.info("Unregistering %s", record.hostname)
            await advertisement.handle.shutdown()

    async def teardown(self) -> None:
        """Withdraw everything. Called once on shutdown."""
        await self.unregister_all(list(self._advertisements))
