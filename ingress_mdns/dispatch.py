"""Turn Ingress add/update/delete events into registry calls."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ingress_mdns.errors import AdvertiserError, PortLookupError
from ingress_mdns.records import DEFAULT_DOMAIN_SUFFIX, NamedRecord, extract_hostnames
from ingress_mdns.watcher import EventKind, IngressEvent

if TYPE_CHECKING:
    from ingress_mdns.registry import AdvertisementRegistry

logger = logging.getLogger(__name__)


def _ingress_name(ingress: Any) -> str:
    metadata = getattr(ingress, "metadata", None)
    namespace = getattr(metadata, "namespace", None)
    name = getattr(metadata, "name", None) or "<unnamed>"
    return f"{namespace}/{name}" if namespace else name


class IngressEventHandler:
    """Keeps the registry in line with the Ingress objects seen so far."""

    def __init__(
        self, registry: AdvertisementRegistry, domain_suffix: str = DEFAULT_DOMAIN_SUFFIX
    ) -> None:
        """Initialize the handler.

        Args:
            registry: Registry to update.
            domain_suffix: Host suffix that marks a hostname for advertisement.
        """
        self._registry = registry
        self._domain_suffix = domain_suffix

    def hostnames(self, ingress: Any) -> list[NamedRecord]:
        """Records wanted by an Ingress."""
        return extract_hostnames(ingress, self._domain_suffix)

    async def handle(self, event: IngressEvent) -> None:
        """Apply one event. Errors are logged, never raised."""
        try:
            if event.kind is EventKind.ADDED:
                await self.on_added(event.ingress)
            elif event.kind is EventKind.DELETED:
                await self.on_deleted(event.ingress)
            else:
                await self.on_updated(event.old, event.ingress)
        except Exception:
            logger.exception(
                "Unexpected error handling %s event for %s",
                event.kind.value,
                _ingress_name(event.ingress),
            )

    async def on_added(self, ingress: Any) -> None:
        """Advertise the hostnames of a new Ingress."""
        await self._register(ingress, self.hostnames(ingress))

    async def on_deleted(self, ingress: Any) -> None:
        """Withdraw the hostnames of a deleted Ingress."""
        await self._registry.unregister_all(self.hostnames(ingress))

    async def on_updated(self, old: Any, new: Any) -> None:
        """Re-advertise if the set of hostnames changed.

        Old hostnames are withdrawn before new ones are announced so a
        hostname is never broadcast twice.
        """
        old_hostnames = self.hostnames(old)
        new_hostnames = self.hostnames(new)
        if set(old_hostnames) == set(new_hostnames):
            return
        logger.info("Ingress %s changed, re-registering hostnames", _ingress_name(new))
        await self._registry.unregister_all(old_hostnames)
        await self._register(new, new_hostnames)

    async def _register(self, ingress: Any, records: list[NamedRecord]) -> None:
        try:
            await self._registry.register_all(records)
        except (PortLookupError, AdvertiserError) as err:
            logger.error("Failed to register hostnames of %s: %s", _ingress_name(ingress), err)
