"""Watch Ingress resources and queue add/update/delete events."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from aiohttp import ClientError
from kubernetes_asyncio import client, watch
from kubernetes_asyncio.client.rest import ApiException

logger = logging.getLogger(__name__)

WATCH_TIMEOUT_SECONDS = 300
MAX_BACKOFF_SECONDS = 300.0
HTTP_GONE = 410


class EventKind(Enum):
    """Kind of change seen for an Ingress."""

    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass
class IngressEvent:
    """A change to one Ingress. ``old`` is only set for updates."""

    kind: EventKind
    ingress: Any
    old: Any = None


class WatchExpiredError(Exception):
    """The watch resource version is too old; a full relist is needed."""


def ingress_key(ingress: Any) -> str:
    """Cache key of an Ingress, ``namespace/name``."""
    return f"{ingress.metadata.namespace}/{ingress.metadata.name}"


def _resource_version(ingress: Any) -> str | None:
    return ingress.metadata.resource_version


class IngressWatcher:
    """Lists and watches Ingress objects, feeding events into a queue.

    The current state of every Ingress is kept so that modifications carry the
    previous object and a relist after a dropped watch emits only what
    actually changed while disconnected.
    """

    def __init__(
        self,
        api_client: client.ApiClient,
        namespace: str | None = None,
        watch_timeout: int = WATCH_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the watcher.

        Args:
            api_client: Kubernetes API client.
            namespace: Only watch this namespace; all namespaces when None.
            watch_timeout: Server side timeout of a single watch request.
        """
        api = client.NetworkingV1Api(api_client)
        # watch.Watch reads the model type from the list method docstring; keep it unwrapped.
        if namespace:
            self._list_func = api.list_namespaced_ingress
            self._list_args: tuple[str, ...] = (namespace,)
        else:
            self._list_func = api.list_ingress_for_all_namespaces
            self._list_args = ()
        self._namespace = namespace
        self._watch_timeout = watch_timeout
        self._cache: dict[str, Any] = {}

    @property
    def known(self) -> dict[str, Any]:
        """Last seen state of every Ingress, keyed by ``namespace/name``."""
        return dict(self._cache)

    async def run(self, queue: asyncio.Queue[IngressEvent]) -> None:
        """List and watch forever; stops only when cancelled."""
        logger.debug("Watching ingresses in %s", self._namespace or "all namespaces")
        error_backoff = 1.0
        resource_version: str | None = None

        while True:
            try:
                if resource_version is None:
                    resource_version = await self.relist(queue)
                resource_version = await self._watch(queue, resource_version)
                error_backoff = 1.0
            except WatchExpiredError:
                logger.info("Ingress watch expired, relisting")
                resource_version = None
            except ApiException as e:
                resource_version = None
                if e.status == HTTP_GONE:
                    logger.info("Ingress watch expired, relisting")
                    continue
                logger.warning(
                    "Kubernetes API error (%s %s), retrying in %.0fs",
                    e.status,
                    e.reason,
                    error_backoff,
                )
                await asyncio.sleep(error_backoff)
                error_backoff = min(error_backoff * 2, MAX_BACKOFF_SECONDS)
            except (TimeoutError, OSError, ClientError) as e:
                resource_version = None
                logger.warning(
                    "Connection error (%s), retrying in %.0fs",
                    type(e).__name__,
                    error_backoff,
                )
                await asyncio.sleep(error_backoff)
                error_backoff = min(error_backoff * 2, MAX_BACKOFF_SECONDS)
            except Exception:
                resource_version = None
                logger.exception("Unexpected error while watching ingresses")
                await asyncio.sleep(error_backoff)
                error_backoff = min(error_backoff * 2, MAX_BACKOFF_SECONDS)

    async def relist(self, queue: asyncio.Queue[IngressEvent]) -> str | None:
        """List every Ingress and queue the differences with the cached state.

        Returns:
            Resource version to start watching from.
        """
        result = await self._list_func(*self._list_args)
        current: dict[str, Any] = {}
        for ingress in result.items or []:
            key = ingress_key(ingress)
            current[key] = ingress
            old = self._cache.get(key)
            if old is None:
                queue.put_nowait(IngressEvent(EventKind.ADDED, ingress))
            elif _resource_version(old) != _resource_version(ingress):
                queue.put_nowait(IngressEvent(EventKind.UPDATED, ingress, old=old))
        for key, old in self._cache.items():
            if key not in current:
                queue.put_nowait(IngressEvent(EventKind.DELETED, old))
        self._cache = current
        logger.debug("Listed %d ingresses", len(current))
        return result.metadata.resource_version if result.metadata else None

    async def _watch(
        self, queue: asyncio.Queue[IngressEvent], resource_version: str | None
    ) -> str | None:
        async with watch.Watch().stream(
            self._list_func,
            *self._list_args,
            resource_version=resource_version,
            timeout_seconds=self._watch_timeout,
        ) as stream:
            async for event in stream:
                version = self.apply(queue, event["type"], event["object"])
                resource_version = version or resource_version
        return resource_version

    def apply(self, queue: asyncio.Queue[IngressEvent], event_type: str, obj: Any) -> str | None:
        """Apply one raw watch event to the cache and queue what it means.

        Returns:
            The resource version carried by the event, if any.

        Raises:
            WatchExpiredError: The API server reported an error on the watch.
        """
        if event_type == "ERROR":
            raise WatchExpiredError(str(obj))
        if event_type not in ("ADDED", "MODIFIED", "DELETED"):
            logger.debug("Ignoring %s watch event", event_type)
            return None

        key = ingress_key(obj)
        if event_type == "DELETED":
            self._cache.pop(key, None)
            queue.put_nowait(IngressEvent(EventKind.DELETED, obj))
        else:
            old = self._cache.get(key)
            self._cache[key] = obj
            if old is None:
                queue.put_nowait(IngressEvent(EventKind.ADDED, obj))
            else:
                queue.put_nowait(IngressEvent(EventKind.UPDATED, obj, old=old))
        return _resource_version(obj)
