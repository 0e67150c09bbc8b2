"""Resolve the port each advertised hostname points at."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kubernetes_asyncio import client
from kubernetes_asyncio.client.rest import ApiException

from ingress_mdns.errors import PortLookupError, ServiceIdentifierError, ServiceLookupError

if TYPE_CHECKING:
    from ingress_mdns.records import NamedRecord

logger = logging.getLogger(__name__)

PortIdentifier = int | str
PortMap = dict[PortIdentifier, int]

STATIC_SERVICE_NAME = "(static ports)"


def parse_port_identifier(value: str | int) -> PortIdentifier:
    """Return a numeric target port as int, a named target port as str."""
    if isinstance(value, int):
        return value
    value = value.strip()
    try:
        return int(value)
    except ValueError:
        return value


def parse_service_identifier(service: str) -> tuple[str, str]:
    """Split ``NAME.NAMESPACE`` into its two parts.

    Raises:
        ServiceIdentifierError: The identifier does not contain exactly one dot.
    """
    if service.count(".") != 1:
        raise ServiceIdentifierError(
            f"--service must be supplied as SERVICENAME.NAMESPACE, you gave {service}"
        )
    name, namespace = service.split(".", 1)
    if not name or not namespace:
        raise ServiceIdentifierError(
            f"--service must be supplied as SERVICENAME.NAMESPACE, you gave {service}"
        )
    return name, namespace


async def fetch_port_map(api_client: client.ApiClient, service: str) -> PortMap:
    """Map each target port of a service to its externally reachable node port.

    Args:
        api_client: Kubernetes API client.
        service: Service identifier as ``NAME.NAMESPACE``.

    Raises:
        ServiceIdentifierError: Malformed identifier.
        ServiceLookupError: The service could not be read.
    """
    name, namespace = parse_service_identifier(service)
    logger.debug("Getting port mapping for %s", service)
    try:
        svc = await client.CoreV1Api(api_client).read_namespaced_service(name, namespace)
    except ApiException as err:
        raise ServiceLookupError(
            f"Unable to read ingress controller service {service}: {err.status} {err.reason}"
        ) from err

    port_map: PortMap = {}
    for port in (svc.spec.ports if svc.spec else None) or []:
        if not port.node_port:
            logger.debug("Port %s of %s has no node port, skipping", port.name, service)
            continue
        target = port.target_port if port.target_port is not None else port.port
        port_map[parse_port_identifier(target)] = port.node_port
    logger.debug("Port mapping for %s is: %s", service, port_map)
    return port_map


def static_port_map(*identifiers: PortIdentifier) -> PortMap:
    """Port map for the host network deployment, numeric ports map to themselves."""
    return {i: i for i in identifiers if isinstance(i, int)}


class PortResolver:
    """Picks the cleartext or TLS port for a hostname.

    Lookups happen on demand: a cluster may only expose one of the two ports,
    and only hostnames actually needing the missing one should fail.
    """

    def __init__(
        self,
        port_map: PortMap,
        cleartext_port: PortIdentifier,
        tls_port: PortIdentifier,
        service_name: str = STATIC_SERVICE_NAME,
    ) -> None:
        """Initialize the resolver.

        Args:
            port_map: Target port to external port mapping.
            cleartext_port: Target port used for cleartext hostnames.
            tls_port: Target port used for TLS hostnames.
            service_name: Name of the service the map was built from, for errors.
        """
        self._port_map = port_map
        self._cleartext_port = cleartext_port
        self._tls_port = tls_port
        self._service_name = service_name
        self._resolved: dict[bool, int] = {}

    def resolve(self, record: NamedRecord) -> int:
        """Return the external port for the record's connection kind.

        Raises:
            PortLookupError: The selected target port is not in the port map.
        """
        port = self._resolved.get(record.is_secure)
        if port is not None:
            return port

        identifier = self._tls_port if record.is_secure else self._cleartext_port
        port = self._port_map.get(identifier)
        if port is None:
            raise PortLookupError(record.hostname, identifier, self._service_name)
        self._resolved[record.is_secure] = port
        return port
