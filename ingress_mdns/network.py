"""Locate the network interface hostnames are broadcast on."""

from __future__ import annotations

import ipaddress
import logging
import socket
from dataclasses import dataclass

import psutil

from ingress_mdns.errors import InterfaceNotFoundError

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_INET_FAMILIES = (socket.AF_INET, socket.AF_INET6)


@dataclass(frozen=True)
class NetworkInterface:
    """A local interface and the addresses bound to it."""

    name: str
    addresses: tuple[IPAddress, ...]
    selected_ip: IPAddress | None = None

    @property
    def advertised_addresses(self) -> tuple[IPAddress, ...]:
        """Addresses put in the A/AAAA records.

        When the interface was selected by IP only that IP is advertised,
        otherwise every address bound to the interface.
        """
        if self.selected_ip is not None:
            return (self.selected_ip,)
        return self.addresses


def _parse_address(raw: str) -> IPAddress | None:
    # IPv6 link-local addresses come back as "fe80::1%eth0"
    try:
        return ipaddress.ip_address(raw.split("%", 1)[0])
    except ValueError:
        return None


def list_interfaces() -> dict[str, tuple[IPAddress, ...]]:
    """Return every local interface with its IPv4 and IPv6 addresses."""
    interfaces = {}
    for name, snics in (psutil.net_if_addrs() or {}).items():
        addresses = []
        for snic in snics:
            if snic.family not in _INET_FAMILIES:
                continue
            address = _parse_address(str(snic.address or ""))
            if address is not None and address not in addresses:
                addresses.append(address)
        interfaces[name] = tuple(addresses)
    return interfaces


def _describe(interfaces: dict[str, tuple[IPAddress, ...]]) -> str:
    return "\n".join(
        f"{name} (IPs: {', '.join(str(a) for a in addresses)})"
        for name, addresses in interfaces.items()
    )


def locate_interface(selector: str) -> NetworkInterface:
    """Find the interface matching a name or a bound IP address.

    Args:
        selector: Interface name (e.g. ``eth0``) or an IP address bound to it.

    Raises:
        InterfaceNotFoundError: Nothing matches; the message lists every
            available interface and its IPs.
    """
    interfaces = list_interfaces()
    try:
        wanted_ip: IPAddress | None = ipaddress.ip_address(selector)
    except ValueError:
        wanted_ip = None

    if wanted_ip is None:
        logger.debug("Determining IPs of %s", selector)
        addresses = interfaces.get(selector)
        if addresses is not None:
            logger.debug(
                "Broadcast IPs are: %s", ", ".join(str(a) for a in addresses) or "(none)"
            )
            return NetworkInterface(name=selector, addresses=addresses)
        raise InterfaceNotFoundError(
            f"No IP found for interface {selector}, available interfaces are:\n"
            f"{_describe(interfaces)}"
        )

    for name, addresses in interfaces.items():
        if wanted_ip in addresses:
            logger.debug("Found interface %s for %s", name, wanted_ip)
            return NetworkInterface(name=name, addresses=addresses, selected_ip=wanted_ip)
    raise InterfaceNotFoundError(
        f"No interface with IP {wanted_ip} was found, available interfaces are:\n"
        f"{_describe(interfaces)}"
    )
