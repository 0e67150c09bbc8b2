"""Exception types raised by ingress-mdns."""

from __future__ import annotations


class IngressMdnsError(Exception):
    """Base class for all ingress-mdns errors."""


class FatalStartupError(IngressMdnsError):
    """The daemon cannot start; the process exits with a non-zero status."""


class InterfaceNotFoundError(FatalStartupError):
    """No local interface matches the configured name or IP."""


class ServiceIdentifierError(FatalStartupError):
    """The ingress controller service was not given as NAME.NAMESPACE."""


class ServiceLookupError(FatalStartupError):
    """The ingress controller service could not be read from the cluster."""


class KubeConfigError(FatalStartupError):
    """Cluster credentials could not be loaded."""


class PortLookupError(IngressMdnsError, LookupError):
    """A hostname needs a port the ingress controller service does not expose."""

    def __init__(self, hostname: str, port_identifier: int | str, service_name: str) -> None:
        """Initialize the error.

        Args:
            hostname: Hostname that was being registered.
            port_identifier: Target port (number or name) that was looked up.
            service_name: Service the port map was built from.
        """
        self.hostname = hostname
        self.port_identifier = port_identifier
        self.service_name = service_name
        super().__init__(
            f"Unable to register {hostname}, target port {port_identifier} "
            f"not present in ingress controller service {service_name}"
        )


class AdvertiserError(IngressMdnsError):
    """The mDNS advertiser refused to register a hostname."""
