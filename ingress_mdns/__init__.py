"""Broadcast Kubernetes ingress hostnames via mDNS."""

__version__ = "1.0.0"
