"""Hostnames wanted by Ingress resources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_DOMAIN_SUFFIX = ".local"


@dataclass(frozen=True)
class NamedRecord:
    """A local hostname and whether it is served over TLS."""

    is_secure: bool
    hostname: str


def normalize_suffix(suffix: str) -> str:
    """Return the suffix with exactly one leading dot."""
    return "." + suffix.strip().lstrip(".")


def extract_hostnames(ingress: Any, suffix: str = DEFAULT_DOMAIN_SUFFIX) -> list[NamedRecord]:
    """Return the local hostnames declared by an Ingress, in rule order.

    The same Ingress can carry both cleartext and TLS hosts, but TLS is only
    detected for the Ingress as a whole: if any TLS block is present every
    hostname is marked secure.

    Args:
        ingress: An Ingress object (``V1Ingress`` or anything shaped like it).
        suffix: Domain suffix a host must end with to be advertised.

    Returns:
        One record per matching rule, suffix stripped. Duplicates are kept.
    """
    spec = getattr(ingress, "spec", None)
    if spec is None:
        return []

    suffix = normalize_suffix(suffix)
    is_secure = bool(getattr(spec, "tls", None))
    records = []
    for rule in getattr(spec, "rules", None) or []:
        host = getattr(rule, "host", None)
        if not isinstance(host, str) or not host.endswith(suffix):
            continue
        hostname = host[: -len(suffix)]
        if not hostname:
            continue
        records.append(NamedRecord(is_secure=is_secure, hostname=hostname))
    return records
