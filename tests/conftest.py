"""Shared fixtures for ingress-mdns tests."""

from __future__ import annotations

import ipaddress

import pytest
from kubernetes_asyncio.client import (
    V1Ingress,
    V1IngressRule,
    V1IngressSpec,
    V1IngressTLS,
    V1ObjectMeta,
)

from ingress_mdns.errors import AdvertiserError
from ingress_mdns.ports import PortResolver
from ingress_mdns.registry import AdvertisementRegistry

HOST_IP = ipaddress.ip_address("192.168.1.10")


def make_ingress(
    *hosts: str,
    tls: bool = False,
    name: str = "web",
    namespace: str = "default",
    resource_version: str = "1",
) -> V1Ingress:
    """Build an Ingress with one rule per host."""
    return V1Ingress(
        metadata=V1ObjectMeta(name=name, namespace=namespace, resource_version=resource_version),
        spec=V1IngressSpec(
            rules=[V1IngressRule(host=host) for host in hosts],
            tls=[V1IngressTLS(hosts=list(hosts))] if tls else None,
        ),
    )


class FakeHandle:
    """Advertiser handle that records its shutdown."""

    def __init__(self, name: str, log: list[tuple[str, str]]) -> None:
        self.name = name
        self.shutdown_calls = 0
        self._log = log

    @property
    def active(self) -> bool:
        return self.shutdown_calls == 0

    async def shutdown(self) -> None:
        self.shutdown_calls += 1
        self._log.append(("shutdown", self.name))


class FakeAdvertiser:
    """Advertiser that keeps every handle and the order of all calls."""

    def __init__(self) -> None:
        self.log: list[tuple[str, str]] = []
        self.handles: list[FakeHandle] = []
        self.calls: list[dict] = []
        self.fail_on: set[str] = set()

    async def register(self, name, service_type, domain, port, target, addresses, txt_records):
        if name in self.fail_on:
            raise AdvertiserError(f"Unable to register {name}")
        self.calls.append(
            {
                "name": name,
                "service_type": service_type,
                "domain": domain,
                "port": port,
                "target": target,
                "addresses": tuple(addresses),
                "txt_records": dict(txt_records),
            }
        )
        handle = FakeHandle(name, self.log)
        self.handles.append(handle)
        self.log.append(("register", name))
        return handle

    def live(self, name: str | None = None) -> list[FakeHandle]:
        """Handles not shut down yet, optionally only those for one name."""
        return [h for h in self.handles if h.active and (name is None or h.name == name)]


@pytest.fixture
def advertiser() -> FakeAdvertiser:
    return FakeAdvertiser()


@pytest.fixture
def ports() -> PortResolver:
    return PortResolver({80: 30080, 443: 30443}, 80, 443, "ingress-nginx.ingress-nginx")


@pytest.fixture
def registry(advertiser: FakeAdvertiser, ports: PortResolver) -> AdvertisementRegistry:
    return AdvertisementRegistry(advertiser, ports, [HOST_IP])
