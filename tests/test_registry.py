"""Tests for the advertisement registry."""

import subprocess
import sys

import pytest

from ingress_mdns.errors import AdvertiserError, PortLookupError
from ingress_mdns.ports import PortResolver
from ingress_mdns.records import NamedRecord
from ingress_mdns.registry import DOMAIN, SERVICE_TYPE, TXT_RECORDS, AdvertisementRegistry

from .conftest import HOST_IP

FOO = NamedRecord(False, "foo")
BAR = NamedRecord(False, "bar")
SECURE_FOO = NamedRecord(True, "foo")


class TestRegisterAll:
    """Tests for AdvertisementRegistry.register_all."""

    @pytest.mark.asyncio
    async def test_registers_with_resolved_parameters(self, registry, advertiser):
        await registry.register_all([FOO, NamedRecord(True, "secure")])

        assert registry.records == {FOO, NamedRecord(True, "secure")}
        assert advertiser.calls == [
            {
                "name": "foo",
                "service_type": SERVICE_TYPE,
                "domain": DOMAIN,
                "port": 30080,
                "target": "foo",
                "addresses": (HOST_IP,),
                "txt_records": TXT_RECORDS,
            },
            {
                "name": "secure",
                "service_type": SERVICE_TYPE,
                "domain": DOMAIN,
                "port": 30443,
                "target": "secure",
                "addresses": (HOST_IP,),
                "txt_records": TXT_RECORDS,
            },
        ]

    @pytest.mark.asyncio
    async def test_registering_twice_keeps_one_live_advertisement(self, registry, advertiser):
        await registry.register_all([FOO])
        await registry.register_all([FOO])

        assert len(registry) == 1
        assert len(advertiser.live("foo")) == 1
        first, second = advertiser.handles
        assert first.shutdown_calls == 1
        assert second.shutdown_calls == 0
        assert advertiser.log == [("register", "foo"), ("shutdown", "foo"), ("register", "foo")]

    @pytest.mark.asyncio
    async def test_duplicates_in_one_batch(self, registry, advertiser):
        await registry.register_all([FOO, FOO, FOO])

        assert registry.records == {FOO}
        assert len(advertiser.live()) == 1

    @pytest.mark.asyncio
    async def test_port_lookup_failure_stops_the_batch(self, advertiser):
        registry = AdvertisementRegistry(
            advertiser, PortResolver({80: 30080}, 80, 443, "svc.ns"), [HOST_IP]
        )

        with pytest.raises(PortLookupError) as exc_info:
            await registry.register_all([FOO, NamedRecord(True, "secure"), BAR])

        assert exc_info.value.hostname == "secure"
        assert exc_info.value.port_identifier == 443
        assert exc_info.value.service_name == "svc.ns"
        assert registry.records == {FOO}
        assert [h.name for h in advertiser.live()] == ["foo"]

    @pytest.mark.asyncio
    async def test_advertiser_failure_stops_the_batch(self, registry, advertiser):
        advertiser.fail_on.add("bar")

        with pytest.raises(AdvertiserError):
            await registry.register_all([FOO, BAR, NamedRecord(False, "baz")])

        assert registry.records == {FOO}
        assert [h.name for h in advertiser.live()] == ["foo"]

    @pytest.mark.asyncio
    async def test_failed_reregistration_leaves_no_entry(self, registry, advertiser):
        await registry.register_all([FOO])
        advertiser.fail_on.add("foo")

        with pytest.raises(AdvertiserError):
            await registry.register_all([FOO])

        assert FOO not in registry
        assert advertiser.live() == []


class TestUnregisterAll:
    """Tests for AdvertisementRegistry.unregister_all."""

    @pytest.mark.asyncio
    async def test_unregisters_present_records(self, registry, advertiser):
        await registry.register_all([FOO, BAR])

        await registry.unregister_all([FOO])

        assert registry.records == {BAR}
        assert [h.name for h in advertiser.live()] == ["bar"]

    @pytest.mark.asyncio
    async def test_is_idempotent(self, registry, advertiser):
        await registry.register_all([FOO])

        await registry.unregister_all([FOO])
        await registry.unregister_all([FOO])

        assert len(registry) == 0
        assert advertiser.handles[0].shutdown_calls == 1

    @pytest.mark.asyncio
    async def test_unknown_records_are_skipped(self, registry, advertiser):
        await registry.unregister_all([FOO, SECURE_FOO])

        assert len(registry) == 0
        assert advertiser.log == []

    @pytest.mark.asyncio
    async def test_secure_and_cleartext_are_distinct(self, registry, advertiser):
        await registry.register_all([FOO])

        await registry.unregister_all([SECURE_FOO])

        assert registry.records == {FOO}


class TestTeardown:
    """Tests for AdvertisementRegistry.teardown."""

    @pytest.mark.asyncio
    async def test_empty_registry(self, registry, advertiser):
        await registry.teardown()

        assert len(registry) == 0
        assert advertiser.log == []

    @pytest.mark.asyncio
    async def test_single_entry(self, registry, advertiser):
        await registry.register_all([FOO])

        await registry.teardown()

        assert len(registry) == 0
        assert advertiser.handles[0].shutdown_calls == 1

    @pytest.mark.asyncio
    async def test_many_entries_each_shut_down_once(self, registry, advertiser):
        records = [NamedRecord(i % 2 == 0, f"host{i}") for i in range(10)]
        await registry.register_all(records)

        await registry.teardown()
        await registry.teardown()

        assert len(registry) == 0
        assert [h.shutdown_calls for h in advertiser.handles] == [1] * 10


class TestImports:
    """Tests for the registry's module dependencies."""

    def test_registry_does_not_load_zeroconf(self):
        code = "import sys, ingress_mdns.registry; sys.exit('zeroconf' in sys.modules)"

        result = subprocess.run([sys.executable, "-c", code], check=False)

        assert result.returncode == 0
