"""Tests for snmp_counter_rate.collectors.snmp_collector."""
import asyncio
import socket
import time
from unittest.mock import MagicMock

import pytest
from pysnmp.proto import errind, rfc1902, rfc1905

from snmp_counter_rate.collectors import snmp_collector
from snmp_counter_rate.collectors.snmp_collector import (
    FetchError,
    FetchTimeout,
    SNMPCollector,
    to_counter,
)
from tests.conftest import HOST, OID


class FakeTransport:
    created = []

    @classmethod
    async def create(cls, address, timeout=None, retries=None):
        cls.created.append((address, timeout, retries))
        return cls()


@pytest.fixture
def fake_snmp(monkeypatch):
    """Replace the pysnmp engine, transport and GET with fakes."""
    state = {"response": (None, 0, 0, [])}
    FakeTransport.created = []

    async def fake_get_cmd(engine, auth, transport, context, *object_types):
        return state["response"]

    monkeypatch.setattr(snmp_collector, "SnmpEngine", MagicMock())
    monkeypatch.setattr(snmp_collector, "UdpTransportTarget", FakeTransport)
    monkeypatch.setattr(snmp_collector, "get_cmd", fake_get_cmd)
    return state


class TestToCounter:
    def test_counter32(self):
        assert to_counter(rfc1902.Counter32(1234), OID) == 1234

    def test_counter64(self):
        assert to_counter(rfc1902.Counter64(2 ** 40), OID) == 2 ** 40

    def test_plain_int(self):
        assert to_counter(5, OID) == 5

    def test_numeric_string(self):
        assert to_counter(" 17 ", OID) == 17

    def test_non_numeric_is_fetch_error(self):
        with pytest.raises(FetchError, match="non-numeric"):
            to_counter(rfc1902.OctetString("eth0"), OID)

    def test_negative_is_fetch_error(self):
        with pytest.raises(FetchError, match="negative"):
            to_counter(rfc1902.Integer32(-3), OID)

    def test_no_such_instance_is_fetch_error(self):
        with pytest.raises(FetchError, match="does not exist"):
            to_counter(rfc1905.noSuchInstance, OID)


class TestFetchCounter:
    def test_returns_integer_value(self, fake_snmp):
        fake_snmp["response"] = (None, 0, 0, [(OID, rfc1902.Counter32(4242))])
        collector = SNMPCollector(community="secret", port=1161, timeout=3)

        assert collector.fetch_counter_sync(HOST, OID) == 4242
        assert FakeTransport.created == [((HOST, 1161), 3, 0)]

    def test_error_indication(self, fake_snmp):
        fake_snmp["response"] = ("Network unreachable", 0, 0, [])
        with pytest.raises(FetchError, match="Network unreachable"):
            SNMPCollector().fetch_counter_sync(HOST, OID)

    def test_client_timeout_is_fetch_timeout(self, fake_snmp):
        fake_snmp["response"] = (errind.requestTimedOut, 0, 0, [])
        with pytest.raises(FetchTimeout):
            SNMPCollector().fetch_counter_sync(HOST, OID)

    def test_error_status(self, fake_snmp):
        fake_snmp["response"] = (None, rfc1902.Integer32(2), 1, [])
        with pytest.raises(FetchError, match="error status"):
            SNMPCollector().fetch_counter_sync(HOST, OID)

    def test_empty_varbinds(self, fake_snmp):
        with pytest.raises(FetchError, match="No value"):
            SNMPCollector().fetch_counter_sync(HOST, OID)

    def test_unexpected_client_error_is_fetch_error(self, monkeypatch):
        async def broken_get_oid(self, ip, oid):
            raise RuntimeError("bad address")

        monkeypatch.setattr(SNMPCollector, "_get_oid", broken_get_oid)
        with pytest.raises(FetchError, match="bad address"):
            SNMPCollector().fetch_counter_sync(HOST, OID)

    def test_hanging_client_is_cut_off(self, monkeypatch):
        async def hanging_get_oid(self, ip, oid):
            await asyncio.sleep(30)

        monkeypatch.setattr(SNMPCollector, "_get_oid", hanging_get_oid)
        collector = SNMPCollector(timeout=0.1)

        started = time.monotonic()
        with pytest.raises(FetchTimeout, match="timed out"):
            collector.fetch_counter_sync(HOST, OID)
        assert time.monotonic() - started < 5


class TestResolution:
    def test_resolved_address_is_used(self, fake_snmp, monkeypatch):
        def fake_getaddrinfo(host, port, family=0, type=0, *args):
            assert host == "router.example"
            return [(socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("198.51.100.7", port))]

        monkeypatch.setattr(socket, "getaddrinfo", fake_getaddrinfo)
        fake_snmp["response"] = (None, 0, 0, [(OID, rfc1902.Counter32(1))])

        assert SNMPCollector().fetch_counter_sync("router.example", OID) == 1
        assert FakeTransport.created[0][0] == ("198.51.100.7", 161)

    def test_unknown_host_is_fetch_error(self, fake_snmp, monkeypatch):
        def failing_getaddrinfo(*args, **kwargs):
            raise socket.gaierror(-2, "Name or service not known")

        monkeypatch.setattr(socket, "getaddrinfo", failing_getaddrinfo)

        with pytest.raises(FetchError, match="Cannot resolve"):
            SNMPCollector().fetch_counter_sync("nowhere.example", OID)
        assert FakeTransport.created == []

    def test_stuck_resolver_is_cut_off(self, fake_snmp, monkeypatch):
        def slow_getaddrinfo(*args, **kwargs):
            time.sleep(4)
            return [(socket.AF_INET, socket.SOCK_DGRAM, 17, "", ("198.51.100.7", 161))]

        monkeypatch.setattr(socket, "getaddrinfo", slow_getaddrinfo)
        collector = SNMPCollector(timeout=0.3)

        started = time.monotonic()
        with pytest.raises(FetchTimeout):
            collector.fetch_counter_sync("slow.example", OID)
        assert time.monotonic() - started < 1.5
