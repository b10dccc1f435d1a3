"""
SNMP Counter Collector.

Reads a single integer counter from a remote SNMP agent with
one SNMPv2c GET, bounded by a timeout the collector enforces itself.
"""

import asyncio
import concurrent.futures
import logging
import socket
import threading
from typing import Any

from pysnmp.hlapi.v3arch.asyncio import (
    get_cmd,
    SnmpEngine,
    CommunityData,
    UdpTransportTarget,
    ContextData,
    ObjectType,
    ObjectIdentity,
)
from pysnmp.proto.errind import RequestTimedOut
from pysnmp.proto.rfc1905 import EndOfMibView, NoSuchInstance, NoSuchObject


logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the counter could not be read from the target."""


class FetchTimeout(FetchError):
    """Raised when the target did not answer within the timeout."""


class SNMPCollector:
    """
    Fetches counter values from remote SNMP agents.

    Uses SNMPv2c with a single attempt per fetch; the pysnmp
    transport is not trusted to honour the timeout, so the whole
    request is also wrapped in asyncio.wait_for.
    """

    def __init__(
        self,
        community: str = "public",
        port: int = 161,
        timeout: float = 10.0,
    ):
        self.community = community
        self.port = port
        self.timeout = timeout

    async def _get_oid(self, ip: str, oid: str) -> Any:
        """Get a single OID value from a host."""
        try:
            address = await asyncio.wrap_future(resolve_in_thread(ip, self.port))
        except socket.gaierror as e:
            raise FetchError(f"Cannot resolve {ip}: {e}")

        engine = SnmpEngine()
        try:
            transport = await UdpTransportTarget.create(
                (address, self.port), timeout=self.timeout, retries=0
            )
            errorIndication, errorStatus, errorIndex, varBinds = await get_cmd(
                engine,
                CommunityData(self.community, mpModel=1),
                transport,
                ContextData(),
                ObjectType(ObjectIdentity(oid)),
            )
        finally:
            engine.close_dispatcher()

        if isinstance(errorIndication, RequestTimedOut):
            raise FetchTimeout(f"SNMP request to {ip} timed out after {self.timeout}s")
        if errorIndication:
            raise FetchError(f"SNMP error for {ip}: {errorIndication}")
        if errorStatus:
            raise FetchError(
                f"SNMP error status for {ip}: {errorStatus.prettyPrint()} "
                f"at index {errorIndex}"
            )
        if not varBinds:
            raise FetchError(f"No value returned for {oid} from {ip}")

        return varBinds[0][1]

    async def fetch_counter(self, ip: str, oid: str) -> int:
        """Fetch a counter value as a non-negative integer."""
        logger.debug(f"Fetching {oid} from {ip}:{self.port} (timeout {self.timeout}s)")

        try:
            value = await asyncio.wait_for(self._get_oid(ip, oid), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise FetchTimeout(f"SNMP request to {ip} timed out after {self.timeout}s")
        except FetchError:
            raise
        except Exception as e:
            # pysnmp raises its own errors for bad addresses and OIDs
            raise FetchError(f"Failed to get OID {oid} from {ip}: {e}") from e

        return to_counter(value, oid)

    def fetch_counter_sync(self, ip: str, oid: str) -> int:
        """Fetch a counter value from synchronous code."""
        return asyncio.run(self.fetch_counter(ip, oid))


def to_counter(value: Any, oid: str) -> int:
    """Coerce a returned SNMP value to a non-negative integer."""
    if isinstance(value, (NoSuchObject, NoSuchInstance, EndOfMibView)):
        raise FetchError(f"{oid} does not exist on the target ({value.prettyPrint()})")

    try:
        counter = int(value)
    except (ValueError, TypeError):
        try:
            counter = int(str(value).strip())
        except (ValueError, TypeError):
            raise FetchError(f"{oid} returned a non-numeric value: {value!r}")

    if counter < 0:
        raise FetchError(f"{oid} returned a negative value: {counter}")

    return counter


def resolve_in_thread(host: str, port: int) -> concurrent.futures.Future:
    """Resolve a host to an IPv4 address on a daemon thread.

    asyncio.run joins the default executor before returning, so a
    resolver stuck there would hold the check past its timeout.
    """
    future = concurrent.futures.Future()

    def resolve():
        if not future.set_running_or_notify_cancel():
            return
        try:
            infos = socket.getaddrinfo(host, port, socket.AF_INET, socket.SOCK_DGRAM)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(infos[0][4][0])

    threading.Thread(target=resolve, name=f"resolve-{host}", daemon=True).start()
    return future
