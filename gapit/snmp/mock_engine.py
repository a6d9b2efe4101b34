"""
Mock SNMP Engine.

Drop-in replacement for AsyncSnmpEngine that answers from an in-process
agent table without sending any UDP packets. Used when GAPIT_SNMP_MOCK=true
and by the tests.

Each MockAgent behaves like a real agent in the ways the poller cares about:
- ``max_oids``: requests with more OIDs are answered with tooBig
- SNMPv1 targets: one unknown OID fails the whole request with noSuchName
- SNMPv2c targets: unknown OIDs come back as noSuchInstance varbinds
"""
from __future__ import annotations

import asyncio
import logging
import zlib
from dataclasses import dataclass, field
from typing import Any, Optional

from gapit.core.enums import SnmpVersion, VarbindType
from gapit.snmp.engine import SnmpTarget, SnmpTimeoutError, raise_for_error_status
from gapit.snmp.varbinds import Varbind

logger = logging.getLogger(__name__)


@dataclass
class MockAgent:
    """
    In-process agent.

    ``values`` maps OID to (type, value). When it is None every OID exists
    and returns a Gauge32 derived from a CRC of host and OID, so readings
    are deterministic per device.
    """

    values: Optional[dict[str, tuple[VarbindType, Any]]] = None
    max_oids: Optional[int] = None
    unreachable: bool = False
    latency: float = 0.0
    requests: list[list[str]] = field(default_factory=list)

    def lookup(self, host: str, oid: str) -> Optional[tuple[VarbindType, Any]]:
        if self.values is None:
            return VarbindType.GAUGE32, zlib.crc32(f"{host}|{oid}".encode()) % 1000
        return self.values.get(oid)


class MockSnmpEngine:
    """
    Mock SNMP engine - same interface as AsyncSnmpEngine.

    Agents are looked up by target host; hosts without an agent get a
    default agent where every OID exists.
    """

    def __init__(
        self,
        agents: dict[str, MockAgent] | None = None,
        latency: float = 0.0,
    ) -> None:
        self._agents = agents if agents is not None else {}
        self._latency = latency
        logger.info("MockSnmpEngine initialized (no real SNMP traffic)")

    def agent(self, host: str) -> MockAgent:
        if host not in self._agents:
            self._agents[host] = MockAgent()
        return self._agents[host]

    async def get(self, target: SnmpTarget, *oids: str) -> list[Varbind]:
        """Mock SNMP GET with tooBig / noSuchName / noSuchInstance behaviour."""
        agent = self.agent(target.host)
        agent.requests.append(list(oids))
        await asyncio.sleep(self._latency + agent.latency)

        if agent.unreachable:
            raise SnmpTimeoutError(f"SNMP GET timeout: {target.host} ({len(oids)} OIDs)")

        if agent.max_oids is not None and len(oids) > agent.max_oids:
            raise_for_error_status(1, 0, oids, target.host)

        result: list[Varbind] = []
        for index, oid in enumerate(oids, start=1):
            found = agent.lookup(target.host, oid)
            if found is None:
                if target.version == SnmpVersion.V1:
                    raise_for_error_status(2, index, oids, target.host)
                result.append(Varbind(oid, VarbindType.NO_SUCH_INSTANCE))
                continue
            vtype, value = found
            result.append(Varbind(oid, vtype, value))
        return result
