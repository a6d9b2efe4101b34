"""
SNMP Engine - pysnmp asyncio wrapper.

Provides a single operation:
- get() - fetch one or more scalar OIDs in one GET PDU

Agent-reported error statuses are raised as typed errors so the query engine
can tell the recoverable rejections (tooBig, noSuchName) from everything
else. Varbind exceptions (noSuchObject / noSuchInstance / endOfMibView) are
returned as varbinds; the caller decides what to do with them.

NOTE: pysnmp imports are deferred to the methods that need them so that mock
mode (GAPIT_SNMP_MOCK=true) works even when pysnmp is not installed.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from gapit.core.enums import SnmpVersion, VarbindType
from gapit.snmp.varbinds import Varbind

logger = logging.getLogger(__name__)

DEFAULT_PORT = 161

# RFC 1905 error-status codes
_STATUS_TOO_BIG = 1
_STATUS_NO_SUCH_NAME = 2
_STATUS_NAMES = {
    1: "tooBig",
    2: "noSuchName",
    3: "badValue",
    4: "readOnly",
    5: "genErr",
    6: "noAccess",
}


class SnmpError(Exception):
    """Base SNMP error; fatal for a poll cycle unless a subclass says otherwise."""


class SnmpTimeoutError(SnmpError):
    """SNMP request timed out after all retries."""


class SnmpErrorStatus(SnmpError):
    """The agent answered with a non-zero error-status."""

    def __init__(self, message: str, status: str, oid: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.oid = oid


class SnmpTooBigError(SnmpErrorStatus):
    """The response would not fit in one message; retry with fewer OIDs."""


class SnmpNoSuchNameError(SnmpErrorStatus):
    """SNMPv1: one OID in the request does not exist, the whole PDU failed."""


@dataclass
class SnmpTarget:
    """Connection parameters for a single SNMP agent."""

    host: str
    community: str
    version: SnmpVersion = SnmpVersion.V2C
    port: int = DEFAULT_PORT
    timeout: float = 5.0
    retries: int = 0

    @classmethod
    def from_address(
        cls,
        address: str,
        community: str,
        version: SnmpVersion,
        timeout: float,
        retries: int = 0,
    ) -> SnmpTarget:
        """Build a target from ``host`` or ``host:port``."""
        host, port = address, DEFAULT_PORT
        if ":" in address:
            host, _, port_str = address.partition(":")
            port = int(port_str)
        return cls(
            host=host,
            community=community,
            version=version,
            port=port,
            timeout=timeout,
            retries=retries,
        )


def raise_for_error_status(
    error_status: int,
    error_index: int,
    oids: tuple[str, ...] | list[str],
    host: str,
) -> None:
    """Raise the typed error for a non-zero error-status."""
    status = _STATUS_NAMES.get(error_status, f"errorStatus({error_status})")
    oid = oids[error_index - 1] if 0 < error_index <= len(oids) else None
    message = f"SNMP GET error status from {host}: {status}"
    if oid:
        message += f" at {oid}"
    if error_status == _STATUS_TOO_BIG:
        raise SnmpTooBigError(message, status, oid)
    if error_status == _STATUS_NO_SUCH_NAME:
        raise SnmpNoSuchNameError(message, status, oid)
    raise SnmpErrorStatus(message, status, oid)


def to_varbind(oid: Any, val: Any) -> Varbind:
    """Convert one pysnmp (oid, value) pair to a Varbind."""
    vtype = VarbindType.from_class_name(val.__class__.__name__)
    if vtype.is_exception or vtype == VarbindType.NULL:
        value: Any = None
    elif vtype in (VarbindType.OCTET_STRING, VarbindType.OPAQUE):
        value = val.asOctets()
    elif vtype in (
        VarbindType.INTEGER,
        VarbindType.COUNTER32,
        VarbindType.GAUGE32,
        VarbindType.TIME_TICKS,
        VarbindType.COUNTER64,
    ):
        value = int(val)
    else:
        value = val.prettyPrint()
    return Varbind(oid=str(oid), type=vtype, value=value)


class AsyncSnmpEngine:
    """
    Thin async wrapper around the pysnmp v3arch asyncio API.

    Uses a single shared pysnmp SnmpEngine instance.
    """

    def __init__(self) -> None:
        from pysnmp.hlapi.v3arch.asyncio import SnmpEngine as PySnmpEngine

        self._engine = PySnmpEngine()

    async def _make_transport(self, target: SnmpTarget) -> Any:
        """Create UDP transport for target."""
        from pysnmp.hlapi.v3arch.asyncio import UdpTransportTarget

        return await UdpTransportTarget.create(
            (target.host, target.port),
            timeout=target.timeout,
            retries=target.retries,
        )

    async def get(self, target: SnmpTarget, *oids: str) -> list[Varbind]:
        """
        SNMP GET for one or more scalar OIDs.

        Returns:
            Varbinds in response order, including varbind exceptions.

        Raises:
            SnmpTimeoutError: if request times out.
            SnmpTooBigError / SnmpNoSuchNameError: recoverable rejections.
            SnmpError: on other SNMP errors.
        """
        from pysnmp.hlapi.v3arch.asyncio import (
            CommunityData,
            ContextData,
            ObjectIdentity,
            ObjectType,
            get_cmd,
        )

        transport = await self._make_transport(target)
        object_types = [ObjectType(ObjectIdentity(oid)) for oid in oids]

        error_indication, error_status, error_index, var_binds = await get_cmd(
            self._engine,
            CommunityData(target.community, mpModel=target.version.mp_model),
            transport,
            ContextData(),
            *object_types,
            lookupMib=False,
        )

        if error_indication:
            err_str = str(error_indication)
            if "timeout" in err_str.lower():
                raise SnmpTimeoutError(
                    f"SNMP GET timeout: {target.host} ({len(oids)} OIDs)"
                )
            raise SnmpError(f"SNMP GET error from {target.host}: {err_str}")

        if error_status:
            raise_for_error_status(
                int(error_status), int(error_index), oids, target.host,
            )

        return [to_varbind(oid, val) for oid, val in var_binds]
