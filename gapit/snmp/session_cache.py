"""
SNMP Session Cache.

One session per (host, community, version). Nodes polling the same agent
share a session, and the session serializes requests so responses are never
matched against the wrong request.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from gapit.core.enums import SnmpVersion
from gapit.snmp.engine import SnmpTarget
from gapit.snmp.varbinds import Varbind

logger = logging.getLogger(__name__)


class SnmpSession:
    """A target bound to an engine, one request at a time."""

    def __init__(self, engine: Any, target: SnmpTarget) -> None:
        self._engine = engine
        self.target = target
        self._lock = asyncio.Lock()

    async def get(self, oids: list[str]) -> list[Varbind]:
        async with self._lock:
            return await self._engine.get(self.target, *oids)


class SnmpSessionCache:
    """
    Process-wide session registry.

    Session key: "{host}:{community}:{version}". The host may carry a port
    ("10.0.0.5:1161"). Timeout is taken from the first request that creates
    the session.
    """

    def __init__(self, engine: Any, retries: int = 0) -> None:
        self._engine = engine
        self._retries = retries
        self._sessions: dict[str, SnmpSession] = {}

    def get_session(
        self,
        host: str,
        community: str,
        version: SnmpVersion,
        timeout: float,
    ) -> SnmpSession:
        key = f"{host}:{community}:{version.value}"
        session = self._sessions.get(key)
        if session is None:
            target = SnmpTarget.from_address(
                host, community, version, timeout, self._retries,
            )
            session = SnmpSession(self._engine, target)
            self._sessions[key] = session
            logger.debug(
                "Created SNMP session for %s:%d (v%s)",
                target.host, target.port, version.value,
            )
        return session
