"""
Adaptive Batch Query Engine.

Runs the GETs for one poll cycle against one session:

    BULK        one request with every candidate OID
      tooBig     -> TUNING: first block only, shrinking by ``step`` until
                    the agent accepts it (block size 0 is fatal)
      noSuchName -> INDIVIDUAL: one request per OID, all awaited before
                    returning; OIDs failing with noSuchName are absent

noSuchInstance / noSuchObject varbinds in a successful response are absent
too. Absent OIDs are recorded in the nonexistent-OID cache. Any other
SnmpError propagates to the caller.

Known limitation: TUNING stops once it finds a block size the agent accepts
for the *first* block. The remaining OIDs are not requested in that cycle;
they are reported in ``QueryOutcome.unqueried``.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from gapit.core.config import settings
from gapit.core.enums import VarbindType
from gapit.services.oid_cache import NonexistentOidCache
from gapit.snmp.engine import SnmpError, SnmpNoSuchNameError, SnmpTooBigError
from gapit.snmp.session_cache import SnmpSession
from gapit.snmp.varbinds import Varbind

logger = logging.getLogger(__name__)


class QueryMode(str, Enum):
    BULK = "bulk"
    TUNING = "tuning"
    INDIVIDUAL = "individual"


@dataclass
class QueryOutcome:
    """What one cycle's requests returned."""

    requested: list[str]
    varbinds: list[Varbind] = field(default_factory=list)
    absent: list[str] = field(default_factory=list)
    mode: QueryMode = QueryMode.BULK
    block_size: Optional[int] = None
    unqueried: list[str] = field(default_factory=list)


def dedupe_oids(oids: list[str]) -> list[str]:
    """Drop repeated OIDs, keeping first-seen order (agents reject duplicates)."""
    return list(dict.fromkeys(oids))


def initial_block_size(count: int, step: int) -> int:
    """First tuning block: count minus one step, rounded down to a step multiple."""
    return ((count - step) // step) * step


class AdaptiveQueryEngine:
    """One-cycle GET driver with tooBig tuning and noSuchName fallback."""

    def __init__(
        self,
        session: SnmpSession,
        oid_cache: NonexistentOidCache,
        step: int = settings.snmp_tuning_step,
        concurrency: int = settings.snmp_individual_concurrency,
    ) -> None:
        if step <= 0:
            raise ValueError("tuning step must be positive")
        self._session = session
        self._cache = oid_cache
        self._step = step
        self._concurrency = max(1, concurrency)

    @property
    def host(self) -> str:
        return self._session.target.host

    async def run(self, oids: list[str]) -> QueryOutcome:
        """
        Query ``oids`` (already filtered against the cache).

        Raises:
            SnmpError: any protocol error other than the recoverable
                rejections, or tuning reached block size 0.
        """
        requested = dedupe_oids(oids)
        try:
            varbinds = await self._session.get(requested)
        except SnmpTooBigError:
            logger.info(
                "%s: request for %d OIDs too big, tuning block size",
                self.host, len(requested),
            )
            return await self._tune(requested)
        except SnmpNoSuchNameError as exc:
            logger.info(
                "%s: noSuchName (%s), querying %d OIDs individually",
                self.host, exc.oid or "?", len(requested),
            )
            return await self._individual(requested, requested)

        outcome = QueryOutcome(requested=requested, mode=QueryMode.BULK)
        self._collect(outcome, varbinds)
        return outcome

    async def _tune(self, requested: list[str]) -> QueryOutcome:
        block_size = initial_block_size(len(requested), self._step)
        while True:
            if block_size <= 0:
                raise SnmpError(
                    f"{self.host}: tooBig for every block size "
                    f"(step {self._step}, {len(requested)} OIDs)"
                )
            block = requested[:block_size]
            try:
                varbinds = await self._session.get(block)
            except SnmpTooBigError:
                logger.debug(
                    "%s: block of %d still too big", self.host, block_size,
                )
                block_size -= self._step
                continue
            except SnmpNoSuchNameError:
                logger.info(
                    "%s: noSuchName while tuning, querying block of %d individually",
                    self.host, block_size,
                )
                outcome = await self._individual(requested, block)
                outcome.block_size = block_size
                outcome.unqueried = requested[block_size:]
                self._warn_unqueried(outcome)
                return outcome
            break

        logger.info("%s: agent accepts blocks of %d OIDs", self.host, block_size)
        outcome = QueryOutcome(
            requested=requested,
            mode=QueryMode.TUNING,
            block_size=block_size,
            unqueried=requested[block_size:],
        )
        self._collect(outcome, varbinds)
        self._warn_unqueried(outcome)
        return outcome

    def _warn_unqueried(self, outcome: QueryOutcome) -> None:
        if outcome.unqueried:
            logger.warning(
                "%s: %d OIDs beyond the first block of %d were not queried this cycle",
                self.host, len(outcome.unqueried), outcome.block_size,
            )

    async def _individual(
        self,
        requested: list[str],
        oids: list[str],
    ) -> QueryOutcome:
        """One GET per OID; returns only after every request has completed."""
        sem = asyncio.Semaphore(self._concurrency)

        async def _get_one(oid: str) -> Optional[list[Varbind]]:
            async with sem:
                try:
                    return await self._session.get([oid])
                except SnmpNoSuchNameError:
                    return None

        results = await asyncio.gather(
            *[_get_one(oid) for oid in oids],
            return_exceptions=True,
        )
        if len(results) != len(oids):
            raise SnmpError(
                f"{self.host}: {len(results)} of {len(oids)} individual requests completed"
            )

        outcome = QueryOutcome(requested=requested, mode=QueryMode.INDIVIDUAL)
        failures: list[BaseException] = []
        for oid, result in zip(oids, results):
            if isinstance(result, BaseException):
                failures.append(result)
            elif result is None:
                self._mark_absent(outcome, oid)
            else:
                self._collect(outcome, result)
        if failures:
            raise failures[0]
        return outcome

    def _collect(self, outcome: QueryOutcome, varbinds: list[Varbind]) -> None:
        for vb in varbinds:
            if vb.type.is_absent:
                self._mark_absent(outcome, vb.oid)
            elif vb.type == VarbindType.END_OF_MIB_VIEW:
                logger.error("%s: endOfMibView for OID '%s'", self.host, vb.oid)
            else:
                outcome.varbinds.append(vb)

    def _mark_absent(self, outcome: QueryOutcome, oid: str) -> None:
        logger.warning("%s: OID '%s' is not present", self.host, oid)
        outcome.absent.append(oid)
        self._cache.mark_missing(oid)
