"""
Polling Node.

One PollNode per configured device (or template of identical devices).
A poll cycle:

    1. expand minion templates            (pipeline.minions)
    2. pick due groups, drop known-missing OIDs
    3. GET with tooBig / noSuchName recovery  (snmp.query)
    4. decode varbinds, build OID -> value map
    5. assemble and scale the result tree   (pipeline.assembler)
    6. build measurements                   (pipeline.measurements)

Nonexistent-OID cache and read schedule are loaded from the node context at
the start of a cycle and written back at the end, also when the cycle
fails. Cycles of one node never overlap.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Optional

from gapit.core.config import settings
from gapit.core.errors import ConfigError, PollError
from gapit.pipeline.assembler import ResultAssembler
from gapit.pipeline.measurements import build_measurements, resolve_timestamp
from gapit.pipeline.minions import expand_minions
from gapit.pipeline.scaling import ScalingEngine
from gapit.schemas.gapit_code import GapitCode, Group, iter_members
from gapit.schemas.node import TEMPLATE_SOURCE_KEY, NodeConfig, PollRequest, PollResult
from gapit.services.context_store import NodeContextStore
from gapit.services.oid_cache import NonexistentOidCache
from gapit.services.read_schedule import ReadScheduler
from gapit.snmp.engine import SnmpError
from gapit.snmp.query import AdaptiveQueryEngine
from gapit.snmp.session_cache import SnmpSessionCache
from gapit.snmp.varbinds import build_oid_value_map

logger = logging.getLogger(__name__)


class PollNode:
    """Owns the per-node state (caches, schedule, scaling) and runs cycles."""

    def __init__(
        self,
        config: NodeConfig,
        sessions: SnmpSessionCache,
        store: NodeContextStore,
        clock: Callable[[], float] = time.time,
        tuning_step: int = settings.snmp_tuning_step,
        individual_concurrency: int = settings.snmp_individual_concurrency,
        reset_nonexistent_oids: bool = settings.reset_nonexistent_oids_on_start,
    ) -> None:
        self.config = config
        self._sessions = sessions
        self._clock = clock
        self._tuning_step = tuning_step
        self._individual_concurrency = individual_concurrency
        self._lock = asyncio.Lock()

        self.scaling = ScalingEngine(
            config.scaling, config.convert_counter64_bigint_to_number,
        )
        self.assembler = ResultAssembler(
            self.scaling, config.remove_novalue_items_from_gapit_results,
        )
        self.oid_cache = NonexistentOidCache(
            store, config.name, enabled=config.skip_nonexistent_oids,
        )
        self.read_scheduler = ReadScheduler(store, config.name)
        if reset_nonexistent_oids:
            self.oid_cache.reset()
        logger.info(
            "Polling node '%s' ready (scaling=%s)", config.name, self.scaling.name,
        )

    @property
    def name(self) -> str:
        return self.config.name

    async def poll(self, request: Optional[PollRequest] = None) -> Optional[PollResult]:
        """
        Run one cycle.

        Returns:
            The result, or None when no OID was due.

        Raises:
            ConfigError: invalid configuration or inbound message.
            DecodeError: a malformed Counter64 value.
            PollError: fatal protocol error.
        """
        request = request or PollRequest()
        async with self._lock:
            self.oid_cache.load()
            self.read_scheduler.load()
            try:
                return await self._run_cycle(request)
            finally:
                self.oid_cache.persist()
                self.read_scheduler.persist()

    def _resolve_tree(self, request: PollRequest) -> GapitCode:
        gapit_code = self.config.gapit_code or request.gapit_code
        if not gapit_code:
            raise ConfigError(f"{self.name}: no gapit_code configured or in message")
        return expand_minions(
            gapit_code,
            self.config.device_names,
            self.config.minion_id_list,
            placeholder=self.config.minion_placeholder,
            template_key=TEMPLATE_SOURCE_KEY,
        )

    def _collect_oids(
        self,
        tree: GapitCode,
        now: float,
    ) -> tuple[list[str], list[tuple[str, Group, list[str]]]]:
        """OIDs to request and the groups they come from, with each group's OIDs."""
        oids: list[str] = []
        polled: list[tuple[str, Group, list[str]]] = []
        for source_key, groups in tree.items():
            for group in groups:
                if not self.read_scheduler.is_due(now, source_key, group):
                    continue
                logger.debug("Getting OIDs from group '%s' of '%s'", group.group_name, source_key)
                group_oids: list[str] = []
                for member in group.group:
                    if self.oid_cache.is_known_missing(member.address):
                        continue
                    logger.debug("Found OID %s for '%s'", member.address, member.description)
                    group_oids.append(member.address)
                if group_oids:
                    oids.extend(group_oids)
                    polled.append((source_key, group, group_oids))
        return oids, polled

    async def _run_cycle(self, request: PollRequest) -> Optional[PollResult]:
        config = self.config
        host = config.host or request.host
        community = config.community or request.community
        if not host:
            raise ConfigError(f"{self.name}: no host configured or in message")

        tree = self._resolve_tree(request)
        timestamp = resolve_timestamp(
            request, config.use_timestamp_from_msg, config.timestamp_property,
        )

        now = self._clock()
        oids, polled = self._collect_oids(tree, now)
        if not oids:
            logger.warning("%s: No oid(s) to search for", self.name)
            return None

        session = self._sessions.get_session(
            host, community, config.version, config.timeout,
        )
        query = AdaptiveQueryEngine(
            session,
            self.oid_cache,
            step=self._tuning_step,
            concurrency=self._individual_concurrency,
        )
        try:
            outcome = await query.run(oids)
        except SnmpError as e:
            logger.error("%s: SNMP error polling %s: %s", self.name, host, e)
            raise PollError(str(e), host=host, oids=oids) from e

        # groups left entirely to a later block keep their due time
        queried = set(outcome.requested) - set(outcome.unqueried)
        for source_key, group, group_oids in polled:
            if queried.intersection(group_oids):
                self.read_scheduler.mark_polled(now, source_key, group)

        varbinds, oid_value_map = build_oid_value_map(
            outcome.varbinds, config.convert_counter64_bigint_to_number,
        )
        absent = set(outcome.absent)
        absent.update(
            m.address for _, _, m in iter_members(tree)
            if self.oid_cache.is_known_missing(m.address)
        )
        assembled = self.assembler.assemble(tree, oid_value_map, absent, varbinds)

        payload = build_measurements(
            assembled.gapit_results,
            config.db_tags,
            config.tagname_device_name,
            config.custom_tags,
            timestamp,
        )
        logger.info(
            "%s: %d OIDs requested (%s), %d values, %d measurements",
            self.name, len(outcome.requested), outcome.mode.value,
            len(oid_value_map), len(payload),
        )
        return PollResult(
            request=request,
            oid=outcome.requested,
            varbinds=assembled.varbinds,
            oid_value_map=assembled.oid_value_map,
            gapit_results=assembled.gapit_results,
            payload=payload,
            db_tags=config.db_tags,
            custom_tags=config.custom_tags,
            tagname_device_name=config.tagname_device_name,
        )
