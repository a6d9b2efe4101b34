"""
Result Assembler.

Builds this cycle's result tree ("gapit_results") from a fresh copy of the
configuration and the OID -> value map. Values of non-string members go
through the node's scaling engine, member by member in declared order
(register accumulation depends on it).
"""
from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass, field
from typing import Any

from gapit.pipeline.scaling import ScalingEngine
from gapit.schemas.gapit_code import GapitCode, Member, clone_gapit_code
from gapit.snmp.varbinds import Varbind

logger = logging.getLogger(__name__)


@dataclass
class AssembledResult:
    gapit_results: GapitCode
    oid_value_map: dict[str, Any] = field(default_factory=dict)
    varbinds: list[Varbind] = field(default_factory=list)


class ResultAssembler:
    """Populates result trees for one polling node."""

    def __init__(
        self,
        scaling: ScalingEngine,
        remove_valueless: bool = True,
    ) -> None:
        self._scaling = scaling
        self._remove_valueless = remove_valueless

    def member_value(self, member: Member, raw: Any) -> Any:
        if raw is None or member.is_string:
            return raw
        return self._scaling.scale(
            raw, member.scaling_factor, member.unit, member.description,
        )

    def assemble(
        self,
        gapit_code: GapitCode,
        oid_value_map: dict[str, Any],
        absent: Collection[str] = (),
        varbinds: list[Varbind] | None = None,
    ) -> AssembledResult:
        """
        Args:
            gapit_code: configuration tree (not modified)
            oid_value_map: OID -> decoded value for this cycle
            absent: OIDs the agent reported missing, this cycle or earlier
            varbinds: filtered varbinds, passed through to the result
        """
        results = clone_gapit_code(gapit_code, strip_transient=True)
        absent_set = set(absent)
        dropped = 0

        for key, groups in results.items():
            for group in groups:
                kept: list[Member] = []
                for member in group.group:
                    if member.address in oid_value_map:
                        member.value = self.member_value(
                            member, oid_value_map[member.address],
                        )
                    elif self._remove_valueless and member.address in absent_set:
                        dropped += 1
                        logger.debug(
                            "Removing '%s' (%s) from group '%s' of '%s'",
                            member.description, member.address,
                            group.group_name, key,
                        )
                        continue
                    kept.append(member)
                group.group = kept

        if dropped:
            logger.info("Removed %d members without value from results", dropped)
        return AssembledResult(
            gapit_results=results,
            oid_value_map=dict(oid_value_map),
            varbinds=list(varbinds or []),
        )
