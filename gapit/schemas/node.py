"""
Polling node configuration and the messages exchanged with the host runtime.

NodeConfig mirrors the settings of one polling node. PollRequest is the
inbound message for one tick, PollResult the outbound message.
"""
from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gapit.core.config import settings
from gapit.core.enums import SnmpVersion
from gapit.schemas.gapit_code import GapitCode, parse_gapit_code
from gapit.schemas.measurement import Measurement
from gapit.snmp.varbinds import Varbind

TEMPLATE_SOURCE_KEY = "objects"


def _parse_tree(v: Any) -> Any:
    if v is None or v == "":
        return None
    if isinstance(v, str):
        v = json.loads(v)
    return parse_gapit_code(v)


class NodeConfig(BaseModel):
    """Configuration surface of one polling node."""

    name: str = "gapit-snmp"
    host: str = ""
    community: str = ""
    version: SnmpVersion = SnmpVersion.parse(settings.snmp_version)
    timeout: float = Field(
        default=settings.snmp_timeout,
        gt=0,
        description="Per-request timeout in seconds",
    )
    gapit_code: Optional[GapitCode] = None

    scaling: str = "general"
    skip_nonexistent_oids: bool = True
    remove_novalue_items_from_gapit_results: bool = True
    convert_counter64_bigint_to_number: bool = True

    # Minion expansion
    device_name: str = ""
    minion_ids: str = ""
    separator: str = ","
    minion_placeholder: str = "x"

    # Measurement output
    db_tags: dict[str, str] = Field(default_factory=dict)
    custom_tags: dict[str, dict[str, Any]] = Field(default_factory=dict)
    tagname_device_name: str = "device_name"
    use_timestamp_from_msg: bool = False
    timestamp_property: str = ""

    interval: int = Field(default=settings.poll_interval_seconds, gt=0)

    @field_validator("version", mode="before")
    @classmethod
    def _parse_version(cls, v: Any) -> Any:
        return SnmpVersion.parse(v)

    @field_validator("gapit_code", mode="before")
    @classmethod
    def _parse_gapit_code(cls, v: Any) -> Any:
        return _parse_tree(v)

    @field_validator("timestamp_property")
    @classmethod
    def _strip_property(cls, v: str) -> str:
        return v.strip()

    def _split(self, raw: str) -> list[str]:
        if not raw.strip():
            return []
        return [p.strip() for p in raw.split(self.separator) if p.strip()]

    @property
    def device_names(self) -> list[str]:
        return self._split(self.device_name)

    @property
    def minion_id_list(self) -> list[str]:
        return self._split(self.minion_ids)


class PollRequest(BaseModel):
    """
    Inbound message for one tick.

    ``host``, ``community`` and ``gapit_code`` are used only when the node
    does not configure them. Any other keys (e.g. a timestamp property) are
    kept as extras.
    """

    model_config = ConfigDict(extra="allow")

    host: str = ""
    community: str = ""
    gapit_code: Optional[GapitCode] = None

    @field_validator("gapit_code", mode="before")
    @classmethod
    def _parse_gapit_code(cls, v: Any) -> Any:
        return _parse_tree(v)

    def get_property(self, name: str) -> Any:
        """Look up a named property, declared or extra; None when missing."""
        if name in type(self).model_fields:
            return getattr(self, name)
        return (self.model_extra or {}).get(name)


class PollResult(BaseModel):
    """Outbound message of one completed cycle."""

    request: PollRequest
    oid: list[str] = Field(default_factory=list)
    varbinds: list[Varbind] = Field(default_factory=list)
    oid_value_map: dict[str, Any] = Field(default_factory=dict)
    gapit_results: GapitCode = Field(default_factory=dict)
    payload: list[Measurement] = Field(default_factory=list)
    db_tags: dict[str, str] = Field(default_factory=dict)
    custom_tags: dict[str, dict[str, Any]] = Field(default_factory=dict)
    tagname_device_name: str = "device_name"
