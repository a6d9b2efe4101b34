"""
Configuration tree ("gapit_code") models.

    gapit_code = {
        "objects": [                      # source key (template or device id)
            {
                "group_name": "pdu_power",
                "read_priority": 60,      # seconds, or "never"
                "group": [
                    {
                        "address": "1.3.6.1.4.1.x.2.1",
                        "description": "Active power",
                        "byte_type": "INT",
                        "scaling_factor": 0.1,
                        "unit": "W",
                    },
                ],
            },
        ],
    }

The same models describe the result tree ("gapit_results"); members then
carry a ``value``. Unknown keys are preserved so a result tree stays a
structural copy of the configuration.
"""
from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

READ_NEVER = "never"
STRING_BYTE_TYPE = "STR"

# Group keys that only exist at runtime and are stripped before every poll
_TRANSIENT_GROUP_KEYS = ("next_read",)


class Member(BaseModel):
    """One polled value: an OID and how to present it."""

    model_config = ConfigDict(extra="allow")

    address: str
    description: str = ""
    byte_type: str = ""
    scaling_factor: float = 1
    unit: str = ""
    value: Any = None

    @field_validator("address")
    @classmethod
    def _strip_address(cls, v: str) -> str:
        return v.strip().lstrip(".")

    @field_validator("scaling_factor", mode="before")
    @classmethod
    def _default_factor(cls, v: Any) -> Any:
        if v is None or v == "":
            return 1
        return v

    @property
    def has_value(self) -> bool:
        return self.value is not None

    @property
    def is_string(self) -> bool:
        return self.byte_type.upper() == STRING_BYTE_TYPE


class Group(BaseModel):
    """A named set of members, polled and reported together."""

    model_config = ConfigDict(extra="allow")

    group_name: str
    read_priority: Union[int, Literal["never"]] = 0
    group: list[Member] = Field(default_factory=list)

    @field_validator("read_priority", mode="before")
    @classmethod
    def _parse_read_priority(cls, v: Any) -> Any:
        if v is None or v == "":
            return 0
        if isinstance(v, str):
            text = v.strip().lower()
            if text == READ_NEVER:
                return READ_NEVER
            v = int(text)
        if isinstance(v, bool) or int(v) < 0:
            raise ValueError(f"read_priority must be 'never' or >= 0, got {v!r}")
        return int(v)

    @property
    def is_never_read(self) -> bool:
        return self.read_priority == READ_NEVER

    def has_values(self) -> bool:
        return any(m.has_value for m in self.group)


# source key -> ordered groups
GapitCode = dict[str, list[Group]]


def parse_gapit_code(raw: Any) -> GapitCode:
    """Validate a plain mapping into typed groups."""
    if not isinstance(raw, dict):
        raise ValueError("gapit_code must be a mapping of source key to groups")
    tree: GapitCode = {}
    for key, groups in raw.items():
        parsed = [
            g if isinstance(g, Group) else Group.model_validate(g)
            for g in groups
        ]
        names = [g.group_name for g in parsed]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate group_name under '{key}'")
        tree[str(key)] = parsed
    return tree


def clone_gapit_code(
    tree: GapitCode,
    strip_transient: bool = False,
) -> GapitCode:
    """
    Deep-copy a configuration tree.

    With ``strip_transient`` the copy drops runtime-only keys
    (group ``next_read``, member ``value``), which is how a fresh result
    tree is started for each cycle.
    """
    out: GapitCode = {}
    for key, groups in tree.items():
        cloned: list[Group] = []
        for group in groups:
            g = group.model_copy(deep=True)
            if strip_transient:
                for k in _TRANSIENT_GROUP_KEYS:
                    (g.model_extra or {}).pop(k, None)
                for m in g.group:
                    m.value = None
            cloned.append(g)
        out[key] = cloned
    return out


def iter_members(tree: GapitCode) -> Iterator[tuple[str, Group, Member]]:
    """Yield (source_key, group, member) in declared order."""
    for key, groups in tree.items():
        for group in groups:
            for member in group.group:
                yield key, group, member

