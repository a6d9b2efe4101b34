"""
Application errors.

SNMP transport errors live in ``gapit.snmp.engine``; the classes here cover
configuration, decoding and cycle-level failures.
"""
from __future__ import annotations

from collections.abc import Sequence


class GapitError(Exception):
    """Base error for a failed poll cycle."""


class ConfigError(GapitError):
    """Invalid node configuration or inbound request; the cycle is aborted."""


class DecodeError(GapitError):
    """A varbind value could not be decoded."""

    def __init__(self, message: str, oid: str | None = None) -> None:
        super().__init__(message)
        self.oid = oid


class PollError(GapitError):
    """Fatal protocol error for one cycle, with the originating host."""

    def __init__(
        self,
        message: str,
        host: str,
        oids: Sequence[str] = (),
    ) -> None:
        super().__init__(f"{host}: {message}")
        self.host = host
        self.oids = list(oids)
