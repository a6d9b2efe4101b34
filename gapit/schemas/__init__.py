"""Pydantic schemas for configuration trees, node messages and measurements."""
from .gapit_code import GapitCode, Group, Member, clone_gapit_code, iter_members
from .measurement import Measurement
from .node import NodeConfig, PollRequest, PollResult

__all__ = [
    "GapitCode",
    "Group",
    "Measurement",
    "Member",
    "NodeConfig",
    "PollRequest",
    "PollResult",
    "clone_gapit_code",
    "iter_members",
]
