"""Core module - contains enums, errors and configuration."""
from .config import settings
from .enums import ScalingStrategyName, SnmpVersion, VarbindType
from .errors import ConfigError, DecodeError, GapitError, PollError

__all__ = [
    "ConfigError",
    "DecodeError",
    "GapitError",
    "PollError",
    "ScalingStrategyName",
    "SnmpVersion",
    "VarbindType",
    "settings",
]
