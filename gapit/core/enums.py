"""
Enumeration definitions for the application.

All enums are defined here to maintain consistency and type safety.
"""
from enum import Enum


class SnmpVersion(str, Enum):
    """
    SNMP protocol versions supported for GET.

    Values match the node configuration ("1" / "2c").
    Use .mp_model for the pysnmp message-processing model.
    """

    V1 = "1"
    V2C = "2c"

    @property
    def mp_model(self) -> int:
        """pysnmp CommunityData mpModel: 0 for v1, 1 for v2c."""
        return {"1": 0, "2c": 1}[self.value]

    @classmethod
    def parse(cls, raw: object) -> "SnmpVersion":
        """Accept "1", "v1", "2c", "v2c" (case-insensitive)."""
        text = str(raw).strip().lower().lstrip("v")
        if text == "2":
            text = "2c"
        return cls(text)


class VarbindType(str, Enum):
    """
    Varbind value types.

    Values match the pysnmp value class names, so the engine can map a
    response value with ``VarbindType.from_class_name(type(val).__name__)``.
    """

    INTEGER = "Integer"
    OCTET_STRING = "OctetString"
    NULL = "Null"
    OBJECT_IDENTIFIER = "ObjectIdentifier"
    IP_ADDRESS = "IpAddress"
    COUNTER32 = "Counter32"
    GAUGE32 = "Gauge32"
    TIME_TICKS = "TimeTicks"
    OPAQUE = "Opaque"
    COUNTER64 = "Counter64"
    NO_SUCH_OBJECT = "NoSuchObject"
    NO_SUCH_INSTANCE = "NoSuchInstance"
    END_OF_MIB_VIEW = "EndOfMibView"

    @classmethod
    def from_class_name(cls, name: str) -> "VarbindType":
        aliases = {
            "Integer32": cls.INTEGER,
            "Unsigned32": cls.GAUGE32,
            "Bits": cls.OCTET_STRING,
        }
        if name in aliases:
            return aliases[name]
        try:
            return cls(name)
        except ValueError:
            return cls.OPAQUE

    @property
    def is_exception(self) -> bool:
        """True for the SNMPv2 varbind exception values."""
        return self in (
            VarbindType.NO_SUCH_OBJECT,
            VarbindType.NO_SUCH_INSTANCE,
            VarbindType.END_OF_MIB_VIEW,
        )

    @property
    def is_absent(self) -> bool:
        """True when the agent reports the OID does not exist."""
        return self in (VarbindType.NO_SUCH_OBJECT, VarbindType.NO_SUCH_INSTANCE)


class ScalingStrategyName(str, Enum):
    """Names accepted for the node's ``scaling`` setting."""

    GENERAL = "general"
    SCHLEIFENBAUER = "schleifenbauer"
