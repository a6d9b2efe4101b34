"""Shared fixtures: mock agent, sessions, context store and a UPS gapit_code."""
from __future__ import annotations

import os

import pytest

# Tests never talk to real agents
os.environ.setdefault("GAPIT_SNMP_MOCK", "true")

from gapit.core.enums import SnmpVersion, VarbindType  # noqa: E402
from gapit.schemas.gapit_code import parse_gapit_code  # noqa: E402
from gapit.services.context_store import MemoryContextStore  # noqa: E402
from gapit.services.oid_cache import NonexistentOidCache  # noqa: E402
from gapit.snmp.mock_engine import MockAgent, MockSnmpEngine  # noqa: E402
from gapit.snmp.session_cache import SnmpSessionCache  # noqa: E402

HOST = "10.0.0.5"

UPS_OIDS = {
    "1.3.6.1.2.1.33.1.2.4.0": (VarbindType.INTEGER, 97),
    "1.3.6.1.2.1.33.1.2.5.0": (VarbindType.INTEGER, 2731),
    "1.3.6.1.2.1.33.1.1.2.0": (VarbindType.OCTET_STRING, b"Smart-UPS 3000"),
}


def make_gapit_code(**overrides) -> dict:
    """Raw UPS gapit_code; keyword args override the first group's keys."""
    battery = {
        "group_name": "ups_battery",
        "read_priority": 0,
        "group": [
            {
                "address": "1.3.6.1.2.1.33.1.2.4.0",
                "description": "Battery charge",
                "byte_type": "INT",
                "scaling_factor": 1,
                "unit": "%",
            },
            {
                "address": "1.3.6.1.2.1.33.1.2.5.0",
                "description": "Battery voltage",
                "byte_type": "INT",
                "scaling_factor": 0.1,
                "unit": "V",
            },
        ],
    }
    battery.update(overrides)
    identity = {
        "group_name": "ups_identity",
        "read_priority": 0,
        "group": [
            {
                "address": "1.3.6.1.2.1.33.1.1.2.0",
                "description": "Model",
                "byte_type": "STR",
            },
        ],
    }
    return {"objects": [battery, identity]}


@pytest.fixture
def gapit_code():
    """Parsed UPS gapit_code."""
    return parse_gapit_code(make_gapit_code())


@pytest.fixture
def store() -> MemoryContextStore:
    return MemoryContextStore()


@pytest.fixture
def oid_cache(store) -> NonexistentOidCache:
    cache = NonexistentOidCache(store, "test-node")
    cache.load()
    return cache


@pytest.fixture
def ups_agent() -> MockAgent:
    return MockAgent(values=dict(UPS_OIDS))


@pytest.fixture
def mock_engine(ups_agent) -> MockSnmpEngine:
    return MockSnmpEngine(agents={HOST: ups_agent})


@pytest.fixture
def sessions(mock_engine) -> SnmpSessionCache:
    return SnmpSessionCache(mock_engine)


@pytest.fixture
def v1_session(sessions):
    return sessions.get_session(HOST, "public", SnmpVersion.V1, 5.0)


@pytest.fixture
def v2c_session(sessions):
    return sessions.get_session(HOST, "public", SnmpVersion.V2C, 5.0)


@pytest.fixture
def host() -> str:
    return HOST


@pytest.fixture
def raw_gapit_code():
    """Factory for raw (unparsed) gapit_code mappings."""
    return make_gapit_code
