"""End-to-end tests for PollNode against the mock agent."""
from __future__ import annotations

import asyncio

import pytest

from gapit.core.enums import VarbindType
from gapit.core.errors import ConfigError, DecodeError, PollError
from gapit.schemas.node import NodeConfig, PollRequest
from gapit.services.context_store import NONEXISTENT_OIDS_KEY, MemoryContextStore
from gapit.services.poll_node import PollNode
from gapit.snmp.mock_engine import MockAgent, MockSnmpEngine
from gapit.snmp.session_cache import SnmpSessionCache

MISSING = "1.3.6.1.2.1.33.1.2.99.0"


class Clock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _node(config: NodeConfig, engine: MockSnmpEngine, store=None, clock=None, **kwargs) -> PollNode:
    return PollNode(
        config,
        SnmpSessionCache(engine),
        store or MemoryContextStore(),
        clock=clock or Clock(),
        **kwargs,
    )


def _config(raw_gapit_code, host, **kwargs) -> NodeConfig:
    defaults = {"name": "ups", "host": host, "community": "public", "gapit_code": raw_gapit_code()}
    defaults.update(kwargs)
    return NodeConfig(**defaults)


def _with_missing_member(raw_gapit_code):
    code = raw_gapit_code()
    code["objects"][0]["group"].append({
        "address": MISSING,
        "description": "Battery temperature",
        "byte_type": "INT",
    })
    return code


# ── happy path ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_poll_produces_measurements(raw_gapit_code, host, mock_engine):
    node = _node(_config(raw_gapit_code, host, db_tags={"site": "oslo"}), mock_engine)

    result = await node.poll()

    assert result is not None
    assert [m.measurement for m in result.payload] == ["ups_battery", "ups_identity"]
    battery, identity = result.payload
    assert battery.fields == {"Battery charge": 97, "Battery voltage": 273.1}
    assert battery.tags == {"site": "oslo", "device_name": "objects"}
    assert identity.fields == {"Model": "Smart-UPS 3000"}
    assert result.oid_value_map["1.3.6.1.2.1.33.1.1.2.0"] == "Smart-UPS 3000"
    assert all(vb.tstr for vb in result.varbinds)
    assert len(result.oid) == 3


@pytest.mark.asyncio
async def test_absent_member_removed_from_results(raw_gapit_code, host, mock_engine):
    config = _config(raw_gapit_code, host, gapit_code=_with_missing_member(raw_gapit_code))
    node = _node(config, mock_engine)

    result = await node.poll()

    battery = result.gapit_results["objects"][0]
    assert [m.address for m in battery.group] == [
        "1.3.6.1.2.1.33.1.2.4.0", "1.3.6.1.2.1.33.1.2.5.0",
    ]
    assert "Battery temperature" not in result.payload[0].fields
    assert node.oid_cache.oids == [MISSING]


@pytest.mark.asyncio
async def test_single_missing_member_leaves_one_field(host):
    agent = MockAgent(values={"1.1": (VarbindType.INTEGER, 5)})
    config = NodeConfig(
        name="n",
        host=host,
        community="public",
        gapit_code={
            "objects": [{
                "group_name": "g",
                "group": [
                    {"address": "1.1", "description": "present"},
                    {"address": "1.2", "description": "missing"},
                ],
            }],
        },
    )
    result = await _node(config, MockSnmpEngine(agents={host: agent})).poll()

    assert len(result.payload) == 1
    assert result.payload[0].fields == {"present": 5}


@pytest.mark.asyncio
async def test_v1_agent_falls_back_and_caches(raw_gapit_code, host, mock_engine, ups_agent):
    store = MemoryContextStore()
    config = _config(raw_gapit_code, host, version="1", gapit_code=_with_missing_member(raw_gapit_code))
    node = _node(config, mock_engine, store=store)

    result = await node.poll()

    assert result.payload[0].fields == {"Battery charge": 97, "Battery voltage": 273.1}
    assert store.get("ups", NONEXISTENT_OIDS_KEY) == [MISSING]
    # bulk, then one request per OID
    assert len(ups_agent.requests) == 5

    ups_agent.requests.clear()
    await node.poll()

    # known-missing OID is no longer requested, so the bulk request succeeds
    assert len(ups_agent.requests) == 1
    assert MISSING not in ups_agent.requests[0]


def test_restart_resets_nonexistent_oids(raw_gapit_code, host, mock_engine):
    store = MemoryContextStore()
    store.set("ups", NONEXISTENT_OIDS_KEY, [MISSING])

    _node(_config(raw_gapit_code, host), mock_engine, store=store)

    assert store.get("ups", NONEXISTENT_OIDS_KEY) == []


@pytest.mark.asyncio
async def test_no_reset_keeps_nonexistent_oids(raw_gapit_code, host, mock_engine, ups_agent):
    store = MemoryContextStore()
    store.set("ups", NONEXISTENT_OIDS_KEY, ["1.3.6.1.2.1.33.1.2.5.0"])
    node = _node(_config(raw_gapit_code, host), mock_engine, store=store, reset_nonexistent_oids=False)

    result = await node.poll()

    assert "1.3.6.1.2.1.33.1.2.5.0" not in ups_agent.requests[0]
    assert [m.description for m in result.gapit_results["objects"][0].group] == ["Battery charge"]


# ── scheduling ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_read_priority_skips_groups_until_due(raw_gapit_code, host, mock_engine, ups_agent):
    clock = Clock(1000)
    config = _config(raw_gapit_code, host, gapit_code=raw_gapit_code(read_priority=60))
    node = _node(config, mock_engine, clock=clock)

    await node.poll()
    clock.now = 1030
    result = await node.poll()
    assert [m.measurement for m in result.payload] == ["ups_identity"]

    clock.now = 1060
    result = await node.poll()
    assert [m.measurement for m in result.payload] == ["ups_battery", "ups_identity"]
    assert len(ups_agent.requests) == 3


@pytest.mark.asyncio
async def test_nothing_due_returns_none(raw_gapit_code, host, mock_engine, ups_agent, caplog):
    code = raw_gapit_code(read_priority="never")
    code["objects"][1]["read_priority"] = "never"
    node = _node(_config(raw_gapit_code, host, gapit_code=code), mock_engine)

    assert await node.poll() is None
    assert ups_agent.requests == []
    assert "No oid(s) to search for" in caplog.text


# ── message handling ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_host_and_gapit_code_from_message(raw_gapit_code, host, mock_engine):
    node = _node(NodeConfig(name="msg"), mock_engine)

    result = await node.poll(
        PollRequest(host=host, community="public", gapit_code=raw_gapit_code()),
    )

    assert result.payload[0].fields["Battery charge"] == 97


@pytest.mark.asyncio
async def test_node_host_takes_precedence(raw_gapit_code, host, mock_engine, ups_agent):
    node = _node(_config(raw_gapit_code, host), mock_engine)

    await node.poll(PollRequest(host="192.0.2.1"))

    assert ups_agent.requests
    assert "192.0.2.1" not in mock_engine._agents


@pytest.mark.asyncio
async def test_timestamp_from_message(raw_gapit_code, host, mock_engine):
    config = _config(
        raw_gapit_code, host, use_timestamp_from_msg=True, timestamp_property="ts",
    )
    result = await _node(config, mock_engine).poll(PollRequest(ts=1700000000))
    assert {m.timestamp for m in result.payload} == {1700000000}


@pytest.mark.asyncio
async def test_missing_timestamp_aborts_before_query(raw_gapit_code, host, mock_engine, ups_agent):
    config = _config(
        raw_gapit_code, host, use_timestamp_from_msg=True, timestamp_property="ts",
    )
    with pytest.raises(ConfigError):
        await _node(config, mock_engine).poll()
    assert ups_agent.requests == []


@pytest.mark.asyncio
async def test_no_host_is_config_error(raw_gapit_code, mock_engine):
    node = _node(NodeConfig(name="n", gapit_code=raw_gapit_code()), mock_engine)
    with pytest.raises(ConfigError):
        await node.poll()


@pytest.mark.asyncio
async def test_no_gapit_code_is_config_error(host, mock_engine):
    with pytest.raises(ConfigError):
        await _node(NodeConfig(name="n", host=host), mock_engine).poll()


# ── failures ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_transport_failure_raises_poll_error(raw_gapit_code, host):
    engine = MockSnmpEngine(agents={host: MockAgent(unreachable=True)})
    node = _node(_config(raw_gapit_code, host), engine)

    with pytest.raises(PollError) as exc_info:
        await node.poll()

    assert exc_info.value.host == host
    assert len(exc_info.value.oids) == 3


@pytest.mark.asyncio
async def test_cache_persisted_when_cycle_fails(host):
    store = MemoryContextStore()
    agent = MockAgent(values={"1.1": (VarbindType.COUNTER64, b"\x00" * 10)})
    config = NodeConfig(
        name="n",
        host=host,
        community="public",
        gapit_code={
            "objects": [{
                "group_name": "g",
                "group": [{"address": "1.1"}, {"address": "1.2"}],
            }],
        },
    )
    node = _node(config, MockSnmpEngine(agents={host: agent}), store=store)

    with pytest.raises(DecodeError):
        await node.poll()

    assert store.get("n", NONEXISTENT_OIDS_KEY) == ["1.2"]


# ── tuning and overlapping cycles ────────────────────────────────────


def _two_groups(read_priority=60) -> dict:
    return {
        "objects": [
            {
                "group_name": name,
                "read_priority": read_priority,
                "group": [
                    {"address": f"1.3.6.1.4.1.99.{idx}.{i}", "description": f"v{i}"}
                    for i in range(1, 11)
                ],
            }
            for idx, name in ((1, "g1"), (2, "g2"))
        ],
    }


@pytest.mark.asyncio
async def test_groups_beyond_tuned_block_stay_due(host):
    agent = MockAgent(max_oids=10)
    config = NodeConfig(name="n", host=host, community="public", gapit_code=_two_groups())
    node = _node(config, MockSnmpEngine(agents={host: agent}), tuning_step=10)

    first = await node.poll()
    assert [m.measurement for m in first.payload] == ["g1"]

    # same clock: g1 waits for its interval, g2 was never read
    second = await node.poll()
    assert second is not None
    assert [m.measurement for m in second.payload] == ["g2"]
    assert agent.requests[-1] == [f"1.3.6.1.4.1.99.2.{i}" for i in range(1, 11)]
    assert node.read_scheduler.schedule == {"objects": {"g1": 1060, "g2": 1060}}


@pytest.mark.asyncio
async def test_overlapping_polls_see_previous_schedule(host):
    agent = MockAgent(latency=0.01)
    config = NodeConfig(name="n", host=host, community="public", gapit_code=_two_groups())
    node = _node(config, MockSnmpEngine(agents={host: agent}))

    first, second = await asyncio.gather(node.poll(), node.poll())

    assert [m.measurement for m in first.payload] == ["g1", "g2"]
    assert second is None
    assert len(agent.requests) == 1


@pytest.mark.asyncio
async def test_overlapping_polls_see_previous_cache(raw_gapit_code, host, mock_engine, ups_agent):
    ups_agent.latency = 0.01
    config = _config(raw_gapit_code, host, gapit_code=_with_missing_member(raw_gapit_code))
    node = _node(config, mock_engine)

    await asyncio.gather(node.poll(), node.poll())

    assert len(ups_agent.requests) == 2
    assert MISSING in ups_agent.requests[0]
    assert MISSING not in ups_agent.requests[1]


# ── minions ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_minion_devices_polled_separately(host):
    engine = MockSnmpEngine()
    config = NodeConfig(
        name="pdus",
        host=host,
        community="public",
        device_name="pdu1, pdu2",
        minion_ids="1,2",
        tagname_device_name="pdu",
        custom_tags={"pdu2": {"rack": "A02"}},
        gapit_code={
            "objects": [{
                "group_name": "power",
                "group": [{"address": "1.3.6.1.4.1.31034.x.1", "description": "Voltage"}],
            }],
        },
    )

    result = await _node(config, engine).poll()

    assert engine.agent(host).requests == [["1.3.6.1.4.1.31034.1.1", "1.3.6.1.4.1.31034.2.1"]]
    assert [m.tags for m in result.payload] == [
        {"pdu": "pdu1"},
        {"pdu": "pdu2", "rack": "A02"},
    ]
