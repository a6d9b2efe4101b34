"""
Gapit SNMP poller - command line entry point.

Loads polling nodes from a YAML file and either runs one cycle per node or
keeps polling on each node's interval. Measurements are written to stdout
as JSON lines, ready for a time-series ingester.

Usage:
    gapit-poller                          # poll forever, config/nodes.yaml
    gapit-poller --nodes my-nodes.yaml --once
    GAPIT_SNMP_MOCK=true gapit-poller --once
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

from gapit.core.config import settings
from gapit.schemas.node import NodeConfig, PollResult
from gapit.services.context_store import NodeContextStore, build_context_store
from gapit.services.poll_node import PollNode
from gapit.services.scheduler import SchedulerService, run_node_cycle
from gapit.snmp.session_cache import SnmpSessionCache

logger = logging.getLogger(__name__)


def load_nodes_config(path: str | Path) -> list[NodeConfig]:
    """
    Load node definitions from YAML.

        nodes:
          - name: pdu-rack1
            host: 10.0.0.5
            community: public
            gapit_code: {...}
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.warning("%s not found, no nodes will be polled", config_path)
        return []

    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not raw:
        return []

    nodes: list[NodeConfig] = []
    for entry in raw.get("nodes") or []:
        if not entry.get("enabled", True):
            logger.info("Skipping disabled node: %s", entry.get("name"))
            continue
        nodes.append(NodeConfig.model_validate(entry))
    return nodes


def build_engine() -> Any:
    """Real pysnmp engine, or the mock agent when GAPIT_SNMP_MOCK is set."""
    if settings.snmp_mock:
        from gapit.snmp.mock_engine import MockSnmpEngine

        logger.info("SNMP polling using MOCK engine (no real devices)")
        return MockSnmpEngine()
    from gapit.snmp.engine import AsyncSnmpEngine

    return AsyncSnmpEngine()


def build_nodes(
    configs: list[NodeConfig],
    sessions: SnmpSessionCache,
    store: NodeContextStore,
) -> list[PollNode]:
    return [PollNode(config, sessions, store) for config in configs]


def write_measurements(result: PollResult) -> None:
    """Sink: one JSON object per measurement on stdout."""
    for measurement in result.payload:
        sys.stdout.write(json.dumps(measurement.to_record()) + "\n")
    sys.stdout.flush()


async def run_once(nodes: list[PollNode]) -> int:
    """Poll every node once; returns the number of failed or empty nodes."""
    results = await asyncio.gather(
        *[run_node_cycle(node, write_measurements) for node in nodes],
    )
    return sum(1 for r in results if r is None)


async def serve(nodes: list[PollNode]) -> None:
    """Poll on schedule until cancelled."""
    service = SchedulerService(write_measurements)
    count = len(nodes)
    for idx, node in enumerate(nodes):
        # stagger first ticks across one interval
        service.add_node_job(node, initial_delay=node.config.interval * idx / max(count, 1))
    service.start()
    try:
        await asyncio.Event().wait()
    finally:
        service.shutdown()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Gapit SNMP poller")
    parser.add_argument("--nodes", type=str, default=settings.nodes_file)
    parser.add_argument("--once", action="store_true", help="poll each node once and exit")
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level.upper(),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args(argv)


def run(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    configs = load_nodes_config(args.nodes)
    if not configs:
        logger.error("No nodes configured in %s", args.nodes)
        return 1

    sessions = SnmpSessionCache(build_engine(), retries=settings.snmp_retries)
    store = build_context_store(settings.context_store_path)
    nodes = build_nodes(configs, sessions, store)

    if args.once:
        failed = asyncio.run(run_once(nodes))
        return 1 if failed == len(nodes) else 0

    try:
        asyncio.run(serve(nodes))
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    return 0


if __name__ == "__main__":
    sys.exit(run())
