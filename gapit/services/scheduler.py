"""
Scheduler Service.

Ticks every polling node at its configured interval using APScheduler and
hands each result to a sink. ``max_instances=1`` keeps cycles of one node
from overlapping; PollNode also guards against that on its own.
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from gapit.core.errors import GapitError
from gapit.schemas.node import PollResult
from gapit.services.poll_node import PollNode

logger = logging.getLogger(__name__)

ResultSink = Callable[[PollResult], Union[Awaitable[None], None]]


async def run_node_cycle(node: PollNode, sink: ResultSink) -> Optional[PollResult]:
    """
    Poll once and deliver the result.

    Cycle errors are logged, not raised: the next tick simply tries again.
    """
    try:
        result = await node.poll()
    except GapitError as e:
        logger.error("Poll cycle of '%s' failed: %s", node.name, e)
        return None
    if result is None:
        return None
    delivered = sink(result)
    if inspect.isawaitable(delivered):
        await delivered
    return result


class SchedulerService:
    """
    Interval jobs for polling nodes.

    One job per node, id "poll_{node name}".
    """

    def __init__(self, sink: ResultSink) -> None:
        """Initialize scheduler."""
        self.scheduler = AsyncIOScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": 30,
            },
        )
        self._sink = sink
        self._nodes: dict[str, PollNode] = {}
        self._jobs: dict[str, str] = {}  # node name -> job_id

    def add_node_job(self, node: PollNode, initial_delay: float = 0) -> str:
        """
        Add a scheduled poll job for a node.

        Args:
            node: the polling node
            initial_delay: Seconds to delay the first trigger (for staggering)

        Returns:
            str: Job ID
        """
        job_id = f"poll_{node.name}"

        if node.name in self._jobs:
            self.remove_job(node.name)

        trigger_kwargs: dict[str, Any] = {"seconds": node.config.interval}
        if initial_delay > 0:
            trigger_kwargs["start_date"] = (
                datetime.now(timezone.utc) + timedelta(seconds=initial_delay)
            )

        job = self.scheduler.add_job(
            run_node_cycle,
            trigger=IntervalTrigger(**trigger_kwargs),
            id=job_id,
            kwargs={"node": node, "sink": self._sink},
            replace_existing=True,
        )

        self._nodes[node.name] = node
        self._jobs[node.name] = job.id
        logger.info(
            "Added poll job '%s' every %ds", node.name, node.config.interval,
        )
        return job.id

    def remove_job(self, node_name: str) -> bool:
        """Remove a scheduled job."""
        job_id = self._jobs.get(node_name)
        if job_id:
            self.scheduler.remove_job(job_id)
            del self._jobs[node_name]
            self._nodes.pop(node_name, None)
            logger.info("Removed poll job '%s'", node_name)
            return True
        return False

    def get_jobs(self) -> list[dict[str, Any]]:
        """Get list of all scheduled jobs."""
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run": str(getattr(job, "next_run_time", None)),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]

    def start(self) -> None:
        """Start the scheduler (requires a running event loop)."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started with %d jobs", len(self._jobs))

    def shutdown(self) -> None:
        """Shutdown the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown")
