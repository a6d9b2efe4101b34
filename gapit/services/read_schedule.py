"""
Read Scheduler.

Lets every group be polled at its own interval. ``read_priority`` is the
interval in seconds (0 = every tick) or "never". The schedule maps
source key -> group name -> next due time (epoch seconds) and is kept in the
node context between cycles.
"""
from __future__ import annotations

import logging

from gapit.schemas.gapit_code import Group
from gapit.services.context_store import NEXT_READ_KEY, NodeContextStore

logger = logging.getLogger(__name__)

Schedule = dict[str, dict[str, float]]


class ReadScheduler:
    """Per-node due-time tracking for groups."""

    def __init__(self, store: NodeContextStore, scope: str) -> None:
        self._store = store
        self._scope = scope
        self.schedule: Schedule = {}
        self._dirty = False

    def load(self) -> None:
        """Read the persisted schedule (start of cycle)."""
        self.schedule = self._store.get(self._scope, NEXT_READ_KEY, {}) or {}
        self._dirty = False

    def _entry(self, source_key: str, group: Group) -> float:
        groups = self.schedule.setdefault(source_key, {})
        if group.group_name not in groups:
            # first sighting: due immediately
            groups[group.group_name] = 0
            self._dirty = True
        return groups[group.group_name]

    def is_due(self, now: float, source_key: str, group: Group) -> bool:
        if group.is_never_read:
            logger.debug(
                "Skipping group '%s' of '%s' (read_priority=never)",
                group.group_name, source_key,
            )
            return False
        next_read = self._entry(source_key, group)
        if now < next_read:
            logger.debug(
                "Skipping group '%s' of '%s', next read in %.0fs",
                group.group_name, source_key, next_read - now,
            )
            return False
        return True

    def mark_polled(self, now: float, source_key: str, group: Group) -> None:
        if group.is_never_read:
            return
        self.schedule.setdefault(source_key, {})[group.group_name] = (
            now + int(group.read_priority)
        )
        self._dirty = True

    def persist(self) -> bool:
        if not self._dirty:
            return False
        self._store.set(self._scope, NEXT_READ_KEY, self.schedule)
        self._dirty = False
        return True
