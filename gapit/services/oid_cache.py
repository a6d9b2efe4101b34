"""
Nonexistent-OID Cache.

Remembers OIDs the agent reported as absent (noSuchName, noSuchObject,
noSuchInstance) so they are left out of later requests. The set only grows;
it is cleared only from outside (node restart, see PollNode).

Lifecycle per cycle: ``load()`` at the start, ``persist()`` at the end.
``persist()`` writes only when something was added since the last write.
"""
from __future__ import annotations

import logging

from gapit.services.context_store import NONEXISTENT_OIDS_KEY, NodeContextStore

logger = logging.getLogger(__name__)


class NonexistentOidCache:
    """Per-node set of OIDs known to be missing on the agent."""

    def __init__(
        self,
        store: NodeContextStore,
        scope: str,
        enabled: bool = True,
    ) -> None:
        self._store = store
        self._scope = scope
        self.enabled = enabled
        self._oids: list[str] = []
        self._known: set[str] = set()
        self._dirty = False

    def load(self) -> None:
        """Read the persisted set (start of cycle)."""
        self._oids = list(self._store.get(self._scope, NONEXISTENT_OIDS_KEY, []) or [])
        self._known = set(self._oids)
        self._dirty = False

    def reset(self) -> None:
        """Empty the persisted set."""
        logger.info(
            "Initializing nonexistent OIDs for '%s' (set to empty)", self._scope,
        )
        self._oids = []
        self._known = set()
        self._store.set(self._scope, NONEXISTENT_OIDS_KEY, [])
        self._dirty = False

    def is_known_missing(self, oid: str) -> bool:
        """True when the OID is cached as missing and skipping is enabled."""
        return self.enabled and oid in self._known

    def mark_missing(self, oid: str) -> None:
        """Record an absent OID; no-op when skipping is disabled."""
        if not self.enabled or oid in self._known:
            return
        self._known.add(oid)
        self._oids.append(oid)
        self._dirty = True
        logger.debug("Added %s to nonexistent OIDs of '%s'", oid, self._scope)

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def oids(self) -> list[str]:
        return list(self._oids)

    def persist(self) -> bool:
        """Write the set if modified since the last persist. Returns True if written."""
        if not self._dirty:
            return False
        self._store.set(self._scope, NONEXISTENT_OIDS_KEY, list(self._oids))
        self._dirty = False
        logger.info(
            "Saved %d nonexistent OIDs for '%s'", len(self._oids), self._scope,
        )
        return True
