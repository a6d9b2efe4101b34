"""
Node Context Store.

Key/value storage that outlives a single poll cycle. Each polling node owns
one scope (its name); the poller keeps two keys there:

- ``nonexistent_oids``: list of OIDs known to be absent on the agent
- ``next_read``: {source_key: {group_name: epoch_seconds}}

MemoryContextStore lives as long as the process; JsonFileContextStore
survives restarts.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

NONEXISTENT_OIDS_KEY = "nonexistent_oids"
NEXT_READ_KEY = "next_read"


class NodeContextStore(Protocol):
    """Storage interface used by polling nodes."""

    def get(self, scope: str, key: str, default: Any = None) -> Any: ...

    def set(self, scope: str, key: str, value: Any) -> None: ...


class MemoryContextStore:
    """In-process context; values are copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    def get(self, scope: str, key: str, default: Any = None) -> Any:
        if key not in self._data.get(scope, {}):
            return default
        return copy.deepcopy(self._data[scope][key])

    def set(self, scope: str, key: str, value: Any) -> None:
        self._data.setdefault(scope, {})[key] = copy.deepcopy(value)


class JsonFileContextStore(MemoryContextStore):
    """
    Context persisted to one JSON file.

    The whole file is rewritten on every ``set`` (write to a temp file, then
    rename), so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)
        if self._path.exists():
            with open(self._path, encoding="utf-8") as f:
                self._data = json.load(f)
            logger.info("Loaded node context from %s", self._path)

    def set(self, scope: str, key: str, value: Any) -> None:
        super().set(scope, key, value)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, sort_keys=True)
            os.replace(tmp, self._path)
        except BaseException:
            os.unlink(tmp)
            raise


def build_context_store(path: str = "") -> NodeContextStore:
    """JSON file store when a path is configured, otherwise memory."""
    if path:
        return JsonFileContextStore(path)
    return MemoryContextStore()
