"""
Module: stock_kernel.services.snapshot_cache
Responsibility: Explicit, in-process cache of selector snapshots keyed by
    query.  Reporting services read through it; the mutation service
    invalidates the entries a write affects.
Architecture position: Kernel > Services.  Holds immutable DTO tuples only,
    so a cached snapshot can be shared between reports without copying.

Invariants enforced:
    - Cached values are whatever the loader returned; callers only store
      tuples of frozen dataclasses.
    - Invalidation is explicit.  Nothing expires on a timer.
    - The internal dict is guarded by a lock; a loader runs outside the lock
      so a slow query never blocks readers of other keys.

Failure modes:
    - A loader exception propagates and nothing is cached for that key.

Non-goals:
    - No cross-process coherence and no detection of writes that bypass
      RawMaterialService.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Hashable
from typing import Any, TypeVar

from stock_kernel.logging_config import get_logger

logger = get_logger("services.snapshot_cache")

T = TypeVar("T")

# Snapshot families; the first element of every cache key.
MATERIALS = "materials"
LOTS = "lots"
MOVEMENTS = "movements"
RECENT_MOVEMENTS = "recent_movements"
SALES = "sales"

STOCK_FAMILIES: tuple[str, ...] = (MATERIALS, LOTS, MOVEMENTS, RECENT_MOVEMENTS)


class SnapshotCache:
    """
    Query-keyed snapshot cache.

    Keys are tuples whose first element names the snapshot family
    (``("movements", start, end, material_id)``).  ``invalidate("lots")``
    drops every key of that family.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[Hashable, ...], Any] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get_or_load(self, key: tuple[Hashable, ...], loader: Callable[[], T]) -> T:
        """Return the cached snapshot for ``key``, loading it on a miss."""
        with self._lock:
            if key in self._entries:
                self.hits += 1
                logger.debug("snapshot_cache_hit", extra={"family": key[0]})
                return self._entries[key]
            self.misses += 1

        logger.debug("snapshot_cache_miss", extra={"family": key[0]})
        value = loader()
        with self._lock:
            self._entries[key] = value
        return value

    def invalidate(self, *families: str) -> int:
        """
        Drop every entry of the named families; with no argument, drop all.

        Returns the number of entries removed.
        """
        with self._lock:
            if not families:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [k for k in self._entries if k[0] in families]
                for k in doomed:
                    del self._entries[k]
                removed = len(doomed)

        logger.info(
            "snapshot_cache_invalidated",
            extra={"families": list(families) or "all", "removed": removed},
        )
        return removed

    def clear(self) -> None:
        self.invalidate()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
