"""Kernel services: the explicit snapshot cache."""

from stock_kernel.services.snapshot_cache import SnapshotCache

__all__ = ["SnapshotCache"]
