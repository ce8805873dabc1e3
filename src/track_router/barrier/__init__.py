"""Barrier polygon storage and loading."""

from track_router.barrier.io import load_barrier_store, read_barrier_polygons
from track_router.barrier.store import BarrierStore, CrossingPoint

__all__ = [
    "BarrierStore",
    "CrossingPoint",
    "load_barrier_store",
    "read_barrier_polygons",
]
