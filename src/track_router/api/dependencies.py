"""Dependency wiring for API service."""
from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from track_router.barrier.io import load_barrier_store
from track_router.barrier.store import BarrierStore
from track_router.core.config import RerouteParams, get_config


BARRIERS_ENV_VAR = "TRACK_ROUTER_BARRIERS"


@lru_cache(maxsize=1)
def get_barrier_store() -> Optional[BarrierStore]:
    """Load the shared barrier store named by $TRACK_ROUTER_BARRIERS, once."""
    raw = os.environ.get(BARRIERS_ENV_VAR)
    if not raw:
        return None
    path = Path(raw)
    if not path.exists():
        return None
    cfg = get_config()
    cache = Path(cfg.io.barrier_cache) if cfg.io.barrier_cache else None
    return load_barrier_store(path, cache_path=cache)


def get_reroute_params() -> RerouteParams:
    return get_config().reroute
