from __future__ import annotations

import pytest

from track_router.barrier.store import BarrierStore

from track_fixtures import ISLAND


@pytest.fixture
def island_store() -> BarrierStore:
    return BarrierStore.load([ISLAND], crs="EPSG:3338")
