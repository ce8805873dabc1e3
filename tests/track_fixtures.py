"""Shared track and barrier builders for the test suite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from shapely.geometry import box

from track_router.core.track import Track, TrackPoint


T0 = datetime(2021, 6, 1, 12, 0, tzinfo=timezone.utc)

# 20 x 20 island, perimeter 80
ISLAND = box(40.0, -10.0, 60.0, 10.0)


def make_track(coords, step_s: float = 60.0, deployment_id: str | None = "seal-1") -> Track:
    points = tuple(
        TrackPoint(x=x, y=y, time=T0 + timedelta(seconds=i * step_s), attrs={"quality": "A", "seq": i})
        for i, (x, y) in enumerate(coords)
    )
    return Track(points=points, deployment_id=deployment_id)
