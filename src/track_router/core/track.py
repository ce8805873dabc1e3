"""Track, segment and detour value types."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterator, Mapping, Optional, Sequence, Tuple
import math

from shapely.geometry import LineString

from track_router.core.errors import PreconditionViolation


REROUTED_ATTR = "rerouted"

Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True, slots=True)
class TrackPoint:
    x: float
    y: float
    time: Optional[datetime] = None
    attrs: Mapping[str, Any] = field(default_factory=dict, hash=False)

    @property
    def xy(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def is_rerouted(self) -> bool:
        return bool(self.attrs.get(REROUTED_ATTR, False))


@dataclass(frozen=True, slots=True)
class Segment:
    """Two consecutive points of a track; ``index`` is the position of ``start``."""

    index: int
    start: TrackPoint
    end: TrackPoint

    @property
    def line(self) -> LineString:
        return LineString([self.start.xy, self.end.xy])

    @property
    def bounds(self) -> Bounds:
        return (
            min(self.start.x, self.end.x),
            min(self.start.y, self.end.y),
            max(self.start.x, self.end.x),
            max(self.start.y, self.end.y),
        )

    @property
    def length(self) -> float:
        return math.hypot(self.end.x - self.start.x, self.end.y - self.start.y)


@dataclass(frozen=True, slots=True)
class Track:
    points: Tuple[TrackPoint, ...]
    deployment_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.points, tuple):
            object.__setattr__(self, "points", tuple(self.points))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[TrackPoint]:
        return iter(self.points)

    @property
    def coords(self) -> list[Tuple[float, float]]:
        return [p.xy for p in self.points]

    @property
    def is_timed(self) -> bool:
        return bool(self.points) and self.points[0].time is not None

    @property
    def bounds(self) -> Optional[Bounds]:
        if not self.points:
            return None
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return (min(xs), min(ys), max(xs), max(ys))

    def segments(self) -> Iterator[Segment]:
        for idx in range(len(self.points) - 1):
            yield Segment(index=idx, start=self.points[idx], end=self.points[idx + 1])

    def segment(self, index: int) -> Segment:
        if index < 0 or index >= len(self.points) - 1:
            raise IndexError(f"segment index {index} out of range for track of {len(self.points)} points")
        return Segment(index=index, start=self.points[index], end=self.points[index + 1])

    def with_points(self, points: Sequence[TrackPoint]) -> "Track":
        return Track(points=tuple(points), deployment_id=self.deployment_id)


@dataclass(frozen=True, slots=True)
class Detour:
    """Shortest barrier-respecting replacement for one segment.

    ``points[0]`` and ``points[-1]`` are the segment's own endpoint objects.
    Interior points are untimed until the reassembler assigns times.
    """

    segment_index: int
    points: Tuple[TrackPoint, ...]
    length: float

    @property
    def hops(self) -> int:
        return len(self.points) - 1

    @property
    def interior(self) -> Tuple[TrackPoint, ...]:
        return self.points[1:-1]

    @property
    def coords(self) -> list[Tuple[float, float]]:
        return [p.xy for p in self.points]


def rerouted_point(x: float, y: float, time: Optional[datetime] = None) -> TrackPoint:
    return TrackPoint(x=float(x), y=float(y), time=time, attrs={REROUTED_ATTR: True})


def validate_track(track: Track) -> None:
    """Reject tracks that are not strictly time-ordered or mix timed and untimed points."""
    points = track.points
    timed = [p.time is not None for p in points]
    if any(timed) and not all(timed):
        position = timed.index(not timed[0])
        raise PreconditionViolation(
            f"track {track.deployment_id!r} mixes timed and untimed points (first at {position})",
            position=position,
        )
    for idx, point in enumerate(points):
        if not (math.isfinite(point.x) and math.isfinite(point.y)):
            raise PreconditionViolation(
                f"track {track.deployment_id!r} has a non-finite coordinate at {idx}",
                position=idx,
            )
    if not all(timed):
        return
    aware = [p.time.tzinfo is not None for p in points]
    if any(aware) and not all(aware):
        position = aware.index(not aware[0])
        raise PreconditionViolation(
            f"track {track.deployment_id!r} mixes timezone-aware and naive timestamps (first at {position})",
            position=position,
        )
    for idx in range(1, len(points)):
        prev_t = points[idx - 1].time
        cur_t = points[idx].time
        if cur_t == prev_t:
            raise PreconditionViolation(
                f"track {track.deployment_id!r} has a duplicate timestamp {cur_t.isoformat()} at {idx}",
                position=idx,
            )
        if cur_t < prev_t:
            raise PreconditionViolation(
                f"track {track.deployment_id!r} is not time-sorted at {idx}",
                position=idx,
            )
