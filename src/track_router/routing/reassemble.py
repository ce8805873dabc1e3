"""Splice detours back into a time-ordered track."""
from __future__ import annotations

from typing import Dict, List, Sequence
import logging
import math

from track_router.core.errors import PreconditionViolation, TimeOrderingConflict
from track_router.core.track import Detour, Segment, Track, TrackPoint


logger = logging.getLogger(__name__)


def reassemble(
    track: Track,
    violating_segments: Sequence[Segment],
    detours: Sequence[Detour],
) -> Track:
    """Replace each violating segment of ``track`` with its detour.

    Inserted vertices get times interpolated between the segment's endpoint
    times in proportion to cumulative distance along the detour. Original
    points are kept as the same objects. The result must be strictly
    increasing in time, else :class:`TimeOrderingConflict` is raised.
    """
    if not violating_segments and not detours:
        return track

    by_index = _match_detours(track, violating_segments, detours)
    points = track.points
    out: List[TrackPoint] = [points[0]]
    inserted = 0
    for idx in range(len(points) - 1):
        detour = by_index.get(idx)
        if detour is not None:
            interior = _interpolate_interior(detour, points[idx], points[idx + 1])
            out.extend(interior)
            inserted += len(interior)
        out.append(points[idx + 1])

    corrected = track.with_points(out)
    check_time_order(corrected)
    logger.debug(
        "[REASSEMBLE] Track %s: %d detours, %d vertices inserted",
        track.deployment_id,
        len(by_index),
        inserted,
    )
    return corrected


def check_time_order(track: Track) -> None:
    """Raise TimeOrderingConflict at the first non-increasing timestamp."""
    if not track.is_timed:
        return
    points = track.points
    for idx in range(1, len(points)):
        prev_t = points[idx - 1].time
        cur_t = points[idx].time
        if cur_t is None or prev_t is None or cur_t <= prev_t:
            raise TimeOrderingConflict(
                f"Track {track.deployment_id!r}: timestamp at position {idx} does not increase "
                f"({prev_t} -> {cur_t})",
                position=idx,
                previous=prev_t,
                current=cur_t,
            )


def _match_detours(
    track: Track,
    violating_segments: Sequence[Segment],
    detours: Sequence[Detour],
) -> Dict[int, Detour]:
    if len(violating_segments) != len(detours):
        raise PreconditionViolation(
            f"{len(violating_segments)} violating segments but {len(detours)} detours"
        )
    by_index: Dict[int, Detour] = {}
    for detour in detours:
        if detour.segment_index in by_index:
            raise PreconditionViolation(
                f"More than one detour for segment {detour.segment_index}",
                position=detour.segment_index,
            )
        by_index[detour.segment_index] = detour

    last = len(track.points) - 1
    for segment in violating_segments:
        idx = segment.index
        if idx < 0 or idx >= last:
            raise PreconditionViolation(f"Segment index {idx} outside track", position=idx)
        detour = by_index.get(idx)
        if detour is None:
            raise PreconditionViolation(f"No detour for segment {idx}", position=idx)
        if len(detour.points) < 2:
            raise PreconditionViolation(f"Detour for segment {idx} has fewer than 2 points", position=idx)
        start = track.points[idx]
        end = track.points[idx + 1]
        if detour.points[0].xy != start.xy or detour.points[-1].xy != end.xy:
            raise PreconditionViolation(
                f"Detour for segment {idx} does not start and end on the segment endpoints",
                position=idx,
            )
    return by_index


def _interpolate_interior(detour: Detour, start: TrackPoint, end: TrackPoint) -> List[TrackPoint]:
    interior = detour.points[1:-1]
    if not interior:
        return []
    if start.time is None or end.time is None:
        return [TrackPoint(x=p.x, y=p.y, time=None, attrs=p.attrs) for p in interior]

    coords = detour.coords
    cumulative = [0.0]
    for (x0, y0), (x1, y1) in zip(coords, coords[1:]):
        cumulative.append(cumulative[-1] + math.hypot(x1 - x0, y1 - y0))
    total = cumulative[-1]
    span = end.time - start.time

    timed: List[TrackPoint] = []
    for k, point in enumerate(interior, start=1):
        frac = cumulative[k] / total if total > 0 else k / (len(coords) - 1)
        timed.append(TrackPoint(x=point.x, y=point.y, time=start.time + span * frac, attrs=point.attrs))
    return timed
