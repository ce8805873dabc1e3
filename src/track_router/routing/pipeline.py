"""Per-track rerouting pipeline with explicit state and failure values."""
from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence, Tuple
import logging

from track_router.barrier.store import BarrierStore
from track_router.core.config import RerouteParams
from track_router.core.errors import PreconditionViolation, RerouteError
from track_router.core.track import Detour, Segment, Track, validate_track
from track_router.routing.reassemble import reassemble
from track_router.routing.shortest_path import reroute_segment
from track_router.routing.visgraph import VisibilityGraph, build_visibility_graph


logger = logging.getLogger(__name__)

GraphBuilder = Callable[[Segment, BarrierStore, float, int, float], VisibilityGraph]


class TrackState(str, Enum):
    LOADED = "loaded"
    VIOLATIONS_DETECTED = "violations_detected"
    REROUTED = "rerouted"
    REASSEMBLED = "reassembled"
    FAILED = "failed"


@dataclass(frozen=True)
class RerouteOutcome:
    """Result value for one track.

    ``track`` is the corrected track when ``state`` is REASSEMBLED and the
    untouched input otherwise. ``failed_stage`` is the last state reached
    before a failure.
    """

    state: TrackState
    track: Track
    history: Tuple[TrackState, ...]
    violations: Tuple[int, ...] = ()
    detours: Tuple[Detour, ...] = ()
    failure: Optional[RerouteError] = None
    failed_stage: Optional[TrackState] = None

    @property
    def ok(self) -> bool:
        return self.state is TrackState.REASSEMBLED

    @property
    def reason(self) -> Optional[str]:
        return self.failure.kind if self.failure is not None else None

    @property
    def inserted_count(self) -> int:
        return sum(len(d.points) - 2 for d in self.detours)


@dataclass
class RerouteSummary:
    tracks: int = 0
    by_state: dict[str, int] = field(default_factory=dict)
    by_reason: dict[str, int] = field(default_factory=dict)
    segments_rerouted: int = 0
    vertices_inserted: int = 0
    detour_length: float = 0.0

    @property
    def failed(self) -> int:
        return self.by_state.get(TrackState.FAILED.value, 0)


class TrackRerouter:
    """Detect land crossings in tracks and replace them with detours.

    The barrier store is shared read-only; every call works on its own
    track, so one instance can serve many threads. With ``trim`` set, points
    on land at either end are dropped before crossings are searched, and a
    track lying entirely on land fails with a precondition violation.
    """

    def __init__(
        self,
        store: BarrierStore,
        params: Optional[RerouteParams] = None,
        graph_builder: GraphBuilder = build_visibility_graph,
        trim: bool = False,
    ) -> None:
        self.store = store
        self.params = params or RerouteParams()
        self.graph_builder = graph_builder
        self.trim = trim

    def find_violations(self, track: Track) -> list[Segment]:
        """Segments of ``track`` that enter a barrier, in track order."""
        if self.store.disjoint_from(track.bounds):
            return []
        return [
            segment
            for segment in track.segments()
            if not self.store.disjoint_from(segment.bounds) and self.store.intersects(segment)
        ]

    def detour_for(self, segment: Segment) -> Detour:
        params = self.params
        graph = self.graph_builder(
            segment,
            self.store,
            params.buffer_distance,
            params.max_buffer_expansions,
            params.buffer_growth_factor,
        )
        return reroute_segment(segment, graph, params.tie_break)

    def compute_detours(self, segments: Sequence[Segment], parallel: bool = True) -> list[Detour]:
        """Detours for independent segments; the first failure in track order is raised."""
        workers = self.params.max_workers
        if parallel and workers > 1 and len(segments) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                return list(pool.map(self.detour_for, segments))
        return [self.detour_for(segment) for segment in segments]

    def reroute(self, track: Track) -> RerouteOutcome:
        return self._reroute(track, parallel_segments=True)

    def reroute_many(self, tracks: Iterable[Track]) -> list[RerouteOutcome]:
        """Reroute tracks concurrently, one task per track, results in input order."""
        tracks = list(tracks)
        workers = self.params.max_workers
        if workers > 1 and len(tracks) > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                return list(pool.map(lambda t: self._reroute(t, parallel_segments=False), tracks))
        return [self._reroute(track, parallel_segments=False) for track in tracks]

    def _reroute(self, track: Track, parallel_segments: bool) -> RerouteOutcome:
        loaded = track
        history: list[TrackState] = [TrackState.LOADED]
        violations: Tuple[int, ...] = ()
        detours: Tuple[Detour, ...] = ()
        try:
            validate_track(track)
            if self.trim:
                track = trim_track(track, self.store)
            segments = self.find_violations(track)
            violations = tuple(s.index for s in segments)
            history.append(TrackState.VIOLATIONS_DETECTED)
            if not segments:
                history.extend([TrackState.REROUTED, TrackState.REASSEMBLED])
                return RerouteOutcome(state=TrackState.REASSEMBLED, track=track, history=tuple(history))

            logger.info("[REROUTE] Track %s: %d segments cross land", track.deployment_id, len(segments))
            detours = tuple(self.compute_detours(segments, parallel=parallel_segments))
            history.append(TrackState.REROUTED)
            corrected = reassemble(track, segments, detours)
            history.append(TrackState.REASSEMBLED)
        except RerouteError as exc:
            logger.warning(
                "[REROUTE] Track %s failed after %s: %s",
                track.deployment_id,
                history[-1].value,
                exc,
            )
            return RerouteOutcome(
                state=TrackState.FAILED,
                track=loaded,
                history=(*history, TrackState.FAILED),
                violations=violations,
                detours=detours,
                failure=exc,
                failed_stage=history[-1],
            )

        return RerouteOutcome(
            state=TrackState.REASSEMBLED,
            track=corrected,
            history=tuple(history),
            violations=violations,
            detours=detours,
        )


def reroute_track(
    track: Track,
    store: BarrierStore,
    params: Optional[RerouteParams] = None,
) -> RerouteOutcome:
    return TrackRerouter(store, params).reroute(track)


def trim_track(track: Track, store: BarrierStore) -> Track:
    """Drop leading and trailing points that lie strictly inside a barrier."""
    points = track.points
    lo = 0
    hi = len(points) - 1
    while lo <= hi and store.contains_point(points[lo].x, points[lo].y):
        lo += 1
    while hi >= lo and store.contains_point(points[hi].x, points[hi].y):
        hi -= 1
    if lo > hi:
        raise PreconditionViolation(f"Track {track.deployment_id!r} lies entirely on land")
    if lo == 0 and hi == len(points) - 1:
        return track
    logger.info(
        "[REROUTE] Track %s: trimmed %d leading and %d trailing points on land",
        track.deployment_id,
        lo,
        len(points) - 1 - hi,
    )
    return track.with_points(points[lo : hi + 1])


def summarize(outcomes: Iterable[RerouteOutcome]) -> RerouteSummary:
    summary = RerouteSummary()
    states: Counter[str] = Counter()
    reasons: Counter[str] = Counter()
    for outcome in outcomes:
        summary.tracks += 1
        states[outcome.state.value] += 1
        if outcome.reason is not None:
            reasons[outcome.reason] += 1
        if outcome.ok:
            summary.segments_rerouted += len(outcome.detours)
            summary.vertices_inserted += outcome.inserted_count
            summary.detour_length += sum(d.length for d in outcome.detours)
    summary.by_state = dict(sorted(states.items()))
    summary.by_reason = dict(sorted(reasons.items()))
    return summary
