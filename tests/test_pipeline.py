from __future__ import annotations

from datetime import datetime

import pytest
from shapely.geometry import box

from track_router.barrier.store import BarrierStore
from track_router.core.config import RerouteParams
from track_router.core.errors import PreconditionViolation
from track_router.core.track import Track, TrackPoint
from track_router.routing.pipeline import TrackRerouter, TrackState, summarize, trim_track
from track_router.routing.visgraph import build_visibility_graph

from track_fixtures import T0, make_track


class _CountingBuilder:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, *args):
        self.calls += 1
        return build_visibility_graph(*args)


def _params(**overrides) -> RerouteParams:
    values = {"buffer_distance": 10.0, "max_buffer_expansions": 3}
    values.update(overrides)
    return RerouteParams(**values)


def test_clear_track_short_circuits(island_store: BarrierStore) -> None:
    builder = _CountingBuilder()
    rerouter = TrackRerouter(island_store, _params(), graph_builder=builder)
    track = make_track([(0.0, 100.0), (50.0, 120.0), (100.0, 100.0)])

    outcome = rerouter.reroute(track)

    assert outcome.ok
    assert outcome.track is track
    assert outcome.violations == ()
    assert builder.calls == 0
    assert outcome.history == (
        TrackState.LOADED,
        TrackState.VIOLATIONS_DETECTED,
        TrackState.REROUTED,
        TrackState.REASSEMBLED,
    )


def test_track_touching_coast_is_unchanged(island_store: BarrierStore) -> None:
    builder = _CountingBuilder()
    rerouter = TrackRerouter(island_store, _params(), graph_builder=builder)
    track = make_track([(30.0, 10.0), (70.0, 10.0)])

    outcome = rerouter.reroute(track)
    assert outcome.track is track
    assert builder.calls == 0


def test_island_crossing_rerouted(island_store: BarrierStore) -> None:
    rerouter = TrackRerouter(island_store, _params())
    track = make_track([(20.0, 2.0), (35.0, 2.0), (65.0, 2.0), (80.0, 2.0)])

    outcome = rerouter.reroute(track)

    assert outcome.ok
    assert outcome.violations == (1,)
    corrected = outcome.track
    assert corrected.coords == [(20.0, 2.0), (35.0, 2.0), (40.0, 10.0), (60.0, 10.0), (65.0, 2.0), (80.0, 2.0)]
    assert rerouter.find_violations(corrected) == []
    times = [p.time for p in corrected.points]
    assert all(a < b for a, b in zip(times, times[1:]))
    assert outcome.inserted_count == 2


def test_second_run_changes_nothing(island_store: BarrierStore) -> None:
    rerouter = TrackRerouter(island_store, _params())
    track = make_track([(0.0, 0.0), (100.0, 0.0), (100.0, 30.0), (0.0, 5.0)])

    first = rerouter.reroute(track)
    second = rerouter.reroute(first.track)

    assert first.ok and second.ok
    assert len(first.violations) == 2
    assert second.violations == ()
    assert second.track is first.track


def test_adjacent_violations_keep_time_order(island_store: BarrierStore) -> None:
    rerouter = TrackRerouter(island_store, _params())
    track = make_track([(35.0, 2.0), (65.0, 2.0), (35.0, -2.0)])

    outcome = rerouter.reroute(track)

    assert outcome.ok
    assert outcome.violations == (0, 1)
    times = [p.time for p in outcome.track.points]
    assert all(a < b for a, b in zip(times, times[1:]))
    for detour in outcome.detours:
        segment = track.segment(detour.segment_index)
        assert detour.points[0].xy == segment.start.xy
        assert detour.points[-1].xy == segment.end.xy


def test_endpoint_on_land_fails_as_value(island_store: BarrierStore) -> None:
    builder = _CountingBuilder()
    params = _params(buffer_distance=5.0, max_buffer_expansions=2)
    rerouter = TrackRerouter(island_store, params, graph_builder=builder)
    track = make_track([(80.0, 0.0), (50.0, 0.0), (20.0, 0.0)])

    outcome = rerouter.reroute(track)

    assert outcome.state is TrackState.FAILED
    assert outcome.reason == "no_feasible_route"
    assert outcome.failure.expansions == 2
    assert outcome.failed_stage is TrackState.VIOLATIONS_DETECTED
    assert outcome.track is track
    assert outcome.violations == (0, 1)
    assert builder.calls >= 1


def test_unsorted_track_fails_at_load(island_store: BarrierStore) -> None:
    track = Track((TrackPoint(0.0, 0.0, T0), TrackPoint(1.0, 0.0, T0)))
    outcome = TrackRerouter(island_store, _params()).reroute(track)
    assert outcome.reason == "precondition_violation"
    assert outcome.failed_stage is TrackState.LOADED
    assert outcome.history == (TrackState.LOADED, TrackState.FAILED)


def test_parallel_matches_sequential() -> None:
    store = BarrierStore.load([box(40.0, -10.0, 60.0, 10.0), box(140.0, -10.0, 160.0, 10.0)])
    tracks = [
        make_track([(0.0, 0.0), (100.0, 0.0), (200.0, 0.0)], deployment_id="a"),
        make_track([(0.0, 3.0), (200.0, 3.0)], deployment_id="b"),
        make_track([(0.0, 50.0), (200.0, 50.0)], deployment_id="c"),
        make_track([(80.0, 0.0), (50.0, 0.0)], deployment_id="d"),
    ]

    sequential = TrackRerouter(store, _params()).reroute_many(tracks)
    parallel = TrackRerouter(store, _params(max_workers=4)).reroute_many(tracks)
    single = [TrackRerouter(store, _params(max_workers=4)).reroute(t) for t in tracks]

    assert [o.track.deployment_id for o in parallel] == ["a", "b", "c", "d"]
    assert [o.track.coords for o in parallel] == [o.track.coords for o in sequential]
    assert [o.track.coords for o in single] == [o.track.coords for o in sequential]
    assert [o.state for o in parallel] == [
        TrackState.REASSEMBLED,
        TrackState.REASSEMBLED,
        TrackState.REASSEMBLED,
        TrackState.FAILED,
    ]

    summary = summarize(parallel)
    assert summary.tracks == 4
    assert summary.failed == 1
    assert summary.by_reason == {"no_feasible_route": 1}
    assert summary.segments_rerouted == 3


def test_trim_drops_points_on_land(island_store: BarrierStore) -> None:
    track = make_track([(50.0, 0.0), (55.0, 5.0), (70.0, 0.0), (80.0, 0.0), (45.0, 0.0)])
    trimmed = trim_track(track, island_store)
    assert trimmed.coords == [(70.0, 0.0), (80.0, 0.0)]
    assert trimmed.points[0] is track.points[2]


def test_trim_rejects_track_fully_on_land(island_store: BarrierStore) -> None:
    with pytest.raises(PreconditionViolation):
        trim_track(make_track([(50.0, 0.0), (55.0, 5.0)]), island_store)


def test_detour_never_runs_along_a_tile_seam(island_store: BarrierStore) -> None:
    tiled = BarrierStore.load([box(40.0, -10.0, 50.0, 10.0), box(50.0, -10.0, 60.0, 10.0)])
    rerouter = TrackRerouter(tiled, _params())
    track = make_track([(45.0, 20.0), (55.0, -20.0)])

    outcome = rerouter.reroute(track)

    assert outcome.ok
    assert outcome.violations == (0,)
    corrected = outcome.track
    assert rerouter.find_violations(corrected) == []
    # the dissolved tiles cover exactly the single island
    for segment in corrected.segments():
        assert not island_store.intersects(segment)


def test_mixed_timezones_fail_as_value(island_store: BarrierStore) -> None:
    track = Track((TrackPoint(0.0, 0.0, T0), TrackPoint(1.0, 0.0, datetime(2021, 6, 1, 13, 0))))
    outcomes = TrackRerouter(island_store, _params()).reroute_many([track, make_track([(0.0, 50.0), (10.0, 50.0)])])

    assert outcomes[0].state is TrackState.FAILED
    assert outcomes[0].reason == "precondition_violation"
    assert outcomes[1].ok


def test_trim_flag_fails_land_track_as_value(island_store: BarrierStore) -> None:
    rerouter = TrackRerouter(island_store, _params(), trim=True)
    on_land = make_track([(50.0, 0.0), (55.0, 5.0)], deployment_id="beached")
    partly = make_track([(50.0, 0.0), (70.0, 0.0), (80.0, 0.0)], deployment_id="seal-2")

    beached, trimmed = rerouter.reroute_many([on_land, partly])

    assert beached.state is TrackState.FAILED
    assert beached.reason == "precondition_violation"
    assert beached.failed_stage is TrackState.LOADED
    assert beached.track is on_land
    assert trimmed.ok
    assert trimmed.track.coords == [(70.0, 0.0), (80.0, 0.0)]
