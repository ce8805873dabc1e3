from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from track_router.core.errors import PreconditionViolation
from track_router.core.track import Track, TrackPoint, validate_track

from track_fixtures import T0, make_track


def test_valid_track_passes() -> None:
    track = make_track([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)])
    validate_track(track)
    assert [s.index for s in track.segments()] == [0, 1]
    assert track.bounds == (0.0, 0.0, 2.0, 2.0)


def test_duplicate_timestamp_rejected() -> None:
    points = (
        TrackPoint(0.0, 0.0, T0),
        TrackPoint(1.0, 0.0, T0 + timedelta(seconds=5)),
        TrackPoint(2.0, 0.0, T0 + timedelta(seconds=5)),
    )
    with pytest.raises(PreconditionViolation) as excinfo:
        validate_track(Track(points))
    assert excinfo.value.position == 2


def test_unsorted_track_rejected() -> None:
    points = (TrackPoint(0.0, 0.0, T0 + timedelta(seconds=10)), TrackPoint(1.0, 0.0, T0))
    with pytest.raises(PreconditionViolation):
        validate_track(Track(points))


def test_mixed_timed_and_untimed_rejected() -> None:
    points = (TrackPoint(0.0, 0.0, T0), TrackPoint(1.0, 0.0, None))
    with pytest.raises(PreconditionViolation) as excinfo:
        validate_track(Track(points))
    assert excinfo.value.position == 1


def test_untimed_track_is_ordered_by_sequence() -> None:
    track = Track((TrackPoint(0.0, 0.0), TrackPoint(1.0, 0.0)))
    validate_track(track)
    assert not track.is_timed


def test_mixed_aware_and_naive_times_rejected() -> None:
    points = (TrackPoint(0.0, 0.0, T0), TrackPoint(1.0, 0.0, datetime(2021, 6, 1, 13, 0)))
    with pytest.raises(PreconditionViolation) as excinfo:
        validate_track(Track(points))
    assert excinfo.value.position == 1
