"""Track value types, errors and configuration."""

from track_router.core.errors import (
    InvalidGeometry,
    NoFeasibleRoute,
    PreconditionViolation,
    RerouteError,
    TimeOrderingConflict,
)
from track_router.core.track import (
    REROUTED_ATTR,
    Detour,
    Segment,
    Track,
    TrackPoint,
    validate_track,
)

__all__ = [
    "REROUTED_ATTR",
    "Detour",
    "InvalidGeometry",
    "NoFeasibleRoute",
    "PreconditionViolation",
    "RerouteError",
    "Segment",
    "TimeOrderingConflict",
    "Track",
    "TrackPoint",
    "validate_track",
]
