"""Failure taxonomy for barrier loading and track rerouting."""
from __future__ import annotations

from datetime import datetime
from typing import Optional


class RerouteError(Exception):
    """Base class for every failure the rerouting core reports."""

    kind = "reroute_error"


class InvalidGeometry(RerouteError):
    """Malformed barrier input, detected when the store is loaded."""

    kind = "invalid_geometry"

    def __init__(self, message: str, polygon_index: Optional[int] = None) -> None:
        super().__init__(message)
        self.polygon_index = polygon_index


class NoFeasibleRoute(RerouteError):
    """No barrier-respecting path between two segment endpoints."""

    kind = "no_feasible_route"

    def __init__(
        self,
        message: str,
        segment_index: Optional[int] = None,
        expansions: int = 0,
        buffer_distance: Optional[float] = None,
    ) -> None:
        super().__init__(message)
        self.segment_index = segment_index
        self.expansions = expansions
        self.buffer_distance = buffer_distance


class TimeOrderingConflict(RerouteError):
    """Reassembly produced a timestamp that does not increase."""

    kind = "time_ordering_conflict"

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        previous: Optional[datetime] = None,
        current: Optional[datetime] = None,
    ) -> None:
        super().__init__(message)
        self.position = position
        self.previous = previous
        self.current = current


class PreconditionViolation(RerouteError):
    """Input track (or detour set) breaks an ordering or shape precondition."""

    kind = "precondition_violation"

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        super().__init__(message)
        self.position = position
