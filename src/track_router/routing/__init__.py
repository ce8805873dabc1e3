"""Visibility-graph rerouting of land-crossing track segments."""

from track_router.routing.pipeline import (
    RerouteOutcome,
    RerouteSummary,
    TrackRerouter,
    TrackState,
    reroute_track,
    summarize,
    trim_track,
)
from track_router.routing.reassemble import check_time_order, reassemble
from track_router.routing.shortest_path import reroute_segment, shortest_node_path
from track_router.routing.visgraph import VisibilityGraph, build_visibility_graph

__all__ = [
    "RerouteOutcome",
    "RerouteSummary",
    "TrackRerouter",
    "TrackState",
    "VisibilityGraph",
    "build_visibility_graph",
    "check_time_order",
    "reassemble",
    "reroute_segment",
    "reroute_track",
    "shortest_node_path",
    "summarize",
    "trim_track",
]
