"""A* search over a visibility graph, producing a segment detour."""
from __future__ import annotations

import heapq
import logging
import math
from typing import List, Tuple

import numpy as np

from track_router.core.config import TieBreak
from track_router.core.errors import NoFeasibleRoute
from track_router.core.track import Detour, Segment, TrackPoint, rerouted_point
from track_router.routing.reconstruct import reconstruct_path
from track_router.routing.visgraph import VisibilityGraph


logger = logging.getLogger(__name__)

# lengths closer than this (relative) count as equal for the hop tie-break
LENGTH_RTOL = 1e-9


def shortest_node_path(
    graph: VisibilityGraph,
    tie_break: TieBreak = TieBreak.FEWEST_HOPS,
) -> Tuple[List[int], float]:
    """Return the node ids and length of the shortest start-to-end path.

    Path cost is ``(length, hops)`` compared lexicographically when
    ``tie_break`` is FEWEST_HOPS. Heap entries carry the node id last so
    equal keys resolve in canonical node order.
    """
    start_id = graph.start_id
    goal_id = graph.end_id
    node_count = graph.node_count
    goal_x, goal_y = graph.node_xy(goal_id)
    heuristic = np.hypot(graph.nodes[:, 0] - goal_x, graph.nodes[:, 1] - goal_y).tolist()
    use_hops = tie_break is TieBreak.FEWEST_HOPS

    dist = [math.inf] * node_count
    hops = [node_count] * node_count
    prev_node = [-1] * node_count
    closed = [False] * node_count
    dist[start_id] = 0.0
    hops[start_id] = 0

    heap: list[Tuple[float, int, int]] = [(heuristic[start_id], 0, start_id)]
    while heap:
        _, _, u = heapq.heappop(heap)
        if closed[u]:
            continue
        closed[u] = True
        if u == goal_id:
            break
        for v, _, length in graph.adjacency[u]:
            if closed[v]:
                continue
            nd = dist[u] + length
            nh = hops[u] + 1
            if _improves(nd, nh, dist[v], hops[v], use_hops):
                dist[v] = nd
                hops[v] = nh
                prev_node[v] = u
                heapq.heappush(heap, (nd + heuristic[v], nh if use_hops else 0, v))

    if not math.isfinite(dist[goal_id]):
        return [], math.inf
    return reconstruct_path(prev_node, goal_id), dist[goal_id]


def reroute_segment(
    segment: Segment,
    graph: VisibilityGraph,
    tie_break: TieBreak = TieBreak.FEWEST_HOPS,
) -> Detour:
    """Shortest barrier-respecting detour between the segment's endpoints."""
    path, _ = shortest_node_path(graph, tie_break)
    if not path:
        raise NoFeasibleRoute(
            f"Segment {segment.index}: no path between endpoints in visibility graph",
            segment_index=segment.index,
            expansions=graph.expansions,
            buffer_distance=graph.buffer_distance,
        )

    points: list[TrackPoint] = [segment.start]
    points.extend(rerouted_point(*graph.node_xy(node_id)) for node_id in path[1:-1])
    points.append(segment.end)
    length = sum(
        math.hypot(b.x - a.x, b.y - a.y) for a, b in zip(points, points[1:])
    )
    logger.debug("[REROUTE] Segment %d: detour of %d vertices, length %.1f", segment.index, len(points), length)
    return Detour(segment_index=segment.index, points=tuple(points), length=length)


def _improves(nd: float, nh: int, old_d: float, old_h: int, use_hops: bool) -> bool:
    if not use_hops:
        return nd < old_d
    if math.isinf(old_d):
        return True
    tol = LENGTH_RTOL * max(1.0, abs(old_d))
    if nd < old_d - tol:
        return True
    return nd <= old_d + tol and nh < old_h
