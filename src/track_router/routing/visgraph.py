"""Local visibility graphs around land-crossing track segments."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple
import logging

import networkx as nx
import numpy as np
import shapely

from track_router.barrier.store import BarrierStore
from track_router.core.errors import NoFeasibleRoute
from track_router.core.track import Bounds, Segment


logger = logging.getLogger(__name__)

# candidate sight lines tested per STRtree query
_PAIR_BATCH = 250_000


@dataclass
class VisibilityGraph:
    """Arena graph: node 0 is the segment start, node 1 the segment end.

    Remaining nodes are barrier boundary vertices in (x, y) order. Edges are
    mutually visible node pairs weighted by Euclidean length.
    """

    nodes: np.ndarray
    edges_u: np.ndarray
    edges_v: np.ndarray
    edges_length: np.ndarray
    adjacency: list[list[Tuple[int, int, float]]]
    buffer_distance: float
    expansions: int
    start_id: int = 0
    end_id: int = 1

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges_u)

    def node_xy(self, node_id: int) -> Tuple[float, float]:
        x, y = self.nodes[node_id]
        return (float(x), float(y))

    def to_networkx(self) -> nx.Graph:
        graph = nx.Graph()
        graph.add_nodes_from(range(self.node_count))
        for u, v, length in zip(self.edges_u.tolist(), self.edges_v.tolist(), self.edges_length.tolist()):
            graph.add_edge(u, v, weight=length)
        return graph

    def connected(self) -> bool:
        return nx.has_path(self.to_networkx(), self.start_id, self.end_id)


def build_visibility_graph(
    segment: Segment,
    store: BarrierStore,
    buffer_distance: float,
    max_buffer_expansions: int = 5,
    buffer_growth_factor: float = 1.0,
) -> VisibilityGraph:
    """Build the visibility graph for ``segment``, growing the search box as needed.

    Attempt ``k`` collects boundary vertices within
    ``buffer_distance * (1 + k * buffer_growth_factor)`` of the segment's
    bounding box. The search stops at the first graph that connects the two
    endpoints; :class:`NoFeasibleRoute` is raised once every attempt failed.
    """
    crosses = store.intersects(segment)
    if crosses and segment.length == 0.0:
        raise NoFeasibleRoute(
            f"Segment {segment.index} is a single point inside a barrier",
            segment_index=segment.index,
            expansions=0,
            buffer_distance=buffer_distance,
        )

    buffer = buffer_distance
    for attempt in range(max_buffer_expansions + 1):
        buffer = buffer_distance * (1.0 + attempt * buffer_growth_factor)
        bbox = _expand_bbox(segment.bounds, buffer)
        boundary = store.vertices_within(bbox)
        if len(boundary) == 0 and crosses:
            logger.debug("[VISGRAPH] Segment %d: no boundary vertices within %.1f, expanding", segment.index, buffer)
            continue
        graph = _build_graph(segment, store, boundary, buffer, attempt)
        if graph.connected():
            logger.debug(
                "[VISGRAPH] Segment %d: %d nodes, %d edges (buffer %.1f, %d expansions)",
                segment.index,
                graph.node_count,
                graph.edge_count,
                buffer,
                attempt,
            )
            return graph
        logger.debug("[VISGRAPH] Segment %d: endpoints disconnected at buffer %.1f, expanding", segment.index, buffer)

    raise NoFeasibleRoute(
        f"Segment {segment.index}: endpoints not connected after {max_buffer_expansions} buffer expansions "
        f"(final buffer {buffer:.1f})",
        segment_index=segment.index,
        expansions=max_buffer_expansions,
        buffer_distance=buffer,
    )


def _build_graph(
    segment: Segment,
    store: BarrierStore,
    boundary: np.ndarray,
    buffer: float,
    attempt: int,
) -> VisibilityGraph:
    rows: list[Tuple[float, float]] = [segment.start.xy, segment.end.xy]
    seen = set(rows)
    for x, y in boundary.tolist():
        if (x, y) in seen:
            continue
        seen.add((x, y))
        rows.append((x, y))
    nodes = np.array(rows, dtype=np.float64)
    node_count = len(nodes)

    iu, iv = np.triu_indices(node_count, k=1)
    visible = np.zeros(len(iu), dtype=bool)
    for lo in range(0, len(iu), _PAIR_BATCH):
        hi = min(lo + _PAIR_BATCH, len(iu))
        coords = np.stack([nodes[iu[lo:hi]], nodes[iv[lo:hi]]], axis=1)
        lines = shapely.linestrings(coords)
        visible[lo:hi] = ~store.blocked(lines)

    edges_u = iu[visible]
    edges_v = iv[visible]
    deltas = nodes[edges_v] - nodes[edges_u]
    edges_length = np.hypot(deltas[:, 0], deltas[:, 1])

    adjacency: list[list[Tuple[int, int, float]]] = [[] for _ in range(node_count)]
    for edge_idx, (u, v, length) in enumerate(zip(edges_u.tolist(), edges_v.tolist(), edges_length.tolist())):
        adjacency[u].append((v, edge_idx, length))
        adjacency[v].append((u, edge_idx, length))
    for neighbours in adjacency:
        neighbours.sort()

    return VisibilityGraph(
        nodes=nodes,
        edges_u=edges_u,
        edges_v=edges_v,
        edges_length=edges_length,
        adjacency=adjacency,
        buffer_distance=buffer,
        expansions=attempt,
    )


def _expand_bbox(bbox: Bounds, buffer: float) -> Bounds:
    minx, miny, maxx, maxy = bbox
    return (minx - buffer, miny - buffer, maxx + buffer, maxy + buffer)
