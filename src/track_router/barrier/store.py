"""Immutable barrier polygon store with STRtree indexes over polygons and edges."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple, Union
import logging

import numpy as np
import shapely
from pyproj import CRS
from pyproj.exceptions import CRSError
from shapely.geometry import LineString, MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.strtree import STRtree
from shapely.validation import explain_validity

from track_router.core.errors import InvalidGeometry
from track_router.core.track import Bounds, Segment


logger = logging.getLogger(__name__)

SegmentLike = Union[Segment, LineString]


@dataclass(frozen=True, slots=True)
class CrossingPoint:
    x: float
    y: float
    edge_id: int
    distance: float


@dataclass(frozen=True)
class BarrierStore:
    """Land polygons plus the indexes used by every routing request.

    Built once by :meth:`load` and never mutated afterwards, so one instance
    can be shared across threads without locking.
    """

    polygons: np.ndarray
    tree: Optional[STRtree]
    edges: np.ndarray
    edge_polygon: np.ndarray
    edge_geoms: np.ndarray
    edge_tree: Optional[STRtree]
    vertices: np.ndarray
    bounds: Optional[Bounds]
    crs: Optional[str] = None

    @classmethod
    def load(cls, polygons: Iterable[BaseGeometry], crs: Optional[str] = None) -> "BarrierStore":
        """Validate barrier polygons and build the spatial indexes.

        Multi-polygons are split into their parts. Any self-intersecting or
        zero-area ring, and any otherwise invalid polygon, raises
        :class:`InvalidGeometry`; nothing is repaired. Valid barriers that
        touch or overlap (tiled coastlines) are dissolved into one polygon so
        a shared edge is interior, not a passage.
        """
        crs_str = _validate_crs(crs)
        parts: list[Polygon] = []
        for idx, geom in enumerate(polygons):
            for poly in _iter_polygons(geom, idx):
                _validate_polygon(poly, idx)
                parts.append(poly)
        parts = _dissolve(parts)

        poly_arr = np.empty(len(parts), dtype=object)
        poly_arr[:] = parts
        if len(parts) == 0:
            empty_edges = np.zeros((0, 2, 2), dtype=np.float64)
            store = cls(
                polygons=poly_arr,
                tree=None,
                edges=empty_edges,
                edge_polygon=np.zeros(0, dtype=np.int64),
                edge_geoms=np.empty(0, dtype=object),
                edge_tree=None,
                vertices=np.zeros((0, 2), dtype=np.float64),
                bounds=None,
                crs=crs_str,
            )
            store._freeze()
            logger.info("[BARRIER] Loaded empty barrier store")
            return store

        shapely.prepare(poly_arr)

        edge_rows: list[Tuple[Tuple[float, float], Tuple[float, float]]] = []
        edge_owner: list[int] = []
        vertex_rows: list[Tuple[float, float]] = []
        for poly_idx, poly in enumerate(parts):
            for ring in _rings(poly):
                coords = [(float(x), float(y)) for x, y in ring.coords]
                vertex_rows.extend(coords[:-1])
                for a, b in zip(coords, coords[1:]):
                    edge_rows.append((a, b))
                    edge_owner.append(poly_idx)

        edges = np.array(edge_rows, dtype=np.float64).reshape(-1, 2, 2)
        edge_geoms = shapely.linestrings(edges)
        # np.unique sorts rows lexicographically, giving canonical (x, y) order
        vertices = np.unique(np.array(vertex_rows, dtype=np.float64), axis=0)
        minx, miny, maxx, maxy = shapely.total_bounds(poly_arr)

        store = cls(
            polygons=poly_arr,
            tree=STRtree(poly_arr),
            edges=edges,
            edge_polygon=np.array(edge_owner, dtype=np.int64),
            edge_geoms=edge_geoms,
            edge_tree=STRtree(edge_geoms),
            vertices=vertices,
            bounds=(float(minx), float(miny), float(maxx), float(maxy)),
            crs=crs_str,
        )
        store._freeze()
        logger.info(
            "[BARRIER] Loaded %d polygons (%d edges, %d boundary vertices)",
            len(parts),
            len(edges),
            len(vertices),
        )
        return store

    def __len__(self) -> int:
        return len(self.polygons)

    @property
    def is_empty(self) -> bool:
        return len(self.polygons) == 0

    def intersects(self, segment: SegmentLike) -> bool:
        """Return True if the segment enters the interior of any barrier.

        Running along a barrier edge or grazing a vertex is not a crossing.
        """
        line = _as_line(segment)
        if self.tree is None:
            return False
        if line.length == 0.0:
            x, y = line.coords[0]
            return self.contains_point(x, y)
        return bool(self.blocked([line])[0])

    def blocked(self, lines: Sequence[LineString] | np.ndarray) -> np.ndarray:
        """Vectorized :meth:`intersects` for many non-degenerate lines."""
        line_arr = np.asarray(lines, dtype=object)
        result = np.zeros(len(line_arr), dtype=bool)
        if self.tree is None or len(line_arr) == 0:
            return result
        line_idx, poly_idx = self.tree.query(line_arr, predicate="intersects")
        if line_idx.size == 0:
            return result
        touching = shapely.touches(line_arr[line_idx], self.polygons[poly_idx])
        result[line_idx[~touching]] = True
        return result

    def crossing_points(self, segment: SegmentLike) -> list[CrossingPoint]:
        """Points where the segment meets barrier edges, ordered along the segment."""
        line = _as_line(segment)
        if self.edge_tree is None:
            return []
        hits = self.edge_tree.query(line, predicate="intersects")
        crossings: list[CrossingPoint] = []
        for edge_id in sorted(int(h) for h in hits):
            inter = line.intersection(self.edge_geoms[edge_id])
            for pt in _iter_points(inter):
                crossings.append(
                    CrossingPoint(
                        x=float(pt.x),
                        y=float(pt.y),
                        edge_id=edge_id,
                        distance=float(line.project(pt)),
                    )
                )
        crossings.sort(key=lambda c: (c.distance, c.edge_id))
        return crossings

    def contains_point(self, x: float, y: float) -> bool:
        """Return True if (x, y) lies strictly inside a barrier."""
        if self.tree is None:
            return False
        hits = self.tree.query(Point(x, y), predicate="within")
        return len(hits) > 0

    def vertices_within(self, bbox: Bounds) -> np.ndarray:
        """Boundary vertices inside ``bbox`` (inclusive), in (x, y) order."""
        if len(self.vertices) == 0:
            return self.vertices
        minx, miny, maxx, maxy = bbox
        xs = self.vertices[:, 0]
        ys = self.vertices[:, 1]
        mask = (xs >= minx) & (xs <= maxx) & (ys >= miny) & (ys <= maxy)
        return self.vertices[mask]

    def edge(self, edge_id: int) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        (x0, y0), (x1, y1) = self.edges[edge_id]
        return (float(x0), float(y0)), (float(x1), float(y1))

    def disjoint_from(self, bbox: Optional[Bounds]) -> bool:
        """True when ``bbox`` cannot touch any barrier."""
        if self.bounds is None or bbox is None:
            return True
        minx, miny, maxx, maxy = bbox
        bminx, bminy, bmaxx, bmaxy = self.bounds
        return maxx < bminx or minx > bmaxx or maxy < bminy or miny > bmaxy

    def crs_matches(self, other: Optional[str]) -> bool:
        """True if ``other`` names the store's CRS, or either side is unknown."""
        if self.crs is None or other is None:
            return True
        try:
            return CRS.from_user_input(other) == CRS.from_user_input(self.crs)
        except CRSError:
            return False

    def _freeze(self) -> None:
        for arr in (self.polygons, self.edges, self.edge_polygon, self.edge_geoms, self.vertices):
            arr.setflags(write=False)


def _validate_crs(crs: Optional[str]) -> Optional[str]:
    if crs is None:
        return None
    try:
        parsed = CRS.from_user_input(crs)
    except CRSError as exc:
        raise InvalidGeometry(f"Unrecognised barrier CRS {crs!r}: {exc}") from exc
    if not parsed.is_projected:
        raise InvalidGeometry(f"Barrier CRS {parsed.name!r} is not projected; linear units are required")
    return parsed.to_string()


def _iter_polygons(geom: Optional[BaseGeometry], idx: int) -> Iterable[Polygon]:
    if geom is None or geom.is_empty:
        raise InvalidGeometry(f"Barrier {idx} is empty", polygon_index=idx)
    if isinstance(geom, Polygon):
        yield geom
    elif isinstance(geom, MultiPolygon):
        yield from geom.geoms
    else:
        raise InvalidGeometry(f"Barrier {idx} is a {geom.geom_type}, expected a polygon", polygon_index=idx)


def _dissolve(parts: list[Polygon]) -> list[Polygon]:
    if len(parts) < 2:
        return parts
    tree = STRtree(parts)
    left, right = tree.query(parts, predicate="intersects")
    if not np.any(left != right):
        return parts
    merged = unary_union(parts)
    dissolved = [merged] if isinstance(merged, Polygon) else list(merged.geoms)
    logger.info("[BARRIER] Dissolved %d touching or overlapping polygons into %d", len(parts), len(dissolved))
    return dissolved


def _rings(poly: Polygon) -> list:
    return [poly.exterior, *poly.interiors]


def _validate_polygon(poly: Polygon, idx: int) -> None:
    for ring_no, ring in enumerate(_rings(poly)):
        if len(ring.coords) < 4:
            raise InvalidGeometry(f"Barrier {idx} ring {ring_no} has fewer than 3 vertices", polygon_index=idx)
        if not ring.is_simple:
            raise InvalidGeometry(f"Barrier {idx} ring {ring_no} is self-intersecting", polygon_index=idx)
        if Polygon(ring).area <= 0.0:
            raise InvalidGeometry(f"Barrier {idx} ring {ring_no} has zero area", polygon_index=idx)
    if not poly.is_valid:
        raise InvalidGeometry(f"Barrier {idx} is invalid: {explain_validity(poly)}", polygon_index=idx)


def _as_line(segment: SegmentLike) -> LineString:
    if isinstance(segment, Segment):
        return segment.line
    return segment


def _iter_points(geom: BaseGeometry) -> Iterable[Point]:
    if geom.is_empty:
        return
    if geom.geom_type == "Point":
        yield geom
    elif geom.geom_type == "LineString":
        # collinear overlap with an edge: report where it starts and ends
        coords = list(geom.coords)
        yield Point(coords[0])
        if coords[-1] != coords[0]:
            yield Point(coords[-1])
    elif hasattr(geom, "geoms"):
        for part in geom.geoms:
            yield from _iter_points(part)
