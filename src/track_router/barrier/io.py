"""Load barrier polygons from vector files, with a WKB pickle cache."""
from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging
import pickle

import fiona
from shapely import from_wkb, to_wkb
from shapely.geometry import shape

from track_router.barrier.store import BarrierStore


logger = logging.getLogger(__name__)


def default_cache_path(polygons_path: Path) -> Path:
    return polygons_path.with_suffix(".barrier_index.pkl")


def read_barrier_polygons(polygons_path: Path) -> tuple[list, Optional[str]]:
    """Read every non-empty polygon feature and the dataset CRS."""
    geoms = []
    with fiona.open(polygons_path) as src:
        crs = src.crs_wkt or None
        for feat in src:
            if feat["geometry"] is None:
                continue
            geom = shape(feat["geometry"])
            if geom.is_empty:
                continue
            geoms.append(geom)
    return geoms, crs


def load_barrier_store(polygons_path: Path, cache_path: Path | None = None) -> BarrierStore:
    """Build a :class:`BarrierStore` from a polygon dataset.

    Uses a cache file (WKB + CRS) to avoid re-parsing shapefiles on repeat runs.
    Geometry validation runs whether or not the cache is hit.
    """
    cache_path = cache_path or default_cache_path(polygons_path)
    if cache_path.exists() and cache_path.stat().st_mtime >= polygons_path.stat().st_mtime:
        with cache_path.open("rb") as f:
            payload = pickle.load(f)
        geoms = [from_wkb(wkb) for wkb in payload["wkb"]]
        crs = payload.get("crs")
        logger.debug("[BARRIER] Cache hit %s", cache_path)
    else:
        geoms, crs = read_barrier_polygons(polygons_path)
        payload = {
            "crs": crs,
            "wkb": [to_wkb(geom) for geom in geoms],
        }
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        with cache_path.open("wb") as f:
            pickle.dump(payload, f)
        logger.debug("[BARRIER] Wrote cache %s", cache_path)

    return BarrierStore.load(geoms, crs=crs)
