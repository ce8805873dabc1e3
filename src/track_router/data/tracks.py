"""GeoJSON reading and writing for tracks."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional
import json

from track_router.core.errors import PreconditionViolation
from track_router.core.track import REROUTED_ATTR, Track, TrackPoint


def load_track_features(path: Path) -> tuple[list[dict], Optional[str]]:
    """Return the features of a FeatureCollection and its legacy ``crs`` name, if any."""
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    crs = data.get("crs", {}).get("properties", {}).get("name")
    return list(data.get("features", [])), crs


def tracks_from_features(
    features: Iterable[dict],
    time_field: str = "time",
    id_field: Optional[str] = None,
) -> list[Track]:
    """Group Point features into tracks by ``id_field``, keeping file order."""
    grouped: dict[Optional[str], list[TrackPoint]] = {}
    for idx, feat in enumerate(features):
        geom = feat.get("geometry") or {}
        if geom.get("type") != "Point":
            raise PreconditionViolation(f"Feature {idx} is not a Point", position=idx)
        x, y = geom["coordinates"][:2]
        props = dict(feat.get("properties") or {})
        raw_time = props.pop(time_field, None)
        deployment = props.get(id_field) if id_field else None
        key = str(deployment) if deployment is not None else None
        grouped.setdefault(key, []).append(
            TrackPoint(x=float(x), y=float(y), time=_parse_time(raw_time, idx), attrs=props)
        )
    return [Track(points=tuple(points), deployment_id=key) for key, points in grouped.items()]


def load_track_geojson(
    path: Path,
    time_field: str = "time",
    id_field: Optional[str] = None,
) -> list[Track]:
    features, _ = load_track_features(path)
    return tracks_from_features(features, time_field=time_field, id_field=id_field)


def track_to_features(track: Track, time_field: str = "time", id_field: Optional[str] = None) -> list[dict]:
    features = []
    for point in track.points:
        props: dict[str, Any] = dict(point.attrs)
        if point.time is not None:
            props[time_field] = point.time.isoformat()
        if id_field and track.deployment_id is not None:
            props.setdefault(id_field, track.deployment_id)
        props.setdefault(REROUTED_ATTR, False)
        features.append(
            {
                "type": "Feature",
                "properties": props,
                "geometry": {"type": "Point", "coordinates": [point.x, point.y]},
            }
        )
    return features


def track_to_feature_collection(
    tracks: Iterable[Track],
    time_field: str = "time",
    id_field: Optional[str] = None,
    crs: Optional[str] = None,
) -> dict:
    features: list[dict] = []
    for track in tracks:
        features.extend(track_to_features(track, time_field=time_field, id_field=id_field))
    collection: dict[str, Any] = {"type": "FeatureCollection", "features": features}
    if crs:
        collection["crs"] = {"type": "name", "properties": {"name": crs}}
    return collection


def write_track_geojson(
    tracks: Iterable[Track],
    path: Path,
    time_field: str = "time",
    id_field: Optional[str] = None,
    crs: Optional[str] = None,
) -> Path:
    collection = track_to_feature_collection(tracks, time_field=time_field, id_field=id_field, crs=crs)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(collection, indent=2), encoding="utf-8")
    return path


def _parse_time(raw: Any, idx: int) -> Optional[datetime]:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError as exc:
        raise PreconditionViolation(f"Feature {idx} has an unparseable time {raw!r}", position=idx) from exc
