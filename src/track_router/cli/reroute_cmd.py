"""Reroute and check commands backed by the visibility-graph rerouter."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer

from track_router.barrier.io import load_barrier_store
from track_router.barrier.store import BarrierStore
from track_router.core.config import RerouteParams, RouterConfig, TieBreak, get_config
from track_router.core.errors import RerouteError
from track_router.core.track import Track
from track_router.data.tracks import load_track_features, tracks_from_features, write_track_geojson
from track_router.routing.pipeline import TrackRerouter, summarize


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_inputs(tracks: Path, barriers: Path, cfg: RouterConfig) -> tuple[list[Track], BarrierStore, Optional[str]]:
    cache = Path(cfg.io.barrier_cache) if cfg.io.barrier_cache else None
    try:
        store = load_barrier_store(barriers, cache_path=cache)
        features, track_crs = load_track_features(tracks)
        loaded = tracks_from_features(features, time_field=cfg.io.time_field, id_field=cfg.io.id_field)
    except RerouteError as exc:
        typer.echo(f"[ERROR] {exc.kind}: {exc}", err=True)
        raise typer.Exit(2)
    if not store.crs_matches(track_crs):
        typer.echo(f"[ERROR] Track CRS {track_crs!r} does not match barrier CRS {store.crs!r}", err=True)
        raise typer.Exit(2)
    return loaded, store, track_crs or store.crs


def reroute(
    tracks: Path = typer.Argument(..., exists=True, help="Track points GeoJSON (projected coordinates)"),
    barriers: Path = typer.Argument(..., exists=True, help="Barrier polygon dataset (shapefile, GeoPackage, ...)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Path to save corrected GeoJSON"),
    buffer: Optional[float] = typer.Option(None, help="Initial visibility-graph buffer distance"),
    max_expansions: Optional[int] = typer.Option(None, help="Maximum buffer expansions per segment"),
    tie_break: Optional[TieBreak] = typer.Option(None, help="Rule for equal-length detours"),
    workers: Optional[int] = typer.Option(None, help="Tracks rerouted in parallel"),
    trim: bool = typer.Option(False, help="Drop leading/trailing points that are on land"),
    config: Optional[Path] = typer.Option(None, help="YAML config (defaults to configs/reroute_defaults.yaml)"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Reroute every land-crossing segment of every track around the barriers."""
    _configure_logging(verbose)
    cfg = get_config(config)
    base = cfg.reroute
    params = RerouteParams(
        buffer_distance=buffer if buffer is not None else base.buffer_distance,
        max_buffer_expansions=max_expansions if max_expansions is not None else base.max_buffer_expansions,
        buffer_growth_factor=base.buffer_growth_factor,
        tie_break=tie_break or base.tie_break,
        max_workers=workers if workers is not None else base.max_workers,
    )
    loaded, store, crs = _load_inputs(tracks, barriers, cfg)
    rerouter = TrackRerouter(store, params, trim=trim)
    outcomes = rerouter.reroute_many(loaded)
    for outcome in outcomes:
        if not outcome.ok:
            typer.echo(f"[FAILED] track {outcome.track.deployment_id}: {outcome.reason}: {outcome.failure}", err=True)

    corrected = [outcome.track for outcome in outcomes]
    if output:
        write_track_geojson(corrected, output, time_field=cfg.io.time_field, id_field=cfg.io.id_field, crs=crs)
        typer.echo(f"Saved corrected tracks to {output}")

    summary = summarize(outcomes)
    typer.echo(
        json.dumps(
            {
                "tracks": summary.tracks,
                "states": summary.by_state,
                "failures": summary.by_reason,
                "segments_rerouted": summary.segments_rerouted,
                "vertices_inserted": summary.vertices_inserted,
                "detour_length": round(summary.detour_length, 3),
            },
            indent=2,
        )
    )
    if summary.failed:
        raise typer.Exit(1)


def check(
    tracks: Path = typer.Argument(..., exists=True, help="Track points GeoJSON (projected coordinates)"),
    barriers: Path = typer.Argument(..., exists=True, help="Barrier polygon dataset"),
    config: Optional[Path] = typer.Option(None, help="YAML config"),
) -> None:
    """List the segments of each track that cross a barrier."""
    cfg = get_config(config)
    loaded, store, _ = _load_inputs(tracks, barriers, cfg)
    rerouter = TrackRerouter(store, cfg.reroute)
    total = 0
    for track in loaded:
        violations = rerouter.find_violations(track)
        total += len(violations)
        indices = ", ".join(str(s.index) for s in violations) or "none"
        typer.echo(f"{track.deployment_id}: {len(violations)} crossing segments ({indices})")
    if total:
        raise typer.Exit(1)
