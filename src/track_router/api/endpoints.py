"""API routers."""
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from track_router.api.dependencies import get_barrier_store, get_reroute_params
from track_router.api.schemas import PointModel, RerouteRequest, RerouteResponse
from track_router.barrier.store import BarrierStore
from track_router.core.config import RerouteParams
from track_router.core.track import Track, TrackPoint
from track_router.routing.pipeline import TrackRerouter


router = APIRouter()


def _request_params(req: RerouteRequest, base: RerouteParams) -> RerouteParams:
    overrides = {}
    if req.buffer_distance is not None:
        overrides["buffer_distance"] = req.buffer_distance
    if req.max_buffer_expansions is not None:
        overrides["max_buffer_expansions"] = req.max_buffer_expansions
    if req.tie_break is not None:
        overrides["tie_break"] = req.tie_break
    return replace(base, **overrides) if overrides else base


@router.post("/reroute", response_model=RerouteResponse)
def reroute(
    req: RerouteRequest,
    store: Optional[BarrierStore] = Depends(get_barrier_store),
    params: RerouteParams = Depends(get_reroute_params),
) -> RerouteResponse:
    """Reroute one track around the loaded barriers.

    Failures come back as 422 with the failure kind in ``detail``.
    """
    if store is None:
        raise HTTPException(status_code=503, detail="No barrier polygons loaded.")

    track = Track(
        points=tuple(TrackPoint(x=p.x, y=p.y, time=p.time, attrs=dict(p.attrs)) for p in req.points),
        deployment_id=req.deployment_id,
    )
    outcome = TrackRerouter(store, _request_params(req, params)).reroute(track)
    if not outcome.ok:
        raise HTTPException(
            status_code=422,
            detail={"reason": outcome.reason, "message": str(outcome.failure), "violations": list(outcome.violations)},
        )

    return RerouteResponse(
        state=outcome.state.value,
        points=[PointModel(x=p.x, y=p.y, time=p.time, attrs=dict(p.attrs)) for p in outcome.track.points],
        violations=list(outcome.violations),
    )
