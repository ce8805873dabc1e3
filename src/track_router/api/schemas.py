"""API request and response models."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from track_router.core.config import TieBreak


class PointModel(BaseModel):
    x: float = Field(..., description="Projected easting")
    y: float = Field(..., description="Projected northing")
    time: Optional[datetime] = Field(None, description="Observation or prediction time")
    attrs: Dict[str, Any] = Field(default_factory=dict, description="Attributes carried through unchanged")


class RerouteRequest(BaseModel):
    points: List[PointModel] = Field(..., min_length=2, description="Time-ordered track points")
    deployment_id: Optional[str] = None
    buffer_distance: Optional[float] = Field(None, gt=0, description="Initial visibility-graph buffer")
    max_buffer_expansions: Optional[int] = Field(None, ge=0, description="Buffer expansion retry cap")
    tie_break: Optional[TieBreak] = None


class RerouteResponse(BaseModel):
    state: str
    points: List[PointModel]
    violations: List[int] = []
