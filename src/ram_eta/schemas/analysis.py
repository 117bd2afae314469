"""Analysis request/response schemas."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class AnalysisParameters(BaseModel):
    grid_size_km: Optional[float] = Field(None, gt=0)
    max_time_seconds: Optional[float] = Field(None, gt=0, description="Initial POI search budget.")
    max_speed_kmh: Optional[float] = Field(None, gt=0)
    walk_speed_kmh: Optional[float] = Field(None, gt=0)
    min_candidates: Optional[int] = Field(None, ge=1)
    step_seconds: Optional[float] = Field(None, gt=0)
    max_iterations: Optional[int] = Field(None, ge=1)


class AnalysisRequest(BaseModel):
    region: str = Field(default="region", description="Label used for persisted outputs.")
    admin_areas: Dict[str, Any] = Field(..., description="FeatureCollection of Polygon/MultiPolygon admin areas.")
    origins: Dict[str, Any] = Field(..., description="FeatureCollection of origin points.")
    pois: Dict[str, Dict[str, Any]] = Field(..., description="POI FeatureCollections keyed by type.")
    parameters: Optional[AnalysisParameters] = None
    persist: bool = True


class AreaSummary(BaseModel):
    area_id: Any
    name: str
    origin_count: int
    square_count: Optional[int] = None
    elapsed_seconds: float


class AnalysisResponse(BaseModel):
    region: str
    areas: List[AreaSummary]
    total_origins: int
    elapsed_seconds: float
    output_dir: Optional[str] = None
    results: List[Dict[str, Any]]
