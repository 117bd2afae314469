"""High-level orchestration for ETA analysis requests."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict

from ...config import settings
from ...data.geojson_repository import parse_admin_areas, parse_origins, parse_pois_by_type
from ...persistence.filesystem import FileStorage
from ...schemas.analysis import AnalysisRequest, AnalysisResponse, AreaSummary
from ..eta.orchestrator import RegionOrchestrator
from ..eta.square_task import SearchParameters
from ..outputs.formatter import results_to_csv, results_to_geojson, results_to_json

logger = logging.getLogger(__name__)


def run_analysis(payload: AnalysisRequest, orchestrator: RegionOrchestrator | None = None) -> AnalysisResponse:
    admin_areas = parse_admin_areas(payload.admin_areas)
    if not admin_areas:
        raise ValueError("At least one admin area is required.")
    origins = parse_origins(payload.origins)
    pois_by_type = parse_pois_by_type(payload.pois)
    if not pois_by_type:
        raise ValueError("At least one POI type is required.")
    logger.info(
        f"Data loaded: {len(admin_areas)} admin areas, {len(origins)} origins, "
        f"POI types {', '.join(sorted(pois_by_type))}"
    )

    overrides = payload.parameters.model_dump() if payload.parameters else {}
    grid_size_km = overrides.pop("grid_size_km", None) or settings.grid_size_km
    params = SearchParameters.from_settings(settings, **overrides)

    orchestrator = orchestrator or RegionOrchestrator()
    begin = time.perf_counter()
    area_results = orchestrator.run(admin_areas, origins, pois_by_type, grid_size_km=grid_size_km, params=params)
    elapsed = time.perf_counter() - begin

    json_results = results_to_json(area_results)
    output_dir = None
    if payload.persist:
        run_dir = FileStorage().write_run(
            payload.region,
            {
                "results.csv": results_to_csv(area_results),
                "results.geojson": results_to_geojson(area_results),
                "results.json": json_results,
                "summary.json": {
                    "region": payload.region,
                    "elapsed_seconds": elapsed,
                    "grid_size_km": grid_size_km,
                    "parameters": asdict(params),
                    "areas": [
                        {"id": area.area_id, "name": area.name, "origins": len(area.records)}
                        for area in area_results
                    ],
                },
            },
        )
        output_dir = str(run_dir)
        logger.info(f"Stored results in {run_dir}")

    return AnalysisResponse(
        region=payload.region,
        areas=[
            AreaSummary(
                area_id=area.area_id,
                name=area.name,
                origin_count=len(area.records),
                square_count=area.square_count,
                elapsed_seconds=area.elapsed_seconds,
            )
            for area in area_results
        ],
        total_origins=sum(len(area.records) for area in area_results),
        elapsed_seconds=elapsed,
        output_dir=output_dir,
        results=json_results,
    )
