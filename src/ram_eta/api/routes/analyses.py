"""API routes for ETA analyses."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...schemas.analysis import AnalysisRequest, AnalysisResponse
from ...services.analysis.service import run_analysis
from ...services.eta.errors import RegionComputationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyses", tags=["analyses"])


@router.post("", response_model=AnalysisResponse, status_code=status.HTTP_200_OK)
def create_analysis(payload: AnalysisRequest) -> AnalysisResponse:
    """Compute the travel time from every origin to the nearest POI of each type.

    The request blocks until every admin area has been routed. A failure in
    any area aborts the whole analysis and nothing is persisted.
    """
    try:
        return run_analysis(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RegionComputationError as exc:
        logger.error(f"Analysis '{payload.region}' aborted: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
