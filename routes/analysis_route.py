"""FastAPI routes for inline analysis and stored analyses."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, ConfigDict, Field

from controllers.analysis_controller import analyze_image, recent_scans, save_analysis

router = APIRouter(prefix="/api", tags=["analysis"])


class AnalyzePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image_url: Optional[str] = Field(None, alias="imageUrl")
    user_id: Optional[str] = Field(None, alias="userId")


class SaveAnalysisPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    analysis_id: Optional[str] = Field(None, alias="analysisId")
    image_id: Optional[str] = Field(None, alias="imageId")
    user_id: Optional[str] = Field(None, alias="userId")
    detection: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None


@router.post("/analyze")
async def analyze_route(request: Request, payload: AnalyzePayload):
    """Analyze an image URL and reply with the detection directly."""
    try:
        return await analyze_image(request, payload.image_url, payload.user_id)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get("/scans/recent")
async def recent_scans_route(
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId"),
    limit: Optional[str] = Query(None),
):
    """Return the newest scans, optionally filtered by user."""
    try:
        return await recent_scans(request, user_id, limit)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.get("/analyses/recent", include_in_schema=False)
async def legacy_recent_route(request: Request):
    """Old path for the recent scans feed."""
    query = request.url.query
    return RedirectResponse(url=f"/api/scans/recent?{query}" if query else "/api/scans/recent", status_code=307)


@router.post("/analyses")
async def save_analysis_route(request: Request, payload: SaveAnalysisPayload):
    """Store an analysis result reported by the client."""
    try:
        return await save_analysis(
            request,
            payload.analysis_id,
            payload.image_id,
            payload.user_id,
            payload.detection,
            payload.timestamp,
        )
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
