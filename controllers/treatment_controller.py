"""Controllers for disease treatment guidance."""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from services.treatment_catalog import TreatmentCatalog

NO_TREATMENT_MESSAGE = (
    "No treatments available yet. We will notify you when a professional adds treatment information."
)


def _catalog(request: Request) -> TreatmentCatalog:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Analysis orchestrator not initialized.")
    return orchestrator.treatments


async def get_treatments(request: Request, disease_name: str) -> Any:
    """Return treatments and prevention tips, or a 404 body with empty lists."""
    entry = _catalog(request).get(disease_name)
    if entry is None:
        return JSONResponse(
            status_code=404,
            content={"treatments": [], "preventionTips": [], "message": NO_TREATMENT_MESSAGE},
        )
    return entry.to_dict()


async def add_treatment(
    request: Request,
    disease_name: Optional[str],
    treatments: Optional[List[str]],
    prevention_tips: Optional[List[str]],
) -> Dict[str, Any]:
    """Add or replace the guidance for a disease."""
    if not disease_name or treatments is None or prevention_tips is None:
        raise HTTPException(status_code=400, detail="Missing required fields")
    _catalog(request).upsert(disease_name, treatments, prevention_tips)
    return {"success": True, "message": f"Treatment for {disease_name} added successfully"}
