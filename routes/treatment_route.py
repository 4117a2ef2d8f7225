from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from controllers.treatment_controller import add_treatment, get_treatments

router = APIRouter(prefix="/api", tags=["treatments"])


class TreatmentPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    disease_name: Optional[str] = Field(None, alias="diseaseName")
    treatments: Optional[List[str]] = None
    prevention_tips: Optional[List[str]] = Field(None, alias="preventionTips")


@router.get("/treatments/{disease_name}")
async def get_treatments_route(request: Request, disease_name: str):
    """Return treatment guidance for a disease."""
    return await get_treatments(request, disease_name)


@router.post("/treatments")
async def add_treatment_route(request: Request, payload: TreatmentPayload):
    """Add or replace treatment guidance for a disease."""
    try:
        return await add_treatment(request, payload.disease_name, payload.treatments, payload.prevention_tips)
    except HTTPException:
        raise
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
