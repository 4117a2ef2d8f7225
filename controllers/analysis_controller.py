"""Controllers for inline analyses and the recent scans feed."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, Request

from services.realtime.orchestrator import SessionOrchestrator


def _orchestrator(request: Request) -> SessionOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=500, detail="Analysis orchestrator not initialized.")
    return orchestrator


def _parse_limit(raw: Optional[str]) -> Optional[int]:
    """Return a positive integer limit, or None so the configured default applies."""
    try:
        value = int(raw) if raw is not None else None
    except ValueError:
        return None
    return value if value and value > 0 else None


async def analyze_image(request: Request, image_url: Optional[str], user_id: Optional[str]) -> Dict[str, Any]:
    """Run an inline analysis of `image_url` and return the detections.

    Raises:
        ValueError: If the image URL is missing or empty.
    """
    envelope = await _orchestrator(request).submit_inline(image_url or "", user_id)
    return envelope.to_dict()


async def recent_scans(request: Request, user_id: Optional[str], limit: Optional[str]) -> List[Dict[str, Any]]:
    """Return the newest scans, optionally for one user."""
    return _orchestrator(request).list_recent(user_id or None, _parse_limit(limit))


async def save_analysis(
    request: Request,
    analysis_id: Optional[str],
    image_id: Optional[str],
    user_id: Optional[str],
    detection: Optional[Dict[str, Any]],
    timestamp: Optional[str],
) -> Dict[str, Any]:
    """Store an analysis reported by the client.

    Raises:
        HTTPException(400) if the id, image id or detection is missing.
    """
    if not analysis_id or not image_id or not detection:
        raise HTTPException(status_code=400, detail="Missing required fields")
    await _orchestrator(request).save_analysis(analysis_id, image_id, detection, user_id=user_id, timestamp=timestamp)
    return {"success": True, "analysisId": analysis_id, "message": "Analysis saved successfully"}
