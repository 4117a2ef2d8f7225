from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class AnalysisRecord:
    """Stored outcome of an analysis, used for the recent scans feed.

    Attributes:
        analysis_id: Job id the record is keyed by.
        image_id: Image identifier (last path segment of the image URL for inline analyses).
        user_id: Owning user, if known.
        detection: Detection summary (`name`, `confidence`, `severity`, ...).
        timestamp: ISO-8601 time the analysis finished.
        created_at: ISO-8601 time the record was stored.
    """

    analysis_id: str
    image_id: str
    user_id: Optional[str]
    detection: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    created_at: str = ""
