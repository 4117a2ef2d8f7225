"""Detection value objects returned by detection providers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


class Severity(str, enum.Enum):
	LOW = "Low"
	MEDIUM = "Medium"
	HIGH = "High"


class Provenance(str, enum.Enum):
	"""Whether a detection came from a real match or the fallback catalog."""

	MATCHED = "matched"
	FALLBACK = "fallback"


@dataclass(frozen=True)
class BoundingBox:
	x: int
	y: int
	width: int
	height: int


@dataclass(frozen=True)
class Detection:
	"""Immutable result of analysing one image.

	Attributes:
		label: Common disease name.
		scientific_name: Pathogen name.
		confidence: Value in [0.0, 1.0].
		severity: Low, Medium or High.
		description: Free-text description of the disease.
		treatments: Ordered treatment suggestions.
		provenance: `matched` or `fallback`.
		bounding_box: Optional region of the image the detection refers to.
	"""

	label: str
	scientific_name: str
	confidence: float
	severity: Severity
	description: str
	treatments: Tuple[str, ...] = ()
	provenance: Provenance = Provenance.FALLBACK
	bounding_box: Optional[BoundingBox] = None

	def __post_init__(self) -> None:
		if not 0.0 <= self.confidence <= 1.0:
			raise ValueError(f"confidence must be within [0, 1], got {self.confidence!r}")

	@property
	def confidence_percent(self) -> int:
		"""Confidence rounded to an integer percentage."""
		return int(round(self.confidence * 100))

	def to_dict(self) -> Dict[str, Any]:
		"""Return the JSON shape used by the HTTP analyze endpoint."""
		payload: Dict[str, Any] = {
			"label": self.label,
			"scientificName": self.scientific_name,
			"confidence": self.confidence,
			"severity": self.severity.value,
			"description": self.description,
			"treatments": list(self.treatments),
			"source": self.provenance.value,
		}
		if self.bounding_box is not None:
			box = self.bounding_box
			payload["boundingBox"] = {"x": box.x, "y": box.y, "width": box.width, "height": box.height}
		return payload

	def summary(self) -> Dict[str, Any]:
		"""Return the compact detection block pushed over the realtime channel."""
		return {
			"name": self.label,
			"scientificName": self.scientific_name,
			"confidence": self.confidence_percent,
			"severity": self.severity.value,
			"description": self.description,
		}


@dataclass
class DetectionEnvelope:
	"""Direct reply of an inline analysis."""

	analysis_id: str
	detections: List[Detection] = field(default_factory=list)
	processing_time: float = 0.0
	timestamp: str = ""

	def to_dict(self) -> Dict[str, Any]:
		return {
			"success": True,
			"analysisId": self.analysis_id,
			"results": {
				"detections": [d.to_dict() for d in self.detections],
				"processingTime": self.processing_time,
				"timestamp": self.timestamp,
			},
		}
