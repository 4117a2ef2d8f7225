"""Fixed catalog of banana diseases used for fallback detections."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from models.detection import BoundingBox, Detection, Provenance, Severity

FALLBACK_CONFIDENCE_RANGE = (0.7, 0.9)
FALLBACK_BOUNDING_BOX = BoundingBox(x=10, y=15, width=80, height=70)


@dataclass(frozen=True)
class DiseaseEntry:
	name: str
	scientific_name: str
	severity: Severity
	description: str
	treatments: Tuple[str, ...]


DISEASE_CATALOG: Tuple[DiseaseEntry, ...] = (
	DiseaseEntry(
		name="Sigatoka Leaf Spot",
		scientific_name="Mycosphaerella musicola",
		severity=Severity.MEDIUM,
		description=(
			"Yellow Sigatoka is a leaf spot disease of banana plants caused by the ascomycete fungus "
			"Mycosphaerella musicola."
		),
		treatments=("Remove infected leaves", "Apply fungicide", "Improve drainage"),
	),
	DiseaseEntry(
		name="Black Sigatoka",
		scientific_name="Mycosphaerella fijiensis",
		severity=Severity.HIGH,
		description=(
			"Black Sigatoka is a leaf-spot disease of banana plants caused by the ascomycete fungus "
			"Mycosphaerella fijiensis."
		),
		treatments=("Remove infected leaves", "Apply fungicide", "Improve air circulation"),
	),
	DiseaseEntry(
		name="Panama Disease",
		scientific_name="Fusarium oxysporum f.sp. cubense",
		severity=Severity.HIGH,
		description=(
			"Panama disease is a plant disease that affects bananas and is caused by the fungus "
			"Fusarium oxysporum f. sp. cubense."
		),
		treatments=("Use resistant varieties", "Quarantine infected areas", "Improve soil health"),
	),
	DiseaseEntry(
		name="Banana Bunchy Top",
		scientific_name="Banana bunchy top virus (BBTV)",
		severity=Severity.HIGH,
		description=(
			"Banana bunchy top is a viral disease that affects banana plants, causing stunted growth and "
			"reduced fruit production."
		),
		treatments=("Remove infected plants", "Control aphid vectors", "Use virus-free planting material"),
	),
)

_BY_NAME: Dict[str, DiseaseEntry] = {entry.name.lower(): entry for entry in DISEASE_CATALOG}


def disease_names() -> list[str]:
	return [entry.name for entry in DISEASE_CATALOG]


def find_disease(name: str) -> Optional[DiseaseEntry]:
	"""Case-insensitive lookup of a catalog entry."""
	return _BY_NAME.get((name or "").strip().lower())


def fallback_detection(rng: Optional[random.Random] = None) -> Detection:
	"""Pick a random catalog disease and wrap it as a fallback detection."""
	rng = rng or random.Random()
	entry = rng.choice(DISEASE_CATALOG)
	low, high = FALLBACK_CONFIDENCE_RANGE
	return Detection(
		label=entry.name,
		scientific_name=entry.scientific_name,
		confidence=low + rng.random() * (high - low),
		severity=entry.severity,
		description=entry.description,
		treatments=entry.treatments,
		provenance=Provenance.FALLBACK,
		bounding_box=FALLBACK_BOUNDING_BOX,
	)
