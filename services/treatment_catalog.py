"""In-memory treatment and prevention guidance per disease."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

DEFAULT_PREVENTION_TIPS: Tuple[str, ...] = (
    "Implement a regular fungicide spray program during rainy seasons.",
    "Use disease-resistant banana varieties when available.",
    "Ensure proper nutrition with balanced fertilization.",
    "Monitor plants regularly for early signs of infection.",
)

# Detection labels that are stored under a different catalog name.
_ALIASES = {
    "sigatoka leaf spot": "Yellow Sigatoka",
    "banana bunchy top": "Banana Bunchy Top Virus",
}


@dataclass
class TreatmentEntry:
    treatments: List[str] = field(default_factory=list)
    prevention_tips: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {"treatments": list(self.treatments), "preventionTips": list(self.prevention_tips)}


def _seed() -> Dict[str, TreatmentEntry]:
    return {
        "Black Sigatoka": TreatmentEntry(
            treatments=[
                "Apply fungicide treatments with products containing chlorothalonil, mancozeb, or propiconazole.",
                "Remove and destroy infected leaves to reduce the spread of spores.",
                "Improve drainage in the plantation to reduce humidity and leaf wetness.",
                "Maintain proper spacing between plants to improve air circulation.",
            ],
            prevention_tips=list(DEFAULT_PREVENTION_TIPS),
        ),
        "Yellow Sigatoka": TreatmentEntry(
            treatments=[
                "Apply fungicides containing mancozeb or propiconazole.",
                "Remove infected leaves and destroy them.",
                "Ensure good drainage in the plantation.",
                "Maintain adequate spacing between plants.",
            ],
            prevention_tips=[
                "Use resistant varieties when available.",
                "Implement proper sanitation practices.",
                "Apply preventive fungicide sprays during wet seasons.",
                "Ensure balanced nutrition for plants.",
            ],
        ),
        "Panama Disease": TreatmentEntry(
            treatments=[
                "There is no effective chemical treatment for Panama disease.",
                "Remove and destroy infected plants, including roots.",
                "Quarantine affected areas to prevent spread.",
                "Disinfect tools and equipment used in affected areas.",
            ],
            prevention_tips=[
                "Use resistant varieties like Cavendish for Fusarium Race 1.",
                "Implement strict biosecurity measures.",
                "Avoid planting in previously infected soil.",
                "Use disease-free planting material.",
            ],
        ),
        "Banana Bunchy Top Virus": TreatmentEntry(
            treatments=[
                "There is no cure for infected plants. Remove and destroy infected plants immediately.",
                "Control aphid vectors with appropriate insecticides.",
                "Create barriers between infected and healthy plants.",
                "Use virus-free planting material.",
            ],
            prevention_tips=[
                "Use certified disease-free planting material.",
                "Regularly monitor for aphids and early symptoms.",
                "Maintain field hygiene and quarantine measures.",
                "Implement aphid control strategies.",
            ],
        ),
    }


class TreatmentCatalog:
    """Look up and maintain treatment guidance keyed by disease name."""

    def __init__(self, entries: Optional[Dict[str, TreatmentEntry]] = None) -> None:
        self._entries: Dict[str, TreatmentEntry] = entries if entries is not None else _seed()

    def get(self, disease_name: str) -> Optional[TreatmentEntry]:
        """Return the entry for `disease_name` (exact name first, then known aliases)."""
        entry = self._entries.get(disease_name)
        if entry is None:
            alias = _ALIASES.get((disease_name or "").strip().lower())
            entry = self._entries.get(alias) if alias else None
        return entry

    def upsert(self, disease_name: str, treatments: List[str], prevention_tips: List[str]) -> TreatmentEntry:
        """Add or replace the guidance for a disease."""
        if not disease_name or not disease_name.strip():
            raise ValueError("Disease name is required.")
        entry = TreatmentEntry(treatments=list(treatments), prevention_tips=list(prevention_tips))
        self._entries[disease_name.strip()] = entry
        return entry

    def prevention_tips_for(self, disease_name: str) -> List[str]:
        """Return prevention tips for a disease, or the general tips when none are known."""
        entry = self.get(disease_name)
        if entry is None or not entry.prevention_tips:
            return list(DEFAULT_PREVENTION_TIPS)
        return list(entry.prevention_tips)
