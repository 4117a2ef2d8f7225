from __future__ import annotations

import pytest

from services.treatment_catalog import DEFAULT_PREVENTION_TIPS, TreatmentCatalog


def test_lookup_by_name_and_alias() -> None:
    catalog = TreatmentCatalog()
    assert catalog.get("Black Sigatoka") is not None
    assert catalog.get("Sigatoka Leaf Spot") is catalog.get("Yellow Sigatoka")
    assert catalog.get("banana bunchy top") is catalog.get("Banana Bunchy Top Virus")
    assert catalog.get("Leaf Rust") is None


def test_to_dict_uses_client_field_names() -> None:
    body = TreatmentCatalog().get("Panama Disease").to_dict()
    assert set(body) == {"treatments", "preventionTips"}
    assert len(body["treatments"]) == 4


def test_upsert_adds_and_replaces() -> None:
    catalog = TreatmentCatalog()
    catalog.upsert("Leaf Rust", ["Spray copper"], ["Rotate crops"])
    assert catalog.get("Leaf Rust").treatments == ["Spray copper"]

    catalog.upsert("Leaf Rust", ["Burn leaves"], [])
    assert catalog.get("Leaf Rust").treatments == ["Burn leaves"]
    assert catalog.prevention_tips_for("Leaf Rust") == list(DEFAULT_PREVENTION_TIPS)

    with pytest.raises(ValueError):
        catalog.upsert("  ", [], [])


def test_prevention_tips_fall_back_to_general_tips() -> None:
    catalog = TreatmentCatalog()
    assert catalog.prevention_tips_for("Unknown Blight") == list(DEFAULT_PREVENTION_TIPS)
    assert catalog.prevention_tips_for("Panama Disease")[0].startswith("Use resistant varieties")
