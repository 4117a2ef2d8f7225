from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import pytest

from config import Settings


@pytest.fixture
def fast_settings() -> Settings:
    return Settings(
        progress_tick_seconds=0.01,
        detection_min_latency=0.06,
        detection_max_latency=0.08,
        detection_backend="catalog",
        recent_demo_enabled=True,
    )
