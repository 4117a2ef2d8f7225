"""Placeholder detection provider backed by the fixed disease catalog."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from models.detection import Detection
from services.detection.base import DetectionProvider
from services.detection.catalog import fallback_detection

logger = logging.getLogger(__name__)


class CatalogDetectionProvider(DetectionProvider):
	"""Wait a random latency, then return a random catalog disease."""

	def __init__(self, min_latency: float = 3.0, max_latency: float = 5.0, rng: Optional[random.Random] = None) -> None:
		super().__init__(rng)
		if min_latency < 0 or max_latency < min_latency:
			raise ValueError("latency range must satisfy 0 <= min_latency <= max_latency")
		self.min_latency = min_latency
		self.max_latency = max_latency

	async def _detect(self, image_ref: str) -> Detection:
		await asyncio.sleep(self.rng.uniform(self.min_latency, self.max_latency))
		# No reference images to compare against yet; every lookup falls back.
		logger.info("No similar disease found for %r, generating fallback result", image_ref)
		return fallback_detection(self.rng)
