"""Detection provider contract."""

from __future__ import annotations

import abc
import logging
import random
from typing import Optional

from models.detection import Detection
from services.detection.catalog import fallback_detection

logger = logging.getLogger(__name__)


class DetectionProvider(abc.ABC):
	"""Turn an image reference into one detection, never raising.

	Subclasses implement `_detect`. Any exception it raises is logged and
	replaced with a fallback detection from the catalog, so callers need no
	error handling of their own.
	"""

	def __init__(self, rng: Optional[random.Random] = None) -> None:
		self.rng = rng or random.Random()

	async def detect(self, image_ref: str) -> Detection:
		try:
			return await self._detect(image_ref)
		except Exception as exc:  # pylint: disable=broad-exception-caught
			logger.warning("Detection failed for %r, using fallback: %s", image_ref, exc)
			return fallback_detection(self.rng)

	@abc.abstractmethod
	async def _detect(self, image_ref: str) -> Detection:
		"""Produce a detection; may raise."""
