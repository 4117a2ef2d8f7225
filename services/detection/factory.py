"""Select the detection provider configured for the application."""

from __future__ import annotations

from config import Settings
from services.detection.base import DetectionProvider
from services.detection.catalog_provider import CatalogDetectionProvider
from services.detection.openai_provider import OpenAIDetectionProvider


def build_provider(settings: Settings, openai_client=None) -> DetectionProvider:
	"""Return the provider selected by `settings.detection_backend`."""
	if settings.detection_backend == "openai":
		return OpenAIDetectionProvider(openai_client, model=settings.openai_model)
	return CatalogDetectionProvider(settings.detection_min_latency, settings.detection_max_latency)
