"""Disease detection using OpenAI vision through the Responses API."""
from __future__ import annotations

import logging
import random
import time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from openai import AsyncOpenAI

from models.detection import Detection, Provenance
from services.detection.base import DetectionProvider
from services.detection.catalog import disease_names, find_disease
from services.detection.prompts import detection_system_prompt, detection_user_prompt
from services.detection.response_parser import extract_usage, parse_tool_output
from services.realtime.errors import ProviderFailure

logger = logging.getLogger(__name__)

FUNCTION_NAME = "classify_banana_disease"

FUNCTION_DEFINITION: Dict[str, Any] = {
	"type": "function",
	"name": FUNCTION_NAME,
	"description": "Return the disease label, confidence, and a short symptom description for the leaf image.",
	"parameters": {
		"type": "object",
		"properties": {
			"label": {"type": "string", "enum": disease_names()},
			"confidence": {"type": "number"},
			"description": {"type": "string"},
		},
		"required": ["label", "confidence", "description"],
		"additionalProperties": False,
	},
	"strict": True,
}


def _is_http_url(image_ref: str) -> bool:
	parsed = urlparse(image_ref or "")
	return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class OpenAIDetectionProvider(DetectionProvider):
	"""Ask a vision model to pick the catalog disease shown in an image URL."""

	def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini", rng: Optional[random.Random] = None) -> None:
		super().__init__(rng)
		if client is None:
			raise ValueError("AsyncOpenAI client is required.")
		self.client = client
		self.model = model

	async def _detect(self, image_ref: str) -> Detection:
		if not _is_http_url(image_ref):
			raise ProviderFailure(f"Image reference {image_ref!r} is not an http(s) URL")

		inputs = [
			{"type": "message", "role": "system", "content": [{"type": "input_text", "text": detection_system_prompt()}]},
			{"type": "message", "role": "user", "content": [{"type": "input_text", "text": detection_user_prompt(disease_names())}]},
			{"type": "message", "role": "user", "content": [{"type": "input_image", "image_url": image_ref}]},
		]

		start = time.time()
		response = await self.client.responses.create(
			model=self.model,
			input=inputs,
			tools=[FUNCTION_DEFINITION],
			tool_choice={"type": "function", "name": FUNCTION_NAME},
		)
		result = parse_tool_output(response, FUNCTION_NAME)
		usage = extract_usage(response)
		logger.debug(
			"Detection for %r took %.2fs (input_tokens=%s, output_tokens=%s)",
			image_ref, time.time() - start, usage["input_tokens"], usage["output_tokens"],
		)

		entry = find_disease(result["label"])
		if entry is None:
			raise ProviderFailure(f"Model returned unknown label {result['label']!r}")
		try:
			confidence = float(result["confidence"])
		except (TypeError, ValueError) as exc:
			raise ProviderFailure(f"Model returned invalid confidence {result['confidence']!r}") from exc

		return Detection(
			label=entry.name,
			scientific_name=entry.scientific_name,
			confidence=min(max(confidence, 0.0), 1.0),
			severity=entry.severity,
			description=result["description"] or entry.description,
			treatments=entry.treatments,
			provenance=Provenance.MATCHED,
		)
