"""Dispatch realtime websocket events to the session orchestrator."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Tuple

from services.realtime import messages
from services.realtime.errors import MalformedMessage, Unauthenticated
from services.realtime.orchestrator import SessionOrchestrator

logger = logging.getLogger(__name__)


def parse_envelope(raw: str) -> Tuple[str, Dict[str, Any]]:
	"""Return `(type, data)` from a raw frame or raise MalformedMessage."""
	try:
		payload = json.loads(raw)
	except (TypeError, ValueError) as exc:
		raise MalformedMessage(f"Payload must be JSON: {exc}") from exc
	if not isinstance(payload, dict):
		raise MalformedMessage("Payload must be a JSON object")
	message_type = payload.get("type")
	if not isinstance(message_type, str) or not message_type:
		raise MalformedMessage("Payload is missing a message type")
	data = payload.get("data")
	if data is None:
		data = {}
	if not isinstance(data, dict):
		raise MalformedMessage("Payload data must be an object")
	return message_type, data


class RealtimeSessionHandler:
	"""Route websocket messages for one connection."""

	def __init__(self, orchestrator: SessionOrchestrator) -> None:
		self.orchestrator = orchestrator

	async def handle_text(self, connection_id: str, raw: str) -> None:
		"""Process a single inbound websocket frame."""
		try:
			message_type, data = parse_envelope(raw)
			if message_type == "authenticate":
				await self.orchestrator.authenticate(connection_id, data.get("userId"))
			elif message_type == "analyze_image":
				image_id = data.get("imageId")
				if not image_id:
					raise MalformedMessage("analyze_image requires an imageId")
				await self.orchestrator.submit_realtime(connection_id, str(image_id), data.get("userId"))
			else:
				logger.debug("Ignoring unsupported message type %r on connection %s", message_type, connection_id)
		except Unauthenticated as exc:
			await self._send_error(connection_id, str(exc))
		except MalformedMessage as exc:
			logger.warning("Malformed message on connection %s: %s", connection_id, exc)
		except Exception:  # pylint: disable=broad-exception-caught
			logger.exception("Error processing message on connection %s", connection_id)

	async def _send_error(self, connection_id: str, detail: str) -> None:
		await self.orchestrator.registry.send(connection_id, messages.error(detail))
