"""WebSocket endpoint for realtime image analysis."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, WebSocket
from starlette.websockets import WebSocketDisconnect

from services.realtime.orchestrator import SessionOrchestrator
from services.realtime.ws_session import RealtimeSessionHandler

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_orchestrator(websocket: WebSocket) -> SessionOrchestrator:
	orchestrator = getattr(websocket.app.state, "orchestrator", None)
	if orchestrator is None:
		raise HTTPException(status_code=500, detail="Analysis orchestrator unavailable")
	return orchestrator


@router.websocket("/")
@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, orchestrator: SessionOrchestrator = Depends(_require_orchestrator)):
	"""Handle authentication and analysis requests over one websocket."""
	await websocket.accept()
	connection_id = await orchestrator.open_connection(websocket)
	handler = RealtimeSessionHandler(orchestrator)
	try:
		while True:
			try:
				raw = await websocket.receive_text()
			except WebSocketDisconnect:
				break
			except KeyError:
				# Binary frames carry no "text" key.
				logger.warning("Ignoring non-text frame on connection %s", connection_id)
				continue
			await handler.handle_text(connection_id, raw)
	finally:
		await orchestrator.close_connection(connection_id)
