"""Track live websocket connections and deliver messages to them."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from starlette.websockets import WebSocketDisconnect, WebSocketState

from models.session_models import Connection
from services.realtime.errors import TransportClosed

logger = logging.getLogger(__name__)

ConnectionPredicate = Callable[[Connection], bool]


def _transport_open(transport: Any) -> bool:
	client_state = getattr(transport, "client_state", WebSocketState.CONNECTED)
	application_state = getattr(transport, "application_state", WebSocketState.CONNECTED)
	return client_state == WebSocketState.CONNECTED and application_state == WebSocketState.CONNECTED


class ConnectionRegistry:
	"""Own the transports of all live connections.

	Every outbound message goes through `send`, which never raises: a closed or
	failing transport makes it return False. `broadcast` works on a snapshot of
	the live set, so connections may come and go while it runs.
	"""

	def __init__(self) -> None:
		self._connections: Dict[str, Connection] = {}

	def register(self, transport: Any) -> str:
		"""Track a new transport and return its connection id."""
		connection_id = uuid4().hex
		self._connections[connection_id] = Connection(connection_id=connection_id, transport=transport)
		logger.info("Connection %s registered (%d live)", connection_id, len(self._connections))
		return connection_id

	def unregister(self, connection_id: str) -> Optional[Connection]:
		"""Forget a connection; unknown ids are ignored."""
		connection = self._connections.pop(connection_id, None)
		if connection is None:
			return None
		connection.open = False
		logger.info("Connection %s unregistered (%d live)", connection_id, len(self._connections))
		return connection

	def get(self, connection_id: str) -> Connection:
		"""Return a live connection or raise KeyError if missing."""
		connection = self._connections.get(connection_id)
		if connection is None:
			raise KeyError(f"Connection {connection_id} not found")
		return connection

	def bind_identity(self, connection_id: str, user_id: str) -> Connection:
		"""Attach a user id to a connection, replacing any previous one."""
		connection = self.get(connection_id)
		if connection.user_id and connection.user_id != user_id:
			logger.info("Connection %s re-bound from %s to %s", connection_id, connection.user_id, user_id)
		connection.user_id = user_id
		return connection

	def identity_of(self, connection_id: str) -> Optional[str]:
		connection = self._connections.get(connection_id)
		return connection.user_id if connection else None

	def is_open(self, connection_id: str) -> bool:
		connection = self._connections.get(connection_id)
		return bool(connection and connection.open and _transport_open(connection.transport))

	def connections(self) -> List[Connection]:
		"""Return a snapshot of the live connections."""
		return list(self._connections.values())

	def __len__(self) -> int:
		return len(self._connections)

	async def send(self, connection_id: str, message: Dict[str, Any]) -> bool:
		"""Serialize and write `message`; return False if the connection is closed."""
		connection = self._connections.get(connection_id)
		try:
			if connection is None or not connection.open:
				raise TransportClosed(f"connection {connection_id} is not registered")
			async with connection.send_lock:
				if not connection.open or not _transport_open(connection.transport):
					raise TransportClosed(f"connection {connection_id} is not open")
				try:
					await connection.transport.send_text(json.dumps(message))
				except (WebSocketDisconnect, RuntimeError, OSError) as exc:
					connection.open = False
					raise TransportClosed(f"connection {connection_id} failed during send: {exc}") from exc
		except TransportClosed as exc:
			logger.debug("Dropped %s message: %s", message.get("type"), exc)
			return False
		return True

	async def broadcast(self, message: Dict[str, Any], predicate: Optional[ConnectionPredicate] = None) -> int:
		"""Send `message` to every live connection matching `predicate`.

		Returns:
			The number of connections the message was delivered to.
		"""
		delivered = 0
		for connection in self.connections():
			if predicate is not None and not predicate(connection):
				continue
			if await self.send(connection.connection_id, message):
				delivered += 1
		return delivered
