"""Error taxonomy for the realtime analysis channel."""

from __future__ import annotations


class RealtimeError(Exception):
	"""Base class for per-connection or per-job failures."""


class Unauthenticated(RealtimeError):
	"""No identity is bound to the connection and none was supplied inline."""

	def __init__(self, message: str = "Not authenticated") -> None:
		super().__init__(message)


class MalformedMessage(RealtimeError):
	"""Inbound payload is not a JSON `{type, data}` envelope."""


class TransportClosed(RealtimeError):
	"""A send was attempted on a connection that is no longer open."""


class ProviderFailure(RealtimeError):
	"""Detection provider failed internally; always converted to a fallback."""
