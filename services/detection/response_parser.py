"""Helpers to extract structured data from Responses API output."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from services.realtime.errors import ProviderFailure


def parse_tool_output(response: Any, tool_name: str) -> Dict[str, Any]:
	"""Return the arguments for the specified tool call."""
	for item in getattr(response, "output", None) or []:
		if getattr(item, "type", None) != "function_call":
			continue
		if getattr(item, "name", None) != tool_name:
			continue
		try:
			args = json.loads(getattr(item, "arguments", "{}") or "{}")
		except json.JSONDecodeError as exc:
			raise ProviderFailure(f"Malformed arguments for '{tool_name}': {exc}") from exc
		return {
			"label": args.get("label", ""),
			"confidence": args.get("confidence"),
			"description": args.get("description", ""),
		}
	raise ProviderFailure(f"No function_call output for '{tool_name}' found in response.")


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
	"""Return token usage if present."""
	usage = getattr(response, "usage", None)
	return {
		"input_tokens": getattr(usage, "input_tokens", None) if usage else None,
		"output_tokens": getattr(usage, "output_tokens", None) if usage else None,
	}
