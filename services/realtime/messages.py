"""Builders for the `{type, data}` envelopes sent over the realtime channel."""

from __future__ import annotations

from typing import Any, Dict, Sequence

from models.detection import Detection


def envelope(message_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
	return {"type": message_type, "data": data}


def welcome(message: str) -> Dict[str, Any]:
	return envelope("welcome", {"message": message})


def authentication_response(user_id: str) -> Dict[str, Any]:
	return envelope("authentication_response", {"success": True, "userId": user_id})


def analysis_request_received(analysis_id: str, image_id: str) -> Dict[str, Any]:
	return envelope(
		"analysis_request_received",
		{"success": True, "analysisId": analysis_id, "imageId": image_id, "status": "pending"},
	)


def analysis_progress(analysis_id: str, image_id: str, progress: int) -> Dict[str, Any]:
	return envelope("analysis_progress", {"analysisId": analysis_id, "imageId": image_id, "progress": progress})


def analysis_results(
	analysis_id: str,
	image_id: str,
	detection: Detection,
	treatments: Sequence[str],
	prevention_tips: Sequence[str],
) -> Dict[str, Any]:
	return envelope(
		"analysis_results",
		{
			"analysisId": analysis_id,
			"imageId": image_id,
			"status": "completed",
			"detection": detection.summary(),
			"treatments": list(treatments),
			"preventionTips": list(prevention_tips),
		},
	)


def analysis_saved(analysis_id: str, image_id: str) -> Dict[str, Any]:
	return envelope("analysis_saved", {"analysisId": analysis_id, "imageId": image_id})


def error(message: str) -> Dict[str, Any]:
	return envelope("error", {"message": message})
