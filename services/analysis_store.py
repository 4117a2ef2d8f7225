"""Simple in-memory store for finished analyses."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from models.analysis_record import AnalysisRecord

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def utc_now_iso() -> str:
	return datetime.now(timezone.utc).isoformat()


def _parse_timestamp(value: str) -> datetime:
	try:
		parsed = datetime.fromisoformat((value or "").replace("Z", "+00:00"))
	except ValueError:
		return _EPOCH
	return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _display_date(moment: datetime) -> str:
	return f"{moment.month}/{moment.day}/{moment.year}"


def demo_recent_scans(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
	"""Return the two illustrative scans shown before any analysis exists."""
	now = now or datetime.now(timezone.utc)
	return [
		{
			"id": "mock-1",
			"imageUrl": "/placeholder.svg?height=200&width=200",
			"disease": "Black Sigatoka",
			"location": "Farm A",
			"date": _display_date(now),
			"confidence": 95,
			"severity": "High",
		},
		{
			"id": "mock-2",
			"imageUrl": "/placeholder.svg?height=200&width=200",
			"disease": "Yellow Sigatoka",
			"location": "Farm B",
			"date": _display_date(now - timedelta(days=1)),
			"confidence": 87,
			"severity": "Medium",
		},
	]


class AnalysisStore:
	"""Append-only record of analyses keyed by analysis id."""

	def __init__(self, demo_when_empty: bool = True) -> None:
		self.demo_when_empty = demo_when_empty
		self._lock = threading.Lock()
		self._records: Dict[str, AnalysisRecord] = {}
		self._order: List[str] = []

	def add(self, record: AnalysisRecord) -> bool:
		"""Store a record; returns False if the analysis id is already stored."""
		if not record.created_at:
			record.created_at = utc_now_iso()
		if not record.timestamp:
			record.timestamp = record.created_at
		with self._lock:
			if record.analysis_id in self._records:
				return False
			self._records[record.analysis_id] = record
			self._order.append(record.analysis_id)
		return True

	def get(self, analysis_id: str) -> AnalysisRecord:
		"""Return a record or raise KeyError if missing."""
		record = self._records.get(analysis_id)
		if record is None:
			raise KeyError(f"Analysis {analysis_id} not found")
		return record

	def __len__(self) -> int:
		return len(self._records)

	def records(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[AnalysisRecord]:
		"""Return stored records newest first, optionally filtered by user."""
		with self._lock:
			ranked = [(self._records[aid], seq) for seq, aid in enumerate(self._order)]
		selected = [pair for pair in ranked if not user_id or pair[0].user_id == user_id]
		selected.sort(key=lambda pair: (_parse_timestamp(pair[0].timestamp), pair[1]), reverse=True)
		records = [record for record, _ in selected]
		return records[:limit] if limit is not None else records

	def recent_scans(self, user_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
		"""Return the recent scans feed for the client.

		While nothing has been stored yet this returns the demo scans (when
		enabled), otherwise an empty list.
		"""
		if not self._records:
			return demo_recent_scans() if self.demo_when_empty else []
		return [self._summary(record) for record in self.records(user_id, max(limit, 0))]

	@staticmethod
	def _summary(record: AnalysisRecord) -> Dict[str, Any]:
		detection = record.detection or {}
		return {
			"id": record.analysis_id,
			"imageUrl": f"/api/images/file/{record.image_id}",
			"disease": detection.get("name") or detection.get("label"),
			"location": "Unknown",
			"date": _display_date(_parse_timestamp(record.timestamp)),
			"confidence": detection.get("confidence"),
			"severity": detection.get("severity"),
		}
