"""Session domain models for realtime workflows."""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any, Optional


class JobState(str, enum.Enum):
	"""Lifecycle of one analysis job.

	pending -> in_progress -> completed
	pending -> in_progress -> abandoned (owning connection went away)
	"""

	PENDING = "pending"
	IN_PROGRESS = "in_progress"
	COMPLETED = "completed"
	ABANDONED = "abandoned"

	@property
	def terminal(self) -> bool:
		return self in (JobState.COMPLETED, JobState.ABANDONED)


@dataclass
class Connection:
	"""One live persistent channel tracked by the connection registry."""

	connection_id: str
	transport: Any
	user_id: Optional[str] = None
	open: bool = True
	send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)


@dataclass
class AnalysisJob:
	"""In-flight or finished analysis request."""

	job_id: str
	owner_id: Optional[str]
	image_ref: str
	connection_id: Optional[str] = None
	progress: int = 0
	state: JobState = JobState.PENDING

	def advance(self, value: int) -> None:
		"""Move progress forward; values never go down or past 100."""
		if value <= self.progress:
			raise ValueError(f"progress must increase (current {self.progress}, got {value})")
		self.progress = min(value, 100)
