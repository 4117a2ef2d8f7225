"""Allocate analysis jobs and their identifiers."""

from __future__ import annotations

import threading
from typing import Dict, Optional
from uuid import uuid4

from models.session_models import AnalysisJob


class JobCorrelator:
	"""Hand out unique job ids and keep the jobs they name.

	Ids are 128-bit random uuids issued under a lock. Released jobs leave no
	state behind.
	"""

	def __init__(self) -> None:
		self._lock = threading.Lock()
		self._jobs: Dict[str, AnalysisJob] = {}

	def new_job(self, owner_id: Optional[str], image_ref: str, connection_id: Optional[str] = None) -> AnalysisJob:
		"""Create a pending job with a fresh id."""
		with self._lock:
			job_id = str(uuid4())
			job = AnalysisJob(job_id=job_id, owner_id=owner_id, image_ref=image_ref, connection_id=connection_id)
			self._jobs[job_id] = job
		return job

	def get(self, job_id: str) -> AnalysisJob:
		"""Return a job or raise KeyError if missing."""
		job = self._jobs.get(job_id)
		if job is None:
			raise KeyError(f"Job {job_id} not found")
		return job

	def jobs_for_connection(self, connection_id: str) -> list[AnalysisJob]:
		return [job for job in list(self._jobs.values()) if job.connection_id == connection_id]

	def release(self, job_id: str) -> None:
		"""Drop a finished job."""
		with self._lock:
			self._jobs.pop(job_id, None)

	def __len__(self) -> int:
		return len(self._jobs)
