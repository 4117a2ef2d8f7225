"""Coordinate realtime and inline analysis jobs."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from config import Settings
from models.analysis_record import AnalysisRecord
from models.detection import Detection, DetectionEnvelope
from models.session_models import AnalysisJob, JobState
from services.analysis_store import AnalysisStore, utc_now_iso
from services.detection.base import DetectionProvider
from services.realtime import messages
from services.realtime.connection_registry import ConnectionRegistry
from services.realtime.errors import MalformedMessage, Unauthenticated
from services.realtime.job_correlator import JobCorrelator
from services.realtime.progress_emitter import EmitterHandle, ProgressEmitter
from services.treatment_catalog import TreatmentCatalog

logger = logging.getLogger(__name__)


def image_id_from_url(image_url: str) -> str:
	"""Return the last path segment of an image URL, or 'unknown'."""
	return image_url.split("/")[-1] or "unknown"


class SessionOrchestrator:
	"""Run analysis jobs for websocket connections and direct HTTP calls.

	A realtime job is acknowledged right away, reports progress through a
	ticker while the detection provider works, and ends with exactly one
	`analysis_results` message, unless its connection disappears first, in
	which case the job is abandoned and the result is dropped. Inline jobs
	skip the channel entirely and return the detection to the caller.
	"""

	def __init__(
		self,
		registry: ConnectionRegistry,
		correlator: JobCorrelator,
		emitter: ProgressEmitter,
		provider: DetectionProvider,
		store: AnalysisStore,
		treatments: TreatmentCatalog,
		*,
		welcome_message: str = "Connected to MUSALYTICS WebSocket server",
		recent_default_limit: int = 10,
	) -> None:
		self.registry = registry
		self.correlator = correlator
		self.emitter = emitter
		self.provider = provider
		self.store = store
		self.treatments = treatments
		self.welcome_message = welcome_message
		self.recent_default_limit = recent_default_limit
		self._tasks: Dict[str, "asyncio.Task[None]"] = {}
		self._emitters: Dict[str, EmitterHandle] = {}

	@classmethod
	def from_settings(
		cls,
		settings: Settings,
		provider: DetectionProvider,
		treatments: Optional[TreatmentCatalog] = None,
	) -> "SessionOrchestrator":
		registry = ConnectionRegistry()
		return cls(
			registry,
			JobCorrelator(),
			ProgressEmitter(
				registry,
				tick_interval=settings.progress_tick_seconds,
				step=settings.progress_step,
				ceiling=settings.progress_ceiling,
			),
			provider,
			AnalysisStore(demo_when_empty=settings.recent_demo_enabled),
			treatments or TreatmentCatalog(),
			welcome_message=settings.welcome_message,
			recent_default_limit=settings.recent_default_limit,
		)

	@property
	def active_jobs(self) -> int:
		return len(self._tasks)

	@property
	def active_emitters(self) -> int:
		return len(self._emitters)

	# ------------------------------------------------------------------
	# Connection lifecycle
	# ------------------------------------------------------------------

	async def open_connection(self, transport: Any) -> str:
		"""Register a transport and greet it."""
		connection_id = self.registry.register(transport)
		await self.registry.send(connection_id, messages.welcome(self.welcome_message))
		return connection_id

	async def close_connection(self, connection_id: str) -> None:
		"""Forget a connection and stop every ticker still pointed at it."""
		self.registry.unregister(connection_id)
		for job in self.correlator.jobs_for_connection(connection_id):
			if not job.state.terminal:
				job.state = JobState.ABANDONED
				logger.info("Job %s abandoned; connection %s closed", job.job_id, connection_id)
			handle = self._emitters.pop(job.job_id, None)
			if handle is not None:
				await handle.stop()

	async def authenticate(self, connection_id: str, user_id: Optional[str]) -> None:
		"""Bind `user_id` to the connection and confirm it."""
		if not user_id:
			raise MalformedMessage("authenticate requires a userId")
		self.registry.bind_identity(connection_id, user_id)
		logger.info("Connection %s authenticated as user %s", connection_id, user_id)
		await self.registry.send(connection_id, messages.authentication_response(user_id))

	# ------------------------------------------------------------------
	# Realtime jobs
	# ------------------------------------------------------------------

	async def submit_realtime(self, connection_id: str, image_ref: str, user_id: Optional[str] = None) -> str:
		"""Start a realtime analysis and return its job id.

		Raises:
			Unauthenticated: If neither the connection nor the request names a user.
		"""
		owner_id = self.registry.identity_of(connection_id) or user_id
		if not owner_id:
			raise Unauthenticated()

		job = self.correlator.new_job(owner_id, image_ref, connection_id)
		logger.info("Analysis %s requested for image %s by user %s", job.job_id, image_ref, owner_id)

		acknowledged = await self.registry.send(connection_id, messages.analysis_request_received(job.job_id, image_ref))
		if not acknowledged:
			job.state = JobState.ABANDONED
			self.correlator.release(job.job_id)
			logger.info("Job %s abandoned before start; connection %s closed", job.job_id, connection_id)
			return job.job_id

		job.state = JobState.IN_PROGRESS
		handle = self.emitter.start(job, connection_id)
		self._emitters[job.job_id] = handle
		task = asyncio.create_task(self._run_realtime(job, connection_id, handle), name=f"analysis-{job.job_id}")
		self._tasks[job.job_id] = task
		task.add_done_callback(lambda _task, job_id=job.job_id: self._tasks.pop(job_id, None))
		return job.job_id

	async def _run_realtime(self, job: AnalysisJob, connection_id: str, handle: EmitterHandle) -> None:
		try:
			detection = await self.provider.detect(job.image_ref)
			await handle.stop()
			self._emitters.pop(job.job_id, None)

			if job.state is JobState.ABANDONED or not self.registry.is_open(connection_id):
				job.state = JobState.ABANDONED
				logger.info("Dropping result of job %s; connection %s is gone", job.job_id, connection_id)
				return

			job.state = JobState.COMPLETED
			self._persist(job, detection)
			delivered = await self.registry.send(
				connection_id,
				messages.analysis_results(
					job.job_id,
					job.image_ref,
					detection,
					self._treatments_for(detection),
					self.treatments.prevention_tips_for(detection.label),
				),
			)
			logger.info("Analysis %s completed (%s, delivered=%s)", job.job_id, detection.label, delivered)
		except asyncio.CancelledError:
			if not job.state.terminal:
				job.state = JobState.ABANDONED
			raise
		except Exception:  # pylint: disable=broad-exception-caught
			if not job.state.terminal:
				job.state = JobState.ABANDONED
			logger.exception("Analysis %s failed unexpectedly", job.job_id)
		finally:
			handle.cancel()
			self._emitters.pop(job.job_id, None)
			self.correlator.release(job.job_id)

	def _treatments_for(self, detection: Detection) -> List[str]:
		if detection.treatments:
			return list(detection.treatments)
		entry = self.treatments.get(detection.label)
		return list(entry.treatments) if entry else []

	def _persist(self, job: AnalysisJob, detection: Detection, image_id: Optional[str] = None) -> str:
		timestamp = utc_now_iso()
		self.store.add(
			AnalysisRecord(
				analysis_id=job.job_id,
				image_id=image_id or job.image_ref,
				user_id=job.owner_id,
				detection=detection.summary(),
				timestamp=timestamp,
			)
		)
		return timestamp

	# ------------------------------------------------------------------
	# Inline jobs and records
	# ------------------------------------------------------------------

	async def submit_inline(self, image_ref: str, user_id: Optional[str] = None) -> DetectionEnvelope:
		"""Run one analysis to completion and return its result directly.

		Raises:
			ValueError: If `image_ref` is empty.
		"""
		if not image_ref or not image_ref.strip():
			raise ValueError("Image URL is required")

		job = self.correlator.new_job(user_id, image_ref)
		job.state = JobState.IN_PROGRESS
		logger.info("Starting inline analysis %s for image %s", job.job_id, image_ref)
		try:
			started = time.perf_counter()
			detection = await self.provider.detect(image_ref)
			processing_time = time.perf_counter() - started
			job.state = JobState.COMPLETED
			timestamp = self._persist(job, detection, image_id=image_id_from_url(image_ref))
		finally:
			self.correlator.release(job.job_id)

		return DetectionEnvelope(
			analysis_id=job.job_id,
			detections=[detection],
			processing_time=processing_time,
			timestamp=timestamp,
		)

	def list_recent(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
		"""Return recent scan summaries, newest first."""
		return self.store.recent_scans(user_id, limit if limit is not None else self.recent_default_limit)

	async def save_analysis(
		self,
		analysis_id: str,
		image_id: str,
		detection: Dict[str, Any],
		user_id: Optional[str] = None,
		timestamp: Optional[str] = None,
	) -> bool:
		"""Store a client-reported analysis and tell the user's live connections.

		Returns:
			False if an analysis with this id was already stored.
		"""
		stored = self.store.add(
			AnalysisRecord(
				analysis_id=analysis_id,
				image_id=image_id,
				user_id=user_id,
				detection=dict(detection),
				timestamp=timestamp or "",
			)
		)
		if stored and user_id:
			await self.registry.broadcast(
				messages.analysis_saved(analysis_id, image_id),
				lambda connection: connection.user_id == user_id,
			)
		return stored

	async def shutdown(self) -> None:
		"""Cancel every running job and ticker."""
		tasks = []
		for job_id, task in list(self._tasks.items()):
			try:
				job = self.correlator.get(job_id)
			except KeyError:
				job = None
			if job is not None and not job.state.terminal:
				job.state = JobState.ABANDONED
			task.cancel()
			tasks.append(task)
		handles = list(self._emitters.values())
		self._emitters.clear()
		await asyncio.gather(*(handle.stop() for handle in handles))
		if tasks:
			await asyncio.gather(*tasks, return_exceptions=True)
