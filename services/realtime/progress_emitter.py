"""Periodic progress ticks for realtime analysis jobs."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from models.session_models import AnalysisJob
from services.realtime import messages
from services.realtime.connection_registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class EmitterHandle:
	"""Owner's grip on one running progress ticker."""

	def __init__(self, job: AnalysisJob, task: "asyncio.Task[None]") -> None:
		self.job = job
		self._task = task
		self._cancel_requested = False

	@property
	def cancelled(self) -> bool:
		return self._cancel_requested

	@property
	def done(self) -> bool:
		return self._task.done()

	def cancel(self) -> None:
		"""Stop the ticker. Calling this more than once is a no-op."""
		if self._cancel_requested:
			return
		self._cancel_requested = True
		if not self._task.done():
			self._task.cancel()

	async def stop(self) -> None:
		"""Cancel the ticker and wait until its task has finished."""
		self.cancel()
		await asyncio.wait({self._task})
		if not self._task.cancelled() and self._task.exception() is not None:
			logger.error("Progress ticker for job %s failed", self.job.job_id, exc_info=self._task.exception())


class ProgressEmitter:
	"""Start tickers that push `analysis_progress` messages for a job."""

	def __init__(self, registry: ConnectionRegistry, tick_interval: float = 1.0, step: int = 10, ceiling: int = 90) -> None:
		if step <= 0:
			raise ValueError("step must be positive")
		if not 0 < ceiling <= 100:
			raise ValueError("ceiling must be within (0, 100]")
		self.registry = registry
		self.tick_interval = tick_interval
		self.step = step
		self.ceiling = ceiling

	def start(
		self,
		job: AnalysisJob,
		connection_id: str,
		tick_interval: Optional[float] = None,
		step: Optional[int] = None,
	) -> EmitterHandle:
		"""Schedule the ticker for `job` on the running loop and return its handle."""
		interval = self.tick_interval if tick_interval is None else tick_interval
		increment = self.step if step is None else step
		task = asyncio.create_task(
			self._run(job, connection_id, interval, increment),
			name=f"progress-{job.job_id}",
		)
		return EmitterHandle(job, task)

	async def _run(self, job: AnalysisJob, connection_id: str, interval: float, step: int) -> None:
		while True:
			await asyncio.sleep(interval)
			value = job.progress + step
			if value > self.ceiling:
				logger.debug("Job %s reached progress ceiling %d", job.job_id, job.progress)
				return
			job.advance(value)
			delivered = await self.registry.send(
				connection_id, messages.analysis_progress(job.job_id, job.image_ref, job.progress)
			)
			if not delivered:
				logger.debug("Job %s progress stopped; connection %s closed", job.job_id, connection_id)
				return
