"""
Job submitter and worker pool.

Documents are accepted into a bounded in-memory queue and processed by a
fixed number of worker threads. Each worker records the job's lifecycle
in the result store:

    (dequeued) -> processing -> completed | failed

Backpressure: when the queue is full, submit() blocks for at most
submission_timeout seconds and then raises QueueSaturatedError. A job is
never accepted and then silently dropped.
"""

import logging
import queue
import threading
import time
from typing import TYPE_CHECKING, Any, Optional

from ..schemas.paystub import InvalidStatusTransition, ProcessingRequest
from .pipeline import ExtractionPipeline
from .result_store import ResultStore
from .sources import Job, new_job_id

if TYPE_CHECKING:
    from ..config import ProcessorConfig

logger = logging.getLogger(__name__)

DEFAULT_WORKER_COUNT = 5
DEFAULT_SUBMISSION_TIMEOUT = 5.0

# Queue marker telling a worker to exit
_STOP = object()


class QueueSaturatedError(Exception):
    """Raised when the intake queue stays full for the whole submission timeout."""

    pass


class ProcessorStoppedError(Exception):
    """Raised when submitting to a processor that is not running."""

    pass


class JobProcessor:
    """
    Bounded worker pool for paystub extraction jobs.

    Exactly worker_count threads run jobs; the queue holds at most
    2 x worker_count waiting jobs.
    """

    def __init__(
        self,
        pipeline: ExtractionPipeline,
        store: Optional[ResultStore] = None,
        worker_count: int = DEFAULT_WORKER_COUNT,
        submission_timeout: float = DEFAULT_SUBMISSION_TIMEOUT,
    ):
        if worker_count < 1:
            raise ValueError("worker_count must be >= 1")

        self.pipeline = pipeline
        self.store = store if store is not None else ResultStore()
        self.worker_count = worker_count
        self.submission_timeout = submission_timeout

        self._queue: queue.Queue = queue.Queue(maxsize=worker_count * 2)
        self._workers: list[threading.Thread] = []

        # Intake state: stop() waits for submitters already blocked in put()
        self._intake = threading.Condition()
        self._accepting = False
        self._pending_puts = 0
        self._stopped = False

        self._stats_lock = threading.Lock()
        self._submitted = 0
        self._completed = 0
        self._failed = 0

    @classmethod
    def from_config(
        cls,
        pipeline: ExtractionPipeline,
        config: "ProcessorConfig",
        store: Optional[ResultStore] = None,
    ) -> "JobProcessor":
        return cls(
            pipeline,
            store=store,
            worker_count=config.worker_count,
            submission_timeout=config.submission_timeout,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Spawn the worker threads. Calling start() twice is a no-op."""
        with self._intake:
            if self._workers:
                return
            if self._stopped:
                raise ProcessorStoppedError("Processor has been stopped")

            for i in range(self.worker_count):
                worker = threading.Thread(
                    target=self._worker_loop,
                    args=(i + 1,),
                    name=f"paystub-worker-{i + 1}",
                    daemon=True,
                )
                worker.start()
                self._workers.append(worker)
            # Jobs are only accepted once there are workers to drain them
            self._accepting = True
        logger.info(f"Started {self.worker_count} workers")

    def stop(self, timeout: Optional[float] = None) -> bool:
        """
        Stop accepting jobs, let workers drain the queue and join them.

        Every job accepted before stop() reaches a terminal state.

        Args:
            timeout: Max seconds to wait for workers (None = wait forever)

        Returns:
            True if all workers exited
        """
        with self._intake:
            if self._stopped:
                return not any(w.is_alive() for w in self._workers)
            self._accepting = False
            while self._pending_puts:
                self._intake.wait()
            self._stopped = True

        # Sentinels go behind every accepted job, so the queue drains first
        for _ in self._workers:
            self._queue.put(_STOP)

        deadline = None if timeout is None else time.monotonic() + timeout
        for worker in self._workers:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            worker.join(remaining)

        drained = not any(w.is_alive() for w in self._workers)
        if drained:
            logger.info("All workers stopped")
        else:
            logger.warning("Timed out waiting for workers to stop")
        return drained

    def __enter__(self) -> "JobProcessor":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(
        self,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, Any]] = None,
        file_name: Optional[str] = None,
    ) -> str:
        """
        Queue a document for processing.

        Returns:
            The new job id

        Raises:
            QueueSaturatedError: If the queue stayed full for submission_timeout
            ProcessorStoppedError: If start() has not been called or stop() has
        """
        job = Job(
            id=new_job_id(),
            data=data,
            content_type=content_type,
            metadata=dict(metadata or {}),
            file_name=file_name,
        )
        return self.submit_job(job)

    def submit_job(self, job: Job) -> str:
        """Queue a pre-built job, keeping its id."""
        with self._intake:
            if not self._accepting:
                raise ProcessorStoppedError("Processor is not accepting jobs")
            self._pending_puts += 1

        try:
            self._queue.put(job, timeout=self.submission_timeout)
        except queue.Full:
            logger.warning(
                f"Queue saturated, rejected job {job.id} after {self.submission_timeout}s"
            )
            raise QueueSaturatedError(
                f"Processing queue is full ({self._queue.maxsize} jobs waiting)"
            ) from None
        finally:
            with self._intake:
                self._pending_puts -= 1
                self._intake.notify_all()

        with self._stats_lock:
            self._submitted += 1
        logger.debug(f"Queued job {job.id} ({job.content_type}, {job.file_size} bytes)")
        return job.id

    def free_capacity(self) -> int:
        """Approximate number of jobs that can be queued without blocking."""
        return max(0, self._queue.maxsize - self._queue.qsize())

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def get_result(self, job_id: str) -> Optional[ProcessingRequest]:
        """Latest record for a job, None while queued or if unknown."""
        return self.store.get(job_id)

    def stats(self) -> dict[str, int]:
        with self._stats_lock:
            return {
                "workers": self.worker_count,
                "queued": self._queue.qsize(),
                "submitted": self._submitted,
                "completed": self._completed,
                "failed": self._failed,
            }

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _worker_loop(self, worker_id: int) -> None:
        logger.debug(f"Worker {worker_id} started")
        while True:
            job = self._queue.get()
            try:
                if job is _STOP:
                    break
                self._process(worker_id, job)
            finally:
                self._queue.task_done()
        logger.debug(f"Worker {worker_id} stopped")

    def _process(self, worker_id: int, job: Job) -> None:
        request = ProcessingRequest.start(
            job.id,
            file_type=job.content_type,
            file_size=job.file_size,
            created_at=job.submitted_at,
            file_name=job.file_name,
            metadata=job.metadata,
        )
        # Redelivered or resubmitted ids run at most once
        if not self.store.claim(job.id, request):
            logger.warning(f"Skipping job {job.id}: already processing or finished")
            return
        logger.info(f"Worker {worker_id} processing job {job.id}")

        started = time.monotonic()
        try:
            result = self.pipeline.run(job.data, job.content_type)
        except Exception as e:
            logger.error(f"Job {job.id} failed: {e}")
            if self._finish(job.id, request.fail(str(e))):
                with self._stats_lock:
                    self._failed += 1
            return

        if not self._finish(job.id, request.complete(result)):
            return
        with self._stats_lock:
            self._completed += 1
        logger.info(
            f"Job {job.id} completed in {time.monotonic() - started:.2f}s "
            f"(confidence {result.overall_confidence:.2f})"
        )

    def _finish(self, job_id: str, request: ProcessingRequest) -> bool:
        try:
            self.store.put(job_id, request)
        except InvalidStatusTransition as e:
            logger.error(f"Dropping {request.status.value} result for job {job_id}: {e}")
            return False
        return True
