"""
Job sources.

A Job is the immutable unit of work handed to the worker pool. Besides
direct submission, jobs can come from a pollable queue (e.g. a cloud
message queue) through the QueuePoller, which feeds the same bounded
intake so backpressure applies equally.
"""

import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from ..config import ProcessorConfig
    from .processor import JobProcessor

logger = logging.getLogger(__name__)

_sequence = itertools.count(1)


def new_job_id() -> str:
    """Unique, roughly time-ordered job id."""
    return f"job-{time.time_ns()}-{next(_sequence)}"


@dataclass(frozen=True)
class Job:
    """A submitted document awaiting processing."""

    id: str
    data: bytes
    content_type: str
    metadata: dict[str, Any] = field(default_factory=dict)
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    file_name: Optional[str] = None

    @property
    def file_size(self) -> int:
        return len(self.data)


class PollableSource(ABC):
    """
    A durable queue the worker pool can pull jobs from.

    Messages handed out by poll() stay owned by the source until acked;
    unacked messages are delivered again later.
    """

    @abstractmethod
    def poll(self, max_messages: int) -> list[Job]:
        """Return up to max_messages visible jobs (may be empty)."""
        pass

    @abstractmethod
    def ack(self, job_id: str) -> None:
        """Remove a delivered job permanently."""
        pass


@dataclass
class _Message:
    job: Job
    invisible_until: float = 0.0
    receive_count: int = 0


class InMemoryQueueSource(PollableSource):
    """
    In-process queue with visibility-timeout semantics.

    Polled messages are hidden for visibility_timeout seconds. If they are
    not acked by then they become visible and are delivered again.
    """

    def __init__(self, visibility_timeout: float = 300.0, clock=time.monotonic):
        self.visibility_timeout = visibility_timeout
        self._clock = clock
        self._messages: "OrderedDict[str, _Message]" = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls, config: "ProcessorConfig", clock=time.monotonic
    ) -> "InMemoryQueueSource":
        return cls(visibility_timeout=config.visibility_timeout, clock=clock)

    def send(
        self,
        data: bytes,
        content_type: str,
        metadata: Optional[dict[str, Any]] = None,
        file_name: Optional[str] = None,
    ) -> str:
        """Enqueue a document and return its job id."""
        job = Job(
            id=new_job_id(),
            data=data,
            content_type=content_type,
            metadata=dict(metadata or {}),
            file_name=file_name,
        )
        with self._lock:
            self._messages[job.id] = _Message(job)
        return job.id

    def poll(self, max_messages: int) -> list[Job]:
        if max_messages <= 0:
            return []
        now = self._clock()
        jobs = []
        with self._lock:
            for message in self._messages.values():
                if len(jobs) >= max_messages:
                    break
                if message.invisible_until > now:
                    continue
                message.invisible_until = now + self.visibility_timeout
                message.receive_count += 1
                jobs.append(message.job)
        return jobs

    def ack(self, job_id: str) -> None:
        with self._lock:
            self._messages.pop(job_id, None)

    def receive_count(self, job_id: str) -> int:
        with self._lock:
            message = self._messages.get(job_id)
            return message.receive_count if message else 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)


class QueuePoller:
    """
    Background thread that moves jobs from a PollableSource into a processor.

    Only jobs the processor accepted are acked; jobs refused because the
    intake is saturated stay in the source and are redelivered.
    """

    def __init__(
        self,
        source: PollableSource,
        processor: "JobProcessor",
        poll_interval: float = 10.0,
    ):
        self.source = source
        self.processor = processor
        self.poll_interval = poll_interval
        self._shutdown = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(
        cls,
        source: PollableSource,
        processor: "JobProcessor",
        config: "ProcessorConfig",
    ) -> "QueuePoller":
        return cls(source, processor, poll_interval=config.poll_interval)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._loop, name="paystub-queue-poller", daemon=True
        )
        self._thread.start()
        logger.info(f"Queue poller started (interval {self.poll_interval}s)")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._shutdown.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Queue poller stopped")

    def _loop(self) -> None:
        while not self._shutdown.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Error polling queue: {e}", exc_info=True)
            self._shutdown.wait(self.poll_interval)

    def poll_once(self) -> int:
        """
        Run a single poll cycle.

        Returns:
            Number of jobs handed to the processor
        """
        # Deferred import, processor imports Job from this module
        from .processor import ProcessorStoppedError, QueueSaturatedError

        capacity = self.processor.free_capacity()
        if capacity <= 0:
            return 0

        accepted = 0
        for job in self.source.poll(capacity):
            try:
                self.processor.submit_job(job)
            except QueueSaturatedError:
                logger.warning(f"Processor saturated, job {job.id} left for redelivery")
                break
            except ProcessorStoppedError:
                self._shutdown.set()
                break
            self.source.ack(job.id)
            accepted += 1

        if accepted:
            logger.debug(f"Queue poller handed {accepted} job(s) to the processor")
        return accepted


MEMORY_QUEUE_SCHEME = "memory://"


def source_from_config(config: "ProcessorConfig") -> Optional[PollableSource]:
    """
    Build the job source named by config.queue_url.

    Returns:
        None when no queue is configured (direct submission only)

    Raises:
        ValueError: If the queue URL scheme is not supported
    """
    if not config.queue_url:
        return None
    if config.queue_url.startswith(MEMORY_QUEUE_SCHEME):
        logger.info(f"Using in-memory job queue {config.queue_url}")
        return InMemoryQueueSource.from_config(config)
    raise ValueError(f"Unsupported queue URL: {config.queue_url}")
