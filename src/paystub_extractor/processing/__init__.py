"""
Asynchronous processing core.

Provides:
- JobProcessor: Bounded queue + fixed worker pool
- ExtractionPipeline: Engine call and confidence scoring per document
- ResultStore: Sharded, read/write-locked job result map
- PollableSource / QueuePoller: Pull jobs from a queue (source_from_config picks it)
"""

from .pipeline import ExtractionPipeline
from .processor import JobProcessor, ProcessorStoppedError, QueueSaturatedError
from .result_store import ReadWriteLock, ResultStore
from .sources import (
    InMemoryQueueSource,
    Job,
    PollableSource,
    QueuePoller,
    source_from_config,
)

__all__ = [
    "JobProcessor",
    "QueueSaturatedError",
    "ProcessorStoppedError",
    "ExtractionPipeline",
    "ResultStore",
    "ReadWriteLock",
    "Job",
    "PollableSource",
    "InMemoryQueueSource",
    "QueuePoller",
    "source_from_config",
]
