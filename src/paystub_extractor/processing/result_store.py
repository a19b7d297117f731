"""
Concurrent result store.

Maps job ids to their latest ProcessingRequest. Keys are spread over
independently locked shards so writers on different shards never wait on
each other, and readers on the same shard proceed in parallel.
"""

import threading
import zlib
from collections import Counter
from contextlib import contextmanager
from typing import Iterator, Optional

from ..schemas.paystub import InvalidStatusTransition, ProcessingRequest, ProcessingStatus

DEFAULT_SHARDS = 16


class ReadWriteLock:
    """
    Many readers or one writer.

    Waiting writers block new readers so a steady read load cannot starve
    status updates.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class _Shard:
    def __init__(self):
        self.lock = ReadWriteLock()
        self.records: dict[str, ProcessingRequest] = {}


class ResultStore:
    """Thread-safe job_id -> ProcessingRequest map."""

    def __init__(self, shards: int = DEFAULT_SHARDS):
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._shards = [_Shard() for _ in range(shards)]

    def _shard(self, job_id: str) -> _Shard:
        # crc32 is stable across processes, unlike hash() on str
        return self._shards[zlib.crc32(job_id.encode("utf-8")) % len(self._shards)]

    def put(self, job_id: str, request: ProcessingRequest) -> None:
        """
        Store the latest record for a job.

        Raises:
            InvalidStatusTransition: If the stored record is already terminal
        """
        shard = self._shard(job_id)
        with shard.lock.write():
            current = shard.records.get(job_id)
            if current is not None and current.is_terminal and current is not request:
                raise InvalidStatusTransition(
                    f"Job {job_id} is already {current.status.value}"
                )
            shard.records[job_id] = request

    def claim(self, job_id: str, request: ProcessingRequest) -> bool:
        """
        Store a processing record unless the job is already being worked on.

        Returns:
            False if the job is already processing or finished
        """
        shard = self._shard(job_id)
        with shard.lock.write():
            current = shard.records.get(job_id)
            if current is not None and current.status != ProcessingStatus.PENDING:
                return False
            shard.records[job_id] = request
            return True

    def get(self, job_id: str) -> Optional[ProcessingRequest]:
        """Return the latest record, or None if the job is unknown."""
        shard = self._shard(job_id)
        with shard.lock.read():
            return shard.records.get(job_id)

    def __contains__(self, job_id: str) -> bool:
        return self.get(job_id) is not None

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock.read():
                total += len(shard.records)
        return total

    def snapshot(self) -> dict[str, ProcessingRequest]:
        """Copy of all records (each shard is read consistently on its own)."""
        result: dict[str, ProcessingRequest] = {}
        for shard in self._shards:
            with shard.lock.read():
                result.update(shard.records)
        return result

    def status_counts(self) -> dict[str, int]:
        counts = Counter(r.status.value for r in self.snapshot().values())
        return dict(counts)
