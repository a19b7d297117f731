"""
In-memory extraction result cache.

Identical uploads (same bytes, same content type) skip text extraction.
Entries expire after a TTL; when full, the entry closest to expiry is
evicted. Only confident results are cached so a poor OCR pass is retried
on the next upload.
"""

import copy
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

from ..confidence.scorer import score_overall
from ..schemas.paystub import PaystubData

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 15 * 60
DEFAULT_MAX_ENTRIES = 100
DEFAULT_MIN_CONFIDENCE = 0.7


@dataclass
class _CacheEntry:
    document: PaystubData
    expires_at: float


def cache_key(data: bytes, content_type: str) -> str:
    """SHA-256 over content type and payload."""
    digest = hashlib.sha256()
    digest.update(content_type.lower().encode("utf-8"))
    digest.update(b"\0")
    digest.update(data)
    return digest.hexdigest()


class ResultCache:
    """Thread-safe TTL cache of extracted documents."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        clock=time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.min_confidence = min_confidence
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, data: bytes, content_type: str) -> Optional[PaystubData]:
        """Return a copy of the cached document, or None on miss/expiry."""
        key = cache_key(data, content_type)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            # Callers rescore and stamp the document, keep the cached one intact
            return copy.deepcopy(entry.document)

    def put(self, data: bytes, content_type: str, document: PaystubData) -> bool:
        """
        Cache a document if its field scores are confident enough.

        Returns:
            True if the document was stored
        """
        confidence = score_overall(document.field_scores())
        if confidence <= self.min_confidence:
            logger.debug(f"Not caching result with confidence {confidence:.2f}")
            return False

        key = cache_key(data, content_type)
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_one()
            self._entries[key] = _CacheEntry(
                document=copy.deepcopy(document),
                expires_at=now + self.ttl_seconds,
            )
        return True

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for key in expired:
            del self._entries[key]

    def _evict_one(self) -> None:
        oldest = min(self._entries, key=lambda k: self._entries[k].expires_at)
        del self._entries[oldest]
