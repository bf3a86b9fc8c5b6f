# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Bounded store for in-flight and recently returned completions.

Records are keyed by completion id and removed when a request fails,
when its completion is accepted, or when they age out. Both the age
(TTL) and the entry count are bounded, so the store cannot grow with
request volume.
"""

import logging
import threading
import time
from typing import Callable, Optional

from cachetools import TTLCache  # type: ignore[import-untyped]

from victor_autocomplete.completion.protocol import TrackingRecord
from victor_autocomplete.errors import DuplicateCompletionIdError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 500


class CompletionTrackingStore:
    """Thread-safe TTL cache of ``TrackingRecord`` by completion id."""

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        maxsize: int = DEFAULT_MAX_ENTRIES,
        timer: Callable[[], float] = time.monotonic,
    ):
        """Initialize the store.

        Args:
            ttl: Seconds a record may live before eviction
            maxsize: Maximum number of records (least recently used go first)
            timer: Clock used for expiry, injectable for tests
        """
        self._lock = threading.RLock()
        self._timer = timer
        self._records: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)

    @property
    def ttl(self) -> float:
        return self._records.ttl

    @property
    def maxsize(self) -> int:
        return self._records.maxsize

    def resize(self, ttl: float, maxsize: int) -> None:
        """Apply new bounds, keeping live records.

        When shrinking, the most recently inserted records are kept. Kept
        records start a fresh TTL.
        """
        with self._lock:
            self._records.expire()
            live = list(self._records.items())[-maxsize:]
            records: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=self._timer)
            for completion_id, record in live:
                records[completion_id] = record
            self._records = records

    def add(self, record: TrackingRecord) -> None:
        """Insert a new record.

        Raises:
            DuplicateCompletionIdError: If the id is already tracked
        """
        with self._lock:
            if record.completion_id in self._records:
                raise DuplicateCompletionIdError(record.completion_id)
            self._records[record.completion_id] = record

    def get(self, completion_id: str) -> Optional[TrackingRecord]:
        with self._lock:
            return self._records.get(completion_id)

    def attach_completion(self, completion_id: str, text: str) -> bool:
        """Store the returned completion text on a live record.

        Returns:
            False if the record has already been evicted
        """
        with self._lock:
            record = self._records.get(completion_id)
            if record is None:
                return False
            record.completion_text = text
            # Re-insert so the TTL counts from when the text became visible
            self._records[completion_id] = record
            return True

    def pop(self, completion_id: str) -> Optional[TrackingRecord]:
        with self._lock:
            return self._records.pop(completion_id, None)

    def discard(self, completion_id: str) -> None:
        with self._lock:
            self._records.pop(completion_id, None)

    def records_for_file(self, filepath: str) -> list[TrackingRecord]:
        """Live records for ``filepath`` that carry completion text, oldest first."""
        with self._lock:
            self._records.expire()
            return [
                r
                for r in self._records.values()
                if r.filepath == filepath and r.completion_text is not None
            ]

    def expire(self) -> int:
        """Evict aged-out records.

        Returns:
            Number of records evicted
        """
        with self._lock:
            evicted = self._records.expire()
        count = len(evicted) if evicted is not None else 0
        if count:
            logger.debug(f"Evicted {count} stale tracking records")
        return count

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            self._records.expire()
            return len(self._records)

    def __contains__(self, completion_id: object) -> bool:
        with self._lock:
            return completion_id in self._records
