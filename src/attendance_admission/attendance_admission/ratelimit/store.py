from __future__ import annotations

import threading
import zlib
from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, List, Optional, Protocol

from ..core.enums import EndpointClass
from .model import RateWindowRecord


class CounterStore(Protocol):
    def locked(self, identifier: str, endpoint_class: EndpointClass) -> ContextManager[RateWindowRecord]:
        """Yield the key's record (created empty if absent) under mutual exclusion.

        Changes made to the record inside the block are persisted on exit.
        """
        raise NotImplementedError

    def peek(self, identifier: str) -> Optional[RateWindowRecord]:
        raise NotImplementedError

    def sweep(self, endpoint_class: EndpointClass, stale_before_ms: int, now_ms: int) -> int:
        """Remove records of ``endpoint_class`` that are stale or whose lockout has expired.

        Stale means not seen since ``stale_before_ms``. Records still inside an
        active lockout are kept.
        """
        raise NotImplementedError

    def records(self) -> List[RateWindowRecord]:
        raise NotImplementedError


class InMemoryCounterStore:
    """Process-local store with striped locks.

    Keys hash onto a fixed set of locks, so two requests for the same key
    always serialize while unrelated keys rarely contend.
    """

    def __init__(self, stripes: int = 64):
        self._stripes = [threading.Lock() for _ in range(max(1, stripes))]
        self._records: Dict[str, RateWindowRecord] = {}
        self._index_lock = threading.Lock()

    def _stripe(self, identifier: str) -> threading.Lock:
        return self._stripes[zlib.crc32(identifier.encode("utf-8")) % len(self._stripes)]

    @contextmanager
    def locked(self, identifier: str, endpoint_class: EndpointClass) -> Iterator[RateWindowRecord]:
        with self._stripe(identifier):
            with self._index_lock:
                record = self._records.get(identifier)
                if record is None:
                    record = RateWindowRecord(identifier=identifier, endpoint_class=endpoint_class)
                    self._records[identifier] = record
            yield record

    def peek(self, identifier: str) -> Optional[RateWindowRecord]:
        with self._stripe(identifier):
            record = self._records.get(identifier)
            if record is None:
                return None
            return RateWindowRecord(**vars(record))

    def sweep(self, endpoint_class: EndpointClass, stale_before_ms: int, now_ms: int) -> int:
        with self._index_lock:
            candidates = [
                r.identifier
                for r in self._records.values()
                if r.endpoint_class == endpoint_class and _evictable(r, stale_before_ms, now_ms)
            ]
        removed = 0
        for identifier in candidates:
            with self._stripe(identifier):
                with self._index_lock:
                    record = self._records.get(identifier)
                    if record is None or not _evictable(record, stale_before_ms, now_ms):
                        continue
                    del self._records[identifier]
                    removed += 1
        return removed

    def records(self) -> List[RateWindowRecord]:
        with self._index_lock:
            return [RateWindowRecord(**vars(r)) for r in self._records.values()]


def _evictable(record: RateWindowRecord, stale_before_ms: int, now_ms: int) -> bool:
    if record.locked_out:
        return (record.lockout_until_ms or 0) <= now_ms
    return record.last_seen_ms < stale_before_ms
