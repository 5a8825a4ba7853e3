# =============================================================================
# Repository Abstraction — Concurrency-Safe In-Memory Records
# =============================================================================
#
# Jobs and uploads live for the lifetime of the process only. Both are
# stored through the same `Repository` protocol so the orchestrator can be
# tested against a fake and a persistent backend could be swapped in later.
#
# The lock is held only around the dict operation, never across an await,
# so a slow job cannot stall readers. Records are frozen dataclasses, so a
# value returned by get() is a snapshot that later writes cannot change.
# =============================================================================

from __future__ import annotations

import threading
from typing import Generic, Protocol, TypeVar


class Identified(Protocol):
    @property
    def id(self) -> str: ...


R = TypeVar("R", bound=Identified)


class Repository(Protocol[R]):
    """Keyed record storage with get/set/has semantics."""

    def get(self, record_id: str) -> R | None: ...

    def set(self, record: R) -> None: ...

    def has(self, record_id: str) -> bool: ...

    def __len__(self) -> int: ...


class InMemoryRepository(Generic[R]):
    """Lock-protected dict keyed by each record's `id`."""

    def __init__(self) -> None:
        self._records: dict[str, R] = {}
        self._lock = threading.Lock()

    def get(self, record_id: str) -> R | None:
        with self._lock:
            return self._records.get(record_id)

    def set(self, record: R) -> None:
        with self._lock:
            self._records[record.id] = record

    def has(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
