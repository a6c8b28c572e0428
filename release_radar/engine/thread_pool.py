"""Executors for the two concurrent stages of a cycle: batch fetches and entity writes."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Lock


class WorkerPools:
    """Own the ``fetch`` and ``persist`` executors, created on first use."""

    def __init__(self, fetch_workers: int = 4, persist_workers: int = 4) -> None:
        if fetch_workers < 1 or persist_workers < 1:
            raise ValueError("worker counts must be >= 1")
        self.fetch_workers = fetch_workers
        self.persist_workers = persist_workers
        self._fetch: ThreadPoolExecutor | None = None
        self._persist: ThreadPoolExecutor | None = None
        self._lock = Lock()

    @property
    def fetch(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._fetch is None:
                self._fetch = ThreadPoolExecutor(self.fetch_workers, thread_name_prefix="radar-fetch")
            return self._fetch

    @property
    def persist(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._persist is None:
                self._persist = ThreadPoolExecutor(self.persist_workers, thread_name_prefix="radar-persist")
            return self._persist

    def shutdown(self) -> None:
        with self._lock:
            pools, self._fetch, self._persist = (self._fetch, self._persist), None, None
        for pool in pools:
            if pool is not None:
                pool.shutdown(wait=False)


__all__ = ["WorkerPools"]
