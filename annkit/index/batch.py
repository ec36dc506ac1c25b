"""Parallel k-NN queries over one built, read-only index handle.

Each batch seeds a queue of ``(position, query)`` pairs; drain tasks running
on a reusable thread pool pop items under a lock and write their results
into a pre-sized list at ``position``, so output order always matches input
order. A failing query aborts the whole batch.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from annkit.errors import AnnkitError, QueryCancelledError, QueryError
from annkit.index.handle import IndexHandle, check_k
from annkit.index.types import PointObject

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 64


class BatchQueryEngine:
    """Dispatch many independent queries across a shared worker pool."""

    def __init__(self, *, max_workers: int = DEFAULT_MAX_WORKERS, default_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers ({max_workers}) should be >= 1")
        self._max_workers = max_workers
        self._default_workers = max(1, min(default_workers, max_workers))
        self._pool_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._pool_size = 0

    @property
    def pool_size(self) -> int:
        return self._pool_size

    def __enter__(self) -> "BatchQueryEngine":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        with self._pool_lock:
            executor, self._executor, self._pool_size = self._executor, None, 0
        if executor is not None:
            executor.shutdown(wait=True)

    def effective_workers(self, num_workers: int | None, num_queries: int) -> int:
        """Clamp a requested worker count into ``[1, min(num_queries, max_workers)]``."""
        requested = self._default_workers if num_workers is None else int(num_workers)
        workers = max(1, min(requested, num_queries, self._max_workers))
        if workers != requested:
            logger.debug(
                "Clamped batch workers from %d to %d (%d queries, cap %d)",
                requested,
                workers,
                num_queries,
                self._max_workers,
            )
        return workers

    def _submit(self, workers: int, task: Callable[[], None]) -> list[Future[None]]:
        """Queue ``workers`` copies of ``task`` under the pool lock, growing the pool first."""
        with self._pool_lock:
            if self._executor is None or self._pool_size < workers:
                previous = self._executor
                self._executor = ThreadPoolExecutor(
                    max_workers=workers, thread_name_prefix="annkit-query"
                )
                self._pool_size = workers
                if previous is not None:
                    # Queued work on the old pool still runs to completion.
                    previous.shutdown(wait=False)
            return [self._executor.submit(task) for _ in range(workers)]

    def query(self, handle: IndexHandle, k: int, data: Any) -> list[int]:
        """Single query on the caller's thread."""
        return handle.knn_query(k, data)

    def query_batch(
        self,
        handle: IndexHandle,
        num_workers: int | None,
        k: int,
        data: Any,
        *,
        cancel: threading.Event | None = None,
    ) -> list[list[int]]:
        """Answer every row of ``data``; result ``i`` belongs to row ``i``.

        Args:
            handle: Built handle; must not be rebuilt or freed during the call
            num_workers: Requested parallelism; ``None`` uses the configured
                default, values below 1 are clamped to 1
            k: Neighbours per query (>= 1)
            data: 2-D float32 C-ordered query matrix or nested lists
            cancel: Optional kill-switch checked before each work item

        Raises:
            QueryCancelledError: If ``cancel`` is set before the batch drains
            QueryError: If the engine fails on any query (the batch is aborted)
        """
        queries = handle.read_queries(data)
        handle.require_built()
        k = check_k(k)
        if not queries:
            return []

        workers = self.effective_workers(num_workers, len(queries))
        pending: deque[tuple[int, PointObject]] = deque(enumerate(queries))
        results: list[list[int] | None] = [None] * len(queries)
        queue_lock = threading.Lock()
        abort = threading.Event()
        failures: list[BaseException] = []

        def drain() -> None:
            while not abort.is_set():
                if cancel is not None and cancel.is_set():
                    with queue_lock:
                        if not failures:
                            failures.append(QueryCancelledError("Batch query was cancelled"))
                    abort.set()
                    return
                with queue_lock:
                    if not pending:
                        return
                    position, point = pending.popleft()
                try:
                    results[position] = handle.search(point, k)
                except Exception as exc:
                    with queue_lock:
                        failures.append(exc)
                    abort.set()
                    return

        wait(self._submit(workers, drain))

        if failures:
            first = failures[0]
            logger.debug("Batch of %d queries aborted: %s", len(queries), first)
            if isinstance(first, AnnkitError):
                raise first
            raise QueryError(f"Batch query failed: {first}") from first

        return [ids if ids is not None else [] for ids in results]
