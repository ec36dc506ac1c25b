"""Caller-facing operation set.

Every function takes and returns plain values: handles travel as integer
tokens issued by the process-wide registry, vectors as lists or numpy
arrays, results as lists of ids. The camelCase aliases at the bottom keep
code written against the C extension's names working unchanged.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from annkit.bootstrap import get_container
from annkit.index.handle import FloatIndexHandle, create_handle
from annkit.index.types import DataType, DistType

logger = logging.getLogger(__name__)

__all__ = [
    "DataType",
    "DistType",
    "add_data_point",
    "add_data_point_batch",
    "create_index",
    "free_index",
    "get_data_point",
    "get_data_point_qty",
    "init",
    "knn_query",
    "knn_query_batch",
    "load_index",
    "save_index",
    "set_query_time_params",
]


def _handle(token: int) -> FloatIndexHandle:
    return get_container().registry.resolve(token, FloatIndexHandle)


def init(
    space_type: str,
    space_params: Iterable[str] | None = None,
    method_name: str = "brute_force",
    data_type: DataType | int = DataType.VECTOR,
    dist_type: DistType | int = DistType.FLOAT,
) -> int:
    """Create an empty index and return its token.

    Raises:
        ConfigurationError: Unknown space or method, or invalid space parameters
        UnsupportedTypeError: Distance type other than FLOAT, or unknown data type
    """
    container = get_container()
    handle = create_handle(
        space_type,
        space_params,
        method_name,
        data_type,
        dist_type,
        print_progress=container.settings.print_progress,
    )
    token = container.registry.register(handle)
    logger.debug("Created %r as token %d", handle, token)
    return token


def add_data_point(token: int, point_id: int, data: Any) -> None:
    """Append one vector with caller-assigned ``point_id``."""
    _handle(token).add_data_point(point_id, data)


def add_data_point_batch(token: int, ids: Any, data: Any) -> None:
    """Append one point per row of a C-ordered float32 matrix."""
    _handle(token).add_data_point_batch(ids, data)


def create_index(token: int, index_params: Iterable[str] | None = None) -> None:
    """Build (or rebuild from scratch) the search structure over the current points."""
    _handle(token).create_index(index_params)


def save_index(token: int, path: str | Path) -> None:
    _handle(token).save_index(path)


def load_index(token: int, path: str | Path) -> None:
    """Load a saved structure; the points must already match those at save time."""
    _handle(token).load_index(path)


def set_query_time_params(token: int, params: Iterable[str] | None = None) -> None:
    _handle(token).set_query_time_params(params)


def knn_query(token: int, k: int, data: Any) -> list[int]:
    """Return up to ``k`` ids nearest to ``data``, closest first."""
    handle = _handle(token)
    return get_container().batch_engine.query(handle, k, data)


def knn_query_batch(
    token: int,
    num_threads: int | None,
    k: int,
    data: Any,
    *,
    cancel: threading.Event | None = None,
) -> list[list[int]]:
    """Run one k-NN query per row of ``data`` in parallel; results keep row order."""
    handle = _handle(token)
    return get_container().batch_engine.query_batch(handle, num_threads, k, data, cancel=cancel)


def get_data_point(token: int, position: int) -> list[float]:
    """Return the vector stored at zero-based ``position`` (not the point id)."""
    return _handle(token).get_data_point(position)


def get_data_point_qty(token: int) -> int:
    return _handle(token).get_data_point_qty()


def free_index(token: int) -> None:
    """Release the handle; ``token`` is invalid afterwards."""
    handle = get_container().registry.release(token)
    handle.free()


addDataPoint = add_data_point
addDataPointBatch = add_data_point_batch
createIndex = create_index
saveIndex = save_index
loadIndex = load_index
setQueryTimeParams = set_query_time_params
knnQuery = knn_query
knnQueryBatch = knn_query_batch
getDataPoint = get_data_point
getDataPointQty = get_data_point_qty
freeIndex = free_index
