"""Index handle lifecycle: populate, build, persist, query, free.

A handle owns its space, its point collection and at most one built method.
Handles are variants keyed by distance-value type; only the float variant
exists. Nothing here locks: callers must not run ``create_index``,
``load_index`` or ``free`` while queries on the same handle are in flight.
"""

from __future__ import annotations

import logging
import numbers
from abc import ABC
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any

from annkit.app.ports.method import MethodPort
from annkit.app.ports.space import SpacePort
from annkit.errors import (
    ConfigurationError,
    DataFormatError,
    IndexOutOfRangeError,
    InvalidHandleError,
    NotBuiltError,
    UnsupportedTypeError,
)
from annkit.index import codec, factory
from annkit.index.params import Params
from annkit.index.types import DataType, DistType, PointObject, SpaceDescriptor

logger = logging.getLogger(__name__)


class IndexHandle(ABC):
    """State shared by every handle variant."""

    dist_type: DistType

    def __init__(
        self,
        space_type: str,
        space_params: Iterable[str] | None,
        method_name: str,
        data_type: DataType,
        *,
        print_progress: bool = False,
    ) -> None:
        self._space: SpacePort | None = factory.create_space(space_type, space_params)
        params = tuple(space_params or ())
        factory.check_method(method_name, space_type)
        self.descriptor = SpaceDescriptor(space_type=space_type, space_params=params)
        self.method_name = method_name
        self.data_type = data_type
        self._print_progress = print_progress
        self._points: list[PointObject] = []
        self._index: MethodPort | None = None
        self._built_dim: int | None = None
        self._freed = False

    def __repr__(self) -> str:
        state = "freed" if self._freed else ("built" if self.is_built else "unbuilt")
        return (
            f"{type(self).__name__}(space={self.descriptor.space_type!r}, "
            f"method={self.method_name!r}, points={len(self._points)}, {state})"
        )

    @property
    def is_built(self) -> bool:
        return self._index is not None

    @property
    def is_freed(self) -> bool:
        return self._freed

    def _check_live(self) -> None:
        if self._freed:
            raise InvalidHandleError("Index handle has been freed")

    def require_built(self) -> MethodPort:
        self._check_live()
        if self._index is None:
            raise NotBuiltError(
                "Index has not been built; call create_index or load_index first"
            )
        return self._index

    def _discard_index(self) -> None:
        if self._index is not None:
            logger.debug("Discarding previously built %s index", self.method_name)
        self._index = None
        self._built_dim = None

    def _new_method(self) -> MethodPort:
        assert self._space is not None
        return factory.create_method(
            self.method_name,
            self.descriptor.space_type,
            self._space,
            self._points,
            print_progress=self._print_progress,
        )

    # -- population ---------------------------------------------------------

    def read_point(self, data: Any, point_id: int) -> PointObject:
        """Run the codec reader for this handle's data type."""
        self._check_live()
        reader = codec.get_reader(self.data_type)
        return reader(data, point_id, self.dist_type)

    def add_data_point(self, point_id: int, data: Any) -> None:
        point = self.read_point(data, point_id)
        self._points.append(point)

    def add_data_point_batch(self, ids: Any, data: Any) -> int:
        """Append one point per matrix row; returns the number added."""
        self._check_live()
        codec.get_reader(self.data_type)
        points = codec.read_matrix(ids, data)
        self._points.extend(points)
        logger.debug("Added %d points (total %d)", len(points), len(self._points))
        return len(points)

    # -- build / persist ----------------------------------------------------

    def create_index(self, build_params: Iterable[str] | None = None) -> None:
        self._check_live()
        params = Params(build_params, what="index parameter")
        self._discard_index()
        method = self._new_method()
        method.build_index(params)
        self._index = method
        self._built_dim = self._points[0].dim

    def save_index(self, path: str | Path) -> None:
        method = self.require_built()
        method.save_index(Path(path))

    def load_index(self, path: str | Path) -> None:
        self._check_live()
        self._discard_index()
        method = self._new_method()
        method.load_index(Path(path))
        self._index = method
        self._built_dim = self._points[0].dim

    def set_query_time_params(self, params: Iterable[str] | None = None) -> None:
        method = self.require_built()
        method.set_query_time_params(Params(params, what="query-time parameter"))

    # -- queries ------------------------------------------------------------

    def read_query(self, data: Any) -> PointObject:
        return self.read_point(data, 0)

    def read_queries(self, data: Any) -> list[PointObject]:
        """Marshal a 2-D query matrix, one point per row."""
        self._check_live()
        codec.get_reader(self.data_type)
        return codec.read_query_matrix(data)

    def search(self, query: PointObject, k: int) -> list[int]:
        """Search with an already-marshalled query point."""
        method = self.require_built()
        k = check_k(k)
        if query.dim != self._built_dim:
            raise DataFormatError(
                f"Query has dimension {query.dim}, index was built with dimension {self._built_dim}"
            )
        return method.search(query, k)

    def knn_query(self, k: int, data: Any) -> list[int]:
        query = self.read_query(data)
        return self.search(query, k)

    # -- inspection ---------------------------------------------------------

    def get_data_point(self, position: int) -> Any:
        self._check_live()
        qty = len(self._points)
        if isinstance(position, bool) or not isinstance(position, numbers.Integral):
            raise IndexOutOfRangeError(
                f"The data point index should be an integer >= 0 & < {qty}"
            )
        if position < 0 or position >= qty:
            raise IndexOutOfRangeError(f"The data point index should be >= 0 & < {qty}")
        writer = codec.get_writer(self.data_type)
        return writer(self._points[position])

    def get_data_point_qty(self) -> int:
        self._check_live()
        return len(self._points)

    def point_ids(self) -> Sequence[int]:
        self._check_live()
        return [point.id for point in self._points]

    def free(self) -> None:
        """Release the space, the built structure and every point."""
        self._check_live()
        self._discard_index()
        self._points.clear()
        self._space = None
        self._freed = True


class FloatIndexHandle(IndexHandle):
    """Handle over spaces producing float32 distances."""

    dist_type = DistType.FLOAT


HANDLE_VARIANTS: dict[DistType, type[IndexHandle]] = {
    DistType.FLOAT: FloatIndexHandle,
}


def check_k(k: Any) -> int:
    if isinstance(k, bool) or not isinstance(k, numbers.Integral):
        raise ConfigurationError(f"k should be an integer, got {type(k).__name__}")
    if k < 1:
        raise ConfigurationError(f"k ({k}) should be >=1")
    return int(k)


def create_handle(
    space_type: str,
    space_params: Iterable[str] | None,
    method_name: str,
    data_type: DataType | int = DataType.VECTOR,
    dist_type: DistType | int = DistType.FLOAT,
    *,
    print_progress: bool = False,
) -> IndexHandle:
    """Construct the handle variant for ``dist_type``.

    Raises:
        UnsupportedTypeError: For INT or unknown distance types and unknown data types.
        ConfigurationError: For unknown spaces/methods or invalid space parameters.
    """
    try:
        data_kind = DataType(data_type)
    except ValueError as exc:
        raise UnsupportedTypeError(f"unknown data type - {data_type}") from exc
    try:
        dist_kind = DistType(dist_type)
    except ValueError as exc:
        raise UnsupportedTypeError(f"unknown dist type - {dist_type}") from exc

    variant = HANDLE_VARIANTS.get(dist_kind)
    if variant is None:
        raise UnsupportedTypeError(
            "This version is optimized for vectors. "
            f"Distance type {dist_kind.name} is not supported"
        )
    return variant(
        space_type,
        space_params,
        method_name,
        data_kind,
        print_progress=print_progress,
    )
