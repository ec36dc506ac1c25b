"""hnswlib-based graph method implementing MethodPort."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import numpy as np

from annkit.app.ports.method import MethodPort
from annkit.app.ports.space import SpacePort
from annkit.errors import (
    BuildError,
    ConfigurationError,
    IndexFormatError,
    IndexIOError,
    NotBuiltError,
    QueryError,
)
from annkit.index.params import Params
from annkit.index.types import PointObject, stack_points

logger = logging.getLogger(__name__)

DEFAULT_M = 16
DEFAULT_EF_CONSTRUCTION = 200
DEFAULT_EF = 64
DEFAULT_SEED = 100

# hnswlib's "l2" is squared euclidean, which ranks identically to l2.
HNSW_SPACES = {
    "l2": "l2",
    "l2sqr": "l2",
    "cosinesimil": "cosine",
    "negdotprod": "ip",
}


def hnswlib_available() -> bool:
    try:
        import hnswlib  # noqa: F401
    except ImportError:
        return False
    return True


class HNSWMethod(MethodPort):
    """Hierarchical navigable small-world graph delegated to hnswlib."""

    name = "hnsw"

    def __init__(
        self,
        *,
        space_type: str,
        space: SpacePort,
        points: list[PointObject],
        print_progress: bool = False,
    ) -> None:
        try:
            self._hnsw_space = HNSW_SPACES[space_type.lower()]
        except KeyError as exc:
            raise ConfigurationError(
                f"Method '{self.name}' does not support space '{space_type}'. "
                f"Supported spaces: {', '.join(sorted(HNSW_SPACES))}"
            ) from exc
        self._space_type = space_type
        self._space = space
        self._points = points
        self._print_progress = print_progress
        self._index: Any | None = None
        self._ids: np.ndarray | None = None
        self._ef = DEFAULT_EF

    @staticmethod
    def _hnswlib() -> Any:
        try:
            import hnswlib
        except ImportError as exc:  # pragma: no cover - optional dep
            raise ConfigurationError(
                "hnswlib is required for the 'hnsw' method. Install 'hnswlib'."
            ) from exc
        return hnswlib

    def _meta_path(self, path: Path) -> Path:
        return path.with_suffix(path.suffix + ".meta.json")

    def _stack(self) -> np.ndarray:
        try:
            return stack_points(self._points)
        except ValueError as exc:
            raise BuildError(f"{self.name}: {exc}") from exc

    def build_index(self, params: Params) -> None:
        m = params.get_int("M", DEFAULT_M, minimum=2)
        ef_construction = params.get_int("efConstruction", DEFAULT_EF_CONSTRUCTION, minimum=1)
        seed = params.get_int("seed", DEFAULT_SEED)
        params.check_unused()

        hnswlib = self._hnswlib()
        array = self._stack()
        try:
            index = hnswlib.Index(space=self._hnsw_space, dim=int(array.shape[1]))
            index.init_index(
                max_elements=array.shape[0],
                ef_construction=ef_construction,
                M=m,
                random_seed=seed,
            )
            index.add_items(array, np.arange(array.shape[0]))
            index.set_ef(self._ef)
        except (RuntimeError, ValueError) as exc:
            raise BuildError(f"{self.name}: index construction failed: {exc}") from exc

        self._index = index
        self._ids = np.fromiter((p.id for p in self._points), dtype=np.int64, count=len(self._points))
        if self._print_progress:
            logger.info(
                "%s: built graph over %d points (M=%d, efConstruction=%d)",
                self.name,
                array.shape[0],
                m,
                ef_construction,
            )

    def save_index(self, path: Path) -> None:
        if self._index is None or self._ids is None:
            raise NotBuiltError("Index has not been built")
        meta = {
            "method": self.name,
            "space": self._space_type,
            "dim": int(self._index.dim),
            "point_qty": int(self._ids.shape[0]),
            "ef_search": self._ef,
        }
        try:
            self._index.save_index(str(path))
            self._meta_path(path).write_text(json.dumps(meta), encoding="utf-8")
        except (OSError, RuntimeError) as exc:
            raise IndexIOError(f"Cannot write index to {path}: {exc}") from exc

    def load_index(self, path: Path) -> None:
        meta_path = self._meta_path(path)
        if not path.exists():
            raise IndexIOError(f"HNSW index not found: {path}")
        if not meta_path.exists():
            raise IndexIOError(f"HNSW metadata missing: {meta_path}")

        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise IndexIOError(f"Cannot read {meta_path}: {exc}") from exc
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise IndexFormatError(f"HNSW metadata {meta_path} is corrupt: {exc}") from exc
        if not isinstance(meta, dict) or meta.get("method") != self.name:
            raise IndexFormatError(f"Index file {path} was not written by {self.name}")
        if meta.get("space") != self._space_type:
            raise IndexFormatError(
                f"Index file {path} was built for space '{meta.get('space')}', "
                f"not '{self._space_type}'"
            )

        try:
            array = self._stack()
        except BuildError as exc:
            raise IndexFormatError(f"Cannot bind points for {path}: {exc}") from exc
        if (meta.get("point_qty"), meta.get("dim")) != (array.shape[0], array.shape[1]):
            raise IndexFormatError(
                f"Index file {path} holds {meta.get('point_qty')} points of dimension "
                f"{meta.get('dim')}, but the handle holds {array.shape[0]} points of "
                f"dimension {array.shape[1]}"
            )

        hnswlib = self._hnswlib()
        index = hnswlib.Index(space=self._hnsw_space, dim=int(array.shape[1]))
        try:
            index.load_index(str(path), max_elements=array.shape[0])
        except RuntimeError as exc:
            raise IndexFormatError(f"HNSW index {path} is corrupt: {exc}") from exc
        try:
            ef = int(meta.get("ef_search", DEFAULT_EF))
        except (TypeError, ValueError) as exc:
            raise IndexFormatError(
                f"HNSW metadata {meta_path} has invalid ef_search {meta.get('ef_search')!r}"
            ) from exc
        if ef < 1:
            raise IndexFormatError(f"HNSW metadata {meta_path} has invalid ef_search {ef}")
        self._ef = ef
        index.set_ef(ef)

        self._index = index
        self._ids = np.fromiter((p.id for p in self._points), dtype=np.int64, count=len(self._points))
        if self._print_progress:
            logger.info("%s: loaded graph over %d points from %s", self.name, array.shape[0], path)

    def set_query_time_params(self, params: Params) -> None:
        ef = params.get_int("ef", self._ef, minimum=1)
        params.check_unused()
        if self._index is None:
            raise NotBuiltError("Index has not been built")
        self._index.set_ef(ef)
        self._ef = ef

    def search(self, query: PointObject, k: int) -> list[int]:
        if self._index is None or self._ids is None:
            raise NotBuiltError("Index has not been built")
        k = min(k, int(self._ids.shape[0]))
        q = query.as_array().reshape(1, -1)
        try:
            labels, _distances = self._index.knn_query(q, k=k, num_threads=1)
        except RuntimeError as exc:
            raise QueryError(f"{self.name}: search failed: {exc}") from exc
        return self._ids[labels[0].astype(np.int64)].tolist()
