"""Exact sequential-scan method implementing MethodPort."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import numpy as np

from annkit.app.ports.method import MethodPort
from annkit.app.ports.space import SpacePort
from annkit.errors import BuildError, IndexFormatError, IndexIOError, NotBuiltError, QueryError
from annkit.index.params import Params
from annkit.index.types import PointObject, stack_points

logger = logging.getLogger(__name__)

FORMAT_TAG = "annkit-brute-force"
FORMAT_VERSION = 1


def top_k(distances: np.ndarray, k: int) -> np.ndarray:
    """Return positions of the ``k`` smallest distances in ascending order."""
    count = distances.shape[0]
    if k >= count:
        return np.argsort(distances, kind="stable")
    idx = np.argpartition(distances, k - 1)[:k]
    return idx[np.argsort(distances[idx], kind="stable")]


class BruteForceMethod(MethodPort):
    """Compare the query against every stored point."""

    name = "brute_force"

    def __init__(
        self,
        *,
        space_type: str,
        space: SpacePort,
        points: list[PointObject],
        print_progress: bool = False,
    ) -> None:
        self._space_type = space_type
        self._space = space
        self._points = points
        self._print_progress = print_progress
        self._matrix: np.ndarray | None = None
        self._ids: np.ndarray | None = None

    def _bind_points(self) -> None:
        try:
            matrix = stack_points(self._points)
        except ValueError as exc:
            raise BuildError(f"{self.name}: {exc}") from exc
        self._matrix = matrix
        self._ids = np.fromiter((p.id for p in self._points), dtype=np.int64, count=len(self._points))

    def build_index(self, params: Params) -> None:
        params.check_unused()
        self._bind_points()
        if self._print_progress:
            logger.info(
                "%s: indexed %d points of dimension %d in space %s",
                self.name,
                self._matrix.shape[0],
                self._matrix.shape[1],
                self._space_type,
            )

    def save_index(self, path: Path) -> None:
        if self._matrix is None:
            raise NotBuiltError("Index has not been built")
        header = {
            "format": FORMAT_TAG,
            "version": FORMAT_VERSION,
            "method": self.name,
            "space": self._space_type,
            "point_qty": int(self._matrix.shape[0]),
            "dim": int(self._matrix.shape[1]),
        }
        try:
            path.write_text(json.dumps(header), encoding="utf-8")
        except OSError as exc:
            raise IndexIOError(f"Cannot write index to {path}: {exc}") from exc

    def load_index(self, path: Path) -> None:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise IndexIOError(f"Cannot read index from {path}: {exc}") from exc
        try:
            header = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise IndexFormatError(f"Index file {path} is corrupt: {exc}") from exc
        if not isinstance(header, dict) or header.get("format") != FORMAT_TAG:
            raise IndexFormatError(f"Index file {path} was not written by {self.name}")
        if header.get("space") != self._space_type:
            raise IndexFormatError(
                f"Index file {path} was built for space '{header.get('space')}', "
                f"not '{self._space_type}'"
            )

        try:
            self._bind_points()
        except BuildError as exc:
            raise IndexFormatError(f"Cannot bind points for {path}: {exc}") from exc
        expected = (header.get("point_qty"), header.get("dim"))
        actual = (int(self._matrix.shape[0]), int(self._matrix.shape[1]))
        if expected != actual:
            self._matrix = None
            self._ids = None
            raise IndexFormatError(
                f"Index file {path} holds {expected[0]} points of dimension {expected[1]}, "
                f"but the handle holds {actual[0]} points of dimension {actual[1]}"
            )

    def set_query_time_params(self, params: Params) -> None:
        params.check_unused()

    def search(self, query: PointObject, k: int) -> list[int]:
        if self._matrix is None or self._ids is None:
            raise NotBuiltError("Index has not been built")
        try:
            distances = self._space.distances(query.as_array(), self._matrix)
        except ValueError as exc:
            raise QueryError(str(exc)) from exc
        return self._ids[top_k(distances, k)].tolist()
