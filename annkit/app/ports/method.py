"""Method port interface for search index structures."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from annkit.index.params import Params
from annkit.index.types import PointObject


class MethodPort(Protocol):
    """Port interface for a k-NN search structure built over a point collection.

    Adapters: brute-force scan (numpy), HNSW graph (hnswlib).

    Side effects: ``save_index`` writes to disk, ``load_index`` reads from disk.
    Searches must be safe to run concurrently once the index is built.
    """

    name: str

    def build_index(self, params: Params) -> None:
        """Construct the search structure over the bound points.

        Raises:
            BuildError: If the engine cannot construct the index
        """
        ...

    def save_index(self, path: Path) -> None:
        """Persist the structure to ``path`` in the adapter's own format."""
        ...

    def load_index(self, path: Path) -> None:
        """Restore structure state from ``path`` for the bound points.

        Raises:
            IndexIOError: If the file cannot be read
            IndexFormatError: If the file is corrupt or does not match the points
        """
        ...

    def set_query_time_params(self, params: Params) -> None:
        """Adjust search-time knobs without touching the structure."""
        ...

    def search(self, query: PointObject, k: int) -> list[int]:
        """Return up to ``k`` point ids ranked by ascending distance."""
        ...
