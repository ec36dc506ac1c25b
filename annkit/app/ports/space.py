"""Space port interface for distance computation."""

from __future__ import annotations

from typing import Protocol

import numpy as np


class SpacePort(Protocol):
    """Port interface for a distance function over float32 vectors.

    Adapters: numpy spaces in ``annkit.app.adapters.spaces``.

    Side effects: None (pure computation).
    """

    name: str

    def distances(self, query: np.ndarray, data: np.ndarray) -> np.ndarray:
        """Return distances from ``query`` (shape ``(dim,)``) to every row of ``data``.

        Args:
            query: 1-D float32 vector
            data: 2-D float32 matrix, one point per row

        Returns:
            1-D float32 array of length ``data.shape[0]``; smaller is closer
        """
        ...
