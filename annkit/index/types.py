"""Core value types shared by the codec, handle and engine adapters."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np

FLOAT_WIDTH = np.dtype(np.float32).itemsize


class DataType(IntEnum):
    """Kind of payload stored in a point."""

    VECTOR = 1
    STRING = 2


class DistType(IntEnum):
    """Numeric type of distance values produced by a space."""

    FLOAT = 4
    INT = 5


@dataclass(frozen=True, slots=True)
class PointObject:
    """One indexed item: a caller-assigned id and its float32 payload."""

    id: int
    raw_bytes: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.raw_bytes) % FLOAT_WIDTH:
            raise ValueError(
                f"Point payload of {len(self.raw_bytes)} bytes is not a multiple of "
                f"{FLOAT_WIDTH}"
            )

    @property
    def byte_length(self) -> int:
        return len(self.raw_bytes)

    @property
    def dim(self) -> int:
        return len(self.raw_bytes) // FLOAT_WIDTH

    def as_array(self) -> np.ndarray:
        """Return a read-only float32 view over the payload."""
        return np.frombuffer(self.raw_bytes, dtype=np.float32)


@dataclass(frozen=True, slots=True)
class SpaceDescriptor:
    """Distance function name plus its ``key=value`` configuration tokens."""

    space_type: str
    space_params: tuple[str, ...] = ()


def stack_points(points: list[PointObject]) -> np.ndarray:
    """Return an ``(n, dim)`` float32 matrix over ``points``.

    Raises:
        ValueError: If the collection is empty or dimensions differ.
    """
    if not points:
        raise ValueError("cannot index an empty point collection")
    dim = points[0].dim
    for position, point in enumerate(points):
        if point.dim != dim:
            raise ValueError(
                f"point #{position} (id {point.id}) has dimension {point.dim}, expected {dim}"
            )
    return np.frombuffer(b"".join(point.raw_bytes for point in points), dtype=np.float32).reshape(
        len(points), dim
    )
