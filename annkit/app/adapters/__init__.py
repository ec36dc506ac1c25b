"""Adapter implementations for annkit ports."""

from annkit.app.adapters.brute_force import BruteForceMethod
from annkit.app.adapters.hnsw import HNSWMethod, hnswlib_available
from annkit.app.adapters.spaces import LpSpace, NumpySpace, build_space

__all__ = [
    "BruteForceMethod",
    "HNSWMethod",
    "LpSpace",
    "NumpySpace",
    "build_space",
    "hnswlib_available",
]
