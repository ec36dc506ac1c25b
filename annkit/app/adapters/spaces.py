"""numpy distance spaces implementing SpacePort."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from annkit.app.ports.space import SpacePort
from annkit.errors import ConfigurationError
from annkit.index.params import Params

_EPS = 1e-12

DistanceFn = Callable[[np.ndarray, np.ndarray], np.ndarray]


def _l2(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    return np.sqrt(_l2sqr(query, data))


def _l2sqr(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    diff = data - query
    return np.einsum("ij,ij->i", diff, diff)


def _l1(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    return np.abs(data - query).sum(axis=1)


def _linf(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    return np.abs(data - query).max(axis=1)


def _cosine_similarity(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    q_norm = np.linalg.norm(query) + _EPS
    d_norm = np.linalg.norm(data, axis=1) + _EPS
    sims = (data @ query) / (d_norm * q_norm)
    return np.clip(sims, -1.0, 1.0)


def _cosinesimil(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    return 1.0 - _cosine_similarity(query, data)


def _angulardist(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    return np.arccos(_cosine_similarity(query, data))


def _negdotprod(query: np.ndarray, data: np.ndarray) -> np.ndarray:
    return -(data @ query)


@dataclass(frozen=True, slots=True)
class NumpySpace(SpacePort):
    """Distance space evaluated with vectorised numpy operations."""

    name: str
    fn: DistanceFn

    def distances(self, query: np.ndarray, data: np.ndarray) -> np.ndarray:
        if data.shape[0] == 0:
            return np.empty(0, dtype=np.float32)
        if query.shape[0] != data.shape[1]:
            raise ValueError(
                f"Query dimension {query.shape[0]} does not match data dimension {data.shape[1]}"
            )
        return np.asarray(self.fn(query, data), dtype=np.float32)


@dataclass(frozen=True, slots=True)
class LpSpace(SpacePort):
    """Minkowski distance with a configurable exponent ``p``."""

    p: float
    name: str = "lp"

    def distances(self, query: np.ndarray, data: np.ndarray) -> np.ndarray:
        if data.shape[0] == 0:
            return np.empty(0, dtype=np.float32)
        if query.shape[0] != data.shape[1]:
            raise ValueError(
                f"Query dimension {query.shape[0]} does not match data dimension {data.shape[1]}"
            )
        diff = np.abs(data.astype(np.float64) - query)
        return np.asarray(np.power(np.power(diff, self.p).sum(axis=1), 1.0 / self.p), dtype=np.float32)


def _simple(name: str, fn: DistanceFn) -> Callable[[Params], SpacePort]:
    def factory(params: Params) -> SpacePort:
        params.check_unused()
        return NumpySpace(name=name, fn=fn)

    return factory


def _lp(params: Params) -> SpacePort:
    p = params.get_float("p", 2.0, positive=True)
    params.check_unused()
    return LpSpace(p=p)


SPACE_FACTORIES: dict[str, Callable[[Params], SpacePort]] = {
    "l2": _simple("l2", _l2),
    "l2sqr": _simple("l2sqr", _l2sqr),
    "l1": _simple("l1", _l1),
    "linf": _simple("linf", _linf),
    "lp": _lp,
    "cosinesimil": _simple("cosinesimil", _cosinesimil),
    "angulardist": _simple("angulardist", _angulardist),
    "negdotprod": _simple("negdotprod", _negdotprod),
}


def build_space(space_type: str, params: Params) -> SpacePort:
    try:
        factory = SPACE_FACTORIES[space_type.lower()]
    except KeyError as exc:
        known = ", ".join(sorted(SPACE_FACTORIES))
        raise ConfigurationError(
            f"Unknown space type '{space_type}'. Known spaces: {known}"
        ) from exc
    return factory(params)
