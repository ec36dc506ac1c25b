"""Space and method factories over the registered adapters."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from annkit.app.adapters.brute_force import BruteForceMethod
from annkit.app.adapters.hnsw import HNSW_SPACES, HNSWMethod
from annkit.app.adapters.spaces import SPACE_FACTORIES, build_space
from annkit.app.ports.method import MethodPort
from annkit.app.ports.space import SpacePort
from annkit.errors import ConfigurationError
from annkit.index.params import Params
from annkit.index.types import PointObject


class MethodConstructor(Protocol):
    def __call__(
        self,
        *,
        space_type: str,
        space: SpacePort,
        points: list[PointObject],
        print_progress: bool = False,
    ) -> MethodPort: ...


# Methods map to (constructor, supported spaces); None means every space.
METHODS: dict[str, tuple[MethodConstructor, frozenset[str] | None]] = {
    "brute_force": (BruteForceMethod, None),
    "seq_search": (BruteForceMethod, None),
    "hnsw": (HNSWMethod, frozenset(HNSW_SPACES)),
}


def registered_spaces() -> list[str]:
    return sorted(SPACE_FACTORIES)


def registered_methods() -> list[str]:
    return sorted(METHODS)


def create_space(space_type: str, space_params: Iterable[str] | None = None) -> SpacePort:
    """Instantiate ``space_type`` configured by ``key=value`` tokens.

    Raises:
        ConfigurationError: Unknown space or invalid/unknown parameters.
    """
    if not isinstance(space_type, str) or not space_type:
        raise ConfigurationError("space type must be a non-empty string")
    return build_space(space_type, Params(space_params, what="space parameter"))


def check_method(method_name: str, space_type: str) -> None:
    """Fail early when ``method_name`` is unknown or cannot use ``space_type``."""
    if not isinstance(method_name, str) or method_name not in METHODS:
        raise ConfigurationError(
            f"Unknown method '{method_name}'. Known methods: {', '.join(registered_methods())}"
        )
    _, spaces = METHODS[method_name]
    if spaces is not None and space_type.lower() not in spaces:
        raise ConfigurationError(
            f"Method '{method_name}' does not support space '{space_type}'. "
            f"Supported spaces: {', '.join(sorted(spaces))}"
        )


def create_method(
    method_name: str,
    space_type: str,
    space: SpacePort,
    points: list[PointObject],
    *,
    print_progress: bool = False,
) -> MethodPort:
    """Instantiate an unbuilt method bound to ``space`` and ``points``."""
    check_method(method_name, space_type)
    constructor, _ = METHODS[method_name]
    return constructor(
        space_type=space_type.lower(),
        space=space,
        points=points,
        print_progress=print_progress,
    )
