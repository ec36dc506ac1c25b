"""Application bootstrap wiring settings, the handle registry and the batch engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from annkit.config import Settings, get_settings
from annkit.index.batch import BatchQueryEngine
from annkit.registry import HandleRegistry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates the shared state behind the caller-facing API and CLI."""

    settings: Settings
    registry: HandleRegistry
    batch_engine: BatchQueryEngine

    def close(self) -> None:
        self.batch_engine.close()


def bootstrap_application(settings: Settings | None = None) -> ApplicationContainer:
    """Construct an application container from ``settings`` (or the global settings)."""
    active = settings or get_settings()
    engine = BatchQueryEngine(
        max_workers=active.max_batch_workers,
        default_workers=active.default_batch_workers,
    )
    logger.debug(
        "Bootstrapped annkit (default batch workers %d, cap %d)",
        active.default_batch_workers,
        active.max_batch_workers,
    )
    return ApplicationContainer(settings=active, registry=HandleRegistry(), batch_engine=engine)


_container: ApplicationContainer | None = None


def get_container() -> ApplicationContainer:
    """Get or create the process-wide container used by ``annkit.api``."""
    global _container
    if _container is None:
        _container = bootstrap_application()
    return _container


def set_container(container: ApplicationContainer | None) -> None:
    """Replace the process-wide container (useful for testing)."""
    global _container
    previous, _container = _container, container
    if previous is not None and previous is not container:
        previous.close()
