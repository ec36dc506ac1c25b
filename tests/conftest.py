"""Pytest configuration and fixtures."""

import gc
import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import numpy as np
import pytest

from annkit.bootstrap import ApplicationContainer, bootstrap_application, set_container
from annkit.config import Settings


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        gc.collect()
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated annkit settings scoped to tests."""

    import annkit.config as config_module

    original_settings = getattr(config_module, "_settings", None)

    data_dir = temp_dir / "appdata"
    data_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(
        data_dir=data_dir,
        print_progress=False,
        default_batch_workers=2,
        max_batch_workers=8,
    )

    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings


@pytest.fixture
def container(override_settings: Settings) -> Generator[ApplicationContainer, None, None]:
    """Install a fresh process-wide container for ``annkit.api`` calls."""

    active = bootstrap_application(override_settings)
    set_container(active)
    try:
        yield active
    finally:
        set_container(None)


@pytest.fixture
def corpus() -> tuple[np.ndarray, np.ndarray]:
    """Deterministic 200 x 8 float32 corpus with shuffled ids."""

    rng = np.random.default_rng(1234)
    vectors = rng.standard_normal((200, 8)).astype(np.float32)
    ids = rng.permutation(np.arange(1000, 1200)).astype(np.int32)
    return ids, vectors


@pytest.fixture
def queries() -> np.ndarray:
    rng = np.random.default_rng(99)
    return rng.standard_normal((37, 8)).astype(np.float32)
