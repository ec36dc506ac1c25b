import pytest
from pydantic import ValidationError

from annkit.bootstrap import bootstrap_application
from annkit.config import Settings


def test_defaults(tmp_path):
    settings = Settings(data_dir=tmp_path / "data")

    assert settings.print_progress is True
    assert settings.default_batch_workers == 4
    assert settings.max_batch_workers == 64
    assert settings.log_level == "WARNING"


def test_index_dir_is_created_under_data_dir(tmp_path):
    settings = Settings(data_dir=tmp_path / "data")

    index_dir = settings.get_index_dir()

    assert index_dir == tmp_path / "data" / "indexes"
    assert index_dir.is_dir()


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("ANNKIT_DEFAULT_BATCH_WORKERS", "6")
    monkeypatch.setenv("ANNKIT_PRINT_PROGRESS", "false")
    monkeypatch.setenv("ANNKIT_LOG_LEVEL", "debug")

    settings = Settings(data_dir=tmp_path)

    assert settings.default_batch_workers == 6
    assert settings.print_progress is False
    assert settings.log_level == "DEBUG"


def test_xdg_data_home(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg"))
    assert Settings().get_data_dir() == tmp_path / "xdg" / "annkit"


@pytest.mark.parametrize("field", ["default_batch_workers", "max_batch_workers"])
def test_worker_counts_must_be_positive(field, tmp_path):
    with pytest.raises(ValidationError):
        Settings(data_dir=tmp_path, **{field: 0})


def test_unknown_log_level(tmp_path):
    with pytest.raises(ValidationError):
        Settings(data_dir=tmp_path, log_level="LOUD")


def test_bootstrap_applies_worker_settings(tmp_path):
    settings = Settings(data_dir=tmp_path, default_batch_workers=16, max_batch_workers=5)
    container = bootstrap_application(settings)
    try:
        assert container.settings is settings
        assert container.batch_engine.effective_workers(None, 100) == 5
        assert len(container.registry) == 0
    finally:
        container.close()
