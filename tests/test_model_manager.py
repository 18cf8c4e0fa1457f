"""Tests for the versioned model registry."""
import json

import pytest

from macrots.models.forecaster import ArimaForecaster
from macrots.models.model_manager import ModelManager, ModelMetadata
from macrots.utils.exceptions import ModelLoadError


@pytest.fixture
def model(ar1_series):
    return ArimaForecaster().fit(ar1_series.iloc[:200], order=(1, 0, 0))


@pytest.fixture
def manager(tmp_path):
    return ModelManager(models_dir=tmp_path / "models")


def test_first_save_creates_version_one(manager, model):
    meta = manager.save_model(model, "gnp_growth", metrics={"rmse": 1.2}, description="baseline")

    assert meta.version == "1.0.0"
    assert meta.is_active
    assert meta.series_name == "ar1"
    assert meta.order == [1, 0, 0]
    assert meta.training_samples == 200
    assert meta.training_date_range[0].startswith("1900-01-01")
    assert len(meta.training_data_hash) == 12
    assert (manager.versions_dir / "gnp_growth_v1_0_0.joblib").exists()


def test_versions_increment_and_switch_active(manager, model):
    manager.save_model(model, "m")
    second = manager.save_model(model, "m")

    versions = manager.get_model_versions("m")
    assert [v.version for v in versions] == ["1.0.0", "1.0.1"]
    assert manager.get_active_version("m").version == second.version
    assert not versions[0].is_active


def test_inactive_save_keeps_active_version(manager, model):
    manager.save_model(model, "m")
    manager.save_model(model, "m", set_active=False)
    assert manager.get_active_version("m").version == "1.0.0"


def test_registry_persists(tmp_path, model):
    ModelManager(models_dir=tmp_path).save_model(model, "m", metrics={"mae": 0.5})

    reopened = ModelManager(models_dir=tmp_path)
    meta = reopened.get_active_version("m")

    assert meta.metrics == {"mae": 0.5}
    data = json.loads((tmp_path / "models_registry.json").read_text())
    assert data["m"][0]["version"] == "1.0.0"


def test_load_model_round_trip(manager, model):
    manager.save_model(model, "m")
    loaded, meta = manager.load_model("m")

    assert meta.version == "1.0.0"
    assert loaded.order == model.order
    assert loaded.forecast(3).mean.tolist() == pytest.approx(model.forecast(3).mean.tolist())


def test_load_specific_version(manager, model, ar1_series):
    manager.save_model(model, "m")
    other = ArimaForecaster().fit(ar1_series.iloc[:200], order=(2, 0, 0))
    manager.save_model(other, "m")

    loaded, _ = manager.load_model("m", version="1.0.0")
    assert loaded.order == (1, 0, 0)


def test_load_unknown(manager):
    with pytest.raises(ModelLoadError):
        manager.load_model("missing")


def test_load_unknown_version(manager, model):
    manager.save_model(model, "m")
    with pytest.raises(ModelLoadError):
        manager.load_model("m", version="9.9.9")


def test_delete_version(manager, model):
    manager.save_model(model, "m")
    manager.save_model(model, "m")

    with pytest.raises(ValueError):
        manager.delete_version("m", "1.0.1")

    manager.delete_version("m", "1.0.0")
    assert [v.version for v in manager.get_model_versions("m")] == ["1.0.1"]
    assert not (manager.versions_dir / "m_v1_0_0.joblib").exists()


def test_list_models(manager, model):
    manager.save_model(model, "a")
    manager.save_model(model, "b")
    assert set(manager.list_models()) == {"a", "b"}


def test_metadata_dict_round_trip(manager, model):
    meta = manager.save_model(model, "m")
    assert ModelMetadata.from_dict(meta.to_dict()) == meta


def test_corrupt_registry(tmp_path):
    (tmp_path / "models_registry.json").write_text("{not json")
    with pytest.raises(ModelLoadError):
        ModelManager(models_dir=tmp_path)
