"""
Versioned storage for fitted ARIMA models.

Each save writes ``versions/<model_id>_v<major>_<minor>_<patch>.joblib`` and
appends a metadata record to ``models_registry.json``. At most one version of
a model id is active; loading without a version returns it.
"""
import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from macrots.models.forecaster import ArimaForecaster
from macrots.utils.exceptions import ModelLoadError

logger = logging.getLogger(__name__)

REGISTRY_FILE = "models_registry.json"
FIRST_VERSION = "1.0.0"


@dataclass
class ModelMetadata:
    """What was fitted, on which data, and how well it scored."""
    model_id: str
    version: str
    created_at: datetime
    series_name: str = ""
    order: List[int] = field(default_factory=list)
    seasonal_order: List[int] = field(default_factory=list)
    training_data_hash: str = ""
    training_samples: int = 0
    training_date_range: Tuple[str, str] = ("", "")
    metrics: Dict[str, float] = field(default_factory=dict)
    aic: Optional[float] = None
    is_active: bool = False
    description: str = ""

    def to_dict(self) -> dict:
        record = asdict(self)
        record["created_at"] = self.created_at.isoformat()
        record["training_date_range"] = list(self.training_date_range)
        return record

    @classmethod
    def from_dict(cls, record: dict) -> "ModelMetadata":
        record = dict(record)
        record["created_at"] = datetime.fromisoformat(record["created_at"])
        record["training_date_range"] = tuple(record.get("training_date_range") or ("", ""))
        return cls(**record)


def _next_version(version: str) -> str:
    """Bump the patch number, carrying into minor and major at 100."""
    major, minor, patch = (int(p) for p in version.split("."))
    patch += 1
    if patch >= 100:
        patch, minor = 0, minor + 1
    if minor >= 100:
        minor, major = 0, major + 1
    return f"{major}.{minor}.{patch}"


def fingerprint(series: pd.Series) -> str:
    """Short hash of a series' dates and values."""
    digest = hashlib.md5(pd.util.hash_pandas_object(series, index=True).values.tobytes())
    return digest.hexdigest()[:12]


class ModelManager:
    """
    Save, version and reload fitted forecasters.
    """

    def __init__(self, models_dir: Path = None):
        """
        Args:
            models_dir: Root directory; defaults to MODELS_PATH from settings.
        """
        if models_dir is None:
            from macrots.utils.settings import get_settings
            models_dir = get_settings().models_path

        self.models_dir = Path(models_dir)
        self.versions_dir = self.models_dir / "versions"
        self.versions_dir.mkdir(parents=True, exist_ok=True)
        self.metadata_file = self.models_dir / REGISTRY_FILE
        self.registry: Dict[str, List[ModelMetadata]] = self._read_registry()

    def _read_registry(self) -> Dict[str, List[ModelMetadata]]:
        if not self.metadata_file.exists():
            return {}
        try:
            raw = json.loads(self.metadata_file.read_text())
        except json.JSONDecodeError as e:
            raise ModelLoadError(str(self.metadata_file), reason=f"Corrupt registry: {e}") from e
        return {mid: [ModelMetadata.from_dict(r) for r in records] for mid, records in raw.items()}

    def _write_registry(self):
        raw = {mid: [m.to_dict() for m in versions] for mid, versions in self.registry.items()}
        self.metadata_file.write_text(json.dumps(raw, indent=2, default=str))

    def _artifact(self, model_id: str, version: str) -> Path:
        return self.versions_dir / f"{model_id}_v{version.replace('.', '_')}.joblib"

    def _find(self, model_id: str, version: str) -> Optional[ModelMetadata]:
        return next((m for m in self.registry.get(model_id, []) if m.version == version), None)

    def save_model(
        self,
        forecaster: ArimaForecaster,
        model_id: str,
        series_name: str = "",
        metrics: Dict[str, float] = None,
        description: str = "",
        set_active: bool = True
    ) -> ModelMetadata:
        """
        Store a fitted forecaster as the next version of `model_id`.

        Args:
            forecaster: Fitted model; its training series is fingerprinted.
            model_id: Registry key, e.g. "unemployment_auto".
            series_name: Defaults to the training series name.
            metrics: Holdout metrics to keep with the model.
            description: Free text.
            set_active: Make this the version returned by load_model().

        Returns:
            The new metadata record.
        """
        summary = forecaster.summary()
        train = forecaster.train_
        versions = self.registry.setdefault(model_id, [])
        version = _next_version(versions[-1].version) if versions else FIRST_VERSION

        metadata = ModelMetadata(
            model_id=model_id,
            version=version,
            created_at=datetime.now(),
            series_name=series_name or str(train.name or ""),
            order=summary["order"],
            seasonal_order=summary["seasonal_order"],
            training_data_hash=fingerprint(train),
            training_samples=len(train),
            training_date_range=(train.index[0].isoformat(), train.index[-1].isoformat()),
            metrics=dict(metrics or {}),
            aic=summary["aic"],
            is_active=set_active,
            description=description
        )

        forecaster.save(self._artifact(model_id, version))
        if set_active:
            for previous in versions:
                previous.is_active = False
        versions.append(metadata)
        self._write_registry()

        logger.info(f"Registered {model_id} v{version} ARIMA{tuple(metadata.order)}")
        return metadata

    def load_model(
        self,
        model_id: str,
        version: str = None
    ) -> Tuple[ArimaForecaster, ModelMetadata]:
        """Load a version of `model_id` (the active one, else the latest)."""
        versions = self.registry.get(model_id)
        if not versions:
            raise ModelLoadError(model_id, reason=f"Model '{model_id}' not found in registry")

        if version is None:
            metadata = self.get_active_version(model_id) or versions[-1]
        else:
            metadata = self._find(model_id, version)
            if metadata is None:
                raise ModelLoadError(model_id, reason=f"Version {version} not found")

        return ArimaForecaster.load(self._artifact(model_id, metadata.version)), metadata

    def get_model_versions(self, model_id: str) -> List[ModelMetadata]:
        return list(self.registry.get(model_id, []))

    def get_active_version(self, model_id: str) -> Optional[ModelMetadata]:
        return next((m for m in self.registry.get(model_id, []) if m.is_active), None)

    def delete_version(self, model_id: str, version: str):
        """Remove an inactive version and its artifact; unknown versions are ignored."""
        metadata = self._find(model_id, version)
        if metadata is None:
            return
        if metadata.is_active:
            raise ValueError(f"Cannot delete the active version of {model_id}")

        self._artifact(model_id, version).unlink(missing_ok=True)
        self.registry[model_id].remove(metadata)
        self._write_registry()
        logger.info(f"Deleted {model_id} v{version}")

    def list_models(self) -> Dict[str, ModelMetadata]:
        """Active (or latest) version of every registered model id."""
        return {
            mid: self.get_active_version(mid) or versions[-1]
            for mid, versions in self.registry.items()
            if versions
        }
