"""
Workflow persistence (save/load).

Creates two files per workflow:
    - {name}.joblib: Pickled ``FittedWorkflow``
    - {name}.meta.json: Human-readable metadata
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import joblib

from casebook.modeling.workflow import FittedWorkflow
from casebook.utils.logging import get_logger

log = get_logger(__name__)


def _meta_path(model_path: Path) -> Path:
    return model_path.with_suffix(".meta.json")


def save_workflow(
    fitted: FittedWorkflow,
    output_path: Path,
    metrics: dict[str, float] | None = None,
    extra: dict[str, Any] | None = None,
) -> tuple[Path, Path]:
    """
    Save a fitted workflow and its metadata.

    Args:
        fitted: Workflow to save.
        output_path: Target path; the suffix is replaced with ``.joblib``.
        metrics: Optional evaluation metrics to record.
        extra: Additional JSON-serializable metadata.

    Returns:
        Tuple of (model_path, metadata_path).
    """
    model_path = Path(output_path).with_suffix(".joblib")
    model_path.parent.mkdir(parents=True, exist_ok=True)

    joblib.dump(fitted, model_path)
    log.info("Saved workflow", path=str(model_path))

    metadata: dict[str, Any] = {
        "model_type": fitted.workflow.model.model_type,
        "model": fitted.workflow.model.describe(),
        "outcome": fitted.outcome,
        "recipe": fitted.workflow.recipe.describe(),
        "classes": fitted.classes if fitted.workflow.model.mode == "classification" else None,
        "feature_names": fitted.feature_names,
        "n_train": fitted.n_train,
        "saved_at": datetime.now(UTC).isoformat(timespec="seconds"),
    }
    if metrics:
        metadata["metrics"] = metrics
    if extra:
        metadata.update(extra)

    meta_path = _meta_path(model_path)
    with open(meta_path, "w", encoding="utf-8") as f:
        json.dump(metadata, f, indent=2, default=str)
    log.info("Saved workflow metadata", path=str(meta_path))

    return model_path, meta_path


def load_workflow(path: Path) -> tuple[FittedWorkflow, dict[str, Any]]:
    """
    Load a fitted workflow and its metadata.

    Accepts the ``.joblib`` path or the same path without suffix.

    Raises:
        FileNotFoundError: If the model file does not exist.
        TypeError: If the file does not hold a fitted workflow.
    """
    model_path = Path(path)
    if model_path.suffix != ".joblib":
        model_path = model_path.with_suffix(".joblib")

    if not model_path.exists():
        msg = f"Workflow file not found: {model_path}"
        raise FileNotFoundError(msg)

    fitted = joblib.load(model_path)
    if not isinstance(fitted, FittedWorkflow):
        msg = f"{model_path} does not contain a fitted workflow"
        raise TypeError(msg)
    log.info("Loaded workflow", path=str(model_path))

    metadata: dict[str, Any] = {}
    meta_path = _meta_path(model_path)
    if meta_path.exists():
        with open(meta_path, encoding="utf-8") as f:
            metadata = json.load(f)
    else:
        log.warning("Workflow metadata not found", path=str(meta_path))

    return fitted, metadata
