"""
Classification metrics.

All probability-based metrics take an explicit ``event_level`` (the
positive class) instead of relying on label order.
"""

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score, roc_auc_score
from sklearn.metrics import roc_curve as sklearn_roc_curve

from casebook.utils.logging import get_logger

log = get_logger(__name__)


def _binary_truth(truth: pd.Series | np.ndarray, event_level: str) -> np.ndarray:
    labels = np.asarray(truth).astype(str)
    is_event = labels == event_level
    if not is_event.any():
        msg = f"Event level '{event_level}' does not occur in truth"
        raise ValueError(msg)
    if is_event.all():
        msg = "roc metrics need both classes in truth"
        raise ValueError(msg)
    return is_event.astype(int)


def roc_auc(
    truth: pd.Series | np.ndarray,
    prob_event: pd.Series | np.ndarray,
    event_level: str,
) -> float:
    """Area under the ROC curve for the probability of ``event_level``."""
    return float(roc_auc_score(_binary_truth(truth, event_level), np.asarray(prob_event)))


def accuracy(truth: pd.Series | np.ndarray, estimate: pd.Series | np.ndarray) -> float:
    """Share of correct class predictions."""
    return float(
        accuracy_score(np.asarray(truth).astype(str), np.asarray(estimate).astype(str))
    )


def roc_curve(
    truth: pd.Series | np.ndarray,
    prob_event: pd.Series | np.ndarray,
    event_level: str,
) -> pd.DataFrame:
    """
    ROC curve as a table.

    Returns:
        DataFrame with ``threshold``, ``specificity`` and ``sensitivity``
        ordered by increasing ``1 - specificity``. The first row is the
        infinite threshold where nothing is classified as the event.
    """
    fpr, tpr, thresholds = sklearn_roc_curve(
        _binary_truth(truth, event_level),
        np.asarray(prob_event),
        drop_intermediate=False,
    )
    return pd.DataFrame(
        {"threshold": thresholds, "specificity": 1.0 - fpr, "sensitivity": tpr}
    )


# Metric names -> (kind, function). "prob" metrics take event probabilities,
# "class" metrics take hard predictions.
METRICS: dict[str, tuple[str, Callable[..., float]]] = {
    "roc_auc": ("prob", roc_auc),
    "accuracy": ("class", accuracy),
}


def check_metrics(names: list[str] | tuple[str, ...]) -> list[str]:
    """
    Validate metric names.

    Raises:
        KeyError: If a metric is unknown.
        ValueError: If no metric is given.
    """
    if not names:
        msg = "At least one metric is required"
        raise ValueError(msg)
    for name in names:
        if name not in METRICS:
            available = ", ".join(METRICS)
            msg = f"Unknown metric '{name}'. Available: {available}"
            raise KeyError(msg)
    return list(names)


def compute_metric_set(
    predictions: pd.DataFrame,
    truth_col: str,
    event_level: str,
    metrics: list[str] | tuple[str, ...] = ("accuracy", "roc_auc"),
) -> pd.DataFrame:
    """
    Evaluate several metrics on a prediction table.

    Args:
        predictions: Table with the truth column, ``.pred_class`` and
            ``.pred_{event_level}``.
        truth_col: Name of the truth column.
        event_level: Positive class.
        metrics: Metric names.

    Returns:
        DataFrame with ``.metric`` and ``.estimate`` columns.
    """
    rows = []
    for name in check_metrics(metrics):
        kind, fn = METRICS[name]
        if kind == "prob":
            value = fn(predictions[truth_col], predictions[f".pred_{event_level}"], event_level)
        else:
            value = fn(predictions[truth_col], predictions[".pred_class"])
        rows.append({".metric": name, ".estimate": value})
    return pd.DataFrame(rows)


@dataclass(frozen=True)
class ClassificationMetrics:
    """
    Binary classification summary.

    Attributes:
        accuracy: Share of correct class predictions.
        roc_auc: Area under the ROC curve.
        n_samples: Number of rows evaluated.
        event_rate: Share of rows in the positive class.
    """

    accuracy: float
    roc_auc: float
    n_samples: int
    event_rate: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary."""
        return {
            "accuracy": self.accuracy,
            "roc_auc": self.roc_auc,
            "n_samples": self.n_samples,
            "event_rate": self.event_rate,
        }

    def __str__(self) -> str:
        return (
            f"accuracy={self.accuracy:.4f}, roc_auc={self.roc_auc:.4f}, "
            f"n={self.n_samples}, event_rate={self.event_rate:.2%}"
        )


def compute_classification_metrics(
    truth: pd.Series | np.ndarray,
    estimate: pd.Series | np.ndarray,
    prob_event: pd.Series | np.ndarray,
    event_level: str,
) -> ClassificationMetrics:
    """Compute the standard classification summary."""
    labels = np.asarray(truth).astype(str)
    metrics = ClassificationMetrics(
        accuracy=accuracy(labels, estimate),
        roc_auc=roc_auc(labels, prob_event, event_level),
        n_samples=len(labels),
        event_rate=float(np.mean(labels == event_level)),
    )
    log.debug("Computed classification metrics", metrics=str(metrics))
    return metrics
