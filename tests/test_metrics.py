"""Tests for classification metrics."""

import numpy as np
import pandas as pd
import pytest

from casebook.evaluation.metrics import (
    ClassificationMetrics,
    accuracy,
    check_metrics,
    compute_classification_metrics,
    compute_metric_set,
    roc_auc,
    roc_curve,
)


@pytest.fixture
def predictions() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "children": ["children", "none", "children", "none", "none"],
            ".pred_children": [0.9, 0.2, 0.4, 0.6, 0.1],
            ".pred_none": [0.1, 0.8, 0.6, 0.4, 0.9],
            ".pred_class": ["children", "none", "none", "children", "none"],
        }
    )


class TestRocAuc:
    def test_perfect(self) -> None:
        assert roc_auc(["a", "b", "a", "b"], [0.9, 0.1, 0.8, 0.3], "a") == 1.0

    def test_event_level_matters(self) -> None:
        truth = ["a", "b", "a", "b"]
        prob_a = np.array([0.9, 0.1, 0.8, 0.3])
        assert roc_auc(truth, 1 - prob_a, "b") == 1.0
        assert roc_auc(truth, prob_a, "b") == 0.0

    def test_ties_count_half(self) -> None:
        assert roc_auc(["a", "b"], [0.5, 0.5], "a") == 0.5

    def test_single_class(self) -> None:
        with pytest.raises(ValueError, match="both classes"):
            roc_auc(["a", "a"], [0.1, 0.9], "a")

    def test_event_missing(self) -> None:
        with pytest.raises(ValueError, match="does not occur"):
            roc_auc(["a", "b"], [0.1, 0.9], "c")


def test_accuracy_compares_as_strings() -> None:
    truth = pd.Series(pd.Categorical(["x", "y", "x", "x"]))
    assert accuracy(truth, np.array(["x", "x", "x", "y"])) == 0.5


def test_roc_curve_table(predictions: pd.DataFrame) -> None:
    curve = roc_curve(predictions["children"], predictions[".pred_children"], "children")
    assert list(curve.columns) == ["threshold", "specificity", "sensitivity"]
    assert curve["sensitivity"].iloc[0] == 0.0
    assert curve["specificity"].iloc[0] == 1.0
    assert curve["sensitivity"].iloc[-1] == 1.0
    assert curve["specificity"].iloc[-1] == 0.0
    assert curve["sensitivity"].is_monotonic_increasing


class TestMetricSet:
    def test_check_metrics(self) -> None:
        assert check_metrics(("accuracy", "roc_auc")) == ["accuracy", "roc_auc"]
        with pytest.raises(KeyError, match="Available: roc_auc, accuracy"):
            check_metrics(["rmse"])
        with pytest.raises(ValueError, match="At least one"):
            check_metrics([])

    def test_compute(self, predictions: pd.DataFrame) -> None:
        table = compute_metric_set(predictions, "children", "children")
        assert list(table[".metric"]) == ["accuracy", "roc_auc"]
        estimates = dict(zip(table[".metric"], table[".estimate"], strict=True))
        assert estimates["accuracy"] == pytest.approx(0.6)
        # Events score 0.9 and 0.4; non-events 0.2, 0.6 and 0.1
        assert estimates["roc_auc"] == pytest.approx(5 / 6)


def test_classification_summary(predictions: pd.DataFrame) -> None:
    metrics = compute_classification_metrics(
        predictions["children"],
        predictions[".pred_class"],
        predictions[".pred_children"],
        "children",
    )
    assert isinstance(metrics, ClassificationMetrics)
    assert metrics.n_samples == 5
    assert metrics.event_rate == pytest.approx(0.4)
    assert set(metrics.to_dict()) == {"accuracy", "roc_auc", "n_samples", "event_rate"}
    assert "roc_auc=0.8333" in str(metrics)
