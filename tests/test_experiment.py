"""Tests for MLflow tracking with the MLflow API replaced by a recorder."""

from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pandas as pd
import pytest

from casebook.config.settings import PipelineConfig
from casebook.evaluation import experiment
from casebook.evaluation.metrics import ClassificationMetrics
from casebook.features.recipe import Recipe
from casebook.modeling.models import decision_tree
from casebook.modeling.workflow import Workflow
from casebook.studies.base import StudyResult


class RecordingMlflow:
    """Stands in for the ``mlflow`` module and records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.sklearn = SimpleNamespace(log_model=self._log_model)

    def _record(self, name: str, value: Any = None) -> None:
        self.calls.append((name, value))

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def set_tracking_uri(self, uri: str) -> None:
        self._record("set_tracking_uri", uri)

    def set_experiment(self, name: str) -> None:
        self._record("set_experiment", name)

    def start_run(self, run_name: str | None = None, tags: dict[str, str] | None = None) -> SimpleNamespace:
        self._record("start_run", {"run_name": run_name, "tags": tags})
        return SimpleNamespace(info=SimpleNamespace(run_id="run-1"))

    def end_run(self, status: str = "FINISHED") -> None:
        self._record("end_run", status)

    def log_params(self, params: dict[str, Any]) -> None:
        self._record("log_params", params)

    def log_metrics(self, metrics: dict[str, float]) -> None:
        self._record("log_metrics", metrics)

    def log_artifact(self, path: str, artifact_path: str | None = None) -> None:
        self._record("log_artifact", (path, artifact_path))

    def _log_model(self, model: Any, artifact_path: str) -> None:
        self._record("log_model", artifact_path)


@pytest.fixture
def recorder(monkeypatch: pytest.MonkeyPatch) -> RecordingMlflow:
    fake = RecordingMlflow()
    monkeypatch.setattr(experiment, "mlflow", fake)
    return fake


@pytest.fixture
def study_result(tmp_path: Path, cells_data: pd.DataFrame) -> StudyResult:
    report = tmp_path / "cells.html"
    report.write_text("<html></html>", encoding="utf-8")
    plot = tmp_path / "cells_roc.png"
    plot.write_bytes(b"png")
    fitted = Workflow(Recipe("class"), decision_tree(tree_depth=2)).fit(cells_data)
    return StudyResult(
        "cells",
        "How well do image features separate segmentations?",
        params={"tree_depth": 2},
        metrics={"tree_test_roc_auc": 0.8},
        models={"final_tree": fitted},
        figure_paths={"roc": plot},
        report_path=report,
    )


def test_track_study(config: PipelineConfig, recorder: RecordingMlflow, study_result: StudyResult) -> None:
    run_id = experiment.track_study(config, study_result)

    assert run_id == "run-1"
    assert recorder.names() == [
        "set_tracking_uri",
        "set_experiment",
        "start_run",
        "log_params",
        "log_metrics",
        "log_artifact",
        "log_artifact",
        "log_model",
        "end_run",
    ]
    calls = dict(recorder.calls)
    assert calls["set_experiment"] == "test"
    assert calls["start_run"]["tags"]["study"] == "cells"
    assert calls["start_run"]["run_name"].startswith("cells-")
    assert calls["log_params"]["tree_depth"] == "2"
    assert calls["log_params"]["project"] == "test"
    assert calls["log_metrics"] == {"tree_test_roc_auc": 0.8}
    assert calls["log_model"] == "final_tree"


def test_run_ends_on_failure(
    config: PipelineConfig,
    recorder: RecordingMlflow,
    study_result: StudyResult,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def broken(metrics: dict[str, float]) -> None:
        raise RuntimeError("tracking server gone")

    monkeypatch.setattr(recorder, "log_metrics", broken)
    with pytest.raises(RuntimeError, match="tracking server gone"):
        experiment.track_study(config, study_result)
    assert recorder.calls[-1] == ("end_run", "FAILED")


def test_log_classification_metrics(config: PipelineConfig, recorder: RecordingMlflow) -> None:
    exp = experiment.Experiment(config, experiment.ExperimentConfig("e", "q", "flights"))
    exp.log_metrics(ClassificationMetrics(accuracy=0.8, roc_auc=0.75, n_samples=10, event_rate=0.2))
    assert dict(recorder.calls)["log_metrics"]["roc_auc"] == 0.75


def test_successful_run_finishes(config: PipelineConfig, recorder: RecordingMlflow, study_result: StudyResult) -> None:
    experiment.track_study(config, study_result)
    assert recorder.calls[-1] == ("end_run", "FINISHED")


def test_list_params_are_joined(config: PipelineConfig, recorder: RecordingMlflow) -> None:
    with experiment.Experiment(config, experiment.ExperimentConfig("e", "q", "flights")) as exp:
        exp.log_params({"holidays": ["USNewYearsDay", "USThanksgivingDay"], "note": "x" * 600})
    params = dict(recorder.calls)["log_params"]
    assert params["holidays"] == "USNewYearsDay,USThanksgivingDay"
    assert len(params["note"]) == experiment.MAX_PARAM_LENGTH
