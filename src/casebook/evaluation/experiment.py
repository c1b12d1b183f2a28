"""
MLflow tracking for study runs.

Every study run becomes one MLflow run in the project's experiment, tagged
with the study name and the question it answers. Runs that raise are closed
with status FAILED so the tracking UI never shows them as still running.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Any

import mlflow

from casebook import __version__
from casebook.config.settings import PipelineConfig
from casebook.evaluation.metrics import ClassificationMetrics
from casebook.utils.logging import get_logger

if TYPE_CHECKING:
    from casebook.studies.base import StudyResult

log = get_logger(__name__)

# MLflow rejects longer parameter values on some backends.
MAX_PARAM_LENGTH = 500


@dataclass
class ExperimentConfig:
    """
    What a run is filed under.

    Attributes:
        name: MLflow experiment name.
        question: The question the study answers, stored as a tag.
        study: Study identifier.
        tags: Extra run tags.
    """

    name: str
    question: str
    study: str
    tags: dict[str, str] = field(default_factory=dict)


def _param_value(value: Any) -> str:
    if isinstance(value, list | tuple):
        value = ",".join(str(v) for v in value)
    return str(value)[:MAX_PARAM_LENGTH]


class Experiment:
    """
    One MLflow run, usable as a context manager.

    Example:
        with Experiment(config, ExperimentConfig("demo", "Why?", "cells")) as exp:
            exp.log_metrics({"roc_auc": 0.9})
    """

    def __init__(self, config: PipelineConfig, experiment_config: ExperimentConfig) -> None:
        self.config = config
        self.experiment_config = experiment_config
        self.run_id: str | None = None

    def __enter__(self) -> "Experiment":
        self.start_run()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.end_run(failed=exc_type is not None)

    def start_run(self, run_name: str | None = None) -> str:
        """Point MLflow at the configured server and open a run."""
        mlflow.set_tracking_uri(self.config.mlflow.tracking_uri)
        mlflow.set_experiment(self.experiment_config.name)

        study = self.experiment_config.study
        run = mlflow.start_run(
            run_name=run_name or f"{study}-{datetime.now():%Y%m%d-%H%M}",
            tags={
                "study": study,
                "question": self.experiment_config.question,
                "project": self.config.project,
                "casebook_version": __version__,
                **self.experiment_config.tags,
            },
        )
        self.run_id = run.info.run_id
        log.info(
            "Started MLflow run",
            run_id=self.run_id,
            experiment=self.experiment_config.name,
            tracking_uri=self.config.mlflow.tracking_uri,
        )
        return self.run_id

    def end_run(self, failed: bool = False) -> None:
        status = "FAILED" if failed else "FINISHED"
        mlflow.end_run(status=status)
        log.info("Ended MLflow run", run_id=self.run_id, status=status)

    def log_params(self, params: dict[str, Any]) -> None:
        mlflow.log_params({key: _param_value(value) for key, value in params.items()})

    def log_metrics(self, metrics: ClassificationMetrics | dict[str, float]) -> None:
        if isinstance(metrics, ClassificationMetrics):
            metrics = metrics.to_dict()
        mlflow.log_metrics(metrics)

    def log_artifact(self, path: Path, artifact_path: str | None = None) -> None:
        mlflow.log_artifact(str(path), artifact_path)

    def log_model(self, model: Any, artifact_path: str = "model") -> None:
        """Log a fitted scikit-learn pipeline."""
        mlflow.sklearn.log_model(model, artifact_path=artifact_path)


def track_study(config: PipelineConfig, result: "StudyResult") -> str:
    """
    Record a finished study as one MLflow run.

    Logs the configuration seeds and study parameters, the scalar metrics,
    the HTML report and plots, and the fitted pipeline of each final model.

    Returns:
        Run ID.
    """
    experiment_config = ExperimentConfig(config.experiment_name, result.question, result.study)
    with Experiment(config, experiment_config) as experiment:
        experiment.log_params({**config.summary(), **result.params})
        experiment.log_metrics(result.metrics)
        if result.report_path is not None:
            experiment.log_artifact(result.report_path, "reports")
        for path in result.figure_paths.values():
            experiment.log_artifact(path, "plots")
        for name, fitted in result.models.items():
            experiment.log_model(fitted.pipeline, artifact_path=name)
    return str(experiment.run_id)
