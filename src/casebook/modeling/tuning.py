"""
Grid search, resample evaluation and candidate selection.

``tune_grid`` and ``fit_resamples`` hand the work to scikit-learn
(``GridSearchCV`` / ``cross_validate``) using the precomputed resample
indices; this module only reshapes the results into long tables with one
row per candidate and metric (``mean``, ``n``, ``std_err``) and implements
the selection rules used to pick a final candidate.
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from sklearn.model_selection import GridSearchCV, cross_validate

from casebook.config.settings import SelectionConfig, SelectionMethod
from casebook.evaluation.metrics import check_metrics, compute_metric_set
from casebook.modeling.resampling import Resamples, Split
from casebook.modeling.workflow import FittedWorkflow, Workflow, finalize_workflow
from casebook.utils.logging import get_logger

log = get_logger(__name__)

# Metric name -> scikit-learn scorer. The binary AUC scorer scores
# classes_[1]; AUC is symmetric in the positive class so it matches the
# event-level AUC.
SCORERS: dict[str, str] = {"roc_auc": "roc_auc", "accuracy": "accuracy"}

SUMMARY_COLUMNS = [".metric", "mean", "n", "std_err", ".config"]


def _summarize(scores: np.ndarray) -> tuple[float, int, float]:
    scores = np.asarray(scores, dtype=float)
    n = len(scores)
    std_err = float(np.std(scores, ddof=1) / np.sqrt(n)) if n > 1 else float("nan")
    return float(np.mean(scores)), n, std_err


def _scorers(metrics: list[str] | tuple[str, ...]) -> dict[str, str]:
    return {name: SCORERS[name] for name in check_metrics(metrics)}


def _predictions_for_split(fitted: FittedWorkflow, split: Split) -> pd.DataFrame:
    assessment = split.assessment()
    preds = pd.concat(
        [fitted.predict_proba(assessment), fitted.predict(assessment)], axis=1
    )
    preds.insert(0, fitted.outcome, assessment[fitted.outcome].astype(str))
    preds.insert(0, ".row", split.out_id)
    preds.insert(0, "id", split.id)
    return preds.reset_index(drop=True)


@dataclass
class TuneResults:
    """
    Result of a grid search over resamples.

    Attributes:
        workflow: Workflow with ``tune()`` placeholders.
        resamples: Resamples the candidates were evaluated on.
        params: Tuned argument names.
        metrics: Long table: params, ``.metric``, ``mean``, ``n``,
            ``std_err``, ``.config``.
    """

    workflow: Workflow
    resamples: Resamples
    params: list[str]
    metrics: pd.DataFrame
    elapsed_s: float = 0.0

    def collect_metrics(self) -> pd.DataFrame:
        return self.metrics.copy()

    def _metric_rows(self, metric: str) -> pd.DataFrame:
        rows = self.metrics[self.metrics[".metric"] == metric]
        if rows.empty:
            computed = ", ".join(self.metrics[".metric"].unique())
            msg = f"Metric '{metric}' was not computed. Available: {computed}"
            raise ValueError(msg)
        return rows

    def show_best(self, metric: str, n: int = 5) -> pd.DataFrame:
        """Top ``n`` candidates by mean ``metric``."""
        return (
            self._metric_rows(metric)
            .sort_values("mean", ascending=False, kind="stable")
            .head(n)
            .reset_index(drop=True)
        )

    def _as_params(self, row: pd.Series) -> dict[str, Any]:
        params = {p: _scalar(row[p]) for p in self.params}
        params[".config"] = row[".config"]
        return params

    def select_best(self, metric: str) -> dict[str, Any]:
        """Candidate with the best mean ``metric``."""
        return self._as_params(self.show_best(metric, n=1).iloc[0])

    def _simplest(self, candidates: pd.DataFrame, by: str | list[str], desc: bool) -> dict[str, Any]:
        ordered = candidates.sort_values(by, ascending=not desc, kind="stable")
        return self._as_params(ordered.iloc[0])

    def select_by_one_std_err(
        self, metric: str, by: str | list[str], *, desc: bool = False
    ) -> dict[str, Any]:
        """
        Simplest candidate within one standard error of the best.

        ``by`` orders candidates from simplest to most complex (reversed
        when ``desc`` is true, e.g. larger penalties are simpler).
        """
        rows = self._metric_rows(metric)
        best = rows.loc[rows["mean"].idxmax()]
        bound = best["mean"] - (0.0 if np.isnan(best["std_err"]) else best["std_err"])
        return self._simplest(rows[rows["mean"] >= bound], by, desc)

    def select_by_pct_loss(
        self,
        metric: str,
        by: str | list[str],
        *,
        limit: float = 2.0,
        desc: bool = False,
    ) -> dict[str, Any]:
        """Simplest candidate whose mean is within ``limit`` percent of the best."""
        rows = self._metric_rows(metric)
        best = rows["mean"].max()
        if not np.isfinite(best) or best == 0:
            msg = f"Percent loss is undefined when the best mean {metric} is {best}"
            raise ValueError(msg)
        loss = ((best - rows["mean"]) / best).abs() * 100.0
        return self._simplest(rows[loss <= limit], by, desc)

    def select_by_rank(
        self,
        metric: str,
        by: str | list[str],
        *,
        rank: int,
        n: int = 15,
        desc: bool = False,
    ) -> dict[str, Any]:
        """
        Pick row ``rank`` (1-based) of the top ``n`` candidates ordered by ``by``.

        Raises:
            ValueError: If ``rank`` is outside the table.
        """
        top = self.show_best(metric, n=n).sort_values(by, ascending=not desc, kind="stable")
        if not 1 <= rank <= len(top):
            msg = f"rank {rank} outside 1..{len(top)}"
            raise ValueError(msg)
        return self._as_params(top.iloc[rank - 1])

    def select(self, selection: SelectionConfig, by: str | list[str], *, desc: bool = False) -> dict[str, Any]:
        """Apply a configured selection rule."""
        method = selection.method
        if method == SelectionMethod.BEST:
            chosen = self.select_best(selection.metric)
        elif method == SelectionMethod.PCT_LOSS:
            chosen = self.select_by_pct_loss(selection.metric, by, limit=selection.limit, desc=desc)
        elif method == SelectionMethod.ONE_STD_ERR:
            chosen = self.select_by_one_std_err(selection.metric, by, desc=desc)
        else:
            chosen = self.select_by_rank(
                selection.metric, by, rank=selection.rank or 1, desc=desc
            )
        log.info("Selected candidate", method=method.value, metric=selection.metric, params=chosen)
        return chosen

    def collect_predictions(self, params: dict[str, Any]) -> pd.DataFrame:
        """
        Held-out predictions of one candidate on every resample.

        Each analysis set is refitted with the candidate's values.
        """
        workflow = finalize_workflow(self.workflow, params)
        frames = [
            _predictions_for_split(workflow.fit(split.analysis()), split)
            for split in self.resamples.splits
        ]
        preds = pd.concat(frames, ignore_index=True)
        preds[".config"] = params.get(".config", "")
        return preds


def _scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def tune_grid(
    workflow: Workflow,
    resamples: Resamples,
    grid: pd.DataFrame,
    metrics: list[str] | tuple[str, ...] = ("roc_auc",),
    *,
    n_jobs: int | None = None,
) -> TuneResults:
    """
    Evaluate every grid candidate on every resample.

    Args:
        workflow: Workflow whose model has ``tune()`` arguments.
        resamples: Validation split or v-fold resamples.
        grid: One column per tuned argument, one row per candidate.
        metrics: Metric names.
        n_jobs: Parallel jobs for the grid search.

    Raises:
        ValueError: If the grid is empty or its columns do not match the
            tuned arguments.
    """
    tunable = workflow.model.tunable()
    if grid.empty:
        msg = "Tuning grid is empty"
        raise ValueError(msg)
    if set(grid.columns) != set(tunable):
        msg = f"Grid columns {sorted(grid.columns)} do not match tuned arguments {sorted(tunable)}"
        raise ValueError(msg)

    scoring = _scorers(metrics)
    engine_names = {p: f"model__{workflow.model.engine_param(p)}" for p in tunable}
    # to_dict keeps integer columns as int
    param_grid = [
        {engine_names[p]: [_scalar(record[p])] for p in tunable}
        for record in grid.to_dict("records")
    ]

    X, y = workflow.split_xy(resamples.data)
    log.info(
        "Tuning grid",
        model=workflow.model.describe(),
        candidates=len(param_grid),
        resamples=len(resamples),
        metrics=list(scoring),
    )

    search = GridSearchCV(
        workflow.to_pipeline(allow_tune=True),
        param_grid=param_grid,
        scoring=scoring,
        cv=resamples.indices(),
        refit=False,
        n_jobs=n_jobs,
        error_score="raise",
    )
    search.fit(X, y)
    results = search.cv_results_

    by_engine = {v: k for k, v in engine_names.items()}
    rows = []
    for i, candidate in enumerate(results["params"]):
        values = {by_engine[k]: _scalar(v) for k, v in candidate.items()}
        for name in scoring:
            scores = [results[f"split{j}_test_{name}"][i] for j in range(len(resamples))]
            mean, n, std_err = _summarize(np.asarray(scores))
            rows.append(
                {
                    **values,
                    ".metric": name,
                    "mean": mean,
                    "n": n,
                    "std_err": std_err,
                    ".config": f"Preprocessor1_Model{i + 1:02d}",
                }
            )

    table = pd.DataFrame(rows, columns=[*tunable, *SUMMARY_COLUMNS])
    elapsed = float(np.sum(results["mean_fit_time"]) * len(resamples))
    log.info("Tuning complete", candidates=len(param_grid), fit_time_s=f"{elapsed:.1f}")
    return TuneResults(workflow, resamples, tunable, table, elapsed)


@dataclass
class ResampleResults:
    """Performance of one fixed workflow across resamples."""

    workflow: Workflow
    per_split: pd.DataFrame
    metrics: pd.DataFrame

    def collect_metrics(self, *, summarize: bool = True) -> pd.DataFrame:
        return (self.metrics if summarize else self.per_split).copy()

    def estimate(self, metric: str) -> float:
        rows = self.metrics[self.metrics[".metric"] == metric]
        if rows.empty:
            msg = f"Metric '{metric}' was not computed"
            raise ValueError(msg)
        return float(rows["mean"].iloc[0])


def fit_resamples(
    workflow: Workflow,
    resamples: Resamples,
    metrics: list[str] | tuple[str, ...] = ("accuracy", "roc_auc"),
    *,
    n_jobs: int | None = None,
) -> ResampleResults:
    """Fit ``workflow`` on every analysis set and score its assessment set."""
    scoring = _scorers(metrics)
    X, y = workflow.split_xy(resamples.data)
    log.info("Fitting resamples", model=workflow.model.describe(), resamples=len(resamples))

    scores = cross_validate(
        workflow.to_pipeline(),
        X,
        y,
        cv=resamples.indices(),
        scoring=scoring,
        n_jobs=n_jobs,
        error_score="raise",
    )

    per_split = pd.DataFrame(
        [
            {"id": split_id, ".metric": name, ".estimate": float(scores[f"test_{name}"][j])}
            for name in scoring
            for j, split_id in enumerate(resamples.ids)
        ]
    )
    summary = pd.DataFrame(
        [
            dict(zip(["mean", "n", "std_err"], _summarize(scores[f"test_{name}"]), strict=True))
            | {".metric": name}
            for name in scoring
        ],
        columns=[".metric", "mean", "n", "std_err"],
    )
    log.info(
        "Resampling complete",
        **{name: f"{m:.4f}" for name, m in zip(summary[".metric"], summary["mean"], strict=True)},
    )
    return ResampleResults(workflow, per_split, summary)


@dataclass
class LastFit:
    """
    Final model fitted on the training set and evaluated once on the test set.

    Attributes:
        fitted: Workflow fitted on the training rows.
        metrics: ``.metric`` / ``.estimate`` table on the test rows.
        predictions: Test predictions with truth, ``.pred_class`` and
            class probabilities.
    """

    fitted: FittedWorkflow
    metrics: pd.DataFrame
    predictions: pd.DataFrame = field(repr=False)

    def collect_metrics(self) -> pd.DataFrame:
        return self.metrics.copy()

    def collect_predictions(self) -> pd.DataFrame:
        return self.predictions.copy()

    def extract_workflow(self) -> FittedWorkflow:
        return self.fitted

    def metric(self, name: str) -> float:
        rows = self.metrics[self.metrics[".metric"] == name]
        if rows.empty:
            msg = f"Metric '{name}' was not computed"
            raise ValueError(msg)
        return float(rows[".estimate"].iloc[0])


def last_fit(
    workflow: Workflow,
    split: Split,
    event_level: str,
    metrics: list[str] | tuple[str, ...] = ("accuracy", "roc_auc"),
) -> LastFit:
    """Fit on ``split.training()`` and evaluate on ``split.testing()``."""
    fitted = workflow.fit(split.training())
    predictions = _predictions_for_split(fitted, split)
    table = compute_metric_set(predictions, fitted.outcome, event_level, metrics)

    log.info(
        "Last fit",
        n_test=len(predictions),
        **{row[".metric"]: f"{row['.estimate']:.4f}" for _, row in table.iterrows()},
    )
    return LastFit(fitted, table, predictions)
