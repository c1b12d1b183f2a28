"""
Workflows: a preprocessing recipe bundled with a model specification.

A ``Workflow`` is unfitted and cheap to copy; ``fit`` returns a
``FittedWorkflow`` holding the fitted scikit-learn pipeline. Predictions
come back as DataFrames with ``.pred_class`` and ``.pred_{level}`` columns
aligned to the input index.
"""

import time
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
import pandas as pd
from sklearn.pipeline import Pipeline

from casebook.features.recipe import Recipe
from casebook.modeling.models import ModelSpec
from casebook.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Workflow:
    """Recipe plus model specification."""

    recipe: Recipe
    model: ModelSpec

    @property
    def outcome(self) -> str:
        return self.recipe.outcome

    def to_pipeline(self, *, allow_tune: bool = False) -> Pipeline:
        """Unfitted pipeline with ``recipe`` and ``model`` steps."""
        return Pipeline(
            steps=[
                ("recipe", self.recipe.to_pipeline()),
                ("model", self.model.build(allow_tune=allow_tune)),
            ]
        )

    def update_model(self, model: ModelSpec) -> "Workflow":
        return replace(self, model=model)

    def split_xy(self, data: pd.DataFrame) -> tuple[pd.DataFrame, pd.Series]:
        """Predictors and outcome for fitting; class labels become strings."""
        if self.outcome not in data.columns:
            msg = f"Outcome column '{self.outcome}' not found"
            raise KeyError(msg)
        y = data[self.outcome]
        if self.model.mode == "classification":
            y = y.astype(str)
        return self.recipe.predictors(data), y

    def fit(self, data: pd.DataFrame) -> "FittedWorkflow":
        """
        Fit the recipe and model on ``data``.

        Raises:
            ValueError: If model arguments are still marked for tuning.
        """
        pipeline = self.to_pipeline()
        X, y = self.split_xy(data)

        start = time.perf_counter()
        pipeline.fit(X, y)
        elapsed = time.perf_counter() - start

        fitted = FittedWorkflow(
            workflow=self,
            pipeline=pipeline,
            feature_names=list(pipeline.named_steps["recipe"].transform(X.head(1)).columns),
            n_train=len(data),
            fit_time_s=elapsed,
        )
        log.info(
            "Fitted workflow",
            model=self.model.describe(),
            n_samples=len(data),
            n_features=len(fitted.feature_names),
            fit_time_s=f"{elapsed:.2f}",
        )
        return fitted


def finalize_workflow(workflow: Workflow, params: dict[str, Any]) -> Workflow:
    """
    Replace ``tune()`` placeholders with chosen values.

    Keys that are not model arguments (e.g. ``.config``) are ignored.
    """
    values = {k: _plain(v) for k, v in params.items() if k in workflow.model.args}
    finalized = workflow.update_model(workflow.model.set_args(**values))
    log.info("Finalized workflow", params=values)
    return finalized


def _plain(value: Any) -> Any:
    """Unwrap numpy scalars so estimators receive built-in types."""
    if isinstance(value, np.generic):
        return value.item()
    return value


@dataclass
class FittedWorkflow:
    """
    Fitted recipe and model.

    Attributes:
        workflow: The workflow that was fitted.
        pipeline: Fitted scikit-learn pipeline.
        feature_names: Predictor names after preprocessing.
        n_train: Number of training rows.
        fit_time_s: Wall-clock fitting time.
    """

    workflow: Workflow
    pipeline: Pipeline
    feature_names: list[str] = field(default_factory=list)
    n_train: int = 0
    fit_time_s: float = 0.0

    @property
    def outcome(self) -> str:
        return self.workflow.outcome

    @property
    def classes(self) -> list[str]:
        return [str(c) for c in self.pipeline.classes_]

    def extract_fit_engine(self) -> Any:
        """The fitted estimator."""
        return self.pipeline.named_steps["model"]

    def extract_recipe(self) -> Pipeline:
        """The fitted preprocessing pipeline."""
        return self.pipeline.named_steps["recipe"]

    def _features(self, new_data: pd.DataFrame) -> pd.DataFrame:
        return new_data.drop(columns=[self.outcome], errors="ignore")

    def predict(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """Class (or numeric) predictions in a ``.pred_class``/``.pred`` column."""
        pred = self.pipeline.predict(self._features(new_data))
        name = ".pred_class" if self.workflow.model.mode == "classification" else ".pred"
        return pd.DataFrame({name: pred}, index=new_data.index)

    def predict_proba(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """Class probabilities, one ``.pred_{level}`` column per class."""
        if self.workflow.model.mode != "classification":
            msg = f"'{self.workflow.model.model_type}' does not produce probabilities"
            raise ValueError(msg)
        proba = self.pipeline.predict_proba(self._features(new_data))
        return pd.DataFrame(
            proba,
            columns=[f".pred_{c}" for c in self.classes],
            index=new_data.index,
        )

    def augment(self, new_data: pd.DataFrame) -> pd.DataFrame:
        """``new_data`` with prediction columns appended."""
        parts = [new_data, self.predict(new_data)]
        if self.workflow.model.mode == "classification":
            parts.insert(1, self.predict_proba(new_data))
        return pd.concat(parts, axis=1)

    def variable_importance(self, top_n: int | None = None) -> pd.DataFrame:
        """
        Importance per preprocessed predictor, most important first.

        Tree models report impurity importance; linear models report the
        absolute value of their coefficients.

        Raises:
            ValueError: If the model exposes neither.
        """
        model = self.extract_fit_engine()
        if hasattr(model, "feature_importances_"):
            values = np.asarray(model.feature_importances_)
        elif hasattr(model, "coef_"):
            values = np.abs(np.asarray(model.coef_)).ravel()
        else:
            msg = f"{type(model).__name__} has no importance measure"
            raise ValueError(msg)

        importance = (
            pd.DataFrame({"variable": self.feature_names, "importance": values})
            .sort_values("importance", ascending=False, kind="stable")
            .reset_index(drop=True)
        )
        if top_n is not None:
            importance = importance.head(top_n)
        return importance
