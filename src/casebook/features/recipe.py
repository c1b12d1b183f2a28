"""
Declarative preprocessing recipes.

A ``Recipe`` records preprocessing steps in the order they are declared and
compiles them into a scikit-learn ``Pipeline``. Nothing is estimated until
the pipeline is fitted, and it is only ever fitted on training (or
analysis) rows, so means, scales and dummy levels never leak from held-out
data.

Example:
    recipe = (
        Recipe("children")
        .step_date("arrival_date")
        .step_holiday("arrival_date", holidays=["Easter", "ChristmasDay"])
        .step_rm("arrival_date")
        .step_dummy()
        .step_zv()
        .step_normalize()
    )
    pipeline = recipe.to_pipeline()
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin, clone
from sklearn.compose import ColumnTransformer
from sklearn.feature_selection import VarianceThreshold
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder, OrdinalEncoder, StandardScaler
from sklearn.utils.validation import check_is_fitted

from casebook.features.holidays import holiday_indicator
from casebook.utils.logging import get_logger

log = get_logger(__name__)

DATE_FEATURES = ("dow", "month", "year")
DOW_LEVELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_LEVELS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]
ENCODINGS = ("dummy", "ordinal")


def _remember_columns(step: BaseEstimator, X: pd.DataFrame) -> None:
    """Record the fitted input columns; sklearn reads them as the fitted state."""
    step.feature_names_in_ = np.asarray(X.columns, dtype=object)
    step.n_features_in_ = X.shape[1]


def is_nominal(column: pd.Series) -> bool:
    """Categorical or text columns."""
    return isinstance(column.dtype, pd.CategoricalDtype) or pd.api.types.is_string_dtype(column)


def levels(column: pd.Series) -> list[Any]:
    """Declared levels of a categorical, sorted values of a text column."""
    if isinstance(column.dtype, pd.CategoricalDtype):
        return list(column.cat.categories)
    return sorted(column.dropna().unique())


class DateFeatures(BaseEstimator, TransformerMixin):
    """
    Derive calendar features from a date column.

    ``dow`` and ``month`` become categoricals with all levels declared (so
    dummy columns are stable across splits); ``year`` is an integer.
    """

    def __init__(
        self,
        column: str,
        features: tuple[str, ...] = DATE_FEATURES,
        keep_original_cols: bool = True,
    ) -> None:
        self.column = column
        self.features = features
        self.keep_original_cols = keep_original_cols

    def fit(self, X: pd.DataFrame, y: Any = None) -> "DateFeatures":
        unknown = set(self.features) - set(DATE_FEATURES)
        if unknown:
            msg = f"Unknown date features: {sorted(unknown)}. Available: {DATE_FEATURES}"
            raise ValueError(msg)
        if self.column not in X.columns:
            msg = f"Date column '{self.column}' not found"
            raise KeyError(msg)
        _remember_columns(self, X)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self)
        X = X.copy()
        dates = pd.to_datetime(X[self.column])

        if "dow" in self.features:
            X[f"{self.column}_dow"] = pd.Categorical(
                dates.dt.dayofweek.map(dict(enumerate(DOW_LEVELS))),
                categories=DOW_LEVELS,
            )
        if "month" in self.features:
            X[f"{self.column}_month"] = pd.Categorical(
                dates.dt.month.map(dict(enumerate(MONTH_LEVELS, start=1))),
                categories=MONTH_LEVELS,
            )
        if "year" in self.features:
            X[f"{self.column}_year"] = dates.dt.year.astype(int)

        if not self.keep_original_cols:
            X = X.drop(columns=[self.column])
        return X


class HolidayFeatures(BaseEstimator, TransformerMixin):
    """Add one 0/1 indicator column per named holiday."""

    def __init__(
        self,
        column: str,
        holidays: tuple[str, ...] = (),
        keep_original_cols: bool = True,
    ) -> None:
        self.column = column
        self.holidays = holidays
        self.keep_original_cols = keep_original_cols

    def fit(self, X: pd.DataFrame, y: Any = None) -> "HolidayFeatures":
        if self.column not in X.columns:
            msg = f"Date column '{self.column}' not found"
            raise KeyError(msg)
        _remember_columns(self, X)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self)
        X = X.copy()
        for name in self.holidays:
            X[f"{self.column}_{name}"] = holiday_indicator(X[self.column], name)
        if not self.keep_original_cols:
            X = X.drop(columns=[self.column])
        return X


class DropColumns(BaseEstimator, TransformerMixin):
    """Remove columns (missing columns are ignored)."""

    def __init__(self, columns: tuple[str, ...] = ()) -> None:
        self.columns = columns

    def fit(self, X: pd.DataFrame, y: Any = None) -> "DropColumns":
        _remember_columns(self, X)
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self)
        return X.drop(columns=[c for c in self.columns if c in X.columns])


class NominalEncoder(BaseEstimator, TransformerMixin):
    """
    Encode every nominal column, passing the rest through.

    Levels come from the categorical dtype when there is one, so the first
    declared level (``Mon`` for day of week) is the reference cell. Text
    columns use their sorted values.
    """

    def __init__(self, kind: str = "dummy") -> None:
        self.kind = kind

    def _encoder(self, categories: list[list[Any]]) -> OneHotEncoder | OrdinalEncoder:
        if self.kind == "dummy":
            return OneHotEncoder(
                categories=categories,
                drop="first",
                handle_unknown="ignore",
                sparse_output=False,
            )
        return OrdinalEncoder(
            categories=categories, handle_unknown="use_encoded_value", unknown_value=-1
        )

    def fit(self, X: pd.DataFrame, y: Any = None) -> "NominalEncoder":
        if self.kind not in ENCODINGS:
            msg = f"Unknown encoding '{self.kind}', expected one of {', '.join(ENCODINGS)}"
            raise ValueError(msg)
        _remember_columns(self, X)
        self.levels_ = {col: levels(X[col]) for col in X.columns if is_nominal(X[col])}
        self.encoder_ = ColumnTransformer(
            [("nominal", self._encoder(list(self.levels_.values())), list(self.levels_))],
            remainder="passthrough",
            verbose_feature_names_out=False,
        ).set_output(transform="pandas")
        self.encoder_.fit(X)
        log.debug("Fitted nominal encoder", kind=self.kind, columns=list(self.levels_))
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        check_is_fitted(self)
        return self.encoder_.transform(X)


@dataclass
class RecipeStep:
    """One declared preprocessing step."""

    kind: str
    transformer: Any
    description: str


@dataclass
class Recipe:
    """
    Ordered preprocessing specification for one outcome.

    Attributes:
        outcome: Outcome column; never passed to the steps.
        id_columns: Columns with the ID role; kept with the data but
            removed before any step runs.
        steps: Declared steps, in order.
    """

    outcome: str
    id_columns: list[str] = field(default_factory=list)
    steps: list[RecipeStep] = field(default_factory=list)

    def _add(self, kind: str, transformer: Any, description: str) -> "Recipe":
        self.steps.append(RecipeStep(kind, transformer, description))
        return self

    def update_role(self, *columns: str, role: str = "ID") -> "Recipe":
        """Give columns a non-predictor role (only ``ID`` is supported)."""
        if role != "ID":
            msg = f"Unsupported role '{role}'"
            raise ValueError(msg)
        self.id_columns.extend(c for c in columns if c not in self.id_columns)
        return self

    def step_date(
        self,
        column: str,
        features: tuple[str, ...] | list[str] = DATE_FEATURES,
        *,
        keep_original_cols: bool = True,
    ) -> "Recipe":
        """Derive day of week, month and/or year from a date column."""
        features = tuple(features)
        return self._add(
            "date",
            DateFeatures(column, features, keep_original_cols),
            f"Date features from {column}: {', '.join(features)}",
        )

    def step_holiday(
        self,
        column: str,
        holidays: tuple[str, ...] | list[str],
        *,
        keep_original_cols: bool = True,
    ) -> "Recipe":
        """Add holiday indicators for a date column."""
        holidays = tuple(holidays)
        return self._add(
            "holiday",
            HolidayFeatures(column, holidays, keep_original_cols),
            f"Holiday indicators from {column} ({len(holidays)} holidays)",
        )

    def step_rm(self, *columns: str) -> "Recipe":
        """Remove columns."""
        return self._add(
            "rm", DropColumns(tuple(columns)), f"Removed: {', '.join(columns)}"
        )

    def step_dummy(self) -> "Recipe":
        """Reference-cell dummy variables for all nominal predictors."""
        return self._add(
            "dummy", NominalEncoder("dummy"), "Dummy variables from nominal predictors"
        )

    def step_ordinal(self) -> "Recipe":
        """Integer codes for all nominal predictors (unseen levels become -1)."""
        return self._add(
            "ordinal", NominalEncoder("ordinal"), "Integer codes for nominal predictors"
        )

    def step_zv(self) -> "Recipe":
        """Remove zero-variance predictors."""
        return self._add(
            "zv",
            VarianceThreshold(threshold=0.0).set_output(transform="pandas"),
            "Zero variance filter on all predictors",
        )

    def step_normalize(self) -> "Recipe":
        """Center and scale all predictors."""
        return self._add(
            "normalize",
            StandardScaler().set_output(transform="pandas"),
            "Centering and scaling for all predictors",
        )

    def to_pipeline(self) -> Pipeline:
        """
        Compile the recipe into an unfitted scikit-learn Pipeline.

        The first step always removes ID columns, so the pipeline accepts
        the full predictor frame (everything except the outcome).
        """
        steps: list[tuple[str, Any]] = [("roles", DropColumns(tuple(self.id_columns)))]
        counts: dict[str, int] = {}
        for step in self.steps:
            counts[step.kind] = counts.get(step.kind, 0) + 1
            name = step.kind if counts[step.kind] == 1 else f"{step.kind}_{counts[step.kind]}"
            steps.append((name, clone(step.transformer)))

        log.debug("Compiled recipe", outcome=self.outcome, steps=[s[0] for s in steps])
        return Pipeline(steps=steps)

    def predictors(self, data: pd.DataFrame) -> pd.DataFrame:
        """Split off the outcome; ID columns stay (the pipeline drops them)."""
        return data.drop(columns=[self.outcome])

    def prep(self, data: pd.DataFrame) -> Pipeline:
        """Fit the compiled pipeline on ``data`` (which includes the outcome)."""
        return self.to_pipeline().fit(self.predictors(data), data[self.outcome])

    def bake(self, data: pd.DataFrame) -> pd.DataFrame:
        """Fit on ``data`` and return the processed predictors."""
        return self.prep(data).transform(self.predictors(data))

    def describe(self) -> list[str]:
        """Human-readable list of operations."""
        lines = [f"Outcome: {self.outcome}"]
        if self.id_columns:
            lines.append(f"ID role: {', '.join(self.id_columns)}")
        lines.extend(step.description for step in self.steps)
        return lines
