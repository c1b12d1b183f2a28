"""
Estimator adapters.

scikit-learn's ``LogisticRegression`` is parameterized by an inverse
regularization strength ``C`` applied to a summed loss, while the tutorials
express the lasso/elastic-net penalty as ``penalty`` on a mean loss. This
module bridges the two so that penalty grids carry over unchanged.
"""

from typing import Any

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.linear_model import LogisticRegression
from sklearn.utils.validation import check_is_fitted


def penalty_to_c(penalty: float, n_samples: int) -> float:
    """
    Convert a mean-loss penalty to scikit-learn's ``C``.

    ``C = 1 / (n * penalty)``; a zero penalty means no regularization.
    """
    if penalty < 0:
        msg = f"penalty must be >= 0, got {penalty}"
        raise ValueError(msg)
    if n_samples < 1:
        msg = "n_samples must be positive"
        raise ValueError(msg)
    if penalty == 0:
        return float(np.inf)
    return 1.0 / (n_samples * penalty)


class PenalizedLogisticRegression(ClassifierMixin, BaseEstimator):
    """
    Logistic regression with an elastic-net penalty on the mean log loss.

    Args:
        penalty: Total amount of regularization (0 fits an unpenalized model).
        mixture: Proportion of L1 in the penalty (1 = lasso, 0 = ridge).
        max_iter: Solver iteration limit.
        tol: Solver tolerance.
        random_state: Seed for the stochastic solver.
    """

    def __init__(
        self,
        penalty: float = 0.0,
        mixture: float = 1.0,
        max_iter: int = 1000,
        tol: float = 1e-4,
        random_state: int | None = None,
    ) -> None:
        self.penalty = penalty
        self.mixture = mixture
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state

    def _build(self, n_samples: int) -> LogisticRegression:
        if not 0.0 <= self.mixture <= 1.0:
            msg = f"mixture must be in [0, 1], got {self.mixture}"
            raise ValueError(msg)

        c = penalty_to_c(self.penalty, n_samples)
        if np.isinf(c):
            return LogisticRegression(C=c, solver="lbfgs", max_iter=self.max_iter, tol=self.tol)

        # l1_ratio alone selects the elastic net mix
        return LogisticRegression(
            C=c,
            l1_ratio=self.mixture,
            solver="saga",
            max_iter=self.max_iter,
            tol=self.tol,
            random_state=self.random_state,
        )

    def fit(self, X: Any, y: Any) -> "PenalizedLogisticRegression":
        self.model_ = self._build(len(X))
        self.model_.fit(X, y)
        self.classes_ = self.model_.classes_
        if isinstance(X, pd.DataFrame):
            self.feature_names_in_ = np.asarray(X.columns, dtype=object)
        self.n_features_in_ = self.model_.n_features_in_
        return self

    def predict(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "model_")
        return self.model_.predict(X)

    def predict_proba(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "model_")
        return self.model_.predict_proba(X)

    def decision_function(self, X: Any) -> np.ndarray:
        check_is_fitted(self, "model_")
        return self.model_.decision_function(X)

    @property
    def coef_(self) -> np.ndarray:
        check_is_fitted(self, "model_")
        return self.model_.coef_

    @property
    def intercept_(self) -> np.ndarray:
        check_is_fitted(self, "model_")
        return self.model_.intercept_
