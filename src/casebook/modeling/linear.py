"""
Linear regression with inference.

Ordinary least squares comes from the statsmodels formula API, which
reports standard errors, test statistics and confidence intervals. The
Bayesian fit uses scikit-learn's ``BayesianRidge`` on the same patsy
design matrix; its Gaussian posterior over the coefficients is summarized
from random draws.
"""

from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from patsy import build_design_matrices, dmatrices
from scipy import stats
from sklearn.linear_model import BayesianRidge

from casebook.utils.logging import get_logger

log = get_logger(__name__)

TIDY_COLUMNS = ["term", "estimate", "std_error", "statistic", "p_value", "conf_low", "conf_high"]
PREDICTION_COLUMNS = [".pred", ".pred_lower", ".pred_upper"]


def _check_level(conf_level: float) -> float:
    if not 0.0 < conf_level < 1.0:
        msg = f"conf_level must be in (0, 1), got {conf_level}"
        raise ValueError(msg)
    return 1.0 - conf_level


@dataclass
class LinearFit:
    """Fitted OLS model."""

    formula: str
    results: object = field(repr=False)
    n_obs: int = 0

    def tidy(self, conf_level: float = 0.95) -> pd.DataFrame:
        """Coefficient table with confidence intervals."""
        alpha = _check_level(conf_level)
        res = self.results
        ci = res.conf_int(alpha=alpha)
        return pd.DataFrame(
            {
                "term": res.params.index,
                "estimate": res.params.to_numpy(),
                "std_error": res.bse.to_numpy(),
                "statistic": res.tvalues.to_numpy(),
                "p_value": res.pvalues.to_numpy(),
                "conf_low": ci.iloc[:, 0].to_numpy(),
                "conf_high": ci.iloc[:, 1].to_numpy(),
            },
            columns=TIDY_COLUMNS,
        )

    def glance(self) -> dict[str, float]:
        res = self.results
        return {
            "r_squared": float(res.rsquared),
            "adj_r_squared": float(res.rsquared_adj),
            "sigma": float(np.sqrt(res.scale)),
            "nobs": int(res.nobs),
        }

    def predict(self, new_data: pd.DataFrame, conf_level: float = 0.95) -> pd.DataFrame:
        """Mean predictions with confidence intervals."""
        alpha = _check_level(conf_level)
        frame = self.results.get_prediction(new_data).summary_frame(alpha=alpha)
        out = pd.DataFrame(
            {
                ".pred": frame["mean"].to_numpy(),
                ".pred_lower": frame["mean_ci_lower"].to_numpy(),
                ".pred_upper": frame["mean_ci_upper"].to_numpy(),
            },
            index=new_data.index,
        )
        return out


def fit_linear_reg(data: pd.DataFrame, formula: str) -> LinearFit:
    """
    Fit OLS from a formula such as ``width ~ initial_volume * food_regime``.

    Raises:
        patsy.PatsyError: If the formula references unknown columns.
    """
    results = smf.ols(formula, data=data).fit()
    log.info(
        "Fitted OLS",
        formula=formula,
        n_obs=int(results.nobs),
        r_squared=f"{results.rsquared:.3f}",
    )
    return LinearFit(formula, results, int(results.nobs))


@dataclass
class BayesianFit:
    """
    Bayesian linear regression on a patsy design matrix.

    Attributes:
        formula: Model formula.
        model: Fitted ``BayesianRidge`` (no separate intercept; the design
            matrix carries it).
        terms: Design-matrix column names.
        draws: Posterior coefficient draws, one row per draw.
    """

    formula: str
    model: BayesianRidge = field(repr=False)
    design_info: object = field(repr=False)
    terms: list[str] = field(default_factory=list)
    draws: np.ndarray = field(default_factory=lambda: np.empty((0, 0)), repr=False)

    @property
    def sigma(self) -> float:
        """Posterior mean of the residual standard deviation."""
        return float(1.0 / np.sqrt(self.model.alpha_))

    def tidy(self, conf_level: float = 0.95) -> pd.DataFrame:
        """Posterior median, MAD-SD and equal-tailed credible intervals."""
        alpha = _check_level(conf_level)
        median = np.median(self.draws, axis=0)
        mad_sd = stats.median_abs_deviation(self.draws, axis=0, scale="normal")
        lower, upper = np.quantile(self.draws, [alpha / 2, 1 - alpha / 2], axis=0)
        return pd.DataFrame(
            {
                "term": self.terms,
                "estimate": median,
                "std_error": mad_sd,
                "conf_low": lower,
                "conf_high": upper,
            }
        )

    def design(self, new_data: pd.DataFrame) -> np.ndarray:
        (matrix,) = build_design_matrices([self.design_info], new_data)
        return np.asarray(matrix)

    def predict(self, new_data: pd.DataFrame, conf_level: float = 0.95) -> pd.DataFrame:
        """Posterior mean predictions with credible intervals."""
        alpha = _check_level(conf_level)
        linear_pred = self.design(new_data) @ self.draws.T
        lower, upper = np.quantile(linear_pred, [alpha / 2, 1 - alpha / 2], axis=1)
        return pd.DataFrame(
            {
                ".pred": np.mean(linear_pred, axis=1),
                ".pred_lower": lower,
                ".pred_upper": upper,
            },
            index=new_data.index,
        )


def fit_bayes_linear_reg(
    data: pd.DataFrame,
    formula: str,
    *,
    n_draws: int = 4000,
    seed: int | None = None,
) -> BayesianFit:
    """
    Bayesian linear regression with a Gaussian coefficient prior.

    Precisions of the prior and the noise get Gamma hyperpriors and are
    estimated by evidence maximization; the coefficient posterior is then
    sampled ``n_draws`` times.
    """
    y, X = dmatrices(formula, data, return_type="dataframe")
    model = BayesianRidge(fit_intercept=False, compute_score=True)
    model.fit(X.to_numpy(), y.to_numpy().ravel())

    rng = np.random.default_rng(seed)
    draws = rng.multivariate_normal(model.coef_, model.sigma_, size=n_draws)

    log.info(
        "Fitted Bayesian linear regression",
        formula=formula,
        n_obs=len(X),
        n_draws=n_draws,
        sigma=f"{1.0 / np.sqrt(model.alpha_):.4f}",
    )
    return BayesianFit(formula, model, X.design_info, list(X.columns), draws)
