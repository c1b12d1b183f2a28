"""
Sea urchins study: build a model.

Does the feeding regime change how urchin suture width grows with initial
volume? An OLS model with an interaction answers it with confidence
intervals; a Bayesian fit of the same model gives credible intervals.
"""

import pandas as pd
from rich.console import Console

from casebook.config.settings import PipelineConfig
from casebook.evaluation.plots import (
    plot_coefficients,
    plot_group_scatter,
    plot_prediction_intervals,
)
from casebook.ingestion.urchins import load_urchins
from casebook.modeling.linear import fit_bayes_linear_reg, fit_linear_reg
from casebook.studies.base import StudyResult, finish_study, new_sink
from casebook.utils.logging import get_logger, log_context

log = get_logger(__name__)

QUESTION = "Does the feeding regime change how suture width grows with initial volume?"
FORMULA = "width ~ initial_volume * food_regime"


def new_points(levels: list[str], initial_volume: float) -> pd.DataFrame:
    """One row per feeding regime at a fixed initial volume."""
    return pd.DataFrame(
        {
            "initial_volume": [initial_volume] * len(levels),
            "food_regime": pd.Categorical(levels, categories=levels),
        }
    )


def run_urchins(
    config: PipelineConfig,
    data: pd.DataFrame | None = None,
    *,
    refresh: bool = False,
    write_outputs: bool = True,
    console: Console | None = None,
) -> StudyResult:
    """
    Run the sea urchins study.

    Args:
        config: Pipeline configuration.
        data: Urchins table; loaded from the configured URL when omitted.
        refresh: Re-download the dataset.
        write_outputs: Save plots and the HTML report.
        console: Rich console for result tables.
    """
    cfg = config.urchins

    with log_context(study="urchins"):
        if data is None:
            data = load_urchins(config, refresh=refresh)

        result = StudyResult("urchins", QUESTION)
        sink = new_sink("urchins", config, save_plots=write_outputs)
        result.params.update({"formula": FORMULA, "n_urchins": len(data)})

        explore = result.section("Data", f"{len(data)} urchins across {len(cfg.levels)} feeding regimes.")
        summary = (
            data.groupby("food_regime", observed=False)["initial_volume"]
            .agg(n="size", median_initial_volume="median")
            .reset_index()
        )
        result.add_table(explore, "regime_summary", "Initial volume by regime", summary)
        explore.figures["Width against initial volume"] = sink.add(
            "scatter",
            plot_group_scatter(
                data, "initial_volume", "width", "food_regime", title="Suture width by feeding regime"
            ),
        )

        # Ordinary least squares
        ols = fit_linear_reg(data, FORMULA)
        ols_tidy = ols.tidy(conf_level=cfg.conf_level)
        points = new_points(cfg.levels, cfg.new_volume)
        ols_pred = pd.concat([points, ols.predict(points, conf_level=cfg.conf_level)], axis=1)

        ols_section = result.section(
            "Ordinary least squares",
            f"Interaction model {FORMULA}; mean width predicted at initial volume "
            f"{cfg.new_volume:g} for each regime.",
        )
        result.add_table(ols_section, "ols_coefficients", "Coefficients", ols_tidy)
        result.add_table(ols_section, "ols_predictions", "Mean predictions", ols_pred)
        ols_section.figures["Coefficient estimates"] = sink.add(
            "ols_coefficients", plot_coefficients(ols_tidy, title="OLS coefficients")
        )
        ols_section.figures["Predicted width"] = sink.add(
            "ols_predictions",
            plot_prediction_intervals(
                ols_pred,
                "food_regime",
                title=f"Predicted width at initial volume {cfg.new_volume:g}",
                ylabel="urchin size",
            ),
        )
        result.metrics.update({f"ols_{k}": float(v) for k, v in ols.glance().items()})

        # Bayesian linear regression
        bayes = fit_bayes_linear_reg(data, FORMULA, n_draws=cfg.posterior_draws, seed=cfg.seed)
        bayes_tidy = bayes.tidy(conf_level=cfg.conf_level)
        bayes_pred = pd.concat([points, bayes.predict(points, conf_level=cfg.conf_level)], axis=1)

        bayes_section = result.section(
            "Bayesian linear regression",
            f"Same design matrix with a Gaussian coefficient prior; "
            f"{cfg.posterior_draws} posterior draws (seed {cfg.seed}).",
        )
        result.add_table(bayes_section, "bayes_coefficients", "Posterior summary", bayes_tidy)
        result.add_table(bayes_section, "bayes_predictions", "Posterior mean predictions", bayes_pred)
        bayes_section.figures["Credible intervals"] = sink.add(
            "bayes_predictions",
            plot_prediction_intervals(
                bayes_pred,
                "food_regime",
                title="Bayesian model with Gaussian prior",
                ylabel="urchin size",
            ),
        )
        result.metrics["bayes_sigma"] = bayes.sigma

        log.info("Urchins study finished", r_squared=f"{result.metrics['ols_r_squared']:.3f}")
        return finish_study(result, config, sink, write_outputs=write_outputs, console=console)
