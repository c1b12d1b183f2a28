"""
Flight delays study: preprocess with a recipe.

Predict whether a flight arrives 30 or more minutes late using a plain
logistic regression, with all feature engineering declared as a recipe
and applied inside the workflow.
"""

import pandas as pd
from rich.console import Console

from casebook.config.settings import PipelineConfig
from casebook.evaluation.metrics import compute_classification_metrics, roc_curve
from casebook.evaluation.plots import plot_roc_curves
from casebook.features.recipe import Recipe
from casebook.ingestion.flights import load_flights
from casebook.modeling.models import logistic_reg
from casebook.modeling.resampling import initial_split
from casebook.modeling.workflow import Workflow
from casebook.studies.base import StudyResult, finish_study, new_sink
from casebook.utils.logging import get_logger, log_context

log = get_logger(__name__)

QUESTION = "Can flight and schedule details predict arrivals 30+ minutes late?"
OUTCOME = "arr_delay"


def build_recipe(id_columns: list[str], holidays: list[str]) -> Recipe:
    """ID roles, day of week and month, US holidays, dummies and zv filter."""
    return (
        Recipe(OUTCOME)
        .update_role(*id_columns, role="ID")
        .step_date("date", features=["dow", "month"])
        .step_holiday("date", holidays, keep_original_cols=False)
        .step_dummy()
        .step_zv()
    )


def run_flights(
    config: PipelineConfig,
    data: pd.DataFrame | None = None,
    *,
    write_outputs: bool = True,
    console: Console | None = None,
) -> StudyResult:
    """
    Run the flight delays study.

    Args:
        config: Pipeline configuration.
        data: Joined flight table; built from the local exports when omitted.
        write_outputs: Save plots, the HTML report and the fitted workflow.
        console: Rich console for result tables.
    """
    cfg = config.flights
    event = cfg.event_level

    with log_context(study="flights"):
        if data is None:
            data = load_flights(config)
        if cfg.sample_size is not None and cfg.sample_size < len(data):
            data = data.sample(n=cfg.sample_size, random_state=cfg.split.seed).reset_index(drop=True)
            log.info("Subsampled flights", n=len(data))

        result = StudyResult("flights", QUESTION)
        sink = new_sink("flights", config, save_plots=write_outputs)

        split = initial_split(data, prop=cfg.split.prop, strata=cfg.split.strata, seed=cfg.split.seed)
        train, test = split.training(), split.testing()
        result.params.update(
            {"n_flights": len(data), "n_train": len(train), "n_test": len(test), "late_threshold": cfg.late_threshold}
        )

        recipe = build_recipe(cfg.id_columns, cfg.holidays)
        data_section = result.section(
            "Recipe",
            f"{len(data)} flights, {len(train)} for training and {len(test)} for testing. "
            "Steps: " + "; ".join(recipe.describe()),
        )
        share = (
            data[OUTCOME].value_counts(normalize=True).rename("share").rename_axis(OUTCOME).reset_index()
        )
        result.add_table(data_section, "outcome_share", "Outcome share", share)

        fitted = Workflow(recipe, logistic_reg()).fit(train)
        coefficients = fitted.variable_importance()

        predictions = pd.concat(
            [
                test[[*cfg.id_columns, OUTCOME]].astype({OUTCOME: str}),
                fitted.predict_proba(test),
                fitted.predict(test),
            ],
            axis=1,
        ).reset_index(drop=True)
        metrics = compute_classification_metrics(
            predictions[OUTCOME], predictions[".pred_class"], predictions[f".pred_{event}"], event
        )

        model_section = result.section(
            "Logistic regression",
            f"Plain logistic regression on {len(fitted.feature_names)} preprocessed predictors.",
        )
        result.add_table(model_section, "test_predictions", "Test predictions (with IDs)", predictions.head(10))
        result.add_table(model_section, "coefficients", "Largest absolute coefficients", coefficients.head(15))
        model_section.figures["Test ROC curve"] = sink.add(
            "test_roc",
            plot_roc_curves(
                {"logistic regression": roc_curve(predictions[OUTCOME], predictions[f".pred_{event}"], event)},
                title="Flight delays: test set ROC curve",
            ),
        )

        result.metrics.update(
            {
                "test_roc_auc": metrics.roc_auc,
                "test_accuracy": metrics.accuracy,
                "test_event_rate": metrics.event_rate,
            }
        )
        result.models["logistic_reg"] = fitted

        log.info("Flights study finished", metrics=str(metrics))
        return finish_study(result, config, sink, write_outputs=write_outputs, console=console)
