"""
Hotel stays case study.

Predict which bookings include children. A lasso-penalized logistic
regression and a random forest are tuned on a single validation split
carved out of the training data; the better model is refitted on the full
training set and evaluated once on the held-out test set.
"""

import pandas as pd
from rich.console import Console

from casebook.config.settings import PipelineConfig
from casebook.evaluation.metrics import roc_auc, roc_curve
from casebook.evaluation.plots import (
    plot_roc_curves,
    plot_tuning_curve,
    plot_tuning_grid,
    plot_variable_importance,
)
from casebook.features.recipe import Recipe
from casebook.ingestion.hotels import load_hotels
from casebook.modeling.models import logistic_reg, rand_forest, tune
from casebook.modeling.params import get_parameter, grid_space_filling, value_grid
from casebook.modeling.resampling import initial_split, validation_split
from casebook.modeling.tuning import last_fit, tune_grid
from casebook.modeling.workflow import Workflow, finalize_workflow
from casebook.studies.base import StudyResult, finish_study, new_sink
from casebook.utils.logging import get_logger, log_context

log = get_logger(__name__)

QUESTION = "Which hotel stays include children, and how well can bookings reveal it?"
DATE_COLUMN = "arrival_date"


def build_lr_recipe(outcome: str, holidays: list[str]) -> Recipe:
    """Dates to calendar features and holidays, then dummies, zv filter and scaling."""
    return (
        Recipe(outcome)
        .step_date(DATE_COLUMN)
        .step_holiday(DATE_COLUMN, holidays)
        .step_rm(DATE_COLUMN)
        .step_dummy()
        .step_zv()
        .step_normalize()
    )


def build_rf_recipe(outcome: str, holidays: list[str]) -> Recipe:
    """Same date handling; nominal predictors become integer codes for the forest."""
    return (
        Recipe(outcome)
        .step_date(DATE_COLUMN)
        .step_holiday(DATE_COLUMN, holidays)
        .step_rm(DATE_COLUMN)
        .step_ordinal()
    )


def _validation_roc(preds: pd.DataFrame, outcome: str, event: str) -> tuple[pd.DataFrame, float]:
    prob = preds[f".pred_{event}"]
    return roc_curve(preds[outcome], prob, event), roc_auc(preds[outcome], prob, event)


def run_hotels(
    config: PipelineConfig,
    data: pd.DataFrame | None = None,
    *,
    refresh: bool = False,
    write_outputs: bool = True,
    console: Console | None = None,
) -> StudyResult:
    """
    Run the hotel stays case study.

    Args:
        config: Pipeline configuration.
        data: Hotel stays; loaded from the configured URL when omitted.
        refresh: Re-download the dataset.
        write_outputs: Save plots, the HTML report and the final model.
        console: Rich console for result tables.

    Returns:
        StudyResult with validation and test metrics.
    """
    cfg = config.hotels
    outcome, event = cfg.outcome, cfg.event_level

    with log_context(study="hotels"):
        if data is None:
            data = load_hotels(config, refresh=refresh)

        result = StudyResult("hotels", QUESTION)
        sink = new_sink("hotels", config, save_plots=write_outputs)

        # Data splitting
        split = initial_split(data, prop=cfg.split.prop, strata=cfg.split.strata, seed=cfg.split.seed)
        train = split.training()
        val_set = validation_split(
            train, prop=cfg.validation.prop, strata=cfg.validation.strata, seed=cfg.validation.seed
        )
        data_section = result.section(
            "Data splitting",
            f"{len(data)} bookings; {len(train)} for training (of which "
            f"{len(val_set.splits[0].out_id)} form the validation set) and "
            f"{len(split.out_id)} held out for testing.",
        )
        shares = pd.DataFrame(
            {
                "set": ["all", "training", "test"],
                "n": [len(data), len(train), len(split.out_id)],
                f"share_{event}": [
                    float((frame[outcome] == event).mean())
                    for frame in (data, train, split.testing())
                ],
            }
        )
        result.add_table(data_section, "outcome_share", "Outcome share by set", shares)
        result.params.update(
            {
                "n_bookings": len(data),
                "n_train": len(train),
                "n_test": len(split.out_id),
                "n_validation": len(val_set.splits[0].out_id),
            }
        )

        # Penalized logistic regression
        lr_workflow = Workflow(
            build_lr_recipe(outcome, cfg.holidays),
            logistic_reg(penalty=tune(), mixture=cfg.mixture),
        )
        lr_grid = value_grid(penalty=cfg.penalty_grid.values())
        lr_res = tune_grid(lr_workflow, val_set, lr_grid, metrics=["roc_auc"])
        lr_best = lr_res.select(cfg.penalty_selection, by="penalty", desc=True)
        lr_curve, lr_auc = _validation_roc(lr_res.collect_predictions(lr_best), outcome, event)

        lr_section = result.section(
            "Penalized logistic regression",
            "Lasso logistic regression tuned over the penalty grid on the validation set. "
            "Larger penalties remove more predictors, so the largest penalty within the "
            "selection rule's tolerance is preferred.",
        )
        lr_top = lr_res.show_best("roc_auc", n=15).sort_values("penalty").reset_index(drop=True)
        result.add_table(lr_section, "lr_top_models", "Top candidates by penalty", lr_top)
        lr_section.figures["Validation ROC AUC across penalties"] = sink.add(
            "lr_tuning",
            plot_tuning_curve(
                lr_res.collect_metrics(),
                "penalty",
                "roc_auc",
                title="Penalized logistic regression",
                highlight=lr_best["penalty"],
            ),
        )
        result.params["lr_penalty"] = lr_best["penalty"]
        result.metrics["lr_validation_roc_auc"] = lr_auc

        # Random forest
        forest = cfg.forest
        rf_recipe = build_rf_recipe(outcome, cfg.holidays)
        n_predictors = rf_recipe.bake(val_set.splits[0].analysis()).shape[1]
        rf_workflow = Workflow(
            rf_recipe,
            rand_forest(mtry=tune(), min_n=tune(), trees=forest.trees).set_engine(
                n_jobs=forest.n_jobs, random_state=forest.seed
            ),
        )
        rf_grid = grid_space_filling(
            get_parameter("mtry").finalize(n_predictors),
            get_parameter("min_n").with_range(*forest.min_n_range),
            size=forest.grid_size,
            seed=forest.seed,
        )
        rf_res = tune_grid(rf_workflow, val_set, rf_grid, metrics=["roc_auc"])
        rf_best = rf_res.select_best("roc_auc")
        rf_curve, rf_auc = _validation_roc(rf_res.collect_predictions(rf_best), outcome, event)

        rf_section = result.section(
            "Random forest",
            f"Random forest with {forest.trees} trees tuned over a {len(rf_grid)}-point "
            f"space-filling grid of mtry (1 to {n_predictors}) and min_n.",
        )
        result.add_table(
            rf_section, "rf_top_models", "Top candidates", rf_res.show_best("roc_auc", n=5)
        )
        rf_section.figures["Validation ROC AUC across the grid"] = sink.add(
            "rf_tuning",
            plot_tuning_grid(rf_res.collect_metrics(), ["mtry", "min_n"], "roc_auc"),
        )
        rf_section.figures["Validation ROC curves"] = sink.add(
            "validation_roc",
            plot_roc_curves(
                {"logistic regression": lr_curve, "random forest": rf_curve},
                title="Validation set ROC curves",
            ),
        )
        result.params.update({"rf_mtry": rf_best["mtry"], "rf_min_n": rf_best["min_n"]})
        result.metrics["rf_validation_roc_auc"] = rf_auc

        # Last fit
        final = last_fit(finalize_workflow(rf_workflow, rf_best), split, event_level=event)
        test_preds = final.collect_predictions()
        importance = final.fitted.variable_importance(top_n=cfg.importance_top_n)

        final_section = result.section(
            "Last fit",
            "The selected random forest refitted on all training rows and scored once on the test set.",
        )
        result.add_table(final_section, "test_metrics", "Test set metrics", final.collect_metrics())
        result.add_table(final_section, "variable_importance", "Variable importance", importance)
        final_section.figures["Variable importance"] = sink.add(
            "variable_importance",
            plot_variable_importance(importance, title="Random forest variable importance"),
        )
        final_section.figures["Test ROC curve"] = sink.add(
            "test_roc",
            plot_roc_curves(
                {"random forest": roc_curve(test_preds[outcome], test_preds[f".pred_{event}"], event)},
                title="Test set ROC curve",
            ),
        )
        result.metrics["test_accuracy"] = final.metric("accuracy")
        result.metrics["test_roc_auc"] = final.metric("roc_auc")
        result.models["final_rf"] = final.fitted

        log.info("Hotels study finished", **{k: f"{v:.4f}" for k, v in result.metrics.items()})
        return finish_study(result, config, sink, write_outputs=write_outputs, console=console)
