"""
Cell segmentation study: evaluate with resampling, then tune a tree.

Shows why resubstitution estimates flatter a random forest, estimates its
performance honestly with 10-fold cross-validation, and tunes a decision
tree's cost complexity and depth on a regular grid.
"""

import pandas as pd
from rich.console import Console

from casebook.config.settings import PipelineConfig
from casebook.evaluation.metrics import compute_classification_metrics, roc_curve
from casebook.evaluation.plots import (
    plot_decision_tree,
    plot_roc_curves,
    plot_tuning_panel,
    plot_variable_importance,
)
from casebook.features.recipe import Recipe
from casebook.ingestion.cells import load_cells
from casebook.modeling.models import decision_tree, rand_forest, tune
from casebook.modeling.params import get_parameter, grid_regular
from casebook.modeling.resampling import initial_split, vfold_cv
from casebook.modeling.tuning import fit_resamples, last_fit, tune_grid
from casebook.modeling.workflow import FittedWorkflow, Workflow, finalize_workflow
from casebook.studies.base import StudyResult, finish_study, new_sink
from casebook.utils.logging import get_logger, log_context

log = get_logger(__name__)

QUESTION = "How well can image features separate poorly from well segmented cells?"
OUTCOME = "class"
METRICS = ["accuracy", "roc_auc"]


def _evaluate(fitted: FittedWorkflow, data: pd.DataFrame, event: str) -> dict[str, float]:
    prob = fitted.predict_proba(data)[f".pred_{event}"]
    pred = fitted.predict(data)[".pred_class"]
    metrics = compute_classification_metrics(data[OUTCOME], pred, prob, event)
    return {"accuracy": metrics.accuracy, "roc_auc": metrics.roc_auc}


def run_cells(
    config: PipelineConfig,
    data: pd.DataFrame | None = None,
    *,
    write_outputs: bool = True,
    console: Console | None = None,
) -> StudyResult:
    """
    Run the cell segmentation study.

    Args:
        config: Pipeline configuration.
        data: Cells table; loaded from the local export when omitted.
        write_outputs: Save plots, the HTML report and the final tree.
        console: Rich console for result tables.
    """
    cfg = config.cells
    event = cfg.event_level

    with log_context(study="cells"):
        if data is None:
            data = load_cells(config)

        result = StudyResult("cells", QUESTION)
        sink = new_sink("cells", config, save_plots=write_outputs)

        split = initial_split(data, prop=cfg.split.prop, strata=cfg.split.strata, seed=cfg.split.seed)
        train, test = split.training(), split.testing()
        result.params.update(
            {"n_cells": len(data), "n_train": len(train), "n_test": len(test), "folds": cfg.folds}
        )

        # Random forest: resubstitution vs test vs resampling
        forest = cfg.forest
        rf_workflow = Workflow(
            Recipe(OUTCOME),
            rand_forest(trees=forest.trees).set_engine(n_jobs=forest.n_jobs, random_state=forest.seed),
        )
        rf_fit = rf_workflow.fit(train)
        resubstitution = _evaluate(rf_fit, train, event)
        rf_test = _evaluate(rf_fit, test, event)

        folds = vfold_cv(train, v=cfg.folds, seed=cfg.resample_seed)
        rf_resampled = fit_resamples(rf_workflow, folds, metrics=METRICS)

        comparison = pd.DataFrame(
            [
                {"estimate": "resubstitution", **resubstitution},
                {"estimate": f"{cfg.folds}-fold CV", **{m: rf_resampled.estimate(m) for m in METRICS}},
                {"estimate": "test set", **rf_test},
            ]
        )
        rf_section = result.section(
            "Random forest performance",
            "Predicting the training set reuses the data the forest memorized; "
            "cross-validation estimates agree with the test set instead.",
        )
        result.add_table(rf_section, "rf_estimates", "Performance estimates", comparison)
        result.add_table(
            rf_section,
            "rf_folds",
            "Per-fold metrics",
            rf_resampled.collect_metrics(summarize=False),
        )
        result.metrics.update(
            {
                "rf_resubstitution_roc_auc": resubstitution["roc_auc"],
                "rf_resubstitution_accuracy": resubstitution["accuracy"],
                "rf_cv_roc_auc": rf_resampled.estimate("roc_auc"),
                "rf_cv_accuracy": rf_resampled.estimate("accuracy"),
                "rf_test_roc_auc": rf_test["roc_auc"],
                "rf_test_accuracy": rf_test["accuracy"],
            }
        )

        # Decision tree tuning
        tree_workflow = Workflow(
            Recipe(OUTCOME),
            decision_tree(cost_complexity=tune(), tree_depth=tune()).set_engine(random_state=forest.seed),
        )
        tree_grid = grid_regular(
            get_parameter("cost_complexity"), get_parameter("tree_depth"), levels=cfg.tree_levels
        )
        cell_folds = vfold_cv(train, v=cfg.folds, seed=cfg.tune_seed)
        tree_res = tune_grid(tree_workflow, cell_folds, tree_grid, metrics=METRICS)
        best_tree = tree_res.select(cfg.tree_selection, by=["tree_depth", "cost_complexity"])

        tree_section = result.section(
            "Decision tree tuning",
            f"{len(tree_grid)} candidates ({cfg.tree_levels} levels each of cost complexity "
            f"and tree depth) evaluated with {cfg.folds}-fold cross-validation.",
        )
        result.add_table(
            tree_section, "tree_top_models", "Best candidates", tree_res.show_best(cfg.tree_selection.metric)
        )
        tree_section.figures["Tuning results"] = sink.add(
            "tree_tuning",
            plot_tuning_panel(
                tree_res.collect_metrics(), "cost_complexity", "tree_depth", title="Decision tree tuning"
            ),
        )
        result.params.update(
            {"tree_cost_complexity": best_tree["cost_complexity"], "tree_depth": best_tree["tree_depth"]}
        )

        # Last fit
        final = last_fit(finalize_workflow(tree_workflow, best_tree), split, event_level=event, metrics=METRICS)
        preds = final.collect_predictions()
        importance = final.fitted.variable_importance(top_n=cfg.importance_top_n)

        final_section = result.section(
            "Final tree",
            "The selected tree refitted on the training set and scored once on the test set.",
        )
        result.add_table(final_section, "test_metrics", "Test set metrics", final.collect_metrics())
        result.add_table(final_section, "variable_importance", "Variable importance", importance)
        final_section.figures["Test ROC curve"] = sink.add(
            "test_roc",
            plot_roc_curves(
                {"decision tree": roc_curve(preds[OUTCOME], preds[f".pred_{event}"], event)},
                title="Cell segmentation: test set ROC curve",
            ),
        )
        final_section.figures["Variable importance"] = sink.add(
            "variable_importance", plot_variable_importance(importance, title="Decision tree variable importance")
        )
        final_section.figures["Fitted tree"] = sink.add(
            "tree",
            plot_decision_tree(
                final.fitted.extract_fit_engine(), final.fitted.feature_names, title="Final decision tree"
            ),
        )
        result.metrics["tree_test_accuracy"] = final.metric("accuracy")
        result.metrics["tree_test_roc_auc"] = final.metric("roc_auc")
        result.models["final_tree"] = final.fitted

        log.info("Cells study finished", **{k: f"{v:.4f}" for k, v in result.metrics.items()})
        return finish_study(result, config, sink, write_outputs=write_outputs, console=console)
