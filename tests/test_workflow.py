"""Tests for workflows and workflow persistence."""

import json
from pathlib import Path

import joblib
import numpy as np
import pandas as pd
import pytest

from casebook.features.recipe import Recipe
from casebook.modeling.models import decision_tree, linear_reg, logistic_reg, rand_forest, tune
from casebook.modeling.persistence import load_workflow, save_workflow
from casebook.modeling.workflow import FittedWorkflow, Workflow, finalize_workflow


@pytest.fixture
def lr_workflow() -> Workflow:
    return Workflow(
        Recipe("class").step_normalize(),
        logistic_reg(penalty=0.01, mixture=1.0).set_engine(random_state=1),
    )


@pytest.fixture
def fitted(lr_workflow: Workflow, cells_data: pd.DataFrame) -> FittedWorkflow:
    return lr_workflow.fit(cells_data)


class TestWorkflow:
    """Tests for fitting and predicting."""

    def test_fit(self, fitted: FittedWorkflow, cells_data: pd.DataFrame) -> None:
        assert fitted.classes == ["PS", "WS"]
        assert fitted.feature_names == [f"feature_{i}" for i in range(1, 7)]
        assert fitted.n_train == len(cells_data)
        assert fitted.fit_time_s >= 0

    def test_predictions_align_to_index(self, fitted: FittedWorkflow, cells_data: pd.DataFrame) -> None:
        new = cells_data.iloc[10:20]
        proba = fitted.predict_proba(new)
        assert list(proba.columns) == [".pred_PS", ".pred_WS"]
        assert proba.index.equals(new.index)
        assert np.allclose(proba.sum(axis=1), 1.0)
        assert set(fitted.predict(new)[".pred_class"]) <= {"PS", "WS"}

    def test_outcome_not_required(self, fitted: FittedWorkflow, cells_data: pd.DataFrame) -> None:
        new = cells_data.drop(columns=["class"]).head(5)
        assert len(fitted.predict(new)) == 5

    def test_augment(self, fitted: FittedWorkflow, cells_data: pd.DataFrame) -> None:
        out = fitted.augment(cells_data)
        assert list(out.columns[-3:]) == [".pred_PS", ".pred_WS", ".pred_class"]
        assert len(out) == len(cells_data)
        assert (out[".pred_class"] == out["class"].astype(str)).mean() > 0.7

    def test_variable_importance(self, fitted: FittedWorkflow) -> None:
        importance = fitted.variable_importance()
        assert list(importance.columns) == ["variable", "importance"]
        assert set(importance["variable"].head(2)) == {"feature_1", "feature_2"}
        assert len(fitted.variable_importance(top_n=3)) == 3

    def test_tree_importance(self, cells_data: pd.DataFrame) -> None:
        tree = Workflow(Recipe("class"), decision_tree(tree_depth=3).set_engine(random_state=1))
        importance = tree.fit(cells_data).variable_importance()
        assert importance["importance"].sum() == pytest.approx(1.0)

    def test_forest_without_steps(self, cells_data: pd.DataFrame) -> None:
        forest = Workflow(Recipe("class"), rand_forest(trees=10).set_engine(random_state=1))
        fitted = forest.fit(cells_data)
        assert fitted.feature_names == [f"feature_{i}" for i in range(1, 7)]
        assert len(fitted.predict(cells_data.head(5))) == 5

    def test_missing_outcome(self, lr_workflow: Workflow, cells_data: pd.DataFrame) -> None:
        with pytest.raises(KeyError, match="Outcome column 'class'"):
            lr_workflow.fit(cells_data.drop(columns=["class"]))

    def test_untuned_fit_fails(self, cells_data: pd.DataFrame) -> None:
        workflow = Workflow(Recipe("class"), logistic_reg(penalty=tune()))
        with pytest.raises(ValueError, match="tuning"):
            workflow.fit(cells_data)

    def test_finalize_ignores_config(self) -> None:
        workflow = Workflow(Recipe("class"), decision_tree(tree_depth=tune()))
        final = finalize_workflow(workflow, {"tree_depth": np.int64(4), ".config": "Preprocessor1_Model01"})
        assert final.model.args == {"tree_depth": 4}
        assert type(final.model.args["tree_depth"]) is int
        assert workflow.model.tunable() == ["tree_depth"]


def test_regression_workflow(urchins_data: pd.DataFrame) -> None:
    workflow = Workflow(Recipe("width").step_dummy(), linear_reg())
    fitted = workflow.fit(urchins_data)
    preds = fitted.predict(urchins_data)
    assert list(preds.columns) == [".pred"]
    assert preds[".pred"].dtype.kind == "f"
    assert ".pred" in fitted.augment(urchins_data).columns
    with pytest.raises(ValueError, match="does not produce probabilities"):
        fitted.predict_proba(urchins_data)


class TestPersistence:
    """Tests for save_workflow / load_workflow."""

    def test_round_trip(self, fitted: FittedWorkflow, cells_data: pd.DataFrame, tmp_path: Path) -> None:
        model_path, meta_path = save_workflow(
            fitted, tmp_path / "models" / "cells_lr", metrics={"roc_auc": 0.9}, extra={"study": "cells"}
        )
        assert model_path.name == "cells_lr.joblib"
        assert meta_path.name == "cells_lr.meta.json"

        loaded, metadata = load_workflow(tmp_path / "models" / "cells_lr")
        pd.testing.assert_frame_equal(loaded.predict_proba(cells_data), fitted.predict_proba(cells_data))
        assert metadata["model_type"] == "logistic_reg"
        assert metadata["classes"] == ["PS", "WS"]
        assert metadata["metrics"] == {"roc_auc": 0.9}
        assert metadata["study"] == "cells"
        assert metadata["n_train"] == len(cells_data)

    def test_metadata_is_json(self, fitted: FittedWorkflow, tmp_path: Path) -> None:
        _, meta_path = save_workflow(fitted, tmp_path / "lr.joblib")
        with open(meta_path, encoding="utf-8") as f:
            metadata = json.load(f)
        assert metadata["outcome"] == "class"
        assert metadata["recipe"][0] == "Outcome: class"
        assert "metrics" not in metadata

    def test_missing_metadata(self, fitted: FittedWorkflow, tmp_path: Path) -> None:
        model_path, meta_path = save_workflow(fitted, tmp_path / "lr")
        meta_path.unlink()
        loaded, metadata = load_workflow(model_path)
        assert isinstance(loaded, FittedWorkflow)
        assert metadata == {}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Workflow file not found"):
            load_workflow(tmp_path / "nope.joblib")

    def test_wrong_object(self, tmp_path: Path) -> None:
        path = tmp_path / "other.joblib"
        joblib.dump({"not": "a workflow"}, path)
        with pytest.raises(TypeError, match="does not contain a fitted workflow"):
            load_workflow(path)
