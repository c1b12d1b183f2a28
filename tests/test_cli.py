"""Tests for the command-line interface."""

from pathlib import Path

import pandas as pd
import pytest
import yaml
from typer.testing import CliRunner

from casebook.cli import app
from casebook.config.settings import PipelineConfig
from casebook.features.recipe import Recipe
from casebook.modeling.models import decision_tree
from casebook.modeling.persistence import save_workflow
from casebook.modeling.workflow import Workflow

runner = CliRunner()


@pytest.fixture(autouse=True)
def default_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep structlog on its defaults so loggers never hold a closed runner stream."""
    monkeypatch.setattr("casebook.utils.logging.configure_logging", lambda **kwargs: None)


def test_version() -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "casebook version" in result.output


def test_missing_config_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["validate", "--config", str(tmp_path / "nope.yaml")])
    assert result.exit_code == 2


def test_invalid_config(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"project": "bad", "logging": {"level": "LOUD"}}), encoding="utf-8")
    result = runner.invoke(app, ["validate", "-c", str(path)])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_fetch(config_file: Path, config: PipelineConfig, hotels_csv: Path, urchins_csv: Path) -> None:
    result = runner.invoke(app, ["fetch", "-c", str(config_file)])
    assert result.exit_code == 0, result.output
    assert len(list(config.cache_dir.glob("*.csv"))) == 2


def test_fetch_failure(config_file: Path) -> None:
    result = runner.invoke(app, ["fetch", "-c", str(config_file)])
    assert result.exit_code == 1
    assert "Download of hotels failed" in result.output


class TestValidateCommand:
    def test_missing_files_do_not_fail(self, config_file: Path) -> None:
        result = runner.invoke(app, ["validate", "-c", str(config_file)])
        assert result.exit_code == 0, result.output
        assert "Missing: 6" in result.output

    def test_invalid_data_fails(
        self, config_file: Path, config: PipelineConfig, cells_raw: pd.DataFrame
    ) -> None:
        cells_raw.loc[0, "class"] = "XX"
        path = config.data.resolve("cells")
        path.parent.mkdir(parents=True, exist_ok=True)
        cells_raw.to_csv(path, index=False)

        result = runner.invoke(app, ["validate", "-c", str(config_file)])
        assert result.exit_code == 1
        assert "Failed: 1" in result.output

    def test_fetch_flag(self, config_file: Path, hotels_csv: Path, urchins_csv: Path) -> None:
        result = runner.invoke(app, ["validate", "-c", str(config_file), "--fetch"])
        assert result.exit_code == 0, result.output
        assert "Passed: 2" in result.output


def test_flights_study(config_file: Path, config: PipelineConfig, flights_files: tuple[Path, Path]) -> None:
    result = runner.invoke(app, ["flights", "-c", str(config_file), "--no-mlflow"])
    assert result.exit_code == 0, result.output
    assert (config.reports_dir / "flights.html").exists()
    assert (config.models_dir / "flights_logistic_reg.joblib").exists()


def test_study_without_data(config_file: Path) -> None:
    result = runner.invoke(app, ["cells", "-c", str(config_file), "--no-mlflow"])
    assert result.exit_code == 1
    assert "Error" in result.output


class TestPredictCommand:
    @pytest.fixture
    def model_path(self, tmp_path: Path, cells_data: pd.DataFrame) -> Path:
        workflow = Workflow(Recipe("class"), decision_tree(tree_depth=3).set_engine(random_state=1))
        model_path, _ = save_workflow(workflow.fit(cells_data), tmp_path / "models" / "tree")
        return model_path

    def test_scores_csv(self, tmp_path: Path, model_path: Path, cells_data: pd.DataFrame) -> None:
        input_path = tmp_path / "cells.csv"
        cells_data.to_csv(input_path, index=False)
        output_path = tmp_path / "out" / "scored.csv"

        result = runner.invoke(
            app, ["predict", "-m", str(model_path), "-i", str(input_path), "-o", str(output_path)]
        )
        assert result.exit_code == 0, result.output
        assert "Rows scored" in result.output

        scored = pd.read_csv(output_path)
        assert len(scored) == len(cells_data)
        assert {".pred_PS", ".pred_WS", ".pred_class"} <= set(scored.columns)

    def test_missing_model(self, tmp_path: Path, cells_data: pd.DataFrame) -> None:
        input_path = tmp_path / "cells.csv"
        cells_data.to_csv(input_path, index=False)
        result = runner.invoke(
            app,
            ["predict", "-m", str(tmp_path / "none.joblib"), "-i", str(input_path), "-o", str(tmp_path / "o.csv")],
        )
        assert result.exit_code == 1
        assert "Model not found" in result.output

    def test_wrong_columns(self, tmp_path: Path, model_path: Path) -> None:
        input_path = tmp_path / "other.csv"
        pd.DataFrame({"x": [1, 2]}).to_csv(input_path, index=False)
        result = runner.invoke(
            app, ["predict", "-m", str(model_path), "-i", str(input_path), "-o", str(tmp_path / "o.csv")]
        )
        assert result.exit_code == 1
        assert "Prediction failed" in result.output
