"""Tests for configuration system."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from casebook.config import (
    HotelsConfig,
    PipelineConfig,
    SelectionConfig,
    SelectionMethod,
    SplitConfig,
    build_config,
    load_config,
)
from casebook.config.settings import LogGridConfig, LoggingConfig

PROJECT_ROOT = Path(__file__).parent.parent


class TestSplitConfig:
    """Tests for SplitConfig."""

    def test_defaults(self) -> None:
        split = SplitConfig()
        assert split.prop == 0.75
        assert split.strata is None

    @pytest.mark.parametrize("prop", [0.0, 1.0, -0.2, 1.5])
    def test_prop_outside_unit_interval(self, prop: float) -> None:
        with pytest.raises(ValidationError):
            SplitConfig(prop=prop)

    def test_frozen(self) -> None:
        split = SplitConfig()
        with pytest.raises(ValidationError):
            split.prop = 0.5  # type: ignore[misc]


class TestSelectionConfig:
    """Tests for candidate selection settings."""

    def test_rank_requires_rank(self) -> None:
        with pytest.raises(ValidationError, match="requires 'rank'"):
            SelectionConfig(method="rank")

    def test_rank_with_rank(self) -> None:
        selection = SelectionConfig(method="rank", rank=12)
        assert selection.method == SelectionMethod.RANK

    def test_unknown_method(self) -> None:
        with pytest.raises(ValidationError):
            SelectionConfig(method="median")


class TestLogGridConfig:
    """Tests for the log-spaced penalty grid."""

    def test_default_penalty_grid(self) -> None:
        values = LogGridConfig().values()
        assert len(values) == 30
        assert values[0] == pytest.approx(1e-4)
        assert values[-1] == pytest.approx(1e-1)
        assert values == sorted(values)

    def test_single_value(self) -> None:
        assert LogGridConfig(start=-2, stop=0, num=1).values() == [pytest.approx(0.01)]


class TestStudyDefaults:
    """Default settings reproduce the tutorials."""

    def test_hotels(self) -> None:
        hotels = HotelsConfig()
        assert (hotels.split.prop, hotels.split.seed, hotels.split.strata) == (0.75, 123, "children")
        assert (hotels.validation.prop, hotels.validation.seed) == (0.80, 234)
        assert hotels.forest.trees == 1000
        assert hotels.forest.grid_size == 25
        assert "Easter" in hotels.holidays
        assert hotels.penalty_selection.method == SelectionMethod.PCT_LOSS

    def test_pipeline_paths(self) -> None:
        config = PipelineConfig(project="demo")
        assert config.project_dir == Path("./output/demo")
        assert config.plots_dir.name == "plots"
        assert config.reports_dir.name == "reports"
        assert config.models_dir.name == "models"
        assert config.cache_dir.name == "cache"
        assert config.experiment_name == "demo"

    def test_summary_has_seeds(self) -> None:
        summary = PipelineConfig(project="demo").summary()
        assert summary["hotels_split_seed"] == 123
        assert summary["flights_split_seed"] == 222
        assert summary["cells_folds"] == 10


class TestLoggingConfig:
    def test_level_normalized(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_unknown_level(self) -> None:
        with pytest.raises(ValidationError, match="Unknown log level"):
            LoggingConfig(level="LOUD")


class TestBuildConfig:
    """Tests for building config from a mapping."""

    def test_missing_project(self) -> None:
        with pytest.raises(ValueError, match="project"):
            build_config({"hotels": {}})

    def test_unknown_section(self) -> None:
        with pytest.raises(ValueError, match="Unknown config sections: region"):
            build_config({"project": "x", "region": {}})

    def test_output_root_short_key(self) -> None:
        config = build_config({"project": "x", "output": {"root": "/tmp/out"}})
        assert config.project_dir == Path("/tmp/out/x")

    def test_nested_override(self) -> None:
        config = build_config({"project": "x", "cells": {"folds": 5}})
        assert config.cells.folds == 5
        assert config.cells.split.strata == "class"


class TestLoadConfig:
    """Tests for YAML loading."""

    def test_load_shipped_config(self) -> None:
        """The shipped config reproduces the tutorial settings."""
        config = load_config(PROJECT_ROOT / "configs" / "get-started.yaml")
        assert config.project == "get-started"
        assert config.flights.split.seed == 222
        assert config.cells.tree_levels == 5
        assert config.urchins.posterior_draws == 4000
        assert config.data.hotels_url.endswith("hotels.csv")

    def test_base_inheritance(self, tmp_path: Path) -> None:
        (tmp_path / "base.yaml").write_text(
            yaml.safe_dump({"cells": {"folds": 4, "tune_seed": 1}, "logging": {"level": "ERROR"}})
        )
        main = tmp_path / "study.yaml"
        main.write_text(yaml.safe_dump({"project": "inherit", "cells": {"folds": 6}}))

        config = load_config(main)
        assert config.cells.folds == 6
        assert config.cells.tune_seed == 1
        assert config.logging.level == "ERROR"

    def test_env_interpolation(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CASEBOOK_TEST_ROOT", str(tmp_path / "elsewhere"))
        main = tmp_path / "env.yaml"
        main.write_text(
            "project: env\n"
            "data:\n"
            "  root: ${CASEBOOK_TEST_ROOT}\n"
            "mlflow:\n"
            "  tracking_uri: ${CASEBOOK_UNSET_VAR:file:./mlruns}\n"
        )
        config = load_config(main)
        assert config.data.root == tmp_path / "elsewhere"
        assert config.mlflow.tracking_uri == "file:./mlruns"

    def test_invalid_value(self, tmp_path: Path) -> None:
        main = tmp_path / "bad.yaml"
        main.write_text(yaml.safe_dump({"project": "bad", "hotels": {"split": {"prop": 2}}}))
        with pytest.raises(ValidationError):
            load_config(main)

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        main = tmp_path / "broken.yaml"
        main.write_text("project: [unclosed\n")
        with pytest.raises(ValueError, match="Cannot parse"):
            load_config(main)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        main = tmp_path / "list.yaml"
        main.write_text("- project\n- other\n")
        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(main)
