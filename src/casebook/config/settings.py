"""
Typed configuration models using Pydantic.

All configuration is defined here with explicit typing and validation.
Seeds, split proportions and grids live in config, not in study code.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

HOTELS_URL = "https://tidymodels.org/start/case-study/hotels.csv"
URCHINS_URL = "https://tidymodels.org/start/models/urchins.csv"

CHRISTIAN_HOLIDAYS = [
    "AllSouls",
    "AshWednesday",
    "ChristmasEve",
    "Easter",
    "ChristmasDay",
    "GoodFriday",
    "NewYearsDay",
    "PalmSunday",
]

US_HOLIDAYS = [
    "USChristmasDay",
    "USColumbusDay",
    "USElectionDay",
    "USGoodFriday",
    "USIndependenceDay",
    "USJuneteenthNationalIndependenceDay",
    "USLaborDay",
    "USLincolnsBirthday",
    "USMemorialDay",
    "USMLKingsBirthday",
    "USNewYearsDay",
    "USPresidentsDay",
    "USThanksgivingDay",
    "USVeteransDay",
    "USWashingtonsBirthday",
]


class SelectionMethod(str, Enum):
    """Rule for picking one candidate out of tuning results."""

    BEST = "best"
    PCT_LOSS = "pct_loss"  # simplest candidate within `limit` percent of best
    ONE_STD_ERR = "one_std_err"  # simplest candidate within one SE of best
    RANK = "rank"  # explicit position in the sorted-by-parameter table


class SplitConfig(BaseModel):
    """Random split configuration."""

    model_config = ConfigDict(frozen=True)

    prop: float = Field(default=0.75, gt=0.0, lt=1.0, description="Share kept for training")
    seed: int = Field(default=123, description="Random seed for the split")
    strata: str | None = Field(default=None, description="Column to stratify on")


class SelectionConfig(BaseModel):
    """How a single candidate is chosen from tuning results."""

    model_config = ConfigDict(frozen=True)

    method: SelectionMethod = Field(default=SelectionMethod.BEST)
    metric: str = Field(default="roc_auc")
    limit: float = Field(default=2.0, gt=0.0, description="Percent loss for pct_loss")
    rank: int | None = Field(
        default=None, ge=1, description="1-based row used by the 'rank' method"
    )

    @model_validator(mode="after")
    def validate_rank(self) -> "SelectionConfig":
        """Ensure 'rank' selection carries a rank."""
        if self.method == SelectionMethod.RANK and self.rank is None:
            msg = "selection method 'rank' requires 'rank'"
            raise ValueError(msg)
        return self


class LogGridConfig(BaseModel):
    """Evenly spaced grid on the log10 scale: 10^linspace(start, stop, num)."""

    model_config = ConfigDict(frozen=True)

    start: float = Field(default=-4.0)
    stop: float = Field(default=-1.0)
    num: int = Field(default=30, ge=1)

    def values(self) -> list[float]:
        """Grid values on the natural scale."""
        if self.num == 1:
            return [10.0**self.start]
        step = (self.stop - self.start) / (self.num - 1)
        return [10.0 ** (self.start + i * step) for i in range(self.num)]


class RandomForestConfig(BaseModel):
    """Random forest settings shared by the classification studies."""

    model_config = ConfigDict(frozen=True)

    trees: int = Field(default=1000, ge=1)
    n_jobs: int = Field(default=-1, description="Threads passed to the forest engine")
    grid_size: int = Field(default=25, ge=1, description="Space-filling grid size")
    seed: int = Field(default=345)
    min_n_range: tuple[int, int] = Field(default=(2, 40))


class DataConfig(BaseModel):
    """Dataset locations.

    Remote datasets are fetched over HTTP and cached; local datasets are
    resolved against ``root``.
    """

    model_config = ConfigDict(frozen=True)

    root: Path = Field(default=Path("./data"), description="Root for local datasets")
    hotels_url: str = Field(default=HOTELS_URL)
    urchins_url: str = Field(default=URCHINS_URL)
    flights: Path = Field(default=Path("nycflights13/flights.csv"))
    weather: Path = Field(default=Path("nycflights13/weather.csv"))
    cells: Path = Field(default=Path("modeldata/cells.csv"))

    def resolve(self, path_attr: str) -> Path:
        """Resolve a local dataset path against root."""
        rel_path = getattr(self, path_attr)
        if not isinstance(rel_path, Path):
            msg = f"'{path_attr}' is not a local dataset path"
            raise ValueError(msg)
        return self.root / rel_path


class HotelsConfig(BaseModel):
    """Hotel stays case study: predicting bookings with children."""

    model_config = ConfigDict(frozen=True)

    outcome: str = Field(default="children")
    event_level: str = Field(default="children", description="Positive class")
    split: SplitConfig = Field(
        default_factory=lambda: SplitConfig(prop=0.75, seed=123, strata="children")
    )
    validation: SplitConfig = Field(
        default_factory=lambda: SplitConfig(prop=0.80, seed=234, strata="children")
    )
    holidays: list[str] = Field(default_factory=lambda: list(CHRISTIAN_HOLIDAYS))
    penalty_grid: LogGridConfig = Field(default_factory=LogGridConfig)
    mixture: float = Field(default=1.0, ge=0.0, le=1.0, description="1 = lasso")
    penalty_selection: SelectionConfig = Field(
        default_factory=lambda: SelectionConfig(
            method=SelectionMethod.PCT_LOSS, metric="roc_auc", limit=1.0
        )
    )
    forest: RandomForestConfig = Field(default_factory=RandomForestConfig)
    importance_top_n: int = Field(default=20, ge=1)


class UrchinsConfig(BaseModel):
    """Sea urchin growth study: ordinary and Bayesian linear regression."""

    model_config = ConfigDict(frozen=True)

    levels: list[str] = Field(default_factory=lambda: ["Initial", "Low", "High"])
    new_volume: float = Field(default=20.0, gt=0.0)
    posterior_draws: int = Field(default=4000, ge=100, description="Posterior draws")
    seed: int = Field(default=123)
    conf_level: float = Field(default=0.95, gt=0.0, lt=1.0)


class FlightsConfig(BaseModel):
    """Flight delay study: logistic regression on a preprocessing recipe."""

    model_config = ConfigDict(frozen=True)

    late_threshold: int = Field(default=30, description="Minutes of arrival delay")
    event_level: str = Field(default="late")
    split: SplitConfig = Field(default_factory=lambda: SplitConfig(prop=0.75, seed=222))
    holidays: list[str] = Field(default_factory=lambda: list(US_HOLIDAYS))
    id_columns: list[str] = Field(default_factory=lambda: ["flight", "time_hour"])
    sample_size: int | None = Field(
        default=None, ge=1, description="Optional row subsample for quick runs"
    )


class CellsConfig(BaseModel):
    """Cell image segmentation study: resampling and tree tuning."""

    model_config = ConfigDict(frozen=True)

    event_level: str = Field(default="PS")
    split: SplitConfig = Field(
        default_factory=lambda: SplitConfig(prop=0.75, seed=123, strata="class")
    )
    folds: int = Field(default=10, ge=2)
    resample_seed: int = Field(default=345)
    tune_seed: int = Field(default=234)
    forest: RandomForestConfig = Field(default_factory=RandomForestConfig)
    tree_levels: int = Field(default=5, ge=2)
    tree_selection: SelectionConfig = Field(
        default_factory=lambda: SelectionConfig(metric="accuracy")
    )
    importance_top_n: int = Field(default=20, ge=1)


class MLflowConfig(BaseModel):
    """MLflow experiment tracking configuration."""

    model_config = ConfigDict(frozen=True)

    tracking_uri: str = Field(default="http://127.0.0.1:5000")
    experiment_name: str | None = Field(
        default=None, description="MLflow experiment name (defaults to project name)"
    )


class OutputConfig(BaseModel):
    """Output paths configuration.

    Structure: ./output/{project}/plots, ./output/{project}/reports, etc.
    """

    model_config = ConfigDict(frozen=True)

    output_root: Path = Field(default=Path("./output"))


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unknown log level: {v!r}"
            raise ValueError(msg)
        return level


class PipelineConfig(BaseModel):
    """Complete configuration.

    The project name drives:
    - MLflow experiment name (if not explicitly set)
    - Output directory structure: ./output/{project}/
    """

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g., 'get-started')")

    data: DataConfig = Field(default_factory=DataConfig)
    hotels: HotelsConfig = Field(default_factory=HotelsConfig)
    urchins: UrchinsConfig = Field(default_factory=UrchinsConfig)
    flights: FlightsConfig = Field(default_factory=FlightsConfig)
    cells: CellsConfig = Field(default_factory=CellsConfig)
    mlflow: MLflowConfig = Field(default_factory=MLflowConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def experiment_name(self) -> str:
        """MLflow experiment name (derived from project if not set)."""
        return self.mlflow.experiment_name or self.project

    @property
    def project_dir(self) -> Path:
        """Root of all outputs for this project."""
        return self.output.output_root / self.project

    @property
    def plots_dir(self) -> Path:
        """Path to plots output directory."""
        return self.project_dir / "plots"

    @property
    def reports_dir(self) -> Path:
        """Path to HTML reports directory."""
        return self.project_dir / "reports"

    @property
    def models_dir(self) -> Path:
        """Path to saved workflows directory."""
        return self.project_dir / "models"

    @property
    def cache_dir(self) -> Path:
        """Path to download cache directory."""
        return self.project_dir / "cache"

    def summary(self) -> dict[str, Any]:
        """Flat key/value view used for experiment parameters."""
        return {
            "project": self.project,
            "hotels_split_seed": self.hotels.split.seed,
            "hotels_validation_seed": self.hotels.validation.seed,
            "flights_split_seed": self.flights.split.seed,
            "cells_split_seed": self.cells.split.seed,
            "cells_folds": self.cells.folds,
        }
