"""
Core validation logic for study datasets.

Validates each configured dataset against its registered Pandera schema.
Remote datasets are checked from their cached copy; they are only
downloaded when the runner is created with ``fetch=True``.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pandas as pd
import pandera.errors

from casebook.config.settings import PipelineConfig
from casebook.ingestion.base import DataLoader
from casebook.ingestion.cells import CellLoader
from casebook.ingestion.flights import FlightDelayLoader
from casebook.ingestion.hotels import HotelStayLoader
from casebook.ingestion.urchins import UrchinLoader
from casebook.schemas.registry import SchemaRegistry
from casebook.utils.cache import DatasetCache
from casebook.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class ValidationResult:
    """Result of validating a single dataset."""

    dataset_name: str
    schema_name: str | None
    file_path: Path
    exists: bool
    schema_valid: bool | None
    row_count: int | None
    error_message: str | None

    @property
    def status(self) -> str:
        """One of ``pass``, ``fail`` or ``missing``."""
        if self.schema_valid is None:
            return "missing"
        return "pass" if self.schema_valid else "fail"


@dataclass(frozen=True)
class DatasetSource:
    """How to locate and read one dataset for validation."""

    schema_name: str
    path: Callable[[PipelineConfig], Path]
    read: Callable[[PipelineConfig], pd.DataFrame]
    remote: bool = False


def _raw(loader_cls: type[DataLoader]) -> Callable[[PipelineConfig], pd.DataFrame]:
    return lambda config: loader_cls(config)._load_raw()


def _local_csv(attr: str) -> Callable[[PipelineConfig], pd.DataFrame]:
    return lambda config: pd.read_csv(config.data.resolve(attr))


def _cache_path(url_attr: str) -> Callable[[PipelineConfig], Path]:
    return lambda config: DatasetCache(config.cache_dir).get_cache_path(getattr(config.data, url_attr))


# Dataset name -> source. Order is display order.
DATASETS: dict[str, DatasetSource] = {
    "hotels": DatasetSource("hotel_stay", _cache_path("hotels_url"), _raw(HotelStayLoader), remote=True),
    "urchins": DatasetSource("urchin", _cache_path("urchins_url"), _raw(UrchinLoader), remote=True),
    "flights": DatasetSource("flight_raw", lambda c: c.data.resolve("flights"), _local_csv("flights")),
    "weather": DatasetSource("weather_raw", lambda c: c.data.resolve("weather"), _local_csv("weather")),
    "flight_delay": DatasetSource(
        "flight_delay", lambda c: c.data.resolve("flights"), _raw(FlightDelayLoader)
    ),
    "cells": DatasetSource("cell", lambda c: c.data.resolve("cells"), _raw(CellLoader)),
}


class ValidationRunner:
    """
    Runs validation for all configured datasets.

    Validates data files against their registered schemas and reports results.
    """

    def __init__(self, config: PipelineConfig, *, fetch: bool = False) -> None:
        """
        Initialize validation runner.

        Args:
            config: Pipeline configuration containing data locations.
            fetch: Download remote datasets that are not cached yet.
        """
        self.config = config
        self.fetch = fetch

    def run(self, datasets: list[str] | None = None) -> list[ValidationResult]:
        """
        Run validation.

        Args:
            datasets: Dataset names to check (default: all).

        Returns:
            List of validation results, one per dataset.

        Raises:
            KeyError: If a dataset name is unknown.
        """
        names = datasets or list(DATASETS)
        for name in names:
            if name not in DATASETS:
                available = ", ".join(DATASETS)
                msg = f"Unknown dataset '{name}'. Available: {available}"
                raise KeyError(msg)
        return [self._validate_dataset(name, DATASETS[name]) for name in names]

    def _validate_dataset(self, name: str, source: DatasetSource) -> ValidationResult:
        """Validate a single dataset."""
        file_path = source.path(self.config)

        if not file_path.exists() and not (source.remote and self.fetch):
            log.warning("Data file not found", dataset=name, path=str(file_path))
            return ValidationResult(
                dataset_name=name,
                schema_name=source.schema_name,
                file_path=file_path,
                exists=False,
                schema_valid=None,
                row_count=None,
                error_message="Not cached (run 'casebook fetch')" if source.remote else "File not found",
            )

        df: pd.DataFrame | None = None
        try:
            df = source.read(self.config)
            SchemaRegistry.validate(df, source.schema_name)

            log.info("Validation passed", dataset=name, schema=source.schema_name, rows=len(df))
            return ValidationResult(
                dataset_name=name,
                schema_name=source.schema_name,
                file_path=file_path,
                exists=True,
                schema_valid=True,
                row_count=len(df),
                error_message=None,
            )

        except pandera.errors.SchemaError as e:
            error_msg = self._format_schema_error(e)
            log.error("Schema validation failed", dataset=name, schema=source.schema_name, error=error_msg)
            return ValidationResult(
                dataset_name=name,
                schema_name=source.schema_name,
                file_path=file_path,
                exists=True,
                schema_valid=False,
                row_count=len(df) if df is not None else None,
                error_message=error_msg,
            )

        except (OSError, ValueError, pd.errors.ParserError) as e:
            error_msg = f"{type(e).__name__}: {e!s}"
            log.error("Validation error", dataset=name, error=error_msg)
            return ValidationResult(
                dataset_name=name,
                schema_name=source.schema_name,
                file_path=file_path,
                exists=True,
                schema_valid=False,
                row_count=None,
                error_message=error_msg,
            )

    def _format_schema_error(self, error: pandera.errors.SchemaError) -> str:
        """Format schema error for display (first 5 violations)."""
        failures = getattr(error, "failure_cases", None)
        if isinstance(failures, pd.DataFrame):
            n_failures = len(failures)
            if n_failures > 5:
                return (
                    f"{n_failures} validation errors (showing first 5):\n"
                    f"{failures.head(5).to_string(index=False)}"
                )
            return f"{n_failures} validation error(s):\n{failures.to_string(index=False)}"

        return str(error).split("\n")[0][:200]
