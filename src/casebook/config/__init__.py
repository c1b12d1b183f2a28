"""
Configuration management with typed Pydantic models.

Provides per-study settings (seeds, splits, grids) and
environment-aware configuration loading.
"""

from casebook.config.loader import build_config, load_config
from casebook.config.settings import (
    CellsConfig,
    DataConfig,
    FlightsConfig,
    HotelsConfig,
    LoggingConfig,
    MLflowConfig,
    OutputConfig,
    PipelineConfig,
    SelectionConfig,
    SelectionMethod,
    SplitConfig,
    UrchinsConfig,
)

__all__ = [
    "CellsConfig",
    "DataConfig",
    "FlightsConfig",
    "HotelsConfig",
    "LoggingConfig",
    "MLflowConfig",
    "OutputConfig",
    "PipelineConfig",
    "SelectionConfig",
    "SelectionMethod",
    "SplitConfig",
    "UrchinsConfig",
    "build_config",
    "load_config",
]
