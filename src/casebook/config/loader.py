"""
YAML configuration loading.

A config file only needs ``project``; every section it leaves out keeps the
defaults that reproduce the published tutorials. String values may use
``${VAR}`` or ``${VAR:default}`` to read the environment, and a
``base.yaml`` next to the file is merged underneath it.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from casebook.config.settings import (
    CellsConfig,
    DataConfig,
    FlightsConfig,
    HotelsConfig,
    LoggingConfig,
    MLflowConfig,
    OutputConfig,
    PipelineConfig,
    UrchinsConfig,
)

ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")

SECTIONS: dict[str, type[BaseModel]] = {
    "data": DataConfig,
    "hotels": HotelsConfig,
    "urchins": UrchinsConfig,
    "flights": FlightsConfig,
    "cells": CellsConfig,
    "mlflow": MLflowConfig,
    "logging": LoggingConfig,
}


def expand_env(value: Any) -> Any:
    """Replace ``${VAR:default}`` references in every string of a YAML tree."""
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if not isinstance(value, str):
        return value
    return ENV_REFERENCE.sub(
        lambda m: os.environ.get(m["name"], m["default"] or ""),
        value,
    )


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; ``override`` wins and lists are replaced whole."""
    merged = dict(base)
    for key, value in override.items():
        below = merged.get(key)
        merged[key] = merge(below, value) if isinstance(below, dict) and isinstance(value, dict) else value
    return merged


def load_yaml(path: Path) -> dict[str, Any]:
    """
    Read one YAML mapping with environment references expanded.

    Raises:
        ValueError: If the file is not valid YAML or not a mapping.
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Cannot parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, got {type(data).__name__}")
    return expand_env(data)


def build_config(data: dict[str, Any]) -> PipelineConfig:
    """
    Validate a merged mapping into a PipelineConfig.

    Raises:
        ValueError: If ``project`` is missing or a section name is unknown.
        pydantic.ValidationError: If a value is out of range.
    """
    if not data.get("project"):
        raise ValueError("Config must specify 'project' name")

    unknown = sorted(set(data) - {"project", "output", *SECTIONS})
    if unknown:
        raise ValueError(f"Unknown config sections: {', '.join(unknown)}")

    output = dict(data.get("output") or {})
    if "root" in output:
        output["output_root"] = output.pop("root")

    return PipelineConfig(
        project=str(data["project"]),
        output=OutputConfig(**output),
        **{name: model(**(data.get(name) or {})) for name, model in SECTIONS.items()},
    )


def load_config(config_path: Path, base_path: Path | None = None) -> PipelineConfig:
    """
    Load a study configuration.

    Args:
        config_path: Main YAML file.
        base_path: Shared defaults merged underneath the main file. When
            omitted, ``base.yaml`` in the same directory is used if present.
    """
    if base_path is None:
        candidate = config_path.parent / "base.yaml"
        base_path = candidate if candidate.exists() and candidate != config_path else None

    data = load_yaml(config_path)
    if base_path is not None:
        data = merge(load_yaml(base_path), data)
    return build_config(data)
