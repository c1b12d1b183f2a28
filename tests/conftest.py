"""Pytest configuration and shared fixtures.

All datasets are small synthetic tables shaped like the tutorial data.
Remote URLs point at local files, so no test touches the network.
"""

from pathlib import Path
from typing import Any

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
import yaml

from casebook.config.loader import build_config
from casebook.config.settings import PipelineConfig


def make_hotels(n: int = 240, seed: int = 0) -> pd.DataFrame:
    """Hotel bookings in the layout of the published CSV."""
    rng = np.random.default_rng(seed)
    lead_time = rng.integers(0, 300, n)
    adr = rng.normal(100, 30, n).round(2)
    logit = -1.0 + 0.03 * (adr - 100) - 0.005 * (lead_time - 150)
    children = np.where(rng.random(n) < 1 / (1 + np.exp(-logit)), "children", "none")
    arrival = pd.Timestamp("2016-01-01") + pd.to_timedelta(rng.integers(0, 600, n), unit="D")

    return pd.DataFrame(
        {
            "hotel": rng.choice(["City_Hotel", "Resort_Hotel"], n),
            "lead_time": lead_time,
            "stays_in_weekend_nights": rng.integers(0, 3, n),
            "stays_in_week_nights": rng.integers(0, 6, n),
            "adults": rng.integers(1, 4, n),
            "children": children,
            "meal": rng.choice(["BB", "HB", "SC"], n),
            "country": rng.choice(["PRT", "GBR", "FRA", "ESP"], n),
            "market_segment": rng.choice(["Online_TA", "Direct", "Groups"], n),
            "distribution_channel": rng.choice(["TA/TO", "Direct"], n),
            "is_repeated_guest": rng.integers(0, 2, n),
            "previous_cancellations": np.zeros(n, dtype=int),
            "previous_bookings_not_canceled": rng.integers(0, 2, n),
            "reserved_room_type": rng.choice(["A", "D", "E"], n),
            "assigned_room_type": rng.choice(["A", "D", "E"], n),
            "booking_changes": rng.integers(0, 3, n),
            "deposit_type": rng.choice(["No_Deposit", "Non_Refund"], n),
            "days_in_waiting_list": np.zeros(n, dtype=int),
            "customer_type": rng.choice(["Transient", "Contract"], n),
            "average_daily_rate": adr,
            "required_car_parking_spaces": rng.choice(["none", "parking"], n, p=[0.9, 0.1]),
            "total_of_special_requests": rng.integers(0, 4, n),
            "arrival_date": arrival.strftime("%Y-%m-%d"),
        }
    )


def make_urchins(n_per_group: int = 24, seed: int = 1) -> pd.DataFrame:
    """Urchin measurements with the terse column names of the published CSV."""
    rng = np.random.default_rng(seed)
    frames = []
    for slope, regime in enumerate(["Initial", "Low", "High"], start=1):
        volume = rng.uniform(5, 45, n_per_group).round(1)
        width = 0.05 + 0.001 * slope * volume + rng.normal(0, 0.01, n_per_group)
        frames.append(
            pd.DataFrame({"TREAT": regime, "IV": volume, "SUTW": np.clip(width, 0, None).round(4)})
        )
    return pd.concat(frames, ignore_index=True)


def make_flights(n: int = 400, seed: int = 2) -> tuple[pd.DataFrame, pd.DataFrame]:
    """Flights and hourly weather exports; a few flights have no weather."""
    rng = np.random.default_rng(seed)
    time_hour = pd.Timestamp("2013-01-01 05:00") + pd.to_timedelta(
        rng.integers(0, 365 * 24, n), unit="h"
    )
    dep_time = np.asarray(time_hour.hour) * 100 + rng.integers(0, 60, n)
    arr_delay = (dep_time - 1200) / 25 + rng.normal(0, 25, n)
    arr_delay[:10] = np.nan
    air_time = rng.uniform(40, 300, n).round()

    flights = pd.DataFrame(
        {
            "year": 2013,
            "dep_time": dep_time.astype(float),
            "arr_delay": np.round(arr_delay),
            "carrier": rng.choice(["UA", "AA", "B6", "DL"], n),
            "flight": rng.integers(1, 2000, n),
            "origin": rng.choice(["EWR", "JFK", "LGA"], n),
            "dest": rng.choice(["IAH", "MIA", "ATL", "ORD", "BOS"], n),
            "air_time": air_time,
            "distance": air_time * 7.5,
            "time_hour": time_hour.strftime("%Y-%m-%d %H:%M:%S"),
        }
    )
    weather = (
        flights[["origin", "time_hour"]]
        .drop_duplicates()
        .iloc[:-5]
        .assign(temp=lambda df: rng.normal(55, 15, len(df)).round(1))
        .reset_index(drop=True)
    )
    return flights, weather


def make_cells(n: int = 200, n_predictors: int = 6, seed: int = 3) -> pd.DataFrame:
    """Cell image features; the first two predictors separate the classes."""
    rng = np.random.default_rng(seed)
    ps = rng.random(n) < 0.6
    data: dict[str, Any] = {
        "case": rng.choice(["Train", "Test"], n),
        "class": np.where(ps, "PS", "WS"),
    }
    for i in range(n_predictors):
        shift = 1.5 if i < 2 else 0.0
        data[f"feature_{i + 1}"] = rng.normal(0, 1, n) + shift * ps
    return pd.DataFrame(data)


def config_dict(root: Path) -> dict[str, Any]:
    """Small, fast configuration rooted in a temporary directory."""
    return {
        "project": "test",
        "data": {
            "root": str(root / "data"),
            "hotels_url": str(root / "remote" / "hotels.csv"),
            "urchins_url": str(root / "remote" / "urchins.csv"),
        },
        "output": {"root": str(root / "output")},
        "hotels": {
            "penalty_grid": {"start": -4, "stop": -1, "num": 4},
            "forest": {"trees": 25, "grid_size": 3, "n_jobs": 1, "seed": 345},
            "importance_top_n": 5,
        },
        "urchins": {"posterior_draws": 500},
        "flights": {"holidays": ["USNewYearsDay", "USIndependenceDay", "USThanksgivingDay"]},
        "cells": {"folds": 3, "tree_levels": 2, "forest": {"trees": 25, "n_jobs": 1}},
        "logging": {"level": "WARNING"},
    }


@pytest.fixture
def config(tmp_path: Path) -> PipelineConfig:
    """Pipeline configuration with all paths under ``tmp_path``."""
    return build_config(config_dict(tmp_path))


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """The same configuration written as YAML, for the CLI."""
    path = tmp_path / "configs" / "test.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(yaml.safe_dump(config_dict(tmp_path)), encoding="utf-8")
    return path


@pytest.fixture
def hotels_raw() -> pd.DataFrame:
    return make_hotels()


@pytest.fixture
def urchins_raw() -> pd.DataFrame:
    return make_urchins()


@pytest.fixture
def cells_raw() -> pd.DataFrame:
    return make_cells()


@pytest.fixture
def hotels_csv(config: PipelineConfig, hotels_raw: pd.DataFrame) -> Path:
    """Hotel bookings written where the configured URL points."""
    path = Path(config.data.hotels_url)
    path.parent.mkdir(parents=True, exist_ok=True)
    hotels_raw.to_csv(path, index=False)
    return path


@pytest.fixture
def urchins_csv(config: PipelineConfig, urchins_raw: pd.DataFrame) -> Path:
    path = Path(config.data.urchins_url)
    path.parent.mkdir(parents=True, exist_ok=True)
    urchins_raw.to_csv(path, index=False)
    return path


@pytest.fixture
def flights_files(config: PipelineConfig) -> tuple[Path, Path]:
    """Flights and weather exports under the data root."""
    flights, weather = make_flights()
    flights_path = config.data.resolve("flights")
    weather_path = config.data.resolve("weather")
    flights_path.parent.mkdir(parents=True, exist_ok=True)
    flights.to_csv(flights_path, index=False)
    weather.to_csv(weather_path, index=False)
    return flights_path, weather_path


@pytest.fixture
def cells_csv(config: PipelineConfig, cells_raw: pd.DataFrame) -> Path:
    path = config.data.resolve("cells")
    path.parent.mkdir(parents=True, exist_ok=True)
    cells_raw.to_csv(path, index=False)
    return path


@pytest.fixture
def cells_data(cells_raw: pd.DataFrame) -> pd.DataFrame:
    """Cells as the loader returns them: no ``case``, categorical class."""
    data = cells_raw.drop(columns=["case"])
    data["class"] = pd.Categorical(data["class"], categories=["PS", "WS"])
    return data


@pytest.fixture
def flights_raw() -> tuple[pd.DataFrame, pd.DataFrame]:
    return make_flights()


@pytest.fixture
def urchins_data(urchins_raw: pd.DataFrame) -> pd.DataFrame:
    """Urchins as the loader returns them."""
    data = urchins_raw.set_axis(["food_regime", "initial_volume", "width"], axis=1)
    data["food_regime"] = pd.Categorical(data["food_regime"], categories=["Initial", "Low", "High"])
    return data
