"""
Flight delay ingestion.

Builds the modeling table from exported ``flights`` and ``weather``
tables: arrival delay becomes a late/on_time label, flights are kept only
when weather was recorded for their origin and hour.
"""

import numpy as np
import pandas as pd

from casebook.config.settings import PipelineConfig
from casebook.ingestion.base import DataLoader, strings_to_categories
from casebook.schemas.flights import FlightDelaySchema, FlightRawSchema, WeatherRawSchema
from casebook.utils.logging import get_logger

log = get_logger(__name__)

FLIGHT_COLUMNS = [
    "dep_time",
    "flight",
    "origin",
    "dest",
    "air_time",
    "distance",
    "carrier",
    "date",
    "arr_delay",
    "time_hour",
]

OUTCOME_LEVELS = ["late", "on_time"]

# Flight dates are calendar days at the departure airports.
LOCAL_TIMEZONE = "America/New_York"


def parse_time_hour(values: pd.Series) -> pd.Series:
    """
    Parse hourly timestamps to naive New York local time.

    Exports that write UTC (``2013-01-02T02:00:00Z``) are converted first,
    so an evening departure keeps its local calendar date. Naive values are
    taken as local already.
    """
    parsed = pd.to_datetime(values, format="ISO8601")
    if parsed.dt.tz is not None:
        parsed = parsed.dt.tz_convert(LOCAL_TIMEZONE).dt.tz_localize(None)
    return parsed


def label_arrival_delay(arr_delay: pd.Series, threshold: int) -> pd.Series:
    """
    Map arrival delays in minutes to late/on_time labels.

    A flight is late when it arrived ``threshold`` or more minutes behind
    schedule. Missing delays stay missing.
    """
    labels = np.where(arr_delay >= threshold, "late", "on_time")
    return pd.Series(labels, index=arr_delay.index, dtype=object).where(arr_delay.notna())


def build_flight_table(
    flights: pd.DataFrame,
    weather: pd.DataFrame,
    threshold: int = 30,
) -> pd.DataFrame:
    """
    Join flights with weather and shape the modeling table.

    Args:
        flights: Raw flights table.
        weather: Raw weather table.
        threshold: Minutes of arrival delay counted as late.

    Returns:
        Modeling table with columns ``FLIGHT_COLUMNS``, no missing values.
    """
    flights = flights.copy()
    flights["time_hour"] = parse_time_hour(flights["time_hour"])
    flights["arr_delay"] = label_arrival_delay(flights["arr_delay"], threshold)
    flights["date"] = flights["time_hour"].dt.normalize()

    weather_keys = weather[["origin", "time_hour"]].copy()
    weather_keys["time_hour"] = parse_time_hour(weather_keys["time_hour"])

    joined = flights.merge(weather_keys, on=["origin", "time_hour"], how="inner")
    table = joined[FLIGHT_COLUMNS].dropna().reset_index(drop=True)
    table["dep_time"] = table["dep_time"].astype(int)
    table["flight"] = table["flight"].astype(int)

    log.info(
        "Built flight table",
        flights=len(flights),
        joined=len(joined),
        complete=len(table),
    )
    return table


class FlightDelayLoader(DataLoader):
    """Loader for the joined flight delay table."""

    dataset = "flights"
    schema = FlightDelaySchema

    def _load_raw(self) -> pd.DataFrame:
        """Load both raw tables, validate them and join."""
        flights = FlightRawSchema.validate(self.read_local_csv("flights"))
        weather = WeatherRawSchema.validate(self.read_local_csv("weather"))
        return build_flight_table(flights, weather, threshold=self.config.flights.late_threshold)

    def _postprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        """Convert strings to categoricals with a fixed outcome order."""
        df = strings_to_categories(df)
        df["arr_delay"] = df["arr_delay"].cat.set_categories(OUTCOME_LEVELS)
        return df


def load_flights(config: PipelineConfig, *, validate: bool = True) -> pd.DataFrame:
    """Convenience function to load the flight delay table."""
    return FlightDelayLoader(config).load(validate=validate)
