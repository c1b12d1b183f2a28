"""
Pandera schemas for the New York City flights data.

Raw schemas cover the exported ``flights`` and ``weather`` tables; the
joined schema covers the modeling table built from them.
"""

import pandera.pandas as pa
from pandera.typing import Series


class FlightRawSchema(pa.DataFrameModel):
    """Schema for the exported flights table (only the columns we use)."""

    dep_time: Series[float] = pa.Field(nullable=True)
    arr_delay: Series[float] = pa.Field(nullable=True, description="Arrival delay (min)")
    carrier: Series[str]
    flight: Series[int]
    origin: Series[str]
    dest: Series[str]
    air_time: Series[float] = pa.Field(nullable=True)
    distance: Series[float] = pa.Field(ge=0.0)
    time_hour: Series[pa.DateTime]

    class Config:
        """Schema configuration."""

        name = "FlightRawSchema"
        strict = False
        coerce = True


class WeatherRawSchema(pa.DataFrameModel):
    """Schema for the exported hourly weather table."""

    origin: Series[str]
    time_hour: Series[pa.DateTime]

    class Config:
        """Schema configuration."""

        name = "WeatherRawSchema"
        strict = False
        coerce = True


class FlightDelaySchema(pa.DataFrameModel):
    """Schema for the joined modeling table."""

    dep_time: Series[int] = pa.Field(ge=0, le=2400)
    flight: Series[int]
    origin: Series[str]
    dest: Series[str]
    air_time: Series[float] = pa.Field(ge=0.0)
    distance: Series[float] = pa.Field(ge=0.0)
    carrier: Series[str]
    date: Series[pa.DateTime]
    arr_delay: Series[str] = pa.Field(isin=["late", "on_time"])
    time_hour: Series[pa.DateTime]

    class Config:
        """Schema configuration."""

        name = "FlightDelaySchema"
        strict = True
        coerce = True
