"""Pandera schema for the sea urchin growth experiment."""

import pandera.pandas as pa
from pandera.typing import Series

FOOD_REGIMES = ["Initial", "Low", "High"]


class UrchinSchema(pa.DataFrameModel):
    """
    Schema for urchin measurements.

    Each row is one urchin: the feeding regime it was assigned to, its
    initial volume in milliliters and its suture width at the end of the
    experiment.
    """

    food_regime: Series[str] = pa.Field(isin=FOOD_REGIMES)
    initial_volume: Series[float] = pa.Field(gt=0.0, description="Initial volume (ml)")
    width: Series[float] = pa.Field(ge=0.0, description="Suture width (mm)")

    class Config:
        """Schema configuration."""

        name = "UrchinSchema"
        strict = True
        coerce = True
