"""Pandera schema for the cell image segmentation data."""

from typing import Optional

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series


class CellSchema(pa.DataFrameModel):
    """
    Schema for cell image features.

    ``class`` marks a cell as poorly segmented (PS) or well segmented (WS).
    All other columns except ``case`` are numeric image measurements.
    """

    class_: Series[str] = pa.Field(alias="class", isin=["PS", "WS"])
    case: Optional[Series[str]] = pa.Field(isin=["Train", "Test"])

    @pa.dataframe_check
    def predictors_are_numeric(cls, df: pd.DataFrame) -> bool:
        """All predictor columns must be numeric."""
        predictors = df.drop(columns=[c for c in ("class", "case") if c in df.columns])
        return bool(len(predictors.columns)) and all(
            pd.api.types.is_numeric_dtype(predictors[c]) for c in predictors.columns
        )

    class Config:
        """Schema configuration."""

        name = "CellSchema"
        strict = False
        coerce = True
