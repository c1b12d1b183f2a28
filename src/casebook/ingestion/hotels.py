"""
Hotel stays ingestion.

Fetches the hotel bookings CSV used by the predictive modeling case study.
"""

import pandas as pd

from casebook.config.settings import PipelineConfig
from casebook.ingestion.base import RemoteDataLoader, strings_to_categories
from casebook.schemas.hotels import HotelStaySchema
from casebook.utils.logging import get_logger

log = get_logger(__name__)

OUTCOME_LEVELS = ["children", "none"]


class HotelStayLoader(RemoteDataLoader):
    """Loader for hotel bookings."""

    dataset = "hotels"
    schema = HotelStaySchema
    url_attr = "hotels_url"

    def _load_raw(self) -> pd.DataFrame:
        """Read the cached CSV and parse arrival dates."""
        df = super()._load_raw()
        if "arrival_date" in df.columns:
            df["arrival_date"] = pd.to_datetime(df["arrival_date"])
        return df

    def _postprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        """Convert character columns to categoricals with a fixed outcome order."""
        df = strings_to_categories(df)
        df["children"] = df["children"].cat.set_categories(OUTCOME_LEVELS)

        share = float((df["children"] == "children").mean()) if len(df) else 0.0
        log.info("Hotel stays prepared", rows=len(df), children_share=f"{share:.3f}")
        return df


def load_hotels(
    config: PipelineConfig,
    *,
    refresh: bool = False,
    validate: bool = True,
) -> pd.DataFrame:
    """
    Convenience function to load hotel stays.

    Args:
        config: Pipeline configuration.
        refresh: Re-download the CSV.
        validate: Whether to validate against schema.

    Returns:
        DataFrame with one booking per row.
    """
    return HotelStayLoader(config, refresh=refresh).load(validate=validate)
