"""
Sea urchin ingestion.

The source CSV uses terse column names; they are replaced positionally by
``food_regime, initial_volume, width``.
"""

import pandas as pd

from casebook.config.settings import PipelineConfig
from casebook.ingestion.base import RemoteDataLoader
from casebook.schemas.urchins import UrchinSchema

URCHIN_COLUMNS = ["food_regime", "initial_volume", "width"]


class UrchinLoader(RemoteDataLoader):
    """Loader for the urchin feeding experiment."""

    dataset = "urchins"
    schema = UrchinSchema
    url_attr = "urchins_url"

    def _load_raw(self) -> pd.DataFrame:
        """Read the cached CSV and rename its columns."""
        df = super()._load_raw()
        if len(df.columns) != len(URCHIN_COLUMNS):
            msg = (
                f"Expected {len(URCHIN_COLUMNS)} urchin columns, "
                f"got {len(df.columns)}: {list(df.columns)}"
            )
            raise ValueError(msg)
        df.columns = URCHIN_COLUMNS
        return df

    def _postprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        """Make food_regime a categorical with the configured level order."""
        df = df.copy()
        df["food_regime"] = pd.Categorical(
            df["food_regime"], categories=self.config.urchins.levels
        )
        return df


def load_urchins(
    config: PipelineConfig,
    *,
    refresh: bool = False,
    validate: bool = True,
) -> pd.DataFrame:
    """Convenience function to load the urchin data."""
    return UrchinLoader(config, refresh=refresh).load(validate=validate)
