"""
Cell image ingestion.

Loads the exported cell segmentation table. The original ``case`` column
(the authors' own train/test assignment) is dropped so that splits are
made by the studies themselves.
"""

import pandas as pd

from casebook.config.settings import PipelineConfig
from casebook.ingestion.base import DataLoader
from casebook.schemas.cells import CellSchema

CLASS_LEVELS = ["PS", "WS"]


class CellLoader(DataLoader):
    """Loader for cell image features."""

    dataset = "cells"
    schema = CellSchema

    def _load_raw(self) -> pd.DataFrame:
        return self.read_local_csv("cells")

    def _postprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop ``case`` and make ``class`` categorical."""
        df = df.drop(columns=["case"], errors="ignore").copy()
        df["class"] = pd.Categorical(df["class"], categories=CLASS_LEVELS)
        return df


def load_cells(config: PipelineConfig, *, validate: bool = True) -> pd.DataFrame:
    """Convenience function to load the cell data."""
    return CellLoader(config).load(validate=validate)
