"""
Loader base classes.

A loader reads one study dataset, checks it against its pandera contract
and then applies the conversions a schema cannot express (categorical level
order, dropped bookkeeping columns). Local datasets are read from the data
root; remote ones go through the download cache.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

import pandas as pd
import pandera.pandas as pa

from casebook.config.settings import PipelineConfig
from casebook.utils.cache import DatasetCache
from casebook.utils.logging import get_logger, log_context

log = get_logger(__name__)


class DataLoader(ABC):
    """
    Load, validate, then convert.

    Subclasses set ``dataset`` and ``schema`` and implement ``_load_raw``.
    """

    dataset: ClassVar[str]
    schema: ClassVar[type[pa.DataFrameModel]]

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    @abstractmethod
    def _load_raw(self) -> pd.DataFrame: ...

    def _postprocess(self, df: pd.DataFrame) -> pd.DataFrame:
        return df

    def load(self, *, validate: bool = True) -> pd.DataFrame:
        """
        Return the study-ready table.

        Raises:
            FileNotFoundError: If a local file is missing.
            pandera.errors.SchemaError: If ``validate`` and the data break
                the contract.
        """
        with log_context(dataset=self.dataset):
            df = self._load_raw()
            log.info("Read dataset", rows=len(df), columns=len(df.columns))
            if validate:
                df = self.schema.validate(df)
                log.debug("Schema check passed", schema=self.schema.__name__)
            return self._postprocess(df)

    def read_local_csv(self, attr: str) -> pd.DataFrame:
        """
        Read the CSV configured as ``data.<attr>`` under the data root.

        Raises:
            FileNotFoundError: If the export is not there.
        """
        path = self.config.data.resolve(attr)
        if not path.is_file():
            raise FileNotFoundError(f"{attr.title()} file not found: {path}")
        log.debug("Reading local export", path=str(path))
        return pd.read_csv(path)


class RemoteDataLoader(DataLoader):
    """A dataset published at ``data.<url_attr>`` and cached on first use."""

    url_attr: ClassVar[str]

    def __init__(self, config: PipelineConfig, *, refresh: bool = False) -> None:
        super().__init__(config)
        self.refresh = refresh
        self.cache = DatasetCache(config.cache_dir)

    @property
    def url(self) -> str:
        return getattr(self.config.data, self.url_attr)

    def fetch(self) -> Path:
        """Path of the cached copy, downloading it when needed."""
        return self.cache.fetch(self.url, refresh=self.refresh)

    def _load_raw(self) -> pd.DataFrame:
        return pd.read_csv(self.fetch())


def strings_to_categories(df: pd.DataFrame, exclude: list[str] | None = None) -> pd.DataFrame:
    """Copy of ``df`` with every text column except ``exclude`` as a categorical."""
    skip = set(exclude or [])
    text = [
        col
        for col in df.columns
        if col not in skip
        and (pd.api.types.is_object_dtype(df[col]) or pd.api.types.is_string_dtype(df[col]))
    ]
    return df.astype({col: "category" for col in text})
