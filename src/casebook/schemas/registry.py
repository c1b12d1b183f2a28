"""
Named lookup of every dataset contract.

Schemas are registered under the name that validation results and error
messages show. Each entry records which study dataset it guards and
whether it describes a raw source file or a table ready for a recipe.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

import pandera.pandas as pa

from casebook.schemas.cells import CellSchema
from casebook.schemas.flights import FlightDelaySchema, FlightRawSchema, WeatherRawSchema
from casebook.schemas.hotels import HotelStaySchema
from casebook.schemas.urchins import UrchinSchema

if TYPE_CHECKING:
    import pandas as pd

SCHEMA_VERSION = "1.0.0"


class DataRole(Enum):
    """Where in a study a table sits."""

    SOURCE = "source"  # as read from the published file
    MODELING = "modeling"  # derived table handed to a recipe


@dataclass(frozen=True)
class SchemaInfo:
    """A registered schema and what it guards."""

    name: str
    schema: type[pa.DataFrameModel]
    dataset: str
    role: DataRole
    description: str
    version: str = SCHEMA_VERSION

    @property
    def columns(self) -> list[str]:
        return list(self.schema.to_schema().columns)


# name, schema, dataset, role, description
_ENTRIES = [
    ("hotel_stay", HotelStaySchema, "hotels", DataRole.SOURCE, "Hotel stays labelled by children"),
    ("urchin", UrchinSchema, "urchins", DataRole.SOURCE, "Urchin suture width by feeding regime"),
    ("flight_raw", FlightRawSchema, "flights", DataRole.SOURCE, "Departures from NYC airports"),
    ("weather_raw", WeatherRawSchema, "weather", DataRole.SOURCE, "Hourly weather at NYC airports"),
    ("flight_delay", FlightDelaySchema, "flights", DataRole.MODELING, "Flights with weather, late/on_time"),
    ("cell", CellSchema, "cells", DataRole.SOURCE, "Cell image features with segmentation class"),
]


class SchemaRegistry:
    """Class-level registry; the insertion order is the display order."""

    _schemas: ClassVar[dict[str, SchemaInfo]] = {entry[0]: SchemaInfo(*entry) for entry in _ENTRIES}

    @classmethod
    def get(cls, name: str) -> type[pa.DataFrameModel]:
        """Schema class registered under ``name``."""
        return cls.get_info(name).schema

    @classmethod
    def get_info(cls, name: str) -> SchemaInfo:
        """
        Full registry entry for ``name``.

        Raises:
            KeyError: If no schema has that name; the message lists the
                registered names.
        """
        try:
            return cls._schemas[name]
        except KeyError:
            available = ", ".join(cls._schemas)
            raise KeyError(f"Unknown schema '{name}'. Available: {available}") from None

    @classmethod
    def list_schemas(cls) -> list[str]:
        return list(cls._schemas)

    @classmethod
    def list_by_role(cls, role: DataRole) -> list[str]:
        return [name for name, info in cls._schemas.items() if info.role is role]

    @classmethod
    def for_dataset(cls, dataset: str) -> list[str]:
        """Schemas that guard one study dataset, sources first."""
        names = [name for name, info in cls._schemas.items() if info.dataset == dataset]
        return sorted(names, key=lambda n: cls._schemas[n].role is DataRole.MODELING)

    @classmethod
    def validate(cls, df: "pd.DataFrame", schema_name: str) -> "pd.DataFrame":
        """
        Validate ``df`` against a registered schema.

        Raises:
            pandera.errors.SchemaError: If validation fails.
        """
        return cls.get(schema_name).validate(df)
