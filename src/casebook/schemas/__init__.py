"""
Schema definitions using Pandera for data validation.

All data contracts are defined here so every study starts from an
explicit, validated table.
"""

from casebook.schemas.cells import CellSchema
from casebook.schemas.flights import FlightDelaySchema, FlightRawSchema, WeatherRawSchema
from casebook.schemas.hotels import HotelStaySchema
from casebook.schemas.registry import DataRole, SchemaRegistry
from casebook.schemas.urchins import FOOD_REGIMES, UrchinSchema

__all__ = [
    "FOOD_REGIMES",
    "CellSchema",
    "DataRole",
    "FlightDelaySchema",
    "FlightRawSchema",
    "HotelStaySchema",
    "SchemaRegistry",
    "UrchinSchema",
    "WeatherRawSchema",
]
