"""
Data ingestion layer.

Loaders for the four study datasets with schema validation at the boundary.
"""

from casebook.ingestion.cells import load_cells
from casebook.ingestion.flights import build_flight_table, load_flights
from casebook.ingestion.hotels import load_hotels
from casebook.ingestion.urchins import load_urchins

__all__ = [
    "build_flight_table",
    "load_cells",
    "load_flights",
    "load_hotels",
    "load_urchins",
]
