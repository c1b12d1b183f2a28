"""
Case studies.

Each study is a function ``run_<name>(config, data=None, ...)`` returning a
``StudyResult``.
"""

from casebook.studies.base import StudyResult
from casebook.studies.cells import run_cells
from casebook.studies.flights import run_flights
from casebook.studies.hotels import run_hotels
from casebook.studies.urchins import run_urchins

STUDIES = {
    "hotels": run_hotels,
    "urchins": run_urchins,
    "flights": run_flights,
    "cells": run_cells,
}

# Studies whose data come from a remote URL (accept ``refresh``).
REMOTE_STUDIES = {"hotels", "urchins"}

__all__ = [
    "REMOTE_STUDIES",
    "STUDIES",
    "StudyResult",
    "run_cells",
    "run_flights",
    "run_hotels",
    "run_urchins",
]
