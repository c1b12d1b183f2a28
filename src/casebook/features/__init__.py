"""
Feature engineering layer.

Holiday calendars and declarative preprocessing recipes.
"""

from casebook.features.holidays import holiday_dates, holiday_indicator, list_holidays
from casebook.features.recipe import (
    DateFeatures,
    DropColumns,
    HolidayFeatures,
    Recipe,
)

__all__ = [
    "DateFeatures",
    "DropColumns",
    "HolidayFeatures",
    "Recipe",
    "holiday_dates",
    "holiday_indicator",
    "list_holidays",
]
