"""
Holiday calendar for date-based recipe steps.

Two families of named holidays are supported:

- Christian calendar names (``Easter``, ``GoodFriday``, ``AllSouls``, ...):
  fixed dates and dates relative to Western Easter (``dateutil.easter``).
- US holidays (``USThanksgivingDay``, ``USLaborDay``, ...): pandas holiday
  rules. Dates are the nominal holiday dates, not observed weekdays.
"""

from collections.abc import Callable, Iterable
from datetime import date, timedelta

import pandas as pd
from dateutil.easter import easter
from dateutil.relativedelta import TU
from pandas.tseries.holiday import (
    GoodFriday,
    Holiday,
    USColumbusDay,
    USLaborDay,
    USMartinLutherKingJr,
    USMemorialDay,
    USPresidentsDay,
    USThanksgivingDay,
)

from casebook.utils.logging import get_logger

log = get_logger(__name__)

# Days relative to Easter Sunday
EASTER_OFFSETS: dict[str, int] = {
    "AshWednesday": -46,
    "PalmSunday": -7,
    "GoodFriday": -2,
    "Easter": 0,
    "EasterSunday": 0,
    "EasterMonday": 1,
    "Ascension": 39,
    "Pentecost": 49,
    "PentecostMonday": 50,
    "CorpusChristi": 60,
}

# (month, day)
FIXED_DATES: dict[str, tuple[int, int]] = {
    "NewYearsDay": (1, 1),
    "Epiphany": (1, 6),
    "Assumption": (8, 15),
    "AllSaints": (11, 1),
    "AllSouls": (11, 2),
    "ChristmasEve": (12, 24),
    "ChristmasDay": (12, 25),
    "BoxingDay": (12, 26),
}

US_RULES: dict[str, Holiday] = {
    "USNewYearsDay": Holiday("USNewYearsDay", month=1, day=1),
    "USMLKingsBirthday": USMartinLutherKingJr,
    "USLincolnsBirthday": Holiday("USLincolnsBirthday", month=2, day=12),
    "USWashingtonsBirthday": Holiday("USWashingtonsBirthday", month=2, day=22),
    "USPresidentsDay": USPresidentsDay,
    "USGoodFriday": GoodFriday,
    "USMemorialDay": USMemorialDay,
    "USJuneteenthNationalIndependenceDay": Holiday(
        "USJuneteenthNationalIndependenceDay",
        month=6,
        day=19,
        start_date="2021-06-18",
    ),
    "USIndependenceDay": Holiday("USIndependenceDay", month=7, day=4),
    "USLaborDay": USLaborDay,
    "USColumbusDay": USColumbusDay,
    "USElectionDay": Holiday(
        "USElectionDay", month=11, day=2, offset=pd.DateOffset(weekday=TU(1))
    ),
    "USVeteransDay": Holiday("USVeteransDay", month=11, day=11),
    "USThanksgivingDay": USThanksgivingDay,
    "USChristmasDay": Holiday("USChristmasDay", month=12, day=25),
}


def list_holidays() -> list[str]:
    """List all supported holiday names."""
    return sorted({*EASTER_OFFSETS, *FIXED_DATES, *US_RULES})


def _easter_relative(offset: int) -> Callable[[int], date]:
    def compute(year: int) -> date:
        return easter(year) + timedelta(days=offset)

    return compute


def holiday_dates(name: str, years: Iterable[int]) -> pd.DatetimeIndex:
    """
    Dates of a named holiday for the given years.

    Args:
        name: Holiday name (see ``list_holidays``).
        years: Calendar years.

    Returns:
        Sorted DatetimeIndex of holiday dates.

    Raises:
        KeyError: If the holiday name is unknown.
    """
    years = sorted(set(years))
    if not years:
        return pd.DatetimeIndex([])

    if name in EASTER_OFFSETS:
        compute = _easter_relative(EASTER_OFFSETS[name])
        return pd.DatetimeIndex([pd.Timestamp(compute(y)) for y in years])

    if name in FIXED_DATES:
        month, day = FIXED_DATES[name]
        return pd.DatetimeIndex([pd.Timestamp(year=y, month=month, day=day) for y in years])

    if name in US_RULES:
        rule = US_RULES[name]
        dates = rule.dates(f"{years[0]}-01-01", f"{years[-1]}-12-31")
        return pd.DatetimeIndex([d for d in dates if d.year in years])

    available = ", ".join(list_holidays())
    msg = f"Unknown holiday '{name}'. Available: {available}"
    raise KeyError(msg)


def holiday_indicator(dates: pd.Series, name: str) -> pd.Series:
    """
    0/1 indicator of whether each date falls on the named holiday.

    Args:
        dates: Datetime-like series.
        name: Holiday name.

    Returns:
        Integer series aligned with ``dates``.
    """
    values = pd.to_datetime(dates)
    years = values.dt.year.dropna().astype(int).unique()
    holidays = holiday_dates(name, years)
    return values.dt.normalize().isin(holidays).astype(int)
