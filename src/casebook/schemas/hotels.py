"""
Pandera schema for the hotel stays dataset.

One row per booking; the outcome is whether the stay included children.
"""

import pandera.pandas as pa
from pandera.typing import Series


class HotelStaySchema(pa.DataFrameModel):
    """Schema for hotel bookings (raw CSV, before categorical conversion)."""

    hotel: Series[str] = pa.Field(description="City_Hotel or Resort_Hotel")
    lead_time: Series[int] = pa.Field(ge=0, description="Days between booking and arrival")
    stays_in_weekend_nights: Series[int] = pa.Field(ge=0)
    stays_in_week_nights: Series[int] = pa.Field(ge=0)
    adults: Series[int] = pa.Field(ge=0)
    children: Series[str] = pa.Field(
        isin=["children", "none"],
        description="Outcome: whether the party included children",
    )
    meal: Series[str]
    country: Series[str] = pa.Field(nullable=True)
    market_segment: Series[str]
    distribution_channel: Series[str]
    is_repeated_guest: Series[int] = pa.Field(isin=[0, 1])
    previous_cancellations: Series[int] = pa.Field(ge=0)
    previous_bookings_not_canceled: Series[int] = pa.Field(ge=0)
    reserved_room_type: Series[str]
    assigned_room_type: Series[str]
    booking_changes: Series[int] = pa.Field(ge=0)
    deposit_type: Series[str]
    days_in_waiting_list: Series[int] = pa.Field(ge=0)
    customer_type: Series[str]
    average_daily_rate: Series[float]
    required_car_parking_spaces: Series[str] = pa.Field(isin=["none", "parking"])
    total_of_special_requests: Series[int] = pa.Field(ge=0)
    arrival_date: Series[pa.DateTime] = pa.Field(description="Arrival date")

    class Config:
        """Schema configuration."""

        name = "HotelStaySchema"
        strict = False
        coerce = True
