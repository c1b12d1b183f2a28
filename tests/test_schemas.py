"""Tests for Pandera schema definitions."""

import pandas as pd
import pandera.errors
import pytest

from casebook.schemas import (
    CellSchema,
    FlightDelaySchema,
    FlightRawSchema,
    HotelStaySchema,
    UrchinSchema,
    WeatherRawSchema,
)
from casebook.schemas.registry import DataRole, SchemaRegistry


class TestHotelStaySchema:
    """Tests for HotelStaySchema."""

    def test_valid_data(self, hotels_raw: pd.DataFrame) -> None:
        result = HotelStaySchema.validate(hotels_raw)
        assert len(result) == len(hotels_raw)
        assert pd.api.types.is_datetime64_any_dtype(result["arrival_date"])

    def test_invalid_outcome(self, hotels_raw: pd.DataFrame) -> None:
        """The outcome only takes the values children and none."""
        bad = hotels_raw.copy()
        bad.loc[0, "children"] = "babies"
        with pytest.raises(pandera.errors.SchemaError):
            HotelStaySchema.validate(bad)

    def test_missing_column(self, hotels_raw: pd.DataFrame) -> None:
        with pytest.raises(pandera.errors.SchemaError):
            HotelStaySchema.validate(hotels_raw.drop(columns=["lead_time"]))

    def test_negative_lead_time(self, hotels_raw: pd.DataFrame) -> None:
        bad = hotels_raw.copy()
        bad.loc[3, "lead_time"] = -1
        with pytest.raises(pandera.errors.SchemaError):
            HotelStaySchema.validate(bad)


class TestUrchinSchema:
    """Tests for UrchinSchema."""

    def test_valid_data(self, urchins_data: pd.DataFrame) -> None:
        frame = urchins_data.assign(food_regime=urchins_data["food_regime"].astype(str))
        assert len(UrchinSchema.validate(frame)) == 72

    def test_unknown_regime(self) -> None:
        df = pd.DataFrame({"food_regime": ["Medium"], "initial_volume": [10.0], "width": [0.1]})
        with pytest.raises(pandera.errors.SchemaError):
            UrchinSchema.validate(df)

    def test_strict_columns(self, urchins_data: pd.DataFrame) -> None:
        frame = urchins_data.assign(
            food_regime=urchins_data["food_regime"].astype(str), extra=1
        )
        with pytest.raises(pandera.errors.SchemaError, match="extra"):
            UrchinSchema.validate(frame)


class TestFlightSchemas:
    """Tests for the raw and joined flight schemas."""

    def test_raw_tables(self, flights_raw: tuple[pd.DataFrame, pd.DataFrame]) -> None:
        flights, weather = flights_raw
        validated = FlightRawSchema.validate(flights)
        assert pd.api.types.is_datetime64_any_dtype(validated["time_hour"])
        assert len(WeatherRawSchema.validate(weather)) == len(weather)

    def test_delay_labels(self) -> None:
        df = pd.DataFrame(
            {
                "dep_time": [517],
                "flight": [1545],
                "origin": ["EWR"],
                "dest": ["IAH"],
                "air_time": [227.0],
                "distance": [1400.0],
                "carrier": ["UA"],
                "date": [pd.Timestamp("2013-01-01")],
                "arr_delay": ["delayed"],
                "time_hour": [pd.Timestamp("2013-01-01 05:00")],
            }
        )
        with pytest.raises(pandera.errors.SchemaError):
            FlightDelaySchema.validate(df)

        df["arr_delay"] = ["late"]
        assert len(FlightDelaySchema.validate(df)) == 1


class TestCellSchema:
    """Tests for CellSchema."""

    def test_valid_data(self, cells_raw: pd.DataFrame) -> None:
        assert len(CellSchema.validate(cells_raw)) == len(cells_raw)

    def test_case_is_optional(self, cells_raw: pd.DataFrame) -> None:
        assert "case" not in CellSchema.validate(cells_raw.drop(columns=["case"])).columns

    def test_invalid_class(self, cells_raw: pd.DataFrame) -> None:
        bad = cells_raw.copy()
        bad.loc[0, "class"] = "XX"
        with pytest.raises(pandera.errors.SchemaError):
            CellSchema.validate(bad)

    def test_non_numeric_predictor(self, cells_raw: pd.DataFrame) -> None:
        with pytest.raises(pandera.errors.SchemaError):
            CellSchema.validate(cells_raw.assign(label="text"))


class TestSchemaRegistry:
    """Tests for SchemaRegistry."""

    def test_get_known_schema(self) -> None:
        assert SchemaRegistry.get("hotel_stay") is HotelStaySchema

    def test_unknown_schema(self) -> None:
        with pytest.raises(KeyError, match="Available"):
            SchemaRegistry.get("unknown")

    def test_roles(self) -> None:
        assert SchemaRegistry.list_by_role(DataRole.MODELING) == ["flight_delay"]
        assert "cell" in SchemaRegistry.list_by_role(DataRole.SOURCE)

    def test_info(self) -> None:
        info = SchemaRegistry.get_info("urchin")
        assert info.version == "1.0.0"
        assert info.schema is UrchinSchema

    def test_for_dataset(self) -> None:
        assert SchemaRegistry.for_dataset("flights") == ["flight_raw", "flight_delay"]
        assert SchemaRegistry.for_dataset("cells") == ["cell"]

    def test_columns(self) -> None:
        assert SchemaRegistry.get_info("urchin").columns == ["food_regime", "initial_volume", "width"]
