from pydantic import BaseModel, ConfigDict, Field, field_validator
import datetime as dt
from enum import Enum
from typing import List, Optional

class ClassType(str, Enum):
    economy = "economy"
    business = "business"
    first = "first"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ClassType":
        """Maps provider cabin labels (ECONOMY, CABIN_CLASS_BUSINESS, Y ...) onto our three classes."""
        if not value:
            return cls.economy
        label = str(value).strip().lower()
        if "first" in label or label == "f":
            return cls.first
        if "business" in label or label in ("c", "j"):
            return cls.business
        return cls.economy

class FlightOfferBase(BaseModel):
    from_airport: str = Field(..., min_length=3, max_length=3)
    to_airport: str = Field(..., min_length=3, max_length=3)
    date: dt.date
    airline: str
    flight_number: str = "N/A"
    departure_time: str = "00:00"
    arrival_time: str = "00:00"
    price: int = Field(..., gt=0)
    currency: str = "VND"
    class_type: ClassType = ClassType.economy
    seats_available: Optional[int] = Field(None, ge=0)
    source: str
    fetched_at: dt.datetime

class FlightOfferCreate(FlightOfferBase):
    model_config = ConfigDict(from_attributes=True)

class FlightOfferResponse(FlightOfferBase):
    id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class SearchResult(BaseModel):
    cached: bool
    flights: List[FlightOfferCreate]

class LowestPriceResponse(BaseModel):
    from_airport: str
    to_airport: str
    date: dt.date
    price: Optional[int] = None

class FlightSearchRequest(BaseModel):
    from_airport: str = Field(..., min_length=3, max_length=3, description="IATA Airport Code, 3 chars uppercase.")
    to_airport: str = Field(..., min_length=3, max_length=3, description="IATA Airport Code, 3 chars uppercase.")
    date: str = Field(..., description="YYYY-MM-DD format")

    @field_validator("from_airport", "to_airport", mode="before")
    def validate_iata(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
        if not isinstance(v, str) or len(v) != 3 or not v.isalpha():
            raise ValueError("IATA code must be exactly 3 letters.")
        return v

    @field_validator("date")
    def validate_date(cls, v):
        try:
            dt.datetime.strptime(v, "%Y-%m-%d")
        except ValueError:
            raise ValueError("Date must be in YYYY-MM-DD format")
        return v

    @property
    def departure_date(self) -> dt.date:
        return dt.datetime.strptime(self.date, "%Y-%m-%d").date()

class ApiUsageResponse(BaseModel):
    api_provider: str
    month: str
    call_count: int
    success_count: int
    fail_count: int
    rate_limit_count: int
    last_called_at: Optional[dt.datetime] = None

    model_config = ConfigDict(from_attributes=True)
