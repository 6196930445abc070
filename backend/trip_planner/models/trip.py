"""
Trip request models: what the user asks for before any itinerary exists
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

TransportMode = Literal["flight", "train", "car", "bus", "mixed"]

TRANSPORT_MODES: tuple[str, ...] = ("flight", "train", "car", "bus", "mixed")


class TripRequest(BaseModel):
    """
    User-supplied trip parameters driving generation.
    Immutable once submitted.
    """

    origin: str = Field(..., min_length=1, description="Departure city")
    destination: str = Field(..., min_length=1, description="Destination city or region")
    start_date: date = Field(..., description="First day of the trip (YYYY-MM-DD)")
    end_date: date = Field(..., description="Last day of the trip, inclusive (YYYY-MM-DD)")
    budget: int = Field(..., ge=0, description="Total budget for the whole party, currency-agnostic")
    travelers: int = Field(default=1, ge=1, description="Number of travelers")
    preferences: list[str] = Field(default_factory=list, description="Preference tags, e.g. food, shopping")
    transport_mode: TransportMode = Field(default="mixed", description="How the party gets there")
    additional_requirements: str | None = Field(default=None, description="Free-text extra requirements")

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "origin": "Shanghai",
                "destination": "London",
                "start_date": "2025-10-01",
                "end_date": "2025-10-05",
                "budget": 20000,
                "travelers": 2,
                "preferences": ["food", "culture"],
                "transport_mode": "flight",
                "additional_requirements": "Travelling with a toddler",
            }
        }

    @field_validator("origin", "destination")
    @classmethod
    def _strip_place(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("preferences")
    @classmethod
    def _clean_preferences(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in value:
            tag = str(tag).strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @model_validator(mode="after")
    def _check_dates(self) -> "TripRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def trip_days(self) -> int:
        """Inclusive number of days between start_date and end_date."""
        return (self.end_date - self.start_date).days + 1


class PartialTripRequest(BaseModel):
    """
    Best-effort extraction from a voice transcript; merged into form state by the client.
    """

    origin: str | None = None
    destination: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    budget: int | None = None
    travelers: int | None = None
    preferences: list[str] = Field(default_factory=list)
    transport_mode: TransportMode | None = None
    additional_requirements: str | None = None
