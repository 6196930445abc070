"""
Itinerary models: activities, accommodation, days and the assembled travel plan
"""

import datetime as dt
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from trip_planner.models.trip import TransportMode

ActivityType = Literal[
    "sightseeing", "dining", "shopping", "entertainment", "leisure", "accommodation", "transport"
]
PlanStatus = Literal["draft", "confirmed", "completed"]
PlanSource = Literal["llm", "fallback"]
AlternativeKind = Literal["economy", "luxury"]

ACTIVITY_TYPES: tuple[str, ...] = (
    "sightseeing",
    "dining",
    "shopping",
    "entertainment",
    "leisure",
    "accommodation",
    "transport",
)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def new_id() -> str:
    return uuid4().hex


class Activity(BaseModel):
    """
    One scheduled item within a day.
    `location` must pass the location validator before an activity is kept.
    """

    id: str = Field(..., description="Stable id within the plan, e.g. d1-a2")
    time: str = Field(..., description="Start time in HH:MM format (24-hour)")
    title: str
    description: str = ""
    location: str = Field(..., description="Landmark-grade place name, never a placeholder")
    type: ActivityType = "sightseeing"
    duration: int = Field(default=120, ge=0, description="Duration in minutes")
    estimated_cost: int = Field(default=0, ge=0, description="Estimated cost per person")
    rating: float | None = None
    tips: list[str] = Field(default_factory=list)


class Accommodation(BaseModel):
    name: str
    address: str = Field(..., description="Same validity rules as Activity.location")
    check_in: str = "15:00"
    check_out: str = "11:00"
    estimated_cost: int = Field(default=0, ge=0, description="Estimated cost per night")
    rating: float | None = None
    amenities: list[str] = Field(default_factory=list)


class DayItinerary(BaseModel):
    day: int = Field(..., ge=1, description="1-based day number")
    date: dt.date = Field(..., description="start_date + (day - 1)")
    theme: str = ""
    activities: list[Activity] = Field(default_factory=list)
    accommodation: Accommodation | None = None

    @property
    def total_cost(self) -> int:
        cost = sum(a.estimated_cost for a in self.activities)
        if self.accommodation is not None:
            cost += self.accommodation.estimated_cost
        return cost


class GeneratedItinerary(BaseModel):
    """
    Orchestrator output before it is merged with the request.
    Produced both by the response decoder and by the deterministic generator.
    """

    title: str = ""
    summary: str = ""
    days: list[DayItinerary] = Field(default_factory=list)
    total_estimated_cost: int | None = None
    tips: list[str] = Field(default_factory=list)

    @property
    def activity_count(self) -> int:
        return sum(len(day.activities) for day in self.days)


class PlanAlternative(BaseModel):
    """A cheaper or pricier variant of a plan, scaled from its budget and total."""

    kind: AlternativeKind
    title: str
    budget: int = Field(..., ge=0)
    total_estimated_cost: int = Field(default=0, ge=0)


class TravelPlan(BaseModel):
    """
    The complete generated output: request metadata + ordered days.
    """

    id: str = Field(default_factory=new_id)
    request_id: str | None = Field(default=None, description="Stored TripRequest this plan came from")
    title: str
    summary: str = ""

    # Request snapshot
    origin: str
    destination: str
    start_date: dt.date
    end_date: dt.date
    budget: int
    travelers: int
    preferences: list[str] = Field(default_factory=list)
    transport_mode: TransportMode
    additional_requirements: str | None = None

    itinerary: list[DayItinerary] = Field(default_factory=list)
    total_estimated_cost: int = 0
    tips: list[str] = Field(default_factory=list)
    alternatives: list[PlanAlternative] = Field(default_factory=list)

    # Provenance and lifecycle
    source: PlanSource = "fallback"
    warnings: list[str] = Field(default_factory=list)
    status: PlanStatus = "draft"
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "London 5-Day Trip",
                "origin": "Shanghai",
                "destination": "London",
                "start_date": "2025-10-01",
                "end_date": "2025-10-05",
                "budget": 20000,
                "travelers": 2,
                "transport_mode": "flight",
                "status": "draft",
                "source": "fallback",
                "itinerary": [
                    {
                        "day": 1,
                        "date": "2025-10-01",
                        "theme": "Arrival",
                        "activities": [
                            {
                                "id": "d1-a1",
                                "time": "08:00",
                                "title": "Flight from Shanghai to London",
                                "location": "London Heathrow Airport",
                                "type": "transport",
                                "duration": 240,
                                "estimated_cost": 2500,
                            }
                        ],
                    }
                ],
            }
        }


class PlanUpdate(BaseModel):
    """Fields a client may change on an existing plan."""

    title: str | None = None
    summary: str | None = None
    status: PlanStatus | None = None
