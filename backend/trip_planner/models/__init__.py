"""
Models package for request, itinerary and geocoding schemas
"""

from trip_planner.models.common import APIResponse
from trip_planner.models.geocode import GeocodeResult
from trip_planner.models.itinerary import (
    Accommodation,
    Activity,
    DayItinerary,
    GeneratedItinerary,
    PlanAlternative,
    PlanUpdate,
    TravelPlan,
)
from trip_planner.models.trip import PartialTripRequest, TripRequest

__all__ = [
    "APIResponse",
    "GeocodeResult",
    "Accommodation",
    "Activity",
    "DayItinerary",
    "GeneratedItinerary",
    "PlanAlternative",
    "PlanUpdate",
    "TravelPlan",
    "PartialTripRequest",
    "TripRequest",
]
