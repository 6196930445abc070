"""
Boundary decoder for itinerary payloads returned by the generative backend.

The payload is never trusted: every field is optional, every value may be the
wrong type. decode_itinerary_payload either returns a DecodedItinerary whose
contents satisfy the model invariants (valid locations, in-range unique day
numbers, dates derived from the request) or a DecodeRejection naming why
nothing usable could be read.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from trip_planner.core.logging import setup_logger
from trip_planner.models.itinerary import ACTIVITY_TYPES, Accommodation, Activity, DayItinerary
from trip_planner.models.trip import TripRequest
from trip_planner.utils.coerce import to_clock_time, to_float, to_int, to_text, to_text_list
from trip_planner.utils.location_validator import clean_and_validate

logger = setup_logger(__name__)

_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)

# Start times assigned by position when the backend omits or garbles them
DEFAULT_SLOTS = ("09:00", "12:00", "15:00", "18:00", "21:00")

DEFAULT_DURATION = 120

TYPE_ALIASES: dict[str, str] = {
    "attraction": "sightseeing",
    "sight": "sightseeing",
    "tour": "sightseeing",
    "museum": "sightseeing",
    "景点": "sightseeing",
    "观光": "sightseeing",
    "restaurant": "dining",
    "food": "dining",
    "meal": "dining",
    "餐饮": "dining",
    "美食": "dining",
    "shop": "shopping",
    "购物": "shopping",
    "show": "entertainment",
    "nightlife": "entertainment",
    "娱乐": "entertainment",
    "relax": "leisure",
    "rest": "leisure",
    "休闲": "leisure",
    "hotel": "accommodation",
    "住宿": "accommodation",
    "flight": "transport",
    "train": "transport",
    "transfer": "transport",
    "交通": "transport",
}


@dataclass
class DecodedItinerary:
    title: str
    summary: str
    days: list[DayItinerary]
    tips: list[str] = field(default_factory=list)
    total_estimated_cost: int | None = None
    dropped_activities: int = 0
    dropped_accommodations: int = 0
    dropped_days: int = 0

    @property
    def activity_count(self) -> int:
        return sum(len(day.activities) for day in self.days)


@dataclass(frozen=True)
class DecodeRejection:
    reason: str


def _field(obj: dict, *names: str) -> Any:
    for name in names:
        if name in obj and obj[name] is not None:
            return obj[name]
    return None


def _load_payload(raw: Any) -> dict | DecodeRejection:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return DecodeRejection("empty response")
    text = _CODE_FENCE.sub("", raw.strip())
    try:
        payload = json.loads(text)
    except ValueError as exc:
        return DecodeRejection(f"invalid JSON: {exc}")
    if not isinstance(payload, dict):
        return DecodeRejection("payload is not a JSON object")
    return payload


def _activity_type(value: Any) -> str:
    text = to_text(value).lower()
    if text in ACTIVITY_TYPES:
        return text
    return TYPE_ALIASES.get(text, "sightseeing")


def _rating(value: Any) -> float | None:
    rating = to_float(value, -1.0)
    return rating if 0 <= rating <= 5 else None


def _optional_cost(value: Any) -> int | None:
    if value is None:
        return None
    cost = to_float(value, -1.0)
    return int(round(cost)) if cost >= 0 else None


def _decode_activity(raw: Any, day: int, position: int, index: int) -> Activity | None:
    if not isinstance(raw, dict):
        return None
    location = clean_and_validate(to_text(_field(raw, "location", "address")))
    if location is None:
        return None
    slot = DEFAULT_SLOTS[min(position, len(DEFAULT_SLOTS) - 1)]
    return Activity(
        id=f"d{day}-a{index}",
        time=to_clock_time(_field(raw, "time", "startTime", "start_time"), slot),
        title=to_text(_field(raw, "title", "name"), location),
        description=to_text(raw.get("description")),
        location=location,
        type=_activity_type(raw.get("type")),
        duration=to_int(raw.get("duration"), DEFAULT_DURATION, minimum=0),
        estimated_cost=to_int(_field(raw, "estimatedCost", "estimated_cost", "cost"), 0, minimum=0),
        rating=_rating(raw.get("rating")),
        tips=to_text_list(raw.get("tips")),
    )


def _decode_accommodation(raw: Any) -> Accommodation | None:
    address = clean_and_validate(to_text(_field(raw, "address", "location")))
    if address is None:
        return None
    return Accommodation(
        name=to_text(raw.get("name"), address),
        address=address,
        check_in=to_clock_time(_field(raw, "checkIn", "check_in"), "15:00"),
        check_out=to_clock_time(_field(raw, "checkOut", "check_out"), "11:00"),
        estimated_cost=to_int(_field(raw, "estimatedCost", "estimated_cost", "cost"), 0, minimum=0),
        rating=_rating(raw.get("rating")),
        amenities=to_text_list(raw.get("amenities")),
    )


def decode_itinerary_payload(raw: Any, request: TripRequest) -> DecodedItinerary | DecodeRejection:
    """
    Decode a backend reply (JSON text, optionally code-fenced, or an already
    parsed dict) into typed days for `request`.

    Activities and accommodations whose location fails validation are
    dropped and counted. Day numbers come from the payload (positional index
    when missing or garbled); days outside 1..trip_days and repeats of an
    earlier day number are dropped. Dates are always recomputed from the
    request's start date. Missing days are left for the caller to fill.
    """
    payload = _load_payload(raw)
    if isinstance(payload, DecodeRejection):
        return payload

    raw_days = _field(payload, "itinerary", "days")
    if not isinstance(raw_days, list):
        return DecodeRejection("payload has no itinerary list")

    decoded = DecodedItinerary(
        title=to_text(payload.get("title")),
        summary=to_text(payload.get("summary")),
        days=[],
        tips=to_text_list(payload.get("tips")),
        total_estimated_cost=_optional_cost(_field(payload, "totalEstimatedCost", "total_estimated_cost")),
    )

    seen_days: set[int] = set()
    for position, raw_day in enumerate(raw_days):
        if not isinstance(raw_day, dict):
            decoded.dropped_days += 1
            continue
        number = to_int(raw_day.get("day"), position + 1, minimum=1)
        if number > request.trip_days or number in seen_days:
            decoded.dropped_days += 1
            continue
        seen_days.add(number)

        raw_activities = raw_day.get("activities")
        if not isinstance(raw_activities, list):
            raw_activities = []
        activities: list[Activity] = []
        for slot, raw_activity in enumerate(raw_activities):
            activity = _decode_activity(raw_activity, number, slot, len(activities) + 1)
            if activity is None:
                decoded.dropped_activities += 1
                continue
            activities.append(activity)

        accommodation = None
        raw_accommodation = raw_day.get("accommodation")
        if isinstance(raw_accommodation, dict):
            accommodation = _decode_accommodation(raw_accommodation)
            if accommodation is None:
                decoded.dropped_accommodations += 1

        decoded.days.append(
            DayItinerary(
                day=number,
                date=request.start_date + timedelta(days=number - 1),
                theme=to_text(raw_day.get("theme"), f"Day {number}"),
                activities=activities,
                accommodation=accommodation,
            )
        )

    decoded.days.sort(key=lambda d: d.day)
    if decoded.dropped_activities or decoded.dropped_accommodations or decoded.dropped_days:
        logger.info(
            f"[response_parser] Dropped {decoded.dropped_activities} activities, "
            f"{decoded.dropped_accommodations} accommodations, {decoded.dropped_days} days"
        )
    return decoded


__all__ = [
    "DecodedItinerary",
    "DecodeRejection",
    "decode_itinerary_payload",
    "DEFAULT_SLOTS",
    "TYPE_ALIASES",
]
