import math
import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from trip_planner.agents.fallback_generator import (
    DEFAULT_PLACE,
    DESTINATION_PROFILES,
    TRANSPORT_TEMPLATES,
    build_fallback_day,
    generate_fallback_itinerary,
    matched_template_keys,
    place_name,
)
from trip_planner.models.trip import TRANSPORT_MODES, TripRequest
from trip_planner.services.fallback_coordinates import DEFAULT_FALLBACK_TABLE
from trip_planner.utils.location_validator import is_valid_location


def london_request(**overrides) -> TripRequest:
    fields = {
        "origin": "Shanghai",
        "destination": "London",
        "start_date": date(2025, 10, 1),
        "end_date": date(2025, 10, 5),
        "budget": 20000,
        "travelers": 2,
        "transport_mode": "flight",
        "preferences": ["food"],
    }
    fields.update(overrides)
    return TripRequest(**fields)


def test_london_scenario():
    itinerary = generate_fallback_itinerary(london_request())

    assert [d.day for d in itinerary.days] == [1, 2, 3, 4, 5]
    assert [d.date for d in itinerary.days] == [date(2025, 10, 1) + timedelta(days=i) for i in range(5)]

    transport = itinerary.days[0].activities[0]
    assert transport.type == "transport"
    assert transport.estimated_cost == math.floor(20000 * 0.25 / 2)
    assert transport.time == TRANSPORT_TEMPLATES["flight"].time

    activity_types = [a.type for d in itinerary.days for a in d.activities]
    assert "dining" in activity_types
    assert itinerary.title == "London 5-Day Trip"


def test_is_pure_function_of_request():
    first = generate_fallback_itinerary(london_request())
    second = generate_fallback_itinerary(london_request())
    assert first.model_dump() == second.model_dump()


@pytest.mark.parametrize("mode", TRANSPORT_MODES)
def test_each_mode_has_distinct_transport_template(mode):
    itinerary = generate_fallback_itinerary(london_request(transport_mode=mode))
    transport = itinerary.days[0].activities[0]
    template = TRANSPORT_TEMPLATES[mode]

    assert transport.type == "transport"
    assert transport.time == template.time
    assert transport.duration == template.duration
    assert transport.estimated_cost == math.floor(20000 * template.cost_ratio / 2)


def test_transport_templates_are_distinct():
    signatures = {(t.time, t.duration, t.cost_ratio) for t in TRANSPORT_TEMPLATES.values()}
    assert len(signatures) == len(TRANSPORT_TEMPLATES)


def test_only_day_one_has_transport_and_accommodation():
    itinerary = generate_fallback_itinerary(london_request())
    day_one, rest = itinerary.days[0], itinerary.days[1:]

    assert day_one.accommodation is not None
    assert day_one.accommodation.estimated_cost == math.floor(20000 * 0.3 / 4)
    assert all(d.accommodation is None for d in rest)
    assert all(a.type != "transport" for d in rest for a in d.activities)


def test_one_to_two_preference_activities_per_day():
    itinerary = generate_fallback_itinerary(london_request(preferences=["美食", "购物", "历史文化"]))
    for day in itinerary.days:
        preference_activities = [a for a in day.activities if a.type != "transport"]
        assert 1 <= len(preference_activities) <= 2


def test_default_pair_when_no_tag_matches():
    itinerary = generate_fallback_itinerary(london_request(preferences=["something unusual"]))
    types = {a.type for d in itinerary.days for a in d.activities}
    assert {"sightseeing", "dining"} <= types


def test_tag_matching_handles_both_scripts():
    assert matched_template_keys(["美食", "Food", "shopping", "温泉"]) == ["food", "shopping", "spa"]
    assert matched_template_keys(["unknown"]) == []


def test_costs_scale_with_budget():
    cheap = generate_fallback_itinerary(london_request(budget=2000))
    rich = generate_fallback_itinerary(london_request(budget=40000))
    assert rich.days[0].activities[0].estimated_cost == 20 * cheap.days[0].activities[0].estimated_cost


def test_accommodation_tier_follows_budget():
    assert "Youth Hostel" in generate_fallback_itinerary(london_request(budget=2000)).days[0].accommodation.name
    assert "Boutique" in generate_fallback_itinerary(london_request(budget=5000)).days[0].accommodation.name
    assert "Grand" in generate_fallback_itinerary(london_request(budget=20000)).days[0].accommodation.name


def test_all_generated_locations_are_valid():
    for destination in ("London", "Paris", "成都", "上海"):
        for mode in TRANSPORT_MODES:
            itinerary = generate_fallback_itinerary(
                london_request(destination=destination, transport_mode=mode, preferences=["food", "nature", "anime"])
            )
            for day in itinerary.days:
                for activity in day.activities:
                    assert is_valid_location(activity.location), activity.location
                if day.accommodation:
                    assert is_valid_location(day.accommodation.address)


def test_single_day_trip():
    request = london_request(end_date=date(2025, 10, 1))
    itinerary = generate_fallback_itinerary(request)
    assert len(itinerary.days) == 1
    assert itinerary.days[0].accommodation.estimated_cost == math.floor(20000 * 0.3 / 1)


def test_single_day_builder_matches_full_itinerary():
    request = london_request()
    itinerary = generate_fallback_itinerary(request)
    assert build_fallback_day(request, 3) == itinerary.days[2]


def all_locations(itinerary) -> list[str]:
    locations = [a.location for d in itinerary.days for a in d.activities]
    locations += [d.accommodation.address for d in itinerary.days if d.accommodation]
    return locations


VAGUE_DESTINATIONS = [
    ("上海周边", "上海"),
    ("Shanghai surroundings", "Shanghai"),
    ("Paris nearby", "Paris"),
    ("London downtown", "London"),
    ("杭州当地", "杭州"),
    ("目的地", "Shanghai"),
    ("附近", "Shanghai"),
]


@pytest.mark.parametrize("destination,expected_place", VAGUE_DESTINATIONS)
def test_vague_destination_still_yields_valid_locations(destination, expected_place):
    request = london_request(destination=destination, preferences=["food", "nature", "anime"])
    assert place_name(request) == expected_place

    for mode in TRANSPORT_MODES:
        itinerary = generate_fallback_itinerary(request.model_copy(update={"transport_mode": mode}))
        for location in all_locations(itinerary):
            assert is_valid_location(location), location


def test_default_place_when_origin_is_vague_too():
    request = london_request(origin="nearby", destination="附近")
    assert place_name(request) == DEFAULT_PLACE
    for location in all_locations(generate_fallback_itinerary(request)):
        assert is_valid_location(location), location


@pytest.mark.parametrize(
    "destination,preferences",
    [
        ("London", ["food", "shopping", "culture", "photography"]),
        ("伦敦", ["nightlife", "art"]),
        ("Paris", ["culture", "art"]),
        ("三亚", ["nature", "outdoor", "culture"]),
        ("Tokyo", ["food", "shopping", "culture"]),
        ("北京", ["culture", "outdoor"]),
    ],
)
def test_known_destinations_use_real_landmarks(destination, preferences):
    request = london_request(destination=destination, preferences=preferences)
    itinerary = generate_fallback_itinerary(request)

    activity_locations = [a.location for d in itinerary.days for a in d.activities]
    for location in activity_locations:
        assert DEFAULT_FALLBACK_TABLE.lookup(location) is not None, location
    # Nothing synthesized from the destination name
    assert not any(destination in loc for loc in activity_locations)


def test_london_flight_lands_at_heathrow_with_landmark_activities():
    itinerary = generate_fallback_itinerary(london_request(preferences=["food", "culture"]))
    day_one = itinerary.days[0]
    assert day_one.activities[0].location == "Heathrow Airport"
    assert day_one.activities[1].location == "The Wolseley"
    assert day_one.activities[1].type == "dining"
    assert day_one.activities[2].location == "British Museum"


def test_every_profile_landmark_is_in_the_coordinate_table():
    for profile in DESTINATION_PROFILES:
        assert DEFAULT_FALLBACK_TABLE.lookup(profile.airport) is not None, profile.airport
        for variants in profile.landmarks.values():
            for _, location in variants:
                assert is_valid_location(location), location
                assert DEFAULT_FALLBACK_TABLE.lookup(location) is not None, location
