import asyncio
import json
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import pytest
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

# Allow importing from backend/trip_planner
sys.path.insert(0, str(Path(__file__).parent.parent))

from trip_planner.agents.itinerary_agent import ItineraryAgent, build_prompt
from trip_planner.models.trip import TripRequest
from trip_planner.utils.location_validator import is_valid_location


def print_section(title: str) -> None:
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80)


def london_request(days: int = 5, **overrides) -> TripRequest:
    fields = {
        "origin": "Shanghai",
        "destination": "London",
        "start_date": date(2025, 10, 1),
        "end_date": date(2025, 10, 1) + timedelta(days=days - 1),
        "budget": 20000,
        "travelers": 2,
        "transport_mode": "flight",
        "preferences": ["food"],
    }
    fields.update(overrides)
    return TripRequest(**fields)


def fake_llm(content: Any) -> RunnableLambda:
    """Chat-model stand-in returning a fixed message, recording its prompts."""
    calls: list[Any] = []

    def respond(prompt_value):
        calls.append(prompt_value)
        text = content if isinstance(content, str) else json.dumps(content, ensure_ascii=False)
        return AIMessage(content=text)

    runnable = RunnableLambda(respond)
    runnable.calls = calls  # type: ignore[attr-defined]
    return runnable


def activity(title: str, location: str, **extra) -> dict:
    return {"time": "10:00", "title": title, "description": "", "location": location, "type": "sightseeing", **extra}


def generate(agent: ItineraryAgent, request: TripRequest):
    return asyncio.run(agent.generate(request))


def assert_plan_invariants(plan, request: TripRequest) -> None:
    assert [d.day for d in plan.itinerary] == list(range(1, request.trip_days + 1))
    assert [d.date for d in plan.itinerary] == [
        request.start_date + timedelta(days=i) for i in range(request.trip_days)
    ]
    for day in plan.itinerary:
        for a in day.activities:
            assert is_valid_location(a.location), a.location
        if day.accommodation is not None:
            assert is_valid_location(day.accommodation.address)


# ---- Fallback path ----


def test_no_credential_always_uses_fallback():
    print_section("NO BACKEND CONFIGURED")
    request = london_request()
    agent = ItineraryAgent(api_key=None)
    plan = generate(agent, request)

    print(plan.model_dump_json(indent=2)[:1500])

    assert agent.backend_configured is False
    assert plan.source == "fallback"
    assert plan.status == "draft"
    assert len(plan.itinerary) == 5
    transport = plan.itinerary[0].activities[0]
    assert transport.type == "transport"
    assert transport.estimated_cost == 2500
    assert any(a.type == "dining" for d in plan.itinerary for a in d.activities)
    assert any("unavailable" in w for w in plan.warnings)
    assert_plan_invariants(plan, request)


def test_all_vague_locations_trigger_fallback():
    request = london_request(days=2)
    payload = {
        "title": "Vague trip",
        "itinerary": [
            {"day": 1, "activities": [activity("Lunch", "酒店附近"), activity("Walk", "酒店附近")]},
            {"day": 2, "activities": [activity("Dinner", "酒店附近")]},
        ],
    }
    llm = fake_llm(payload)
    plan = generate(ItineraryAgent(llm), request)

    assert len(llm.calls) == 1
    assert plan.source == "fallback"
    assert len(plan.itinerary) == 2
    assert plan.itinerary[0].activities[0].type == "transport"
    assert any("no activities with valid locations" in w for w in plan.warnings)
    assert_plan_invariants(plan, request)


@pytest.mark.parametrize(
    "content",
    [
        "this is not json",
        "[1, 2, 3]",
        json.dumps({"title": "No days here"}),
        "",
    ],
)
def test_unusable_payload_falls_back(content):
    request = london_request(days=3)
    plan = generate(ItineraryAgent(fake_llm(content)), request)
    assert plan.source == "fallback"
    assert any("rejected" in w for w in plan.warnings)
    assert_plan_invariants(plan, request)


def test_backend_exception_falls_back():
    def explode(_):
        raise RuntimeError("502 Bad Gateway")

    request = london_request(days=2)
    plan = generate(ItineraryAgent(RunnableLambda(explode)), request)
    assert plan.source == "fallback"
    assert any("RuntimeError" in w for w in plan.warnings)


def test_backend_timeout_falls_back():
    async def hang(_):
        await asyncio.sleep(5)
        return AIMessage(content="{}")

    request = london_request(days=2)
    plan = generate(ItineraryAgent(RunnableLambda(hang), timeout=0.05), request)
    assert plan.source == "fallback"
    assert any("timed out" in w for w in plan.warnings)


@pytest.mark.parametrize("destination", ["上海周边", "Shanghai surroundings", "London nearby", "目的地"])
def test_vague_destination_still_produces_a_plan(destination):
    request = london_request(days=3, destination=destination)

    plan = generate(ItineraryAgent(api_key=None), request)
    assert plan.source == "fallback"
    assert plan.destination == destination
    assert_plan_invariants(plan, request)

    # Missing days filled from the templates go through the same naming
    llm = fake_llm({"itinerary": [{"day": 2, "activities": [activity("Bund walk", "The Bund")]}]})
    plan = generate(ItineraryAgent(llm), request)
    assert plan.source == "llm"
    assert_plan_invariants(plan, request)


def test_fallback_latency_is_simulated_through_sleep():
    slept: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        slept.append(seconds)

    agent = ItineraryAgent(api_key=None, fallback_latency=1.5, sleep=fake_sleep)
    generate(agent, london_request(days=1))
    assert slept == [1.5]


# ---- Accept path ----


def test_accepts_valid_response_and_drops_vague_entries():
    request = london_request(days=2)
    payload = {
        "title": "London Highlights",
        "summary": "Two days of classics",
        "itinerary": [
            {
                "day": 1,
                "date": "1999-01-01",
                "theme": "Westminster",
                "activities": [
                    activity("Big Ben photo stop", "Big Ben", estimatedCost="¥200", duration="NaN"),
                    activity("Lunch", "附近的餐厅", type="restaurant"),
                    activity("Dinner at The Wolseley", "The Wolseley", type="restaurant", estimatedCost=float("inf")),
                ],
                "accommodation": {"name": "Mystery Hotel", "address": "见下方住宿信息"},
            },
            {
                "day": 2,
                "activities": [activity("British Museum", "British Museum", time="9:30")],
                "accommodation": {
                    "name": "The Savoy",
                    "address": "Strand, London WC2R 0EZ",
                    "estimatedCost": "3,000",
                    "checkIn": "14:00",
                },
            },
        ],
        "totalEstimatedCost": 9000,
        "tips": ["Carry an umbrella"],
    }
    plan = generate(ItineraryAgent(fake_llm(payload)), request)

    print_section("ACCEPTED PLAN")
    print(plan.model_dump_json(indent=2)[:2000])

    assert plan.source == "llm"
    assert plan.title == "London Highlights"
    assert plan.total_estimated_cost == 9000
    assert plan.tips == ["Carry an umbrella"]
    assert_plan_invariants(plan, request)

    day_one, day_two = plan.itinerary
    assert day_one.date == date(2025, 10, 1)
    assert [a.location for a in day_one.activities] == ["Big Ben", "The Wolseley"]
    assert day_one.activities[0].estimated_cost == 200
    assert day_one.activities[0].duration == 120
    assert day_one.activities[1].type == "dining"
    assert day_one.activities[1].estimated_cost == 0
    assert day_one.accommodation is None

    assert day_two.activities[0].time == "09:30"
    assert day_two.accommodation.estimated_cost == 3000
    assert day_two.accommodation.check_in == "14:00"
    assert day_two.accommodation.check_out == "11:00"

    assert any("Dropped 1 activities" in w for w in plan.warnings)
    assert any("Dropped 1 accommodations" in w for w in plan.warnings)


def test_code_fenced_json_is_accepted():
    request = london_request(days=1)
    body = json.dumps({"itinerary": [{"day": 1, "activities": [activity("Eye", "London Eye")]}]})
    plan = generate(ItineraryAgent(fake_llm(f"```json\n{body}\n```")), request)
    assert plan.source == "llm"
    assert plan.itinerary[0].activities[0].location == "London Eye"


def test_missing_days_are_filled_and_extra_days_dropped():
    request = london_request(days=3)
    payload = {
        "itinerary": [
            {"day": 3, "activities": [activity("Tower Bridge walk", "Tower Bridge")]},
            {"day": 1, "activities": [activity("Big Ben", "Big Ben")]},
            {"day": 1, "activities": [activity("Duplicate", "London Eye")]},
            {"day": 7, "activities": [activity("Out of range", "Covent Garden")]},
        ]
    }
    plan = generate(ItineraryAgent(fake_llm(payload)), request)

    assert plan.source == "llm"
    assert_plan_invariants(plan, request)
    assert plan.itinerary[0].activities[0].location == "Big Ben"
    assert plan.itinerary[2].activities[0].location == "Tower Bridge"
    # Day 2 came from the deterministic templates
    assert plan.itinerary[1].activities
    assert any("Filled missing days [2]" in w for w in plan.warnings)
    assert any("Dropped 2 duplicate or out-of-range days" in w for w in plan.warnings)


def test_oversized_numbers_are_coerced_not_raised():
    request = london_request(days=1)
    payload = {
        "itinerary": [
            {
                "day": 1,
                "activities": [
                    activity("Big Ben", "Big Ben", duration=10**400, estimatedCost=10**400),
                ],
                "accommodation": {"name": "The Savoy", "address": "Strand, London", "estimatedCost": 10**400},
            },
            {"day": 10**400, "activities": [activity("Eye", "London Eye")]},
        ],
        "totalEstimatedCost": 10**400,
    }
    plan = generate(ItineraryAgent(fake_llm(payload)), request)

    assert plan.source == "llm"
    assert_plan_invariants(plan, request)
    big_ben = plan.itinerary[0].activities[0]
    assert big_ben.duration == 120
    assert big_ben.estimated_cost == 0
    assert plan.itinerary[0].accommodation.estimated_cost == 0
    assert any("Dropped 1 duplicate or out-of-range days" in w for w in plan.warnings)


def test_positional_day_numbers_when_missing():
    request = london_request(days=2)
    payload = {
        "itinerary": [
            {"activities": [activity("Big Ben", "Big Ben")]},
            {"day": "two", "activities": [activity("Eye", "London Eye")]},
        ]
    }
    plan = generate(ItineraryAgent(fake_llm(payload)), request)
    assert [d.activities[0].location for d in plan.itinerary] == ["Big Ben", "London Eye"]


def test_request_fields_are_copied_onto_plan():
    request = london_request(days=2, additional_requirements="Travelling with a toddler")
    plan = generate(ItineraryAgent(api_key=None), request)

    assert plan.origin == "Shanghai"
    assert plan.destination == "London"
    assert plan.start_date == request.start_date
    assert plan.end_date == request.end_date
    assert plan.budget == 20000
    assert plan.travelers == 2
    assert plan.preferences == ["food"]
    assert plan.transport_mode == "flight"
    assert plan.additional_requirements == "Travelling with a toddler"
    assert plan.created_at is not None and plan.updated_at is not None
    assert [a.kind for a in plan.alternatives] == ["economy", "luxury"]
    assert plan.alternatives[0].budget == 14000


# ---- Prompt ----


def test_build_prompt_is_deterministic_and_complete():
    request = london_request(preferences=["food", "culture"])
    prompt = build_prompt(request)

    assert prompt == build_prompt(request)
    assert "Shanghai" in prompt and "London" in prompt
    assert "2025-10-01" in prompt and "2025-10-05" in prompt
    assert "exactly 5 days" in prompt
    assert "food, culture" in prompt
    assert "酒店附近" in prompt and "near the hotel" in prompt
    for key in ("title", "summary", "itinerary", "activities", "estimatedCost", "duration", "tips", "totalEstimatedCost"):
        assert f'"{key}"' in prompt


def test_prompt_reaches_backend():
    llm = fake_llm({"itinerary": [{"day": 1, "activities": [activity("Eye", "London Eye")]}]})
    request = london_request(days=1)
    generate(ItineraryAgent(llm), request)

    messages = llm.calls[0].to_messages()
    assert messages[0].type == "system"
    assert messages[1].content == build_prompt(request)
