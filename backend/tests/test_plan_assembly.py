import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from trip_planner.agents.fallback_generator import generate_fallback_itinerary
from trip_planner.agents.plan_assembly import assemble_plan, ensure_day_contiguity
from trip_planner.core.errors import PlanAssemblyError
from trip_planner.models.itinerary import Activity, DayItinerary, GeneratedItinerary
from trip_planner.models.trip import TripRequest

REQUEST = TripRequest(
    origin="Beijing",
    destination="Hangzhou",
    start_date=date(2025, 4, 1),
    end_date=date(2025, 4, 3),
    budget=6000,
    travelers=2,
    preferences=["自然风光"],
    transport_mode="train",
)


def day(number: int, location: str = "West Lake") -> DayItinerary:
    return DayItinerary(
        day=number,
        date=REQUEST.start_date + timedelta(days=number - 1),
        activities=[Activity(id=f"d{number}-a1", time="09:00", title="Walk", location=location, estimated_cost=50)],
    )


def test_contiguous_days_pass():
    ensure_day_contiguity([day(1), day(2), day(3)], 3)


@pytest.mark.parametrize(
    "numbers",
    [[1, 3], [1, 2, 2], [1, 2], [2, 3, 4], [1, 3, 2], [1, 2, 3, 4]],
)
def test_gaps_repeats_and_count_mismatch_raise(numbers):
    with pytest.raises(PlanAssemblyError):
        ensure_day_contiguity([day(n) for n in numbers], 3)


def test_assemble_rejects_gap_instead_of_patching():
    generated = GeneratedItinerary(title="Broken", days=[day(1), day(3)])
    with pytest.raises(PlanAssemblyError):
        assemble_plan(REQUEST, generated, source="llm")


def test_assemble_rejects_placeholder_location():
    generated = GeneratedItinerary(title="Broken", days=[day(1), day(2, "酒店附近"), day(3)])
    with pytest.raises(PlanAssemblyError):
        assemble_plan(REQUEST, generated, source="llm")


def test_assemble_copies_request_and_totals_costs():
    generated = GeneratedItinerary(title="", days=[day(1), day(2), day(3)])
    plan = assemble_plan(REQUEST, generated, source="llm", warnings=["note"], request_id="req-1")

    assert plan.title == "Hangzhou 3-Day Trip"
    assert plan.total_estimated_cost == 150
    assert plan.request_id == "req-1"
    assert plan.warnings == ["note"]
    assert plan.status == "draft"
    assert plan.source == "llm"
    assert (plan.origin, plan.destination, plan.transport_mode) == ("Beijing", "Hangzhou", "train")
    assert plan.preferences == ["自然风光"]


def test_assemble_keeps_provided_total():
    generated = generate_fallback_itinerary(REQUEST)
    plan = assemble_plan(REQUEST, generated.model_copy(update={"total_estimated_cost": 4321}), source="fallback")
    assert plan.total_estimated_cost == 4321
    assert len(plan.itinerary) == 3


def test_assemble_adds_economy_and_luxury_alternatives():
    generated = GeneratedItinerary(title="West Lake Weekend", days=[day(1), day(2), day(3)])
    plan = assemble_plan(REQUEST, generated, source="llm")

    assert [a.kind for a in plan.alternatives] == ["economy", "luxury"]
    economy, luxury = plan.alternatives
    assert economy.title == "West Lake Weekend (Economy)"
    assert (economy.budget, economy.total_estimated_cost) == (4200, 105)
    assert luxury.title == "West Lake Weekend (Luxury)"
    assert (luxury.budget, luxury.total_estimated_cost) == (9000, 225)
    # The plan itself is untouched
    assert plan.budget == 6000
    assert plan.total_estimated_cost == 150
