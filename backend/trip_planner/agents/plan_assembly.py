"""
Final merge step: orchestrator output + request metadata -> TravelPlan.
"""

from __future__ import annotations

from trip_planner.core.errors import PlanAssemblyError
from trip_planner.models.itinerary import DayItinerary, GeneratedItinerary, PlanAlternative, TravelPlan
from trip_planner.models.trip import TripRequest
from trip_planner.utils.location_validator import is_valid_location

# (kind, title suffix, budget factor)
ALTERNATIVE_VARIANTS: tuple[tuple[str, str, float], ...] = (
    ("economy", "Economy", 0.7),
    ("luxury", "Luxury", 1.5),
)


def ensure_day_contiguity(days: list[DayItinerary], expected: int) -> None:
    """Raise PlanAssemblyError unless `days` are numbered exactly 1..expected in order."""
    numbers = [day.day for day in days]
    if numbers != list(range(1, expected + 1)):
        raise PlanAssemblyError(f"Expected days 1..{expected}, got {numbers}")


def ensure_valid_locations(days: list[DayItinerary]) -> None:
    for day in days:
        for activity in day.activities:
            if not is_valid_location(activity.location):
                raise PlanAssemblyError(f"Day {day.day} activity {activity.id} has invalid location {activity.location!r}")
        if day.accommodation is not None and not is_valid_location(day.accommodation.address):
            raise PlanAssemblyError(f"Day {day.day} accommodation has invalid address {day.accommodation.address!r}")


def plan_alternatives(title: str, budget: int, total: int) -> list[PlanAlternative]:
    """Economy and luxury variants of a plan, with budget and total scaled by the same factor."""
    return [
        PlanAlternative(
            kind=kind,
            title=f"{title} ({suffix})",
            budget=round(budget * factor),
            total_estimated_cost=round(total * factor),
        )
        for kind, suffix, factor in ALTERNATIVE_VARIANTS
    ]


def assemble_plan(
    request: TripRequest,
    generated: GeneratedItinerary,
    *,
    source: str,
    warnings: list[str] | None = None,
    request_id: str | None = None,
) -> TravelPlan:
    ensure_day_contiguity(generated.days, request.trip_days)
    ensure_valid_locations(generated.days)

    total = generated.total_estimated_cost
    if total is None:
        total = sum(day.total_cost for day in generated.days)

    title = generated.title or f"{request.destination} {request.trip_days}-Day Trip"
    return TravelPlan(
        request_id=request_id,
        title=title,
        summary=generated.summary,
        origin=request.origin,
        destination=request.destination,
        start_date=request.start_date,
        end_date=request.end_date,
        budget=request.budget,
        travelers=request.travelers,
        preferences=list(request.preferences),
        transport_mode=request.transport_mode,
        additional_requirements=request.additional_requirements,
        itinerary=list(generated.days),
        total_estimated_cost=total,
        tips=list(generated.tips),
        alternatives=plan_alternatives(title, request.budget, total),
        source=source,
        warnings=list(warnings or []),
        status="draft",
    )


__all__ = ["assemble_plan", "ensure_day_contiguity", "ensure_valid_locations", "plan_alternatives"]
