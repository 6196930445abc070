"""
Plan lifecycle on top of the itinerary agent and a PlanStore.
"""

from __future__ import annotations

import datetime as dt

from trip_planner.agents.itinerary_agent import ItineraryAgent
from trip_planner.agents.plan_assembly import plan_alternatives
from trip_planner.core.errors import InvalidStatusTransitionError, PlanNotFoundError, RequestNotFoundError
from trip_planner.core.logging import setup_logger
from trip_planner.db.plan_store import PlanStore
from trip_planner.models.itinerary import PlanUpdate, TravelPlan, new_id
from trip_planner.models.trip import TripRequest

logger = setup_logger(__name__)

STATUS_ORDER = ("draft", "confirmed", "completed")


def check_status_transition(current: str, target: str) -> None:
    """Status only moves forward; staying put is allowed."""
    if STATUS_ORDER.index(target) < STATUS_ORDER.index(current):
        raise InvalidStatusTransitionError(current, target)


class PlanningService:
    def __init__(self, agent: ItineraryAgent, store: PlanStore) -> None:
        self.agent = agent
        self.store = store

    async def generate(self, request: TripRequest) -> TravelPlan:
        request_id = new_id()
        await self.store.save_request(request_id, request)
        plan = await self.agent.generate(request, request_id=request_id)
        await self.store.save_plan(plan)
        logger.info(f"[planning] Created plan {plan.id} for request {request_id} ({plan.source})")
        return plan

    async def regenerate(self, request_id: str) -> TravelPlan:
        """
        Re-run generation for a stored request.

        The plan already linked to the request is replaced in place: it keeps
        its id and created_at, so repeated calls never accumulate plans.
        """
        request = await self.store.get_request(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)

        plan = await self.agent.generate(request, request_id=request_id)
        existing = await self.store.find_plan_by_request(request_id)
        if existing is not None:
            plan = plan.model_copy(update={"id": existing.id, "created_at": existing.created_at})
        await self.store.save_plan(plan)
        logger.info(f"[planning] Regenerated plan {plan.id} for request {request_id} ({plan.source})")
        return plan

    async def list_plans(self) -> list[TravelPlan]:
        return await self.store.list_plans()

    async def get_plan(self, plan_id: str) -> TravelPlan:
        plan = await self.store.get_plan(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        return plan

    async def update_plan(self, plan_id: str, update: PlanUpdate) -> TravelPlan:
        plan = await self.get_plan(plan_id)
        changes = update.model_dump(exclude_none=True)
        if "status" in changes:
            check_status_transition(plan.status, changes["status"])
        if not changes:
            return plan

        if "title" in changes:
            changes["alternatives"] = plan_alternatives(changes["title"], plan.budget, plan.total_estimated_cost)
        changes["updated_at"] = dt.datetime.now(dt.timezone.utc)
        updated = plan.model_copy(update=changes)
        await self.store.save_plan(updated)
        return updated

    async def delete_plan(self, plan_id: str) -> None:
        if not await self.store.delete_plan(plan_id):
            raise PlanNotFoundError(plan_id)
        logger.info(f"[planning] Deleted plan {plan_id}")


__all__ = ["PlanningService", "STATUS_ORDER", "check_status_transition"]
