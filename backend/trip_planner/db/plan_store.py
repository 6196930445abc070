"""
Plan persistence: stored trip requests and the plans generated from them.

InMemoryPlanStore is the default; MongoPlanStore is used when MONGODB_URI is set.
"""

from __future__ import annotations

from typing import Any, Protocol

from trip_planner.models.itinerary import TravelPlan
from trip_planner.models.trip import TripRequest


class PlanStore(Protocol):
    async def save_request(self, request_id: str, request: TripRequest) -> None: ...

    async def get_request(self, request_id: str) -> TripRequest | None: ...

    async def save_plan(self, plan: TravelPlan) -> None: ...

    async def get_plan(self, plan_id: str) -> TravelPlan | None: ...

    async def find_plan_by_request(self, request_id: str) -> TravelPlan | None: ...

    async def list_plans(self) -> list[TravelPlan]: ...

    async def delete_plan(self, plan_id: str) -> bool: ...


class InMemoryPlanStore:
    def __init__(self) -> None:
        self._requests: dict[str, TripRequest] = {}
        self._plans: dict[str, TravelPlan] = {}

    async def save_request(self, request_id: str, request: TripRequest) -> None:
        self._requests[request_id] = request

    async def get_request(self, request_id: str) -> TripRequest | None:
        return self._requests.get(request_id)

    async def save_plan(self, plan: TravelPlan) -> None:
        self._plans[plan.id] = plan

    async def get_plan(self, plan_id: str) -> TravelPlan | None:
        return self._plans.get(plan_id)

    async def find_plan_by_request(self, request_id: str) -> TravelPlan | None:
        for plan in self._plans.values():
            if plan.request_id == request_id:
                return plan
        return None

    async def list_plans(self) -> list[TravelPlan]:
        return sorted(self._plans.values(), key=lambda p: p.created_at, reverse=True)

    async def delete_plan(self, plan_id: str) -> bool:
        return self._plans.pop(plan_id, None) is not None


class MongoPlanStore:
    """Plans keyed by `_id = plan.id`, requests by `_id = request_id`."""

    def __init__(self, plans_collection: Any, requests_collection: Any) -> None:
        self._plans = plans_collection
        self._requests = requests_collection

    @staticmethod
    def _to_plan(doc: dict | None) -> TravelPlan | None:
        if doc is None:
            return None
        doc = dict(doc)
        doc.pop("_id", None)
        return TravelPlan.model_validate(doc)

    async def save_request(self, request_id: str, request: TripRequest) -> None:
        doc = request.model_dump(mode="json")
        doc["_id"] = request_id
        await self._requests.replace_one({"_id": request_id}, doc, upsert=True)

    async def get_request(self, request_id: str) -> TripRequest | None:
        doc = await self._requests.find_one({"_id": request_id})
        if doc is None:
            return None
        doc.pop("_id", None)
        return TripRequest.model_validate(doc)

    async def save_plan(self, plan: TravelPlan) -> None:
        doc = plan.model_dump(mode="json")
        doc["_id"] = plan.id
        await self._plans.replace_one({"_id": plan.id}, doc, upsert=True)

    async def get_plan(self, plan_id: str) -> TravelPlan | None:
        return self._to_plan(await self._plans.find_one({"_id": plan_id}))

    async def find_plan_by_request(self, request_id: str) -> TravelPlan | None:
        return self._to_plan(await self._plans.find_one({"request_id": request_id}))

    async def list_plans(self) -> list[TravelPlan]:
        cursor = self._plans.find({}).sort("created_at", -1)
        return [self._to_plan(doc) async for doc in cursor]

    async def delete_plan(self, plan_id: str) -> bool:
        result = await self._plans.delete_one({"_id": plan_id})
        return result.deleted_count > 0


__all__ = ["PlanStore", "InMemoryPlanStore", "MongoPlanStore"]
