"""
Plan Router
Generates, regenerates and manages travel plans
"""

from fastapi import APIRouter, Depends, HTTPException

from trip_planner.core.errors import InvalidStatusTransitionError, PlanNotFoundError, RequestNotFoundError
from trip_planner.models.common import APIResponse
from trip_planner.models.itinerary import PlanUpdate
from trip_planner.models.trip import TripRequest
from trip_planner.router.deps import get_planning_service
from trip_planner.services.planning import PlanningService

router = APIRouter(prefix="/plans", tags=["Plans"])


@router.post("", response_model=APIResponse)
async def create_plan(
    request: TripRequest,
    service: PlanningService = Depends(get_planning_service),
):
    """
    Generate a day-by-day plan for the trip request.

    Always succeeds for a valid request: when the generative backend is
    unavailable the plan comes from deterministic templates (`source` = "fallback").
    """
    plan = await service.generate(request)
    return APIResponse(code=0, msg="Plan generated", data=plan.model_dump(mode="json"))


@router.get("", response_model=APIResponse)
async def list_plans(service: PlanningService = Depends(get_planning_service)):
    plans = await service.list_plans()
    return APIResponse(
        code=0,
        msg="ok",
        data={"plans": [p.model_dump(mode="json") for p in plans], "count": len(plans)},
    )


@router.get("/{plan_id}", response_model=APIResponse)
async def get_plan(plan_id: str, service: PlanningService = Depends(get_planning_service)):
    try:
        plan = await service.get_plan(plan_id)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return APIResponse(code=0, msg="ok", data=plan.model_dump(mode="json"))


@router.patch("/{plan_id}", response_model=APIResponse)
async def update_plan(
    plan_id: str,
    update: PlanUpdate,
    service: PlanningService = Depends(get_planning_service),
):
    try:
        plan = await service.update_plan(plan_id, update)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStatusTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return APIResponse(code=0, msg="Plan updated", data=plan.model_dump(mode="json"))


@router.delete("/{plan_id}", response_model=APIResponse)
async def delete_plan(plan_id: str, service: PlanningService = Depends(get_planning_service)):
    try:
        await service.delete_plan(plan_id)
    except PlanNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return APIResponse(code=0, msg="Plan deleted", data={"id": plan_id})


@router.post("/requests/{request_id}/regenerate", response_model=APIResponse)
async def regenerate_plan(request_id: str, service: PlanningService = Depends(get_planning_service)):
    """Re-run generation for a stored request, replacing its plan in place."""
    try:
        plan = await service.regenerate(request_id)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return APIResponse(code=0, msg="Plan regenerated", data=plan.model_dump(mode="json"))
