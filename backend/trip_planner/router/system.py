from fastapi import APIRouter, Request

from trip_planner.core.config import APP_NAME, APP_VERSION
from trip_planner.models.common import APIResponse

router = APIRouter(tags=["System"])


@router.get("/", response_model=APIResponse)
def root():
    return APIResponse(
        code=0, msg="ok", data={"msg": f"{APP_NAME} {APP_VERSION}. POST /plans to generate an itinerary."}
    )


@router.get("/health", response_model=APIResponse)
def health_check(request: Request):
    state = request.app.state
    return APIResponse(
        code=0,
        msg="ok",
        data={
            "status": "healthy",
            "service": "trip_planner-server",
            "llm_configured": state.agent.backend_configured,
            "geocoding_configured": bool(state.resolver.api_key),
            "storage": state.storage,
        },
    )
