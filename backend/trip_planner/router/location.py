"""
Location Router
Geocoding and location-name validation for map display
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from trip_planner.models.common import APIResponse
from trip_planner.router.deps import get_queue, get_resolver
from trip_planner.services.geocoding import GeocodingResolver
from trip_planner.services.rate_limiter import RateLimitedQueue
from trip_planner.utils.location_validator import partition_locations

router = APIRouter(prefix="/locations", tags=["Locations"])


class BatchGeocodeRequest(BaseModel):
    addresses: list[str] = Field(..., min_length=1, max_length=100)
    city: str | None = Field(default=None, description="Optional city hint for every address")


class ValidateLocationsRequest(BaseModel):
    locations: list[str] = Field(default_factory=list)


@router.get("/geocode", response_model=APIResponse)
async def geocode(
    address: str = Query(..., description="Place name or address", min_length=1),
    city: str | None = Query(default=None, description="Optional city hint"),
    resolver: GeocodingResolver = Depends(get_resolver),
):
    """
    Resolve one address to coordinates.

    An unresolved address is not an error: `data.result` is null and the map
    shows the point as unavailable.
    """
    result = await resolver.resolve(address, city)
    return APIResponse(
        code=0,
        msg="ok" if result else "Location unavailable",
        data={"address": address, "result": result.model_dump() if result else None},
    )


@router.post("/geocode/batch", response_model=APIResponse)
async def geocode_batch(
    body: BatchGeocodeRequest,
    resolver: GeocodingResolver = Depends(get_resolver),
):
    results = await resolver.resolve_many(body.addresses, body.city)
    items = [
        {"address": address, "result": result.model_dump() if result else None}
        for address, result in zip(body.addresses, results)
    ]
    return APIResponse(
        code=0,
        msg="ok",
        data={"results": items, "resolved": sum(1 for r in results if r is not None), "count": len(items)},
    )


@router.post("/validate", response_model=APIResponse)
async def validate_locations(body: ValidateLocationsRequest):
    valid, invalid = partition_locations(body.locations)
    return APIResponse(code=0, msg="ok", data={"valid": valid, "invalid": invalid})


@router.get("/queue", response_model=APIResponse)
async def queue_status(queue: RateLimitedQueue = Depends(get_queue)):
    status = queue.status()
    return APIResponse(
        code=0,
        msg="ok",
        data={
            "current_calls": status.current_calls,
            "queue_length": status.queue_length,
            "can_dispatch": status.can_dispatch,
            "max_calls": queue.max_calls,
            "window_ms": int(queue.window * 1000),
        },
    )
