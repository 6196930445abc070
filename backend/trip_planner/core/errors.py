"""
Domain errors raised by the planning service and plan assembly.

Routers translate the lookup/transition errors into HTTP responses.
PlanAssemblyError signals a broken internal invariant and is never caught.
"""


class TripPlannerError(Exception):
    """Base class for errors raised by trip_planner."""


class PlanNotFoundError(TripPlannerError):
    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Plan '{plan_id}' not found")
        self.plan_id = plan_id


class RequestNotFoundError(TripPlannerError):
    def __init__(self, request_id: str) -> None:
        super().__init__(f"Trip request '{request_id}' not found")
        self.request_id = request_id


class InvalidStatusTransitionError(TripPlannerError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move plan from '{current}' to '{target}'")
        self.current = current
        self.target = target


class PlanAssemblyError(RuntimeError):
    """An assembled itinerary broke the day-contiguity invariant."""


class QueueClearedError(TripPlannerError):
    """A pending rate-limited task was discarded by RateLimitedQueue.clear()."""
