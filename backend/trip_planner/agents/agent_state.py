# agent_state.py - State shared by the itinerary generation graph
import operator
from typing import Annotated, Any, TypedDict

from langgraph.graph.message import add_messages


class PlanningState(TypedDict, total=False):
    """
    State schema for the itinerary generation graph.
    Each node returns a partial update; LangGraph merges it into this state.

    Inputs:
    - request: the immutable TripRequest being planned
    - request_id: stored request id, carried onto the plan

    Intermediate:
    - prompt: output of build_prompt
    - raw_response: backend message content, None when the backend was skipped or failed
    - decoded: DecodedItinerary that passed validation, None routes to fallback

    Outputs:
    - generated: GeneratedItinerary from either branch
    - source: "llm" | "fallback"
    - plan: the assembled TravelPlan
    - warnings: accumulated across nodes, copied onto the plan
    """

    # ========== Core Communication Fields ==========
    messages: Annotated[list, add_messages]

    # ========== Inputs ==========
    request: Any  # TripRequest
    request_id: str | None

    # ========== Pipeline ==========
    prompt: str
    raw_response: str | None
    decoded: Any  # DecodedItinerary | None
    generated: Any  # GeneratedItinerary
    source: str
    plan: Any  # TravelPlan

    # ========== Diagnostics ==========
    warnings: Annotated[list[str], operator.add]
    metrics: dict[str, Any]
