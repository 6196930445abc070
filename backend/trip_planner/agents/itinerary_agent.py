from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Awaitable, Callable

from langchain_core.messages import AIMessage
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from langgraph.graph import END, StateGraph

from trip_planner.agents.agent_state import PlanningState
from trip_planner.agents.fallback_generator import build_fallback_day, generate_fallback_itinerary
from trip_planner.agents.plan_assembly import assemble_plan
from trip_planner.agents.response_parser import DecodeRejection, decode_itinerary_payload
from trip_planner.core.config import (
    FALLBACK_LATENCY_MS,
    LLM_API_KEY,
    LLM_BASE_URL,
    LLM_MODEL,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
)
from trip_planner.core.logging import setup_logger
from trip_planner.models.itinerary import ACTIVITY_TYPES, GeneratedItinerary, TravelPlan
from trip_planner.models.trip import TripRequest

logger = setup_logger(__name__)

AGENT_LABEL = "itinerary"

# Phrases the model must never use as a location; mirrors the location validator rules
FORBIDDEN_LOCATION_PHRASES = (
    "酒店附近",
    "景区内",
    "市中心",
    "附近",
    "周边",
    "详见下方住宿信息",
    "目的地",
    "机场附近",
    "车站附近",
    "地址待定",
    "具体地址",
    "near the hotel",
    "inside the scenic area",
    "downtown",
    "city centre",
    "nearby",
    "surrounding area",
    "see accommodation below",
    "destination",
    "near the airport",
    "near the station",
    "address TBD",
)

RESPONSE_SCHEMA = {
    "title": "string",
    "summary": "string",
    "itinerary": [
        {
            "day": 1,
            "date": "YYYY-MM-DD",
            "theme": "string",
            "activities": [
                {
                    "time": "HH:MM",
                    "title": "string",
                    "description": "string",
                    "location": "landmark-grade place name",
                    "type": "|".join(ACTIVITY_TYPES),
                    "estimatedCost": 0,
                    "duration": 120,
                    "tips": ["string"],
                }
            ],
            "accommodation": {
                "name": "string",
                "address": "specific street address",
                "checkIn": "15:00",
                "checkOut": "11:00",
                "estimatedCost": 0,
                "rating": 4.5,
                "amenities": ["string"],
            },
        }
    ],
    "totalEstimatedCost": 0,
    "tips": ["string"],
}


# ====== Prompt ======

SYSTEM = """
You are a professional travel planner.
Given a trip request, produce a complete day-by-day itinerary.

Rules:
- Every location and accommodation address must be a concrete, searchable place:
  a named landmark, venue, hotel or street address that a map service can geocode.
- Never describe a location relative to something else and never leave it pending.
- Estimated costs are per person and must be plain numbers.
- Durations are minutes and must be plain numbers.
- Return a single JSON object only, with no surrounding prose or code fences.
"""


def build_prompt(request: TripRequest) -> str:
    """Serialize a TripRequest into the generation instruction. Pure and deterministic."""
    days = request.trip_days
    preferences = ", ".join(request.preferences) if request.preferences else "none"
    extra = request.additional_requirements or "none"
    forbidden = ", ".join(f'"{phrase}"' for phrase in FORBIDDEN_LOCATION_PHRASES)
    schema = json.dumps(RESPONSE_SCHEMA, ensure_ascii=False, indent=2)

    return "\n".join(
        [
            f"Plan a {days}-day trip.",
            "",
            "Trip request:",
            f"- Origin: {request.origin}",
            f"- Destination: {request.destination}",
            f"- Dates: {request.start_date.isoformat()} to {request.end_date.isoformat()} ({days} days)",
            f"- Budget: {request.budget} in total for {request.travelers} traveler(s)",
            f"- Transport mode: {request.transport_mode}",
            f"- Preferences: {preferences}",
            f"- Additional requirements: {extra}",
            "",
            "Requirements:",
            f"1. Return exactly {days} days numbered 1 to {days}; day N falls on start date + (N - 1).",
            "2. Every activity must include time (HH:MM), title, description, location, "
            f"type (one of: {', '.join(ACTIVITY_TYPES)}), estimatedCost, duration and tips.",
            "3. Every location must be a landmark-grade name (a specific attraction, restaurant, "
            "hotel, street or station name).",
            f"4. Never use vague locations such as: {forbidden}.",
            f"5. Day 1 starts with the {request.transport_mode} journey from {request.origin} "
            f"to {request.destination}.",
            "6. Accommodation is optional per day; when present it needs a real hotel name and address.",
            f"7. Keep the total estimated cost within the budget of {request.budget}.",
            "",
            "Return strict JSON with exactly this shape:",
            schema,
        ]
    )


def create_llm(api_key: str | None, timeout: float = LLM_TIMEOUT_SECONDS) -> Any:
    """Chat client for the configured OpenAI-compatible endpoint, or None without a key."""
    if not api_key:
        return None
    llm = ChatOpenAI(
        model=LLM_MODEL,
        api_key=api_key,
        base_url=LLM_BASE_URL,
        temperature=LLM_TEMPERATURE,
        timeout=timeout,
        max_retries=0,  # A failed call goes straight to the deterministic fallback
    )
    return llm.bind(response_format={"type": "json_object"})


# ====== Agent Implementation ======


class ItineraryAgent:
    """
    BUILD_PROMPT -> CALL_BACKEND -> VALIDATE_RESPONSE -> {ACCEPT | FALLBACK} -> ASSEMBLE

    `generate` always returns a TravelPlan: a missing key, backend errors,
    timeouts and unusable payloads all route to the deterministic fallback.
    """

    def __init__(
        self,
        llm: Any = None,
        *,
        api_key: str | None = LLM_API_KEY,
        timeout: float = LLM_TIMEOUT_SECONDS,
        fallback_latency: float = FALLBACK_LATENCY_MS / 1000,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.timeout = timeout
        self.fallback_latency = fallback_latency
        self._sleep = sleep
        self._llm_unavailable_reason = ""

        if llm is not None:
            self.llm = llm
        elif not api_key:
            self.llm = None
            self._llm_unavailable_reason = "No API key configured"
        else:
            try:
                self.llm = create_llm(api_key, timeout)
            except Exception as exc:
                self.llm = None
                self._llm_unavailable_reason = f"Failed to initialize chat client: {type(exc).__name__}: {exc}"
                logger.warning(f"[{AGENT_LABEL}] {self._llm_unavailable_reason}")

        self._prompt = ChatPromptTemplate.from_messages(
            [
                ("system", SYSTEM),
                ("user", "{prompt}"),
            ]
        )
        self.app = self._build_graph()

    @property
    def backend_configured(self) -> bool:
        return self.llm is not None

    # ---- Nodes ----
    async def _build_prompt(self, state: PlanningState) -> dict:
        request: TripRequest = state["request"]
        logger.info(
            f"[{AGENT_LABEL}] Planning {request.trip_days}-day trip {request.origin} -> {request.destination}"
        )
        return {"prompt": build_prompt(request)}

    async def _call_backend(self, state: PlanningState) -> dict:
        if self.llm is None:
            logger.info(f"[{AGENT_LABEL}] Backend unavailable ({self._llm_unavailable_reason}), using fallback")
            return {"raw_response": None, "warnings": [f"Generative backend unavailable: {self._llm_unavailable_reason}"]}

        chain = self._prompt | self.llm
        t0 = time.time()
        try:
            message = await asyncio.wait_for(chain.ainvoke({"prompt": state["prompt"]}), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[{AGENT_LABEL}] Backend call timed out after {self.timeout:.0f}s")
            return {"raw_response": None, "warnings": ["Generative backend timed out"]}
        except Exception as exc:
            logger.warning(f"[{AGENT_LABEL}] Backend call failed: {type(exc).__name__}: {exc}")
            return {"raw_response": None, "warnings": [f"Generative backend failed: {type(exc).__name__}"]}

        content = getattr(message, "content", message)
        logger.info(f"[{AGENT_LABEL}] Backend responded in {(time.time() - t0) * 1000:.0f}ms")
        return {"raw_response": content if isinstance(content, str) else json.dumps(content, ensure_ascii=False)}

    async def _validate_response(self, state: PlanningState) -> dict:
        raw = state.get("raw_response")
        if raw is None:
            return {"decoded": None}

        decoded = decode_itinerary_payload(raw, state["request"])
        if isinstance(decoded, DecodeRejection):
            logger.warning(f"[{AGENT_LABEL}] Rejected backend payload: {decoded.reason}")
            return {"decoded": None, "warnings": [f"Backend response rejected: {decoded.reason}"]}

        if decoded.activity_count == 0:
            logger.warning(
                f"[{AGENT_LABEL}] No usable activities after validation "
                f"({decoded.dropped_activities} dropped), using fallback"
            )
            return {"decoded": None, "warnings": ["Backend response had no activities with valid locations"]}

        warnings = []
        if decoded.dropped_activities:
            warnings.append(f"Dropped {decoded.dropped_activities} activities with vague locations")
        if decoded.dropped_accommodations:
            warnings.append(f"Dropped {decoded.dropped_accommodations} accommodations with vague addresses")
        if decoded.dropped_days:
            warnings.append(f"Dropped {decoded.dropped_days} duplicate or out-of-range days")
        return {"decoded": decoded, "warnings": warnings}

    def _route(self, state: PlanningState) -> str:
        return "accept" if state.get("decoded") is not None else "fallback"

    async def _accept(self, state: PlanningState) -> dict:
        request: TripRequest = state["request"]
        decoded = state["decoded"]
        by_number = {day.day: day for day in decoded.days}

        days = []
        filled = []
        for number in range(1, request.trip_days + 1):
            if number in by_number:
                days.append(by_number[number])
            else:
                days.append(build_fallback_day(request, number))
                filled.append(number)

        warnings = []
        if filled:
            logger.info(f"[{AGENT_LABEL}] Filled missing days {filled} from fallback templates")
            warnings.append(f"Filled missing days {filled} with suggested activities")

        generated = GeneratedItinerary(
            title=decoded.title,
            summary=decoded.summary,
            days=days,
            total_estimated_cost=None if filled else decoded.total_estimated_cost,
            tips=decoded.tips,
        )
        return {"generated": generated, "source": "llm", "warnings": warnings}

    async def _fallback(self, state: PlanningState) -> dict:
        if self.fallback_latency > 0:
            await self._sleep(self.fallback_latency)
        generated = generate_fallback_itinerary(state["request"])
        logger.info(f"[{AGENT_LABEL}] Generated fallback itinerary with {generated.activity_count} activities")
        return {"generated": generated, "source": "fallback"}

    async def _assemble(self, state: PlanningState) -> dict:
        generated: GeneratedItinerary = state["generated"]
        plan = assemble_plan(
            state["request"],
            generated,
            source=state["source"],
            warnings=state.get("warnings", []),
            request_id=state.get("request_id"),
        )
        metrics = {
            "generated_days": len(plan.itinerary),
            "total_activities": generated.activity_count,
            "source": plan.source,
        }
        return {
            "plan": plan,
            "metrics": metrics,
            "messages": [
                AIMessage(
                    content=f"[{AGENT_LABEL}] Completed plan {plan.id} ({plan.source}) with {len(plan.itinerary)} days."
                )
            ],
        }

    # ---- Graph ----
    def _build_graph(self):
        g = StateGraph(PlanningState)
        g.add_node("build_prompt", self._build_prompt)
        g.add_node("call_backend", self._call_backend)
        g.add_node("validate_response", self._validate_response)
        g.add_node("accept", self._accept)
        g.add_node("fallback", self._fallback)
        g.add_node("assemble", self._assemble)

        g.set_entry_point("build_prompt")
        g.add_edge("build_prompt", "call_backend")
        g.add_edge("call_backend", "validate_response")
        g.add_conditional_edges("validate_response", self._route, {"accept": "accept", "fallback": "fallback"})
        g.add_edge("accept", "assemble")
        g.add_edge("fallback", "assemble")
        g.add_edge("assemble", END)
        return g.compile()

    # ---- Public API ----
    async def run(self, initial_state: dict[str, Any]) -> dict[str, Any]:
        return await self.app.ainvoke(initial_state)

    async def generate(self, request: TripRequest, request_id: str | None = None) -> TravelPlan:
        state = await self.run({"request": request, "request_id": request_id, "warnings": [], "messages": []})
        return state["plan"]


__all__ = ["ItineraryAgent", "build_prompt", "create_llm", "SYSTEM"]
