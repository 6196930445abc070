"""
FastAPI dependencies resolving the services built in main.lifespan
"""

from fastapi import Request

from trip_planner.agents.voice_parser import VoiceInputParser
from trip_planner.services.geocoding import GeocodingResolver
from trip_planner.services.planning import PlanningService
from trip_planner.services.rate_limiter import RateLimitedQueue


def get_planning_service(request: Request) -> PlanningService:
    return request.app.state.planning


def get_resolver(request: Request) -> GeocodingResolver:
    return request.app.state.resolver


def get_queue(request: Request) -> RateLimitedQueue:
    return request.app.state.queue


def get_voice_parser(request: Request) -> VoiceInputParser:
    return request.app.state.voice_parser
