"""
agents package

Intentionally avoid importing submodules at package import time so that
importing a model or a service never builds a chat client. Import
specific agents directly, e.g.:

    from trip_planner.agents.itinerary_agent import ItineraryAgent
"""

__all__: list[str] = []
