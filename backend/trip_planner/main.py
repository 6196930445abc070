from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trip_planner.agents.itinerary_agent import ItineraryAgent
from trip_planner.agents.voice_parser import VoiceInputParser
from trip_planner.core.config import (
    AMAP_WEB_SERVICE_KEY,
    APP_NAME,
    APP_VERSION,
    CORS_ORIGINS,
    GEOCODE_MAX_QPS,
    GEOCODE_MIN_GAP_MS,
    GEOCODE_RATE_LIMIT_BACKOFF_MS,
    GEOCODE_SAFETY_MARGIN_MS,
    GEOCODE_TIMEOUT_SECONDS,
    GEOCODE_WINDOW_MS,
    MONGODB_URI,
    SERVER_HOST,
    SERVER_PORT,
)
from trip_planner.core.logging import setup_logger
from trip_planner.db.database import (
    close_database_connection,
    get_plans_collection,
    get_requests_collection,
    init_indexes,
    test_connection,
)
from trip_planner.db.plan_store import InMemoryPlanStore, MongoPlanStore
from trip_planner.router.location import router as location_router
from trip_planner.router.plans import router as plans_router
from trip_planner.router.system import router as system_router
from trip_planner.router.voice import router as voice_router
from trip_planner.services.geocoding import GeocodingResolver
from trip_planner.services.planning import PlanningService
from trip_planner.services.rate_limiter import RateLimitedQueue

logger = setup_logger(__name__)


async def _open_store() -> tuple[Any, str]:
    if MONGODB_URI and await test_connection():
        await init_indexes()
        return MongoPlanStore(get_plans_collection(), get_requests_collection()), "mongodb"
    if MONGODB_URI:
        logger.warning("[main] MongoDB unreachable, keeping plans in memory")
    return InMemoryPlanStore(), "memory"


def create_app(
    *,
    agent: ItineraryAgent | None = None,
    store: Any = None,
    queue: RateLimitedQueue | None = None,
    resolver: GeocodingResolver | None = None,
    voice_parser: VoiceInputParser | None = None,
) -> FastAPI:
    """
    Build the application. Services not passed in are constructed from config
    when the app starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"[main] Starting up {APP_NAME} {APP_VERSION}...")
        plan_store, storage = (store, "custom") if store is not None else await _open_store()
        geocode_queue = queue or RateLimitedQueue(
            max_calls=GEOCODE_MAX_QPS,
            window=GEOCODE_WINDOW_MS / 1000,
            min_gap=GEOCODE_MIN_GAP_MS / 1000,
            safety_margin=GEOCODE_SAFETY_MARGIN_MS / 1000,
        )
        itinerary_agent = agent or ItineraryAgent()

        app.state.queue = geocode_queue
        app.state.resolver = resolver or GeocodingResolver(
            AMAP_WEB_SERVICE_KEY,
            geocode_queue,
            timeout=GEOCODE_TIMEOUT_SECONDS,
            rate_limit_backoff=GEOCODE_RATE_LIMIT_BACKOFF_MS / 1000,
        )
        app.state.agent = itinerary_agent
        app.state.planning = PlanningService(itinerary_agent, plan_store)
        app.state.voice_parser = voice_parser or VoiceInputParser()
        app.state.storage = storage
        logger.info(
            f"[main] Ready (storage={storage}, llm={'on' if itinerary_agent.backend_configured else 'fallback only'})"
        )
        yield
        logger.info(f"[main] Shutting down {APP_NAME}...")
        geocode_queue.clear()
        if storage == "mongodb":
            await close_database_connection()

    app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(system_router)
    app.include_router(plans_router)
    app.include_router(location_router)
    app.include_router(voice_router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
