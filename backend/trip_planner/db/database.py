"""
MongoDB Database Configuration and Connection
"""

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.server_api import ServerApi

from trip_planner.core.config import DATABASE_NAME, MONGODB_URI
from trip_planner.core.logging import setup_logger

logger = setup_logger(__name__)

# Global database client
_client = None
_database = None


def get_database():
    """
    Get MongoDB database instance
    Creates a new connection if one doesn't exist
    """
    global _client, _database

    if _database is None:
        if not MONGODB_URI:
            raise ValueError("MONGODB_URI environment variable is not set")

        _client = AsyncIOMotorClient(MONGODB_URI, server_api=ServerApi("1"))
        _database = _client[DATABASE_NAME]

        logger.info(f"[db] Connected to MongoDB database: {DATABASE_NAME}")

    return _database


async def init_indexes():
    """
    Initialize indexes for plan lookups
    """
    try:
        plans_collection = get_plans_collection()

        await plans_collection.create_index("request_id", name="plan_request")
        await plans_collection.create_index([("created_at", -1)], name="plan_created")
        await plans_collection.create_index([("destination", 1), ("status", 1)], name="plan_destination_status")

        logger.info("[db] Database indexes created successfully")
    except Exception as e:
        logger.warning(f"[db] Index creation warning: {e}")


async def close_database_connection():
    """
    Close the MongoDB connection
    Call this when shutting down the application
    """
    global _client, _database

    if _client:
        _client.close()
        _client = None
        _database = None
        logger.info("[db] Closed MongoDB connection")


async def test_connection():
    """
    Ping MongoDB; False when unreachable
    """
    try:
        db = get_database()
        await db.command("ping")
        logger.info("[db] MongoDB connection successful")
        return True
    except Exception as e:
        logger.error(f"[db] MongoDB connection failed: {e}")
        return False


def get_plans_collection():
    db = get_database()
    return db.plans


def get_requests_collection():
    db = get_database()
    return db.trip_requests
