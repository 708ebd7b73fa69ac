# mongodb.py
 
from motor.motor_asyncio import AsyncIOMotorClient
from app.core.config import (
    MONGO_URI,
    MONGO_DB,
    COLLECTION_VEHICLES,
    COLLECTION_EQUIPMENT,
    COLLECTION_HISTORY,
)
from app.utiles.logger import get_logger
 
logger = get_logger(__name__)
 
# Global client and db instances

client = AsyncIOMotorClient(MONGO_URI)
db = client[MONGO_DB]
 
async def connect_to_mongo():
    """Connect to MongoDB when app starts."""
    await ensure_indexes()
    logger.info("✅ MongoDB connection established")
 
 
async def close_mongo_connection():
    """Close MongoDB connection when app shuts down."""
    if client:
        client.close()
        logger.warning("⚠️ MongoDB connection closed")
 
 
async def ensure_indexes():
    """Create necessary indexes for collections."""
    # ---------------- Vehicles ----------------
    await db[COLLECTION_VEHICLES].create_index("id", unique=True)
    await db[COLLECTION_VEHICLES].create_index("call_sign")

    # ---------------- Equipment ----------------
    await db[COLLECTION_EQUIPMENT].create_index("id", unique=True)
    await db[COLLECTION_EQUIPMENT].create_index([("vehicle_id", 1), ("position", 1)])

    # ---------------- History ----------------
    await db[COLLECTION_HISTORY].create_index("id", unique=True)
    await db[COLLECTION_HISTORY].create_index([("vehicle_id", 1), ("date", -1), ("time", -1), ("sequence", -1)])

    logger.info("✅ Indexes ensured for Vehicles, Equipment and History collections")
