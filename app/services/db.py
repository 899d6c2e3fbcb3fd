import motor.motor_asyncio
from pymongo import ASCENDING

from app.models.settings import RetrievalSettings
from app.utils.exceptions import DatabaseError, ExceptionContext
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def create_client(settings: RetrievalSettings) -> motor.motor_asyncio.AsyncIOMotorClient:
    """Create the Motor client; no connection is made until the first operation."""
    logger.info(f"Initializing MongoDB connection to database: {settings.db_name}")
    with ExceptionContext("create_mongo_client", logger, wrap_as=DatabaseError, db_name=settings.db_name):
        client = motor.motor_asyncio.AsyncIOMotorClient(settings.mongo_uri)
    logger.info("MongoDB client initialized successfully")
    return client


def get_resume_collection(client, settings: RetrievalSettings):
    return client[settings.db_name][settings.collection_name]


async def init_indexes(resumes_coll):
    """Index initialization for the resume collection.

    The Atlas vector index is managed in Atlas itself; only the plain
    indexes used by keyword lookups are created here.
    """
    logger.info("Starting database index initialization")

    try:
        await resumes_coll.create_index([("fileName", ASCENDING)], unique=True)
        logger.debug("Created unique index on resumes.fileName")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug("Index on resumes.fileName already exists")
        else:
            logger.warning(f"Could not create unique index on resumes.fileName: {e}")

    try:
        await resumes_coll.create_index([("email", ASCENDING)])
        await resumes_coll.create_index([("processedAt", ASCENDING)])
        logger.debug("Created additional indexes on resumes collection")
    except Exception as e:
        logger.warning(f"Could not create some resume indexes: {e}")

    logger.info("Database index initialization completed")
