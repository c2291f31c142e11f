import logging

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient

from techit.core.config import DATABASE_NAME, MONGO_URI

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(
    MONGO_URI,
    maxPoolSize=20,
    minPoolSize=3,
    serverSelectionTimeoutMS=5000,
    socketTimeoutMS=120000,
)

db = client[DATABASE_NAME]


def get_db(request: Request):
    '''
    Database bound to the running application
    '''
    return request.app.state.db


async def ensure_indexes(database):
    await database["users"].create_index("email", unique=True)
    await database["favorites"].create_index([("userId", 1), ("productId", 1)], unique=True)
    await database["carts"].create_index("userId")
    logger.info("MongoDB indexes ensured")
