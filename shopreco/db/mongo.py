# shopreco/db/mongo.py
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from shopreco.core.config import get_settings
import certifi
import logging

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient | None:
    return _client


def get_db() -> AsyncIOMotorDatabase | None:
    """
    Database handle, or None when MONGO_URI is not configured.
    Callers treat None as "remote tier unavailable".
    """
    return _db


def _new_client(uri: str) -> AsyncIOMotorClient:
    kwargs = dict(
        tz_aware=True,                      # timestamps come back as aware UTC datetimes
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=6000,
        connectTimeoutMS=6000,
    )
    if uri.startswith("mongodb+srv://"):
        kwargs.update(tls=True, tlsCAFile=certifi.where())  # Atlas / containers
    return AsyncIOMotorClient(uri, **kwargs)


async def connect():
    """
    Create the Motor client. A failed startup ping is logged, not raised:
    the client stays lazy so later queries can connect once the network is OK,
    and the interaction store degrades to its local tier meanwhile.
    """
    global _client, _db
    settings = get_settings()
    if not settings.MONGO_URI:
        logger.warning("No MONGO_URI configured, remote interaction store disabled")
        return

    try:
        _client = _new_client(settings.MONGO_URI)
        _db = _client[settings.MONGO_DB]
    except Exception as e:
        logger.error("Mongo client init failed: %s", e)
        _client = None
        _db = None
        return

    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
    except Exception as e:
        logger.warning("Mongo ping at startup failed, will connect lazily: %s", e)


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
        logger.info("Mongo disconnected")
    _client = None
    _db = None
