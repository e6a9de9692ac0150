"""MongoDB client management with async support.

Provides a singleton async client created on first use. Creating the
client does not open a connection; the first command does, so a slow or
missing database never blocks the caller that asks for the client.

The application database is the one named in the connection string. The
MONGO_DATABASE setting is only used when the string names none.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, NamedTuple, Optional

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from .config import MongoDBConfig
from .errors import DatabaseError, classify_error

logger = logging.getLogger(__name__)


class _Handle(NamedTuple):
    client: AsyncMongoClient
    database: AsyncDatabase


# Singleton handle; client and database are swapped together
_handle: Optional[_Handle] = None
_lock = asyncio.Lock()


def create_client(config: MongoDBConfig) -> AsyncMongoClient:
    """Create a client for the given configuration.

    Raises:
        ValueError: If configuration validation fails
        DatabaseError: If the connection string is rejected by the driver
    """
    config.validate()
    try:
        return AsyncMongoClient(
            config.connection_string,
            serverSelectionTimeoutMS=config.timeout_ms,
            connectTimeoutMS=config.timeout_ms,
        )
    except Exception as e:
        raise classify_error(e) from e


async def _get_handle() -> _Handle:
    global _handle

    handle = _handle
    if handle is not None:
        return handle

    async with _lock:
        if _handle is None:
            config = MongoDBConfig()
            client = create_client(config)
            database = client.get_default_database(default=config.database)
            _handle = _Handle(client, database)
            logger.info(
                f"Created MongoDB client for {config.redacted_connection_string} "
                f"(database {database.name})"
            )
        return _handle


async def get_client() -> AsyncMongoClient:
    """Get or create the MongoDB client singleton.

    Uses lazy initialization with async locking so concurrent callers
    share one client.

    Returns:
        AsyncMongoClient instance
    """
    return (await _get_handle()).client


async def get_database() -> AsyncDatabase:
    """Get the application database of the current client."""
    return (await _get_handle()).database


async def ping() -> dict[str, Any]:
    """Run an authenticated ping against the application database.

    Raises:
        DatabaseError: Classified failure (unreachable, auth, other)
    """
    try:
        db = await get_database()
        return await db.command("ping")
    except DatabaseError:
        raise
    except Exception as e:
        raise classify_error(e) from e


async def close_client() -> None:
    """Close the client. Call on application shutdown."""
    global _handle
    if _handle is None:
        return
    handle, _handle = _handle, None
    try:
        await handle.client.close()
        logger.info("Closed MongoDB client")
    except Exception as e:
        logger.error(f"Error closing MongoDB client: {e}")


def reset_client() -> None:
    """Reset the client singleton for testing purposes."""
    global _handle
    _handle = None


@asynccontextmanager
async def get_collection(name: str) -> AsyncGenerator[Any, None]:
    """Context manager yielding a collection of the application database.

    Usage:
        async with get_collection("test") as collection:
            await collection.insert_one({"message": "hi"})

    Raises:
        DatabaseError: Classified driver failure
    """
    db = await get_database()
    try:
        yield db[name]
    except Exception as e:
        logger.error(f"Error on collection {name}: {e}")
        if isinstance(e, DatabaseError):
            raise
        raise classify_error(e) from e
