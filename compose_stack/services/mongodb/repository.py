"""Document operations on the application database.

Only what the stack itself needs: the smoke scenario inserts a document,
reads it back, and cleans up after itself.
"""

import logging
from typing import Any, Optional

from .driver import get_collection

logger = logging.getLogger(__name__)


async def insert_document(collection: str, document: dict[str, Any]) -> str:
    """Insert one document.

    The caller's dict is not modified (the driver would add `_id` to it).

    Returns:
        The inserted document id as a string
    """
    async with get_collection(collection) as coll:
        result = await coll.insert_one(dict(document))
    logger.debug(f"Inserted document {result.inserted_id} into {collection}")
    return str(result.inserted_id)


async def find_documents(
    collection: str,
    query: Optional[dict[str, Any]] = None,
    include_id: bool = False,
    limit: int = 0,
) -> list[dict[str, Any]]:
    """Find documents matching a query.

    Args:
        collection: Collection name
        query: Filter document (all documents if None)
        include_id: Keep the `_id` field in results
        limit: Maximum number of documents (0 = no limit)

    Returns:
        List of documents
    """
    projection = None if include_id else {"_id": 0}
    async with get_collection(collection) as coll:
        cursor = coll.find(query or {}, projection, limit=limit)
        return await cursor.to_list()


async def count_documents(collection: str, query: Optional[dict[str, Any]] = None) -> int:
    """Count documents matching a query."""
    async with get_collection(collection) as coll:
        return await coll.count_documents(query or {})


async def drop_collection(collection: str) -> None:
    """Drop a collection (no-op when it does not exist)."""
    async with get_collection(collection) as coll:
        await coll.drop()
    logger.debug(f"Dropped collection {collection}")
