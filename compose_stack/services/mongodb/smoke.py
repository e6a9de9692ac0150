"""End-to-end smoke scenario against a running database.

Insert one known document into a fresh collection and read the
collection back: exactly that document, and nothing else, must come out.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from .repository import drop_collection, find_documents, insert_document

logger = logging.getLogger(__name__)

SMOKE_DOCUMENT: dict[str, Any] = {"message": "Hello from MongoDB"}


@dataclass
class SmokeResult:
    collection: str
    inserted_id: str
    documents: list[dict[str, Any]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.documents == [SMOKE_DOCUMENT]


async def run_smoke_scenario(collection: str, keep: bool = False) -> SmokeResult:
    """Run the insert-then-query scenario.

    The collection is dropped first so earlier runs cannot leak into the
    result, and dropped again afterwards unless `keep` is set.

    Raises:
        DatabaseError: If the database cannot be reached
    """
    await drop_collection(collection)
    inserted_id = await insert_document(collection, SMOKE_DOCUMENT)
    documents = await find_documents(collection)

    result = SmokeResult(collection=collection, inserted_id=inserted_id, documents=documents)
    if result.ok:
        logger.info(f"Smoke scenario passed on collection {collection}")
    else:
        logger.error(f"Smoke scenario failed on collection {collection}: got {documents}")

    if not keep:
        await drop_collection(collection)
    return result
