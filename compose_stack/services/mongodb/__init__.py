"""MongoDB service module for the composed document database.

Provides:
- Connection configuration and connection-string building
- Async client management (singleton, lazy connect)
- Typed error taxonomy for driver failures
- Readiness gate with bounded exponential backoff
- Document operations and the insert-then-query smoke scenario
"""

from .config import MongoDBConfig, build_connection_string
from .driver import (
    close_client,
    create_client,
    get_client,
    get_collection,
    get_database,
    ping,
    reset_client,
)
from .errors import (
    AuthenticationFailedError,
    DatabaseError,
    DatabaseUnreachableError,
    classify_error,
)
from .readiness import establish_connection, wait_until_ready
from .repository import count_documents, drop_collection, find_documents, insert_document
from .smoke import SMOKE_DOCUMENT, SmokeResult, run_smoke_scenario

__all__ = [
    # Config
    "MongoDBConfig",
    "build_connection_string",
    # Driver
    "create_client",
    "get_client",
    "get_database",
    "get_collection",
    "ping",
    "close_client",
    "reset_client",
    # Errors
    "DatabaseError",
    "DatabaseUnreachableError",
    "AuthenticationFailedError",
    "classify_error",
    # Readiness
    "wait_until_ready",
    "establish_connection",
    # Repository
    "insert_document",
    "find_documents",
    "count_documents",
    "drop_collection",
    # Smoke scenario
    "SMOKE_DOCUMENT",
    "SmokeResult",
    "run_smoke_scenario",
]
