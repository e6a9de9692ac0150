"""Typed database errors.

The driver surfaces every failure as some pymongo exception. Callers only
care about three outcomes: the database is not reachable yet (worth
retrying), the credentials are wrong (never worth retrying), or something
else went wrong.
"""

import asyncio
from typing import Optional

from pymongo.errors import ConfigurationError, ConnectionFailure, OperationFailure

# MongoDB server error code for AuthenticationFailed
AUTHENTICATION_FAILED_CODE = 18


class DatabaseError(Exception):
    """Base class for database failures."""

    retryable = False

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def kind(self) -> str:
        """Short error kind used in logs and health responses."""
        return type(self).__name__


class DatabaseUnreachableError(DatabaseError):
    """Server selection, network or timeout failure."""

    retryable = True


class AuthenticationFailedError(DatabaseError):
    """Credentials were rejected by the server."""


def _is_auth_failure(exc: OperationFailure) -> bool:
    if exc.code == AUTHENTICATION_FAILED_CODE:
        return True
    return "authentication failed" in str(exc).lower()


def classify_error(exc: BaseException) -> DatabaseError:
    """Map a driver exception onto the error taxonomy.

    Args:
        exc: Exception raised while talking to MongoDB

    Returns:
        A DatabaseError subclass wrapping the original exception
    """
    if isinstance(exc, DatabaseError):
        return exc
    if isinstance(exc, OperationFailure) and _is_auth_failure(exc):
        return AuthenticationFailedError(f"Authentication failed: {exc}", cause=exc)
    if isinstance(exc, (ConnectionFailure, ConnectionError, TimeoutError, asyncio.TimeoutError)):
        return DatabaseUnreachableError(f"Database unreachable: {exc}", cause=exc)
    if isinstance(exc, ConfigurationError):
        return DatabaseError(f"Invalid database configuration: {exc}", cause=exc)
    return DatabaseError(f"Database error: {exc}", cause=exc)
