"""Database connection state held by the web service.

The connection is opened by a background task so the HTTP listener
never waits on the database. The state only moves forward:
connecting → connected, or connecting → failed.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from compose_stack.services.mongodb import close_client, establish_connection
from compose_stack.services.mongodb.errors import DatabaseError, classify_error

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class DatabaseConnection:
    """Tracks the web service's startup connection attempt."""

    def __init__(self, readiness_gate: Optional[bool] = None):
        self.readiness_gate = readiness_gate
        self.state = ConnectionState.CONNECTING
        self.error: Optional[DatabaseError] = None
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Schedule the connection attempt on the running loop."""
        if self._task is None:
            self._task = asyncio.create_task(self._connect(), name="mongodb-connect")
        return self._task

    async def _connect(self) -> None:
        try:
            await establish_connection(self.readiness_gate)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.error = classify_error(e)
            self.state = ConnectionState.FAILED
            logger.error(
                f"Web Service could not connect to MongoDB ({self.error.kind}): {self.error}"
            )
            return

        self.state = ConnectionState.CONNECTED
        logger.info("Web Service connected to MongoDB")

    async def wait(self) -> ConnectionState:
        """Wait for the attempt to reach a terminal state."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.state

    async def stop(self) -> None:
        """Cancel a pending attempt and close the client."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        await close_client()

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def describe(self) -> str:
        if self.error is not None:
            return f"{self.state.value}: {self.error}"
        return self.state.value
