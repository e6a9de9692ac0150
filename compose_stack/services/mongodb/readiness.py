"""Readiness gate: poll the database until it accepts authenticated commands.

A started database container is not a ready database: authentication
setup and listener binding can outlast the container start event. Services
call `establish_connection` before declaring themselves operational.
"""

import logging
from typing import Any, Optional

from compose_stack.lib.config_manager import config
from compose_stack.lib.retry import retry_on_failure_async

from .driver import ping
from .errors import DatabaseError, DatabaseUnreachableError

logger = logging.getLogger(__name__)


async def wait_until_ready(
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    jitter: bool = True,
) -> dict[str, Any]:
    """Ping with exponential backoff until the database answers.

    Only unreachable-database failures are retried. Authentication
    failures are raised on the first attempt.

    Args:
        max_retries: Retries after the first attempt (default: READINESS_MAX_RETRIES)
        base_delay: Initial delay in seconds (default: READINESS_BASE_DELAY)
        max_delay: Delay cap in seconds (default: READINESS_MAX_DELAY)
        jitter: Add random jitter to each delay

    Returns:
        The ping response

    Raises:
        DatabaseError: When retries are exhausted or the failure is not retryable
    """
    if max_retries is None:
        max_retries = config.get("READINESS_MAX_RETRIES")
    if base_delay is None:
        base_delay = config.get("READINESS_BASE_DELAY")
    if max_delay is None:
        max_delay = config.get("READINESS_MAX_DELAY")

    @retry_on_failure_async(
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=max_delay,
        exceptions=(DatabaseUnreachableError,),
        jitter=jitter,
    )
    async def probe_database() -> dict[str, Any]:
        return await ping()

    try:
        result = await probe_database()
    except DatabaseError as e:
        logger.error(f"MongoDB not ready ({e.kind}): {e}")
        raise

    logger.info("MongoDB is ready")
    return result


async def establish_connection(readiness_gate: Optional[bool] = None) -> dict[str, Any]:
    """Connect to the database, optionally behind the readiness gate.

    Without the gate a single attempt is made, so a database that is
    started but not yet ready fails the caller immediately.
    """
    if readiness_gate is None:
        readiness_gate = config.get("READINESS_GATE")

    if readiness_gate:
        return await wait_until_ready()
    return await ping()
