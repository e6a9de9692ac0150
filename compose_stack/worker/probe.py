#!/usr/bin/env python
"""Worker Service - connects to MongoDB, logs readiness, exits.

This is a connectivity probe, not a job runner: there is no task source,
no processing loop and no retry beyond the optional readiness gate. The
whole attempt runs under a deadline so the process always reaches a
terminal state.

Usage:
    stack-worker
    stack-worker --timeout 10 --no-readiness-gate

Environment variables:
    MONGO_URL: Connection string (default: built from MONGO_* settings)
    READINESS_GATE: Poll with backoff before giving up (default: true)
    WORKER_TIMEOUT_SECONDS: Deadline for the whole attempt (default: 30)

Exit status: 0 when connected, 1 when the connection failed.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import typer

from compose_stack.lib.config_manager import config
from compose_stack.lib.logging_config import log_with_context, setup_logging
from compose_stack.services.mongodb import close_client, establish_connection
from compose_stack.services.mongodb.errors import (
    DatabaseError,
    DatabaseUnreachableError,
    classify_error,
)

READY_MESSAGE = "Worker Service connected to MongoDB"

logger = logging.getLogger(__name__)

app = typer.Typer(help="Worker Service: MongoDB connectivity probe", add_completion=False)


class ProbeState(str, Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass
class ProbeResult:
    """Terminal outcome of one probe run."""

    state: ProbeState
    elapsed: float
    error: Optional[DatabaseError] = None

    @property
    def exit_code(self) -> int:
        return 0 if self.state is ProbeState.CONNECTED else 1


async def run_probe(
    timeout: Optional[float] = None,
    readiness_gate: Optional[bool] = None,
) -> ProbeResult:
    """Connect once (behind the optional gate) within `timeout` seconds.

    Args:
        timeout: Deadline in seconds (default: WORKER_TIMEOUT_SECONDS)
        readiness_gate: Poll with backoff (default: READINESS_GATE)

    Returns:
        ProbeResult in state CONNECTED or FAILED, never CONNECTING
    """
    if timeout is None:
        timeout = config.get("WORKER_TIMEOUT_SECONDS")

    started = time.monotonic()
    logger.info("Worker Service connecting to MongoDB")

    try:
        await asyncio.wait_for(establish_connection(readiness_gate), timeout=timeout)
    except asyncio.TimeoutError as e:
        error = DatabaseUnreachableError(f"No connection within {timeout:g}s", cause=e)
    except Exception as e:
        error = classify_error(e)
    else:
        error = None
    finally:
        await close_client()

    elapsed = time.monotonic() - started

    if error is None:
        log_with_context(logger, "info", READY_MESSAGE, elapsed_s=round(elapsed, 3))
        return ProbeResult(state=ProbeState.CONNECTED, elapsed=elapsed)

    log_with_context(
        logger,
        "error",
        f"Worker Service failed to connect to MongoDB: {error}",
        error_kind=error.kind,
        elapsed_s=round(elapsed, 3),
    )
    return ProbeResult(state=ProbeState.FAILED, elapsed=elapsed, error=error)


@app.command()
def main(
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds before giving up (default: WORKER_TIMEOUT_SECONDS)",
    ),
    readiness_gate: Optional[bool] = typer.Option(
        None,
        "--readiness-gate/--no-readiness-gate",
        help="Poll with backoff until the database is ready (default: READINESS_GATE)",
    ),
):
    """Connect to MongoDB, log readiness, exit."""
    correlation_filter = setup_logging("worker", config.get("LOG_LEVEL"))
    # One ID per run ties the worker's log lines together
    correlation_filter.set_correlation_id(f"worker-{uuid.uuid4().hex[:8]}")
    result = asyncio.run(run_probe(timeout=timeout, readiness_gate=readiness_gate))
    raise typer.Exit(code=result.exit_code)


if __name__ == "__main__":
    app()
