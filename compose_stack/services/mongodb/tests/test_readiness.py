"""Tests for the readiness gate."""

from unittest.mock import AsyncMock, patch

import pytest

from compose_stack.services.mongodb.errors import (
    AuthenticationFailedError,
    DatabaseUnreachableError,
)
from compose_stack.services.mongodb.readiness import establish_connection, wait_until_ready


@pytest.fixture
def mock_ping():
    with patch(
        "compose_stack.services.mongodb.readiness.ping",
        new_callable=AsyncMock,
    ) as ping:
        ping.return_value = {"ok": 1.0}
        yield ping


@pytest.fixture
def mock_sleep():
    with patch("compose_stack.lib.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


# -----------------------------------------------------------------------------
# wait_until_ready
# -----------------------------------------------------------------------------


@pytest.mark.unit
class TestWaitUntilReady:

    @pytest.mark.asyncio
    async def test_ready_first_try(self, mock_ping, mock_sleep):
        assert await wait_until_ready() == {"ok": 1.0}

        mock_ping.assert_awaited_once()
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_retries_while_unreachable(self, mock_ping, mock_sleep):
        """A database that is started but not yet ready is polled until it answers."""
        mock_ping.side_effect = [
            DatabaseUnreachableError("starting"),
            DatabaseUnreachableError("starting"),
            {"ok": 1.0},
        ]

        assert await wait_until_ready(max_retries=5) == {"ok": 1.0}
        assert mock_ping.await_count == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_backoff_schedule(self, mock_ping, mock_sleep):
        mock_ping.side_effect = DatabaseUnreachableError("down")

        with pytest.raises(DatabaseUnreachableError):
            await wait_until_ready(max_retries=4, base_delay=0.5, max_delay=2.0, jitter=False)

        delays = [call[0][0] for call in mock_sleep.call_args_list]
        assert delays == [0.5, 1.0, 2.0, 2.0]

    @pytest.mark.asyncio
    async def test_bounded_attempts(self, mock_ping, mock_sleep):
        """Retries are bounded: max_retries + 1 attempts, then the error surfaces."""
        mock_ping.side_effect = DatabaseUnreachableError("down")

        with pytest.raises(DatabaseUnreachableError):
            await wait_until_ready(max_retries=3)

        assert mock_ping.await_count == 4

    @pytest.mark.asyncio
    async def test_auth_failure_not_retried(self, mock_ping, mock_sleep):
        mock_ping.side_effect = AuthenticationFailedError("Authentication failed")

        with pytest.raises(AuthenticationFailedError):
            await wait_until_ready(max_retries=5)

        mock_ping.assert_awaited_once()
        mock_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_defaults_from_config(self, mock_ping, mock_sleep, monkeypatch):
        monkeypatch.setenv("READINESS_MAX_RETRIES", "2")
        mock_ping.side_effect = DatabaseUnreachableError("down")

        with pytest.raises(DatabaseUnreachableError):
            await wait_until_ready()

        assert mock_ping.await_count == 3


# -----------------------------------------------------------------------------
# establish_connection
# -----------------------------------------------------------------------------


@pytest.mark.unit
class TestEstablishConnection:

    @pytest.mark.asyncio
    async def test_without_gate_single_attempt(self, mock_ping, mock_sleep):
        """Start-only ordering: a not-ready database fails the first attempt."""
        mock_ping.side_effect = DatabaseUnreachableError("starting")

        with pytest.raises(DatabaseUnreachableError):
            await establish_connection(readiness_gate=False)

        mock_ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_with_gate_retries(self, mock_ping, mock_sleep):
        mock_ping.side_effect = [DatabaseUnreachableError("starting"), {"ok": 1.0}]

        assert await establish_connection(readiness_gate=True) == {"ok": 1.0}
        assert mock_ping.await_count == 2

    @pytest.mark.asyncio
    async def test_gate_from_config(self, mock_ping, mock_sleep, monkeypatch):
        monkeypatch.setenv("READINESS_GATE", "false")
        mock_ping.side_effect = DatabaseUnreachableError("starting")

        with pytest.raises(DatabaseUnreachableError):
            await establish_connection()

        mock_ping.assert_awaited_once()
