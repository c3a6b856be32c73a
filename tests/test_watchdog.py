"""
Tests for ConnectionWatchdog.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from bittrex_api.streaming.watchdog import ConnectionWatchdog
from tests.conftest import make_settings


def fake_session(silence: float, auto_reconnect: bool = True, has_handle: bool = True):
    session = MagicMock()
    session.has_handle = has_handle
    session.connecting = False
    session.settings = make_settings(websockets={"auto_reconnect": auto_reconnect})
    session.liveness.seconds_since_last_message.return_value = silence
    session.connect = AsyncMock()
    return session


class TestTick:

    @pytest.mark.asyncio
    async def test_no_session_is_noop(self):
        session = fake_session(silence=10_000, has_handle=False)
        watchdog = ConnectionWatchdog(session)

        assert await watchdog.tick() is False
        session.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stale_session_forces_reconnect(self):
        session = fake_session(silence=61)
        watchdog = ConnectionWatchdog(session)

        assert await watchdog.tick() is True
        session.connect.assert_awaited_once_with(force=True)
        assert watchdog.forced_reconnects == 1

    @pytest.mark.asyncio
    async def test_fresh_session_is_left_alone(self):
        session = fake_session(silence=59)
        watchdog = ConnectionWatchdog(session)

        assert await watchdog.tick() is False
        session.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auto_reconnect_disabled_never_reconnects(self):
        session = fake_session(silence=86_400, auto_reconnect=False)
        watchdog = ConnectionWatchdog(session)

        assert await watchdog.tick() is False
        session.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skips_while_connect_in_progress(self):
        session = fake_session(silence=120)
        session.connecting = True
        watchdog = ConnectionWatchdog(session)

        assert await watchdog.tick() is False
        session.connect.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_custom_threshold(self):
        session = fake_session(silence=11)
        watchdog = ConnectionWatchdog(session, stale_after=10)

        assert await watchdog.tick() is True


class TestTimer:

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        watchdog = ConnectionWatchdog(fake_session(silence=0))
        watchdog.start()
        first = watchdog._task
        watchdog.start()

        assert watchdog._task is first
        assert watchdog.running
        watchdog.cancel()

    @pytest.mark.asyncio
    async def test_cancel_stops_timer(self):
        watchdog = ConnectionWatchdog(fake_session(silence=0))
        watchdog.start()
        task = watchdog._task

        watchdog.cancel()
        await asyncio.sleep(0)

        assert not watchdog.running
        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_loop_ticks_on_interval(self):
        session = fake_session(silence=120)
        watchdog = ConnectionWatchdog(session, interval=0.01)

        watchdog.start()
        await asyncio.sleep(0.05)
        watchdog.cancel()

        assert session.connect.await_count >= 1

    @pytest.mark.asyncio
    async def test_restart_after_cancel(self):
        watchdog = ConnectionWatchdog(fake_session(silence=0))
        watchdog.start()
        watchdog.cancel()
        watchdog.start()

        assert watchdog.running
        watchdog.cancel()
