"""
Tests for the match retention task
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.cleanup_service import MatchRetentionTask


@pytest.fixture
def ledger():
    ledger = MagicMock()
    ledger.prune_older_than = AsyncMock(return_value=3)
    return ledger


@pytest.mark.asyncio
async def test_run_once_prunes_with_retention_days(ledger):
    task = MatchRetentionTask(interval_seconds=60, retention_days=30, ledger=ledger)

    assert await task.run_once() == 3
    ledger.prune_older_than.assert_awaited_once_with(30)


@pytest.mark.asyncio
async def test_run_once_logs_and_survives_errors(ledger):
    ledger.prune_older_than = AsyncMock(side_effect=RuntimeError("db down"))
    task = MatchRetentionTask(ledger=ledger)

    assert await task.run_once() == 0


@pytest.mark.asyncio
async def test_loop_keeps_running_after_a_failed_tick(ledger):
    ledger.prune_older_than = AsyncMock(side_effect=[RuntimeError("db down"), 1, 1, 1, 1, 1, 1, 1, 1, 1])
    task = MatchRetentionTask(interval_seconds=0.01, retention_days=7, ledger=ledger)

    task.start()
    await asyncio.sleep(0.1)
    await task.stop()

    assert ledger.prune_older_than.await_count >= 2


@pytest.mark.asyncio
async def test_start_and_stop_lifecycle(ledger):
    task = MatchRetentionTask(interval_seconds=3600, ledger=ledger)
    assert task.is_running is False

    task.start()
    assert task.is_running is True
    task.start()

    await task.stop()
    assert task.is_running is False
    ledger.prune_older_than.assert_not_called()

    await task.stop()
