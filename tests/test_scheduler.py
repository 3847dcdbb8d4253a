"""Tests for cloudsaves.scheduler module."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from cloudsaves.results import OperationResult
from cloudsaves.scheduler import AutoSaveScheduler, should_run
from cloudsaves.config import CloudSavesConfig
from cloudsaves.session import Session

pytestmark = pytest.mark.asyncio

TARGET = "save_1700000000000_U2xvdA"


@pytest.fixture
def engine():
    fake = MagicMock()
    fake.auto_overwrite = AsyncMock(return_value=OperationResult.ok("Save overwritten"))
    return fake


@pytest.fixture
def scheduler(engine, config_store):
    # One configured "minute" lasts 10ms
    return AutoSaveScheduler(engine, config_store, Session(), interval_unit=0.01)


def _enable(config_store, **overrides):
    values = {
        "is_authorized": True,
        "auto_save_enabled": True,
        "auto_save_interval": 1,
        "auto_save_target_tag": TARGET,
    }
    values.update(overrides)
    config_store.update(**values)


async def test_should_run_requires_all_preconditions():
    assert should_run(CloudSavesConfig(is_authorized=True, auto_save_enabled=True, auto_save_target_tag=TARGET))
    assert not should_run(CloudSavesConfig(is_authorized=False, auto_save_enabled=True, auto_save_target_tag=TARGET))
    assert not should_run(CloudSavesConfig(is_authorized=True, auto_save_enabled=False, auto_save_target_tag=TARGET))
    assert not should_run(CloudSavesConfig(is_authorized=True, auto_save_enabled=True, auto_save_target_tag=""))


async def test_run_once_overwrites_target(scheduler, engine, config_store):
    _enable(config_store)

    result = await scheduler.run_once()

    assert result.success
    engine.auto_overwrite.assert_awaited_once_with(TARGET)


async def test_run_once_skips_when_disabled(scheduler, engine, config_store):
    _enable(config_store, auto_save_enabled=False)

    assert await scheduler.run_once() is None
    engine.auto_overwrite.assert_not_awaited()


async def test_run_once_skips_when_busy(scheduler, engine, config_store):
    _enable(config_store)
    scheduler.session.lock.acquire("create_save")

    assert await scheduler.run_once() is None
    engine.auto_overwrite.assert_not_awaited()


async def test_run_once_swallows_engine_errors(scheduler, engine, config_store):
    _enable(config_store)
    engine.auto_overwrite.side_effect = RuntimeError("boom")

    assert await scheduler.run_once() is None


async def test_timer_fires_repeatedly(scheduler, engine, config_store):
    _enable(config_store)

    assert scheduler.reschedule()
    assert scheduler.running
    await asyncio.sleep(0.1)
    scheduler.stop()

    assert engine.auto_overwrite.await_count >= 2
    assert not scheduler.running
    assert scheduler.session.timer is None


async def test_disabled_config_installs_no_timer(scheduler, engine, config_store):
    _enable(config_store, auto_save_enabled=False)

    assert not scheduler.reschedule()
    await asyncio.sleep(0.05)

    assert scheduler.session.timer is None
    engine.auto_overwrite.assert_not_awaited()


async def test_disabling_after_start_stops_overwrites(scheduler, engine, config_store):
    _enable(config_store)
    scheduler.reschedule()
    await asyncio.sleep(0.05)

    config_store.update(auto_save_enabled=False)
    scheduler.reschedule()
    calls = engine.auto_overwrite.await_count
    await asyncio.sleep(0.05)

    assert engine.auto_overwrite.await_count == calls


async def test_reschedule_replaces_timer(scheduler, config_store):
    _enable(config_store, auto_save_interval=1000)
    scheduler.reschedule()
    first = scheduler.session.timer

    scheduler.reschedule()
    await asyncio.sleep(0)

    assert first.cancelled()
    assert scheduler.session.timer is not first
    scheduler.stop()
