"""Autonomous overwrite scheduler.

While enabled, periodically overwrites the configured target save with the
current data directory content. Ticks never queue: a tick that finds the
operation lock held is dropped.
"""

from __future__ import annotations

import asyncio
import logging

from cloudsaves.checkpoint import CheckpointEngine
from cloudsaves.config import CloudSavesConfig, ConfigStore
from cloudsaves.results import OperationResult
from cloudsaves.session import Session

logger = logging.getLogger(__name__)


def should_run(config: CloudSavesConfig) -> bool:
    return bool(config.is_authorized and config.auto_save_enabled and config.auto_save_target_tag)


class AutoSaveScheduler:
    """Owns the periodic auto-save task stored on the session.

    Args:
        engine: Engine performing the overwrite
        config_store: Source of the auto-save settings (re-read every tick)
        session: Holds the lock and the timer handle
        interval_unit: Seconds per configured interval unit (minutes by default)
    """

    def __init__(
        self,
        engine: CheckpointEngine,
        config_store: ConfigStore,
        session: Session,
        interval_unit: float = 60.0,
    ):
        self.engine = engine
        self.config_store = config_store
        self.session = session
        self.interval_unit = interval_unit

    @property
    def running(self) -> bool:
        timer = self.session.timer
        return timer is not None and not timer.done()

    def stop(self) -> None:
        """Cancel the current timer, if any."""
        timer = self.session.timer
        if timer is not None:
            if not timer.done():
                logger.info("Stopping auto-save timer")
                timer.cancel()
            self.session.timer = None

    def reschedule(self) -> bool:
        """Replace the timer according to the current config.

        Must be called from within the running event loop. Returns True when
        a timer was installed.
        """
        self.stop()
        config = self.config_store.load()
        if not should_run(config):
            logger.info("Auto-save disabled or not configured")
            return False

        seconds = config.effective_interval * self.interval_unit
        logger.info(
            f"Auto-save every {config.effective_interval:g} min -> {config.auto_save_target_tag}"
        )
        self.session.timer = asyncio.get_running_loop().create_task(self._loop(seconds))
        return True

    async def _loop(self, seconds: float) -> None:
        while True:
            await asyncio.sleep(seconds)
            await self.run_once()

    async def run_once(self) -> OperationResult | None:
        """One scheduler tick. None when the tick was skipped."""
        config = self.config_store.load()
        if not should_run(config):
            logger.debug("Auto-save tick skipped: preconditions not met")
            return None

        if self.session.lock.locked:
            logger.info(f"Auto-save tick skipped: {self.session.lock.current} in progress")
            return None

        tag = config.auto_save_target_tag
        logger.info(f"Auto-saving to {tag}")
        try:
            result = await self.engine.auto_overwrite(tag)
        except Exception:
            logger.exception("Auto-save tick failed")
            return None

        if result.success:
            logger.info(f"Auto-save to {tag} complete")
        else:
            logger.error(f"Auto-save to {tag} failed: {result.message}")
        return result
