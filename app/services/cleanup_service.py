"""
Background retention task that prunes old keyword matches on a fixed interval
"""

import asyncio
import logging
from typing import Optional

from app.services.keyword_match_service import KeywordMatchService, keyword_match_service

logger = logging.getLogger(__name__)


class MatchRetentionTask:
    """Periodic pruning with an explicit start/stop lifecycle"""

    def __init__(
        self,
        interval_seconds: float = 24 * 60 * 60,
        retention_days: int = 30,
        ledger: Optional[KeywordMatchService] = None,
    ) -> None:
        self.interval_seconds = interval_seconds
        self.retention_days = retention_days
        self.ledger = ledger or keyword_match_service
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        """Prune once; errors are logged and reported as zero removed"""
        try:
            deleted_count = await self.ledger.prune_older_than(self.retention_days)
            if deleted_count > 0:
                logger.info("Cleaned up %d old keyword matches", deleted_count)
            return deleted_count
        except Exception as e:
            logger.error("Error during cleanup: %s", e)
            return 0

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await self.run_once()

    def start(self) -> None:
        if self.is_running:
            logger.warning("Retention task is already running")
            return
        self._task = asyncio.create_task(self._run(), name="keyword-match-retention")
        logger.info(
            "Retention task started: every %s seconds, keeping %s days", self.interval_seconds, self.retention_days
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Retention task stopped")
