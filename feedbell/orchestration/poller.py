import asyncio
import logging
import random
from typing import Optional, Sequence

from feedbell.config.settings import settings
from feedbell.metrics.registry import last_poll_timestamp, poll_duration_seconds, poll_errors_total
from feedbell.notify.composer import compose_error_report
from feedbell.notify.pipeline import Channel, DeliveryPipeline

log = logging.getLogger(__name__)


class Poller:
    """Runs every check concurrently once per round; rounds never overlap."""

    def __init__(self, checks: Sequence, pipeline: Optional[DeliveryPipeline] = None,
                 admin_channels: Sequence[Channel] = ()):
        self.checks = list(checks)
        self.pipeline = pipeline
        self.admin_channels = list(admin_channels)

    async def _run_check(self, check):
        try:
            return await check.run()
        except Exception as e:
            poll_errors_total.labels(source=check.key()).inc()
            log.exception("Check failed source=%s error=%s; cursor left untouched", check.key(), e)
            await self._report(check, e)
            return None

    async def _report(self, check, error: BaseException):
        if not self.pipeline or not self.admin_channels:
            return
        await self.pipeline.send(self.admin_channels, compose_error_report(check.key(), error))

    async def run_round(self) -> list:
        start = asyncio.get_running_loop().time()
        results = await asyncio.gather(*(self._run_check(c) for c in self.checks))
        duration = asyncio.get_running_loop().time() - start
        poll_duration_seconds.observe(duration)
        last_poll_timestamp.set_to_current_time()
        log.debug("Round finished in %.2fs", duration)
        return list(results)

    def next_interval(self) -> float:
        low, high = settings.poll_interval_min_sec, settings.poll_interval_max_sec
        return random.uniform(min(low, high), max(low, high))

    async def run(self):
        while True:
            await self.run_round()
            interval = self.next_interval()
            log.info("Next round in %.0fs", interval)
            await asyncio.sleep(interval)
