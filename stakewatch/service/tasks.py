import asyncio
import logging
from typing import ClassVar

from stakewatch.service.platform.client import AbstractPlatformClient
from stakewatch.service.platform.registry import PlatformRegistry

logger = logging.getLogger(__name__)


class RefreshRegistry:
    JOB_NAME: ClassVar[str] = "refresh_registry"

    def __init__(self, registry: PlatformRegistry, client: AbstractPlatformClient, interval_seconds: float):
        self._registry = registry
        self._client = client
        self._interval_seconds = interval_seconds

    @classmethod
    def schedule(
        cls,
        registry: PlatformRegistry,
        client: AbstractPlatformClient,
        interval_seconds: float,
        stop_event: asyncio.Event,
    ) -> asyncio.Task[None]:
        refresh = cls(registry, client, interval_seconds)
        task = asyncio.create_task(refresh.run_job(stop_event), name=cls.JOB_NAME)
        task.add_done_callback(refresh._log_done)
        return task

    async def run_job(self, stop_event: asyncio.Event) -> None:
        """
        Refresh the registry every interval until the stop event is set. Errors do not stop the loop.
        """
        while not stop_event.is_set():
            try:
                await self._registry.refresh(self._client)
            except Exception as exc:
                logger.error("Error executing %s: %s", self.JOB_NAME, exc, exc_info=True)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval_seconds)
            except TimeoutError:
                continue

    def _log_done(self, job: asyncio.Task[None]) -> None:
        logger.info(f"Task finished {job}")
        if job.cancelled():
            return
        if (exc := job.exception()) is not None:
            logger.error("Exception in %s job: %s", self.JOB_NAME, exc, exc_info=exc)
