import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from litestar import Litestar
from tenacity import stop_after_attempt

from stakewatch._internal.common.settings import settings
from stakewatch.service.platform.client import (
    DEFAULT_RETRIES,
    AbstractPlatformClient,
    PlatformClient,
    PlatformClientConfig,
)
from stakewatch.service.platform.registry import PlatformRegistry
from stakewatch.service.tasks import RefreshRegistry

logger = logging.getLogger(__name__)


def create_platform_client() -> PlatformClient:
    return PlatformClient(
        PlatformClientConfig(
            address=settings.platform_api_url,
            timeout=settings.request_timeout_seconds,
            retry=DEFAULT_RETRIES.copy(stop=stop_after_attempt(settings.fetch_retry_attempts)),
        )
    )


@asynccontextmanager
async def platform_registry(app: Litestar) -> AsyncGenerator[None, None]:
    """
    Lifespan for litestar app that opens the platform client, creates the registry and keeps it refreshed
    in the background.
    """
    logger.debug("Litestar app startup")
    client: AbstractPlatformClient = getattr(app.state, "platform_client", None) or create_platform_client()
    app.state.registry = PlatformRegistry(primary_subnet_id=settings.primary_subnet_id)
    stop_event = asyncio.Event()
    async with client:
        task = None
        if settings.refresh_interval_seconds > 0:
            task = RefreshRegistry.schedule(app.state.registry, client, settings.refresh_interval_seconds, stop_event)
        try:
            yield
        finally:
            logger.debug("Litestar app shutdown")
            stop_event.set()
            if task is not None:
                await task
