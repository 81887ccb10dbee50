import logging

from litestar import Litestar
from litestar.datastructures import State
from litestar.di import Provide
from litestar.openapi.config import OpenAPIConfig

from stakewatch._internal.common.settings import settings
from stakewatch.service import dependencies
from stakewatch.service.lifespans import platform_registry
from stakewatch.service.platform.client import AbstractPlatformClient
from stakewatch.service.prometheus_controller import AuthenticatedPrometheusController
from stakewatch.service.routers import v1_router


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(platform_client: AbstractPlatformClient | None = None) -> Litestar:
    """Create a Litestar app. A platform client may be given to be used instead of the one built from settings."""
    return Litestar(
        route_handlers=[
            v1_router,
            AuthenticatedPrometheusController,
        ],
        openapi_config=OpenAPIConfig(
            title="Stakewatch API",
            version="0.1.0",
            description="Read-only REST API with validators, delegations and stake statistics of platform subnets",
        ),
        lifespan=[platform_registry],
        dependencies={"registry": Provide(dependencies.registry)},
        state=State({"platform_client": platform_client}),
        debug=settings.debug,
    )


configure_logging()
app = create_app()
