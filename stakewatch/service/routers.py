from litestar import Router

from stakewatch._internal.common.endpoints import ApiVersion
from stakewatch.service.api import get_stats_endpoint, get_subnet_endpoint, get_subnets_endpoint

v1_router = Router(
    path=ApiVersion.V1.prefix,
    route_handlers=[
        get_subnets_endpoint,
        get_subnet_endpoint,
        get_stats_endpoint,
    ],
)
