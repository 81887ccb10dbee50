import logging

from litestar import get
from litestar.exceptions import NotFoundException

from stakewatch._internal.common.endpoints import Endpoint
from stakewatch._internal.common.models import Stats, SubnetDetails, SubnetSummary
from stakewatch._internal.common.types import SubnetId
from stakewatch.service.platform.registry import PlatformRegistry

logger = logging.getLogger(__name__)


@get(Endpoint.SUBNETS)
async def get_subnets_endpoint(registry: PlatformRegistry) -> list[SubnetSummary]:
    """
    Get all known subnets with the sizes of their validator sets.
    """
    return [subnet.summary() for subnet in registry.subnets.values()]


@get(Endpoint.SUBNET)
async def get_subnet_endpoint(registry: PlatformRegistry, subnet_id: str) -> SubnetDetails:
    """
    Get ranked validators, delegations and blockchains of a subnet.
    """
    subnet = registry.subnets.get(SubnetId(subnet_id))
    if subnet is None:
        raise NotFoundException(detail=f"Subnet {subnet_id} not found.")
    return subnet.details()


@get(Endpoint.STATS)
async def get_stats_endpoint(registry: PlatformRegistry) -> Stats:
    """
    Get validator counts and stake distribution of the primary subnet.
    """
    return registry.stats()
