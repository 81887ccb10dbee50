from litestar.datastructures import State

from stakewatch.service.platform.registry import PlatformRegistry


async def registry(state: State) -> PlatformRegistry:
    """
    Registry of subnets kept up to date by the background refresh task. Endpoints only read from it.
    """
    return state.registry
