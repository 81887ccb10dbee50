import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from stakewatch._internal.common.models import StakingRecord
from stakewatch._internal.common.types import Address, NodeId


def staking_record(
    node_id: str,
    start: int,
    end: int,
    stake: int | str | None = None,
    weight: int | str | None = None,
    address: str | None = None,
) -> StakingRecord:
    """
    Build a raw staking record the way the platform API reports it: numbers as strings.
    """
    return StakingRecord(
        node_id=NodeId(node_id),
        start_time=str(start),
        end_time=str(end),
        stake_amount=None if stake is None else str(stake),
        weight=None if weight is None else str(weight),
        address=None if address is None else Address(address),
    )


def at(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=UTC)


async def wait_until(func: Callable[[], Any], timeout: float = 2.0, sleep_interval: float = 0.01) -> None:
    async with asyncio.timeout(timeout):
        while not func():
            await asyncio.sleep(sleep_interval)
