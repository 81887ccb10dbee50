import asyncio
import logging
from collections.abc import Mapping
from itertools import accumulate
from types import MappingProxyType

from stakewatch._internal.common.constants import (
    PLATFORM_CHAIN_ID,
    PLATFORM_CHAIN_NAME,
    PLATFORM_CHAIN_VM_ID,
    PRIMARY_SUBNET_ID,
)
from stakewatch._internal.common.exceptions import FetchException
from stakewatch._internal.common.models import Blockchain, Stats, SubnetData, Validator
from stakewatch._internal.common.types import StakeAmount, SubnetId, Threshold
from stakewatch.service.metrics import fetch_failures_total, primary_validators
from stakewatch.service.platform.client import AbstractPlatformClient
from stakewatch.service.platform.subnet import Subnet

logger = logging.getLogger(__name__)


class PlatformRegistry:
    """
    All the known subnets of the platform chain, and aggregates over the primary subnet.

    Call `refresh` to fetch the current state of the chain; queries read whatever the latest refresh produced.
    Failed fetches never remove data that was fetched before.
    """

    def __init__(self, primary_subnet_id: SubnetId = PRIMARY_SUBNET_ID):
        self.primary_subnet_id = primary_subnet_id
        self._subnets: dict[SubnetId, Subnet] = {}

    @property
    def subnets(self) -> Mapping[SubnetId, Subnet]:
        return MappingProxyType(self._subnets)

    @property
    def primary_subnet(self) -> Subnet | None:
        return self._subnets.get(self.primary_subnet_id)

    def primary_subnet_data(self) -> SubnetData:
        # The primary subnet is not listed by platform.getSubnets.
        return SubnetData(id=self.primary_subnet_id, control_keys=[], threshold=Threshold(1))

    def platform_chain(self) -> Blockchain:
        # The platform chain is not listed by platform.getBlockchains.
        return Blockchain(
            name=PLATFORM_CHAIN_NAME,
            id=PLATFORM_CHAIN_ID,
            subnet_id=self.primary_subnet_id,
            vm_id=PLATFORM_CHAIN_VM_ID,
        )

    def set_subnets(self, subnets_data: list[SubnetData]) -> None:
        """
        Register the given subnets, keeping the state of the ones already known and dropping the ones not listed.
        The primary subnet is added when the list does not carry it.
        """
        if all(data.id != self.primary_subnet_id for data in subnets_data):
            subnets_data = [*subnets_data, self.primary_subnet_data()]
        subnets: dict[SubnetId, Subnet] = {}
        for data in subnets_data:
            subnet = self._subnets.get(data.id)
            if subnet is None:
                logger.info(f"New subnet {data.id} registered")
                subnet = Subnet(data, primary_subnet_id=self.primary_subnet_id)
            else:
                subnet.update_metadata(data)
            subnets[data.id] = subnet
        for subnet_id in self._subnets.keys() - subnets.keys():
            logger.info(f"Subnet {subnet_id} is not listed anymore, removing it")
        self._subnets = subnets

    def set_blockchains(self, blockchains: list[Blockchain]) -> None:
        """
        Map blockchains to their subnets. Blockchains of unknown subnets are skipped.
        """
        for subnet in self._subnets.values():
            subnet.clear_blockchains()
        for blockchain in [*blockchains, self.platform_chain()]:
            subnet = self._subnets.get(blockchain.subnet_id)
            if subnet is None:
                logger.warning(
                    f"Blockchain {blockchain.name} ({blockchain.id}) belongs to unknown subnet {blockchain.subnet_id}"
                )
                continue
            subnet.add_blockchain(blockchain)

    async def refresh(self, client: AbstractPlatformClient) -> None:
        """
        Fetch subnets, their validators and blockchains.

        Subnets are refreshed concurrently, a failure of one subnet does not affect the others.
        """
        try:
            subnets_data = await client.get_subnets()
        except FetchException as exc:
            logger.error(f"Failed to fetch subnets, keeping the {len(self._subnets)} known ones: {exc}")
            fetch_failures_total.labels(operation="subnets", subnet="N/A").inc()
            if not self._subnets:
                self.set_subnets([])
        else:
            self.set_subnets(subnets_data)

        subnets = list(self._subnets.values())
        results = await asyncio.gather(
            *(subnet.update_validators(client, pending=pending) for subnet in subnets for pending in (False, True)),
            return_exceptions=True,
        )
        for index, result in enumerate(results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error while refreshing subnet {subnets[index // 2].id}", exc_info=result)

        try:
            blockchains = await client.get_blockchains()
        except FetchException as exc:
            logger.error(f"Failed to fetch blockchains, keeping the known ones: {exc}")
            fetch_failures_total.labels(operation="blockchains", subnet="N/A").inc()
        else:
            self.set_blockchains(blockchains)

        primary_validators.labels(validator_set="active").set(self.total_validators())
        primary_validators.labels(validator_set="pending").set(self.total_pending_validators())
        logger.info(
            f"Registry refreshed: {len(self._subnets)} subnets, {self.total_validators()} primary validators, "
            f"{self.total_blockchains()} blockchains"
        )

    # Aggregates over the primary subnet.

    def total_validators(self) -> int:
        subnet = self.primary_subnet
        return 0 if subnet is None else len(subnet.validators)

    def total_pending_validators(self) -> int:
        subnet = self.primary_subnet
        return 0 if subnet is None else len(subnet.pending_validators)

    def total_stake(self) -> StakeAmount:
        """
        Own stake of the active validators. Delegated stake is not included.
        """
        subnet = self.primary_subnet
        return _sum_stake([] if subnet is None else subnet.validators)

    def total_pending_stake(self) -> StakeAmount:
        """
        Own stake of the pending validators. Delegated stake is not included.
        """
        subnet = self.primary_subnet
        return _sum_stake([] if subnet is None else subnet.pending_validators)

    def cumulative_stake(self) -> list[StakeAmount]:
        """
        Running sum of the active validators' own stake, in rank order.
        """
        subnet = self.primary_subnet
        return _cumulative_stake([] if subnet is None else subnet.validators)

    def cumulative_pending_stake(self) -> list[StakeAmount]:
        subnet = self.primary_subnet
        return _cumulative_stake([] if subnet is None else subnet.pending_validators)

    def total_blockchains(self) -> int:
        return sum(len(subnet.blockchains) for subnet in self._subnets.values())

    def stats(self) -> Stats:
        return Stats(
            total_validators=self.total_validators(),
            total_pending_validators=self.total_pending_validators(),
            total_stake=self.total_stake(),
            total_pending_stake=self.total_pending_stake(),
            cumulative_stake=self.cumulative_stake(),
            cumulative_pending_stake=self.cumulative_pending_stake(),
            total_blockchains=self.total_blockchains(),
        )


def _sum_stake(validators: list[Validator]) -> StakeAmount:
    return StakeAmount(sum(v.stake_amount or 0 for v in validators))


def _cumulative_stake(validators: list[Validator]) -> list[StakeAmount]:
    return [StakeAmount(total) for total in accumulate(v.stake_amount or 0 for v in validators)]
