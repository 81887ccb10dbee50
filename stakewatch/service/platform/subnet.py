import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime

from stakewatch._internal.common.constants import PRIMARY_SUBNET_ID
from stakewatch._internal.common.exceptions import FetchException
from stakewatch._internal.common.models import (
    Blockchain,
    Delegation,
    StakingRecord,
    SubnetData,
    SubnetDetails,
    SubnetSummary,
    Validator,
    ValidatorSet,
)
from stakewatch._internal.common.types import ControlKey, SubnetId, Threshold
from stakewatch.service.metrics import fetch_failures_total, subnet_refresh_duration, track_operation
from stakewatch.service.platform.classifier import classify
from stakewatch.service.platform.client import AbstractPlatformClient
from stakewatch.service.platform.normalizer import normalize
from stakewatch.service.platform.ranking import aggregate_stake, rank

logger = logging.getLogger(__name__)


class Subnet:
    """
    Validators, delegations and blockchains of a single subnet.

    Active and pending validator sets are recomputed from scratch on every refresh and replaced as a whole,
    so readers never see a mix of an old and a new set.
    Delegations are nested only in the primary subnet; other subnets rank their validators by weight.
    """

    def __init__(self, data: SubnetData, primary_subnet_id: SubnetId = PRIMARY_SUBNET_ID):
        self.id: SubnetId = data.id
        self.control_keys: list[ControlKey] = list(data.control_keys)
        self.threshold: Threshold = data.threshold
        self.is_primary = data.id == primary_subnet_id
        self.blockchains: list[Blockchain] = []
        self._active = ValidatorSet()
        self._pending = ValidatorSet()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"

    @property
    def validators(self) -> list[Validator]:
        return self._active.validators

    @property
    def delegations(self) -> list[Delegation]:
        return self._active.delegations

    @property
    def pending_validators(self) -> list[Validator]:
        return self._pending.validators

    @property
    def pending_delegations(self) -> list[Delegation]:
        return self._pending.delegations

    def update_metadata(self, data: SubnetData) -> None:
        self.control_keys = list(data.control_keys)
        self.threshold = data.threshold

    def refresh(
        self, records: Iterable[StakingRecord] | None, pending: bool = False, now: datetime | None = None
    ) -> ValidatorSet:
        """
        Recompute the active (or pending) validator set from raw records and replace the current one.
        """
        validator_set = self.compute(records, now=now)
        if pending:
            self._pending = validator_set
        else:
            self._active = validator_set
        return validator_set

    def compute(self, records: Iterable[StakingRecord] | None, now: datetime | None = None) -> ValidatorSet:
        validators = normalize(records or [], now=now)
        if not validators:
            return ValidatorSet()
        delegations: list[Delegation] = []
        if self.is_primary:
            validators, delegations = classify(validators)
            aggregate_stake(validators)
        validators = rank(validators, by_stake=self.is_primary)
        return ValidatorSet(validators=validators, delegations=delegations)

    @track_operation(
        subnet_refresh_duration,
        labels={"subnet": "attr:id", "validator_set": "param:validator_set_name"},
    )
    async def _fetch_and_refresh(self, client: AbstractPlatformClient, pending: bool, validator_set_name: str) -> None:
        if pending:
            records = await client.get_pending_validators(self.id)
        else:
            records = await client.get_current_validators(self.id)
        self.refresh(records, pending=pending)

    async def update_validators(self, client: AbstractPlatformClient, pending: bool = False) -> bool:
        """
        Fetch the active (or pending) staking records of the subnet and refresh the validator set from them.

        A failed or cancelled fetch keeps the last known validator set. Returns whether the set was replaced.
        """
        validator_set_name = "pending" if pending else "active"
        try:
            await self._fetch_and_refresh(client, pending, validator_set_name)
        except FetchException as exc:
            logger.error(
                f"Failed to fetch {validator_set_name} validators of subnet {self.id}, keeping previous: {exc}"
            )
            fetch_failures_total.labels(operation=f"{validator_set_name}_validators", subnet=self.id).inc()
            return False
        except asyncio.CancelledError:
            logger.warning(f"Fetching {validator_set_name} validators of subnet {self.id} cancelled, keeping previous")
            raise
        logger.debug(
            f"Subnet {self.id} refreshed: {len(self.validators)} validators, {len(self.pending_validators)} pending"
        )
        return True

    def add_blockchain(self, blockchain: Blockchain) -> None:
        self.blockchains.append(blockchain)

    def clear_blockchains(self) -> None:
        self.blockchains = []

    def summary(self) -> SubnetSummary:
        return SubnetSummary(
            id=self.id,
            control_keys=self.control_keys,
            threshold=self.threshold,
            validators=len(self.validators),
            pending_validators=len(self.pending_validators),
            delegations=len(self.delegations),
            pending_delegations=len(self.pending_delegations),
            blockchains=len(self.blockchains),
        )

    def details(self) -> SubnetDetails:
        return SubnetDetails(
            id=self.id,
            control_keys=self.control_keys,
            threshold=self.threshold,
            blockchains=self.blockchains,
            validators=self.validators,
            pending_validators=self.pending_validators,
            delegations=self.delegations,
            pending_delegations=self.pending_delegations,
        )
