from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from stakewatch._internal.common.types import (
    Address,
    BlockchainId,
    ControlKey,
    Elapsed,
    NodeId,
    Rank,
    StakeAmount,
    SubnetId,
    Threshold,
    VmId,
    Weight,
)

# Raw models, as returned by the platform API.


class PlatformApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class StakingRecord(PlatformApiModel):
    """
    Staking entry exactly as the platform API reports it. Numbers usually come as strings, JSON numbers are accepted
    as well. Both are kept as they are and parsed during normalization.
    """

    node_id: NodeId = Field(alias="nodeID")
    start_time: str | int = Field(alias="startTime")
    end_time: str | int = Field(alias="endTime")
    address: Address | None = None
    stake_amount: str | int | None = Field(default=None, alias="stakeAmount")
    weight: str | int | None = None


class SubnetData(PlatformApiModel):
    id: SubnetId
    control_keys: list[ControlKey] = Field(default_factory=list, alias="controlKeys")
    threshold: Threshold = Threshold(1)


class Blockchain(PlatformApiModel):
    name: str
    id: BlockchainId
    subnet_id: SubnetId = Field(alias="subnetID")
    vm_id: VmId = Field(alias="vmID")


# Normalized models.


class StakingModel(BaseModel):
    pass


class Delegation(StakingModel):
    """
    Stake delegated through a validator's node. Shares the node id of its validator.
    """

    kind: Literal["delegation"] = "delegation"
    node_id: NodeId
    start_time: datetime
    end_time: datetime
    address: Address | None = None
    stake_amount: StakeAmount

    @field_serializer("stake_amount")
    def serialize_stake(self, v: StakeAmount) -> str:
        return str(v)


class Validator(StakingModel):
    """
    Validator of a subnet.

    Validators of the primary subnet carry stake fields (`stake_amount`, `total_stake_amount`, `delegators`,
    `elapsed`), validators of other subnets carry `weight` only.
    """

    kind: Literal["validator"] = "validator"
    node_id: NodeId
    start_time: datetime
    end_time: datetime
    address: Address | None = None
    stake_amount: StakeAmount | None = None
    # Own stake plus stake of all the delegators.
    total_stake_amount: StakeAmount | None = None
    # Empty list means the validator has no delegators yet.
    delegators: list[Delegation] | None = None
    weight: Weight | None = None
    rank: Rank | None = None
    # How much of the staking period has elapsed (%), not clamped.
    elapsed: Elapsed | None = None

    @field_serializer("stake_amount", "total_stake_amount")
    def serialize_stake(self, v: StakeAmount | None) -> str | None:
        return None if v is None else str(v)

    @property
    def is_staked(self) -> bool:
        return self.stake_amount is not None

    def as_delegation(self) -> Delegation:
        if self.stake_amount is None:
            raise ValueError(f"Record of node {self.node_id} has no stake and cannot be a delegation.")
        return Delegation(
            node_id=self.node_id,
            start_time=self.start_time,
            end_time=self.end_time,
            address=self.address,
            stake_amount=self.stake_amount,
        )


class ValidatorSet(StakingModel):
    """
    Result of a single refresh: ranked validators and the flat list of their delegations.
    """

    model_config = ConfigDict(frozen=True)

    validators: list[Validator] = Field(default_factory=list)
    delegations: list[Delegation] = Field(default_factory=list)


class SubnetSummary(StakingModel):
    id: SubnetId
    control_keys: list[ControlKey]
    threshold: Threshold
    validators: int
    pending_validators: int
    delegations: int
    pending_delegations: int
    blockchains: int


class SubnetDetails(StakingModel):
    id: SubnetId
    control_keys: list[ControlKey]
    threshold: Threshold
    blockchains: list[Blockchain]
    validators: list[Validator]
    pending_validators: list[Validator]
    delegations: list[Delegation]
    pending_delegations: list[Delegation]


class Stats(StakingModel):
    """
    Aggregates over the primary subnet. Stake values are serialized as strings so that no precision is lost.
    """

    total_validators: int
    total_pending_validators: int
    total_stake: StakeAmount
    total_pending_stake: StakeAmount
    cumulative_stake: list[StakeAmount]
    cumulative_pending_stake: list[StakeAmount]
    total_blockchains: int

    @field_serializer("total_stake", "total_pending_stake")
    def serialize_stake(self, v: StakeAmount) -> str:
        return str(v)

    @field_serializer("cumulative_stake", "cumulative_pending_stake")
    def serialize_cumulative_stake(self, v: list[StakeAmount]) -> list[str]:
        return [str(item) for item in v]
