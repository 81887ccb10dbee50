from collections.abc import Iterable

from stakewatch._internal.common.models import Validator
from stakewatch._internal.common.types import Rank, StakeAmount


def aggregate_stake(validators: Iterable[Validator]) -> None:
    """
    Add the stake of all the nested delegators to every validator's total stake.
    """
    for validator in validators:
        if not validator.delegators:
            continue
        delegated = sum(d.stake_amount for d in validator.delegators)
        validator.total_stake_amount = StakeAmount((validator.total_stake_amount or 0) + delegated)


def rank(validators: Iterable[Validator], by_stake: bool) -> list[Validator]:
    """
    Sort validators descending by total stake (primary subnet) or by weight (other subnets) and assign 1-based ranks.

    Ties keep their incoming order.
    """
    if by_stake:
        ranked = sorted(validators, key=lambda v: v.total_stake_amount or 0, reverse=True)
    else:
        ranked = sorted(validators, key=lambda v: v.weight or 0, reverse=True)
    for position, validator in enumerate(ranked):
        validator.rank = Rank(position + 1)
    return ranked
