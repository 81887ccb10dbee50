"""
Separation of validators and delegations of the primary subnet.

The platform API lists a delegation as another staking record of the validator's node. For every node the record
with the earliest start time is the validator itself, all the later ones are delegations:

    Validator                   = 'address A' stakes via 'node X' with the earliest start time
    Delegation by the validator = 'address A' stakes via 'node X' with a later start time
    Delegation by another staker = 'address B' stakes via 'node X' with a later start time
"""

import logging
from collections.abc import Iterable

from stakewatch._internal.common.models import Delegation, Validator
from stakewatch._internal.common.types import NodeId

logger = logging.getLogger(__name__)


def sort_for_delegators(validators: Iterable[Validator]) -> list[Validator]:
    """
    Sort by node id and then by start time, both ascending.

    The sort is stable, so records with the same node id and start time keep their input order.
    """
    return sorted(validators, key=lambda v: (v.node_id, v.start_time))


def nest_delegations(validators: Iterable[Validator]) -> tuple[list[Validator], list[Delegation]]:
    """
    Classify records into unique validators and delegations, nesting every delegation inside its validator.

    The first record seen for a node id becomes the validator, so the input has to be sorted with
    `sort_for_delegators` first. Validators are returned in the order they were first seen.
    """
    by_node: dict[NodeId, Validator] = {}
    delegations: list[Delegation] = []
    for record in validators:
        validator = by_node.get(record.node_id)
        if validator is None:
            by_node[record.node_id] = record
            continue
        if not record.is_staked:
            logger.warning(f"Skipping record of node {record.node_id} without stake, it cannot be a delegation")
            continue
        delegation = record.as_delegation()
        if validator.delegators is None:
            validator.delegators = []
        validator.delegators.append(delegation)
        delegations.append(delegation)
    logger.debug(f"Classified {len(by_node)} validators and {len(delegations)} delegations")
    return list(by_node.values()), delegations


def classify(validators: Iterable[Validator]) -> tuple[list[Validator], list[Delegation]]:
    return nest_delegations(sort_for_delegators(validators))
