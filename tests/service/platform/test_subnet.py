import asyncio

import pytest

from stakewatch._internal.common.constants import PlatformMethod
from stakewatch._internal.common.models import Blockchain
from stakewatch._internal.common.types import BlockchainId, VmId
from tests.helpers import at, staking_record
from tests.mock_platform_client import fetch_error

PRIMARY_RECORDS = [
    staking_record("A", 0, 100, stake=50),
    staking_record("A", 10, 100, stake=30),
    staking_record("B", 5, 50, stake=20),
]


def test_refresh_primary_subnet(primary_subnet):
    primary_subnet.refresh(PRIMARY_RECORDS, now=at(50))

    a, b = primary_subnet.validators
    assert (a.node_id, a.total_stake_amount, a.rank, a.elapsed) == ("A", 80, 1, 50)
    assert (b.node_id, b.total_stake_amount, b.rank, b.elapsed) == ("B", 20, 2, 100)
    assert [(d.node_id, d.start_time, d.stake_amount) for d in a.delegators] == [("A", at(10), 30)]
    assert b.delegators == []
    assert primary_subnet.delegations == a.delegators
    assert primary_subnet.pending_validators == []
    assert primary_subnet.pending_delegations == []


def test_refresh_primary_subnet_ranks_by_total_stake(primary_subnet):
    primary_subnet.refresh(
        [
            staking_record("A", 0, 100, stake=40),
            staking_record("B", 0, 100, stake=10),
            staking_record("B", 1, 100, stake=35),
        ],
        now=at(0),
    )

    assert [(v.node_id, v.stake_amount, v.total_stake_amount, v.rank) for v in primary_subnet.validators] == [
        ("B", 10, 45, 1),
        ("A", 40, 40, 2),
    ]


def test_refresh_other_subnet_ranks_by_weight_without_nesting(other_subnet):
    other_subnet.refresh(
        [
            staking_record("A", 0, 100, weight=10),
            staking_record("A", 10, 100, weight=30),
            staking_record("B", 5, 50, weight=20),
        ],
        now=at(0),
    )

    assert [(v.node_id, v.weight, v.rank) for v in other_subnet.validators] == [
        ("A", 30, 1),
        ("B", 20, 2),
        ("A", 10, 3),
    ]
    assert all(v.delegators is None for v in other_subnet.validators)
    assert other_subnet.delegations == []


def test_refresh_pending_replaces_only_pending_set(primary_subnet):
    primary_subnet.refresh(PRIMARY_RECORDS, now=at(0))
    active = primary_subnet.validators

    primary_subnet.refresh([staking_record("C", 200, 300, stake=1)], pending=True, now=at(0))

    assert primary_subnet.validators is active
    assert [v.node_id for v in primary_subnet.pending_validators] == ["C"]
    assert primary_subnet.pending_validators[0].elapsed == -200
    assert primary_subnet.pending_delegations == []


@pytest.mark.parametrize("records", [None, []], ids=["absent", "empty"])
def test_refresh_with_no_records_empties_the_set(primary_subnet, records):
    primary_subnet.refresh(PRIMARY_RECORDS, now=at(0))

    primary_subnet.refresh(records)

    assert primary_subnet.validators == []
    assert primary_subnet.delegations == []


def test_refresh_is_idempotent(primary_subnet):
    first = primary_subnet.refresh(PRIMARY_RECORDS, now=at(30))
    second = primary_subnet.refresh(PRIMARY_RECORDS, now=at(30))

    assert first == second
    assert first is not second
    assert [v.rank for v in second.validators] == [1, 2]


@pytest.mark.asyncio
async def test_update_validators(primary_subnet, mock_client):
    async with mock_client.mock_behavior(_get_validators=[PRIMARY_RECORDS, [staking_record("C", 0, 10, stake=5)]]):
        assert await primary_subnet.update_validators(mock_client) is True
        assert await primary_subnet.update_validators(mock_client, pending=True) is True

    assert [v.node_id for v in primary_subnet.validators] == ["A", "B"]
    assert [v.node_id for v in primary_subnet.pending_validators] == ["C"]
    assert mock_client.calls["_get_validators"] == [
        (PlatformMethod.CURRENT_VALIDATORS, primary_subnet.id),
        (PlatformMethod.PENDING_VALIDATORS, primary_subnet.id),
    ]


@pytest.mark.asyncio
async def test_update_validators_fetch_failure_keeps_previous_set(primary_subnet, mock_client, caplog):
    async with mock_client.mock_behavior(_get_validators=[PRIMARY_RECORDS, fetch_error()]):
        await primary_subnet.update_validators(mock_client)
        previous = primary_subnet.validators

        assert await primary_subnet.update_validators(mock_client) is False

    assert primary_subnet.validators is previous
    assert [v.node_id for v in primary_subnet.validators] == ["A", "B"]
    assert f"Failed to fetch active validators of subnet {primary_subnet.id}" in caplog.text


@pytest.mark.asyncio
async def test_update_validators_cancelled_fetch_keeps_previous_set(primary_subnet, mock_client):
    def cancelled(method, subnet_id):
        raise asyncio.CancelledError()

    primary_subnet.refresh(PRIMARY_RECORDS)
    previous = primary_subnet.validators

    async with mock_client.mock_behavior(_get_validators=[cancelled]):
        with pytest.raises(asyncio.CancelledError):
            await primary_subnet.update_validators(mock_client)

    assert primary_subnet.validators is previous


def test_add_blockchain_appends_without_deduplication(other_subnet):
    blockchain = Blockchain(name="Chain", id=BlockchainId("chain"), subnet_id=other_subnet.id, vm_id=VmId("vm"))

    other_subnet.add_blockchain(blockchain)
    other_subnet.add_blockchain(blockchain)

    assert other_subnet.blockchains == [blockchain, blockchain]

    other_subnet.clear_blockchains()

    assert other_subnet.blockchains == []


def test_summary(primary_subnet):
    primary_subnet.refresh(PRIMARY_RECORDS)

    summary = primary_subnet.summary()

    assert summary.id == primary_subnet.id
    assert (summary.validators, summary.delegations, summary.pending_validators, summary.blockchains) == (2, 1, 0, 0)
