import pytest
from freezegun import freeze_time

from stakewatch._internal.common.models import StakingRecord
from stakewatch.service.metrics import rejected_records_total
from stakewatch.service.platform.normalizer import elapsed_staking_period, normalize
from tests.helpers import at, staking_record


def test_normalize_stake_record():
    record = staking_record("NodeID-A", 1000, 2000, stake=2_000_000_000_000, address="P-avax1payout")

    [validator] = normalize([record], now=at(1500))

    assert validator.kind == "validator"
    assert validator.node_id == "NodeID-A"
    assert validator.start_time == at(1000)
    assert validator.end_time == at(2000)
    assert validator.address == "P-avax1payout"
    assert validator.stake_amount == 2_000_000_000_000
    assert validator.total_stake_amount == 2_000_000_000_000
    assert validator.delegators == []
    assert validator.elapsed == 50
    assert validator.weight is None
    assert validator.rank is None


def test_normalize_weight_record():
    [validator] = normalize([staking_record("NodeID-A", 1000, 2000, weight=20)], now=at(1500))

    assert validator.weight == 20
    assert validator.stake_amount is None
    assert validator.total_stake_amount is None
    assert validator.delegators is None
    assert validator.elapsed is None


def test_normalize_parses_raw_api_payload():
    record = StakingRecord.model_validate(
        {"nodeID": "NodeID-A", "startTime": "1000", "endTime": "2000", "stakeAmount": "123", "unknownField": 1}
    )

    [validator] = normalize([record], now=at(1000))

    assert validator.stake_amount == 123
    assert validator.address is None


def test_normalize_accepts_json_numbers():
    record = StakingRecord.model_validate(
        {"nodeID": "NodeID-A", "startTime": 1000, "endTime": 2000, "stakeAmount": 123}
    )

    [validator] = normalize([record], now=at(1500))

    assert (validator.start_time, validator.end_time) == (at(1000), at(2000))
    assert validator.stake_amount == 123
    assert validator.elapsed == 50


def test_normalize_preserves_input_order():
    records = [
        staking_record("NodeID-C", 0, 100, stake=1),
        staking_record("NodeID-A", 0, 100, stake=3),
        staking_record("NodeID-B", 0, 100, stake=2),
    ]

    validators = normalize(records, now=at(0))

    assert [v.node_id for v in validators] == ["NodeID-C", "NodeID-A", "NodeID-B"]


def test_normalize_stake_beyond_float_precision():
    stake = 2**64 + 1

    [validator] = normalize([staking_record("NodeID-A", 0, 100, stake=stake)], now=at(0))

    assert validator.stake_amount == stake


@pytest.mark.parametrize(
    "record,field",
    [
        pytest.param(staking_record("NodeID-X", 0, 100, stake="12abc"), "stake_amount", id="stake_amount"),
        pytest.param(staking_record("NodeID-X", 0, 100, weight="NaN"), "weight", id="weight"),
        pytest.param(staking_record("NodeID-X", "soon", 100, stake=1), "start_time", id="start_time"),
        pytest.param(staking_record("NodeID-X", 0, "", stake=1), "end_time", id="end_time"),
        pytest.param(staking_record("NodeID-X", 0, 10**20, stake=1), "end_time", id="end_time_out_of_range"),
        pytest.param(staking_record("NodeID-X", 0, 100, stake="1_000"), "stake_amount", id="underscores"),
        pytest.param(staking_record("NodeID-X", 0, 100, stake=" 12 "), "stake_amount", id="whitespace"),
        pytest.param(staking_record("NodeID-X", 0, 100, stake="+5"), "stake_amount", id="plus_sign"),
        pytest.param(staking_record("NodeID-X", 0, 100, stake=-5), "stake_amount", id="negative"),
        pytest.param(staking_record("NodeID-X", -1, 100, stake=1), "start_time", id="negative_start_time"),
        pytest.param(
            StakingRecord(node_id="NodeID-X", start_time=0, end_time=100, weight=-3),
            "weight",
            id="negative_json_number",
        ),
    ],
)
def test_normalize_excludes_malformed_record(record, field, caplog):
    before = rejected_records_total.labels(field=field)._value.get()
    records = [staking_record("NodeID-A", 0, 100, stake=1), record, staking_record("NodeID-B", 0, 100, stake=2)]

    validators = normalize(records, now=at(0))

    assert [v.node_id for v in validators] == ["NodeID-A", "NodeID-B"]
    assert rejected_records_total.labels(field=field)._value.get() == before + 1
    assert "Skipping staking record of node NodeID-X" in caplog.text


@pytest.mark.parametrize(
    "now,expected",
    [
        pytest.param(1000, 0, id="starts_now"),
        pytest.param(2000, 100, id="ends_now"),
        pytest.param(1250, 25, id="quarter"),
        pytest.param(1005, 1, id="half_rounds_up"),
        pytest.param(500, -50, id="not_started"),
        pytest.param(3000, 200, id="overdue"),
    ],
)
def test_elapsed_staking_period(now, expected):
    assert elapsed_staking_period(at(1000), at(2000), at(now)) == expected


def test_elapsed_staking_period_empty_period():
    assert elapsed_staking_period(at(1000), at(1000), at(1000)) is None


@freeze_time("1970-01-01 00:25:00", tz_offset=0)
def test_normalize_defaults_to_current_time():
    [validator] = normalize([staking_record("NodeID-A", 1000, 2000, stake=1)])

    assert validator.elapsed == 50
