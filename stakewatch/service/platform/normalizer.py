"""
Conversion of raw staking records from the platform API into typed validators.
"""

import logging
import math
import re
from collections.abc import Iterable
from datetime import UTC, datetime

from stakewatch._internal.common.exceptions import MalformedRecordException
from stakewatch._internal.common.models import StakingRecord, Validator
from stakewatch._internal.common.types import Elapsed, StakeAmount, Weight
from stakewatch.service.metrics import rejected_records_total

logger = logging.getLogger(__name__)

_UNSIGNED_INT = re.compile(r"[0-9]+")


def normalize(records: Iterable[StakingRecord], now: datetime | None = None) -> list[Validator]:
    """
    Convert raw records into validators, one per record, preserving the input order.

    A record with a malformed numeric field is excluded from the output and logged.
    `now` is the moment the elapsed staking period is computed for; it defaults to the current time.
    """
    now = now or datetime.now(UTC)
    validators = []
    for record in records:
        try:
            validators.append(normalize_record(record, now))
        except MalformedRecordException as exc:
            logger.warning(f"Skipping staking record of node {exc.node_id}: {exc.msg}")
            rejected_records_total.labels(field=exc.field).inc()
    return validators


def normalize_record(record: StakingRecord, now: datetime) -> Validator:
    """
    Raises:
        MalformedRecordException: When one of the numeric fields is not an unsigned integer.
    """
    validator = Validator(
        node_id=record.node_id,
        start_time=_parse_timestamp(record, "start_time"),
        end_time=_parse_timestamp(record, "end_time"),
        address=record.address,
    )

    if record.stake_amount is not None:
        stake_amount = StakeAmount(_parse_int(record, "stake_amount"))
        validator.stake_amount = stake_amount
        validator.total_stake_amount = stake_amount
        validator.delegators = []
        validator.elapsed = elapsed_staking_period(validator.start_time, validator.end_time, now)

    if record.weight is not None:
        validator.weight = Weight(_parse_int(record, "weight"))

    return validator


def elapsed_staking_period(start_time: datetime, end_time: datetime, now: datetime) -> Elapsed | None:
    """
    Percentage of the staking period that has already passed at `now`, rounded half up.

    The value is not clamped: it is negative before the period starts and exceeds 100 after it ends.
    Returns None for a period of zero length.
    """
    period = (end_time - start_time).total_seconds()
    if period == 0:
        return None
    passed = (now - start_time).total_seconds()
    return Elapsed(math.floor(passed * 100 / period + 0.5))


def _parse_int(record: StakingRecord, field: str) -> int:
    value = getattr(record, field)
    try:
        text = str(value) if isinstance(value, int) else value
        # Plain digits only: no sign, whitespace or underscores.
        if isinstance(text, str) and _UNSIGNED_INT.fullmatch(text):
            return int(text)
    except ValueError:
        # More digits than the int string conversion limit allows.
        pass
    raise MalformedRecordException(
        f"{field}={value!r} is not an unsigned integer", node_id=record.node_id, field=field, value=value
    )


def _parse_timestamp(record: StakingRecord, field: str) -> datetime:
    seconds = _parse_int(record, field)
    try:
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (OverflowError, OSError, ValueError):
        raise MalformedRecordException(
            f"{field}={seconds} is out of the supported time range",
            node_id=record.node_id,
            field=field,
            value=getattr(record, field),
        ) from None
