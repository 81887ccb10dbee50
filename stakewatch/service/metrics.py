from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from time import perf_counter
from typing import Any, TypeVar, cast

from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


class MetricsConfigurationError(Exception):
    """Raised when metrics label configuration is invalid."""


platform_request_duration = Histogram(
    "stakewatch_platform_request_duration_seconds",
    """Duration of platform API requests in seconds (including retries).

    Labels:
        operation: Name of the client method (e.g., _get_validators, get_subnets).
        status: Request outcome.
        endpoint: JSON-RPC method name.
        subnet: Subnet identifier, N/A for global requests.
    """,
    ["operation", "status", "endpoint", "subnet"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0),
)

subnet_refresh_duration = Histogram(
    "stakewatch_subnet_refresh_duration_seconds",
    """Duration of fetching and recomputing a subnet's validator set.

    Labels:
        operation: Name of the refresh coroutine.
        status: Refresh outcome ("success" / "error").
        subnet: Subnet identifier.
        validator_set: "active" or "pending".
    """,
    ["operation", "status", "subnet", "validator_set"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

fetch_failures_total = Counter(
    "stakewatch_fetch_failures_total",
    """Total number of failed fetches after which the last known data was kept.

    Labels:
        operation: What was being fetched (validators, subnets, blockchains).
        subnet: Subnet identifier, N/A for global requests.
    """,
    ["operation", "subnet"],
)

rejected_records_total = Counter(
    "stakewatch_rejected_records_total",
    """Total number of raw staking records excluded because of a malformed field.

    Labels:
        field: Name of the field that failed to parse.
    """,
    ["field"],
)

primary_validators = Gauge(
    "stakewatch_primary_validators",
    """Number of validators in the primary subnet after the latest refresh.

    Labels:
        validator_set: "active" or "pending".
    """,
    ["validator_set"],
)


def track_operation(duration_metric: Histogram, labels: dict[str, str] | None = None):
    """
    Records the duration of the decorated coroutine in the given histogram.

    The "operation" label is set to the name of the coroutine and the "status" label to "success" or "error".
    Additional labels are extracted with explicit prefixes:
        - "static:value" -> Static string "value"
        - "param:name" -> Value of the parameter "name" of the call
        - "attr:field" -> Value of self.field
    Labels the metric declares but the configuration does not provide are set to "N/A".
    """

    def decorator(func: F) -> F:
        sig = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            bound_args = sig.bind_partial(*args, **kwargs)
            bound_args.apply_defaults()
            self_obj = args[0] if args else None
            extracted_labels = _extract_labels(labels or {}, self_obj, bound_args.arguments)
            async with _track_operation_context(func.__name__, extracted_labels, duration_metric):
                return await func(*args, **kwargs)

        return cast(F, wrapper)

    return decorator


def _extract_labels(
    label_config: dict[str, str], self_obj: object | None, method_params: dict[str, object]
) -> dict[str, str]:
    """
    Raises:
        MetricsConfigurationError: When label configuration is invalid or references missing attributes/parameters.
    """
    extracted = {}
    for label_name, source_spec in label_config.items():
        if ":" not in source_spec:
            raise MetricsConfigurationError(f"Label '{label_name}' must use explicit prefix format: 'type:value'")
        prefix, source = source_spec.split(":", 1)

        if prefix == "static":
            value = source
        elif prefix == "param":
            if source not in method_params:
                raise MetricsConfigurationError(
                    f"Parameter '{source}' not found in method signature for label '{label_name}'"
                )
            value = method_params[source]
        elif prefix == "attr":
            if self_obj is None or not hasattr(self_obj, source):
                raise MetricsConfigurationError(f"Attribute '{source}' not found for label '{label_name}'")
            value = getattr(self_obj, source)
        else:
            raise MetricsConfigurationError(
                f"Unknown label prefix '{prefix}' for label '{label_name}'. Use: static, param, or attr"
            )

        extracted[label_name] = str(value) if value is not None else "unknown"
    return extracted


def _prepare_metric_labels(metric: Histogram, labels: dict[str, str]) -> dict[str, str]:
    expected_label_names = set(metric._labelnames)
    unexpected = set(labels) - expected_label_names
    if unexpected:
        raise MetricsConfigurationError(
            f"Labels {unexpected} are not expected by metric '{metric._name}'. Expected: {expected_label_names}"
        )
    return {label_name: labels.get(label_name, "N/A") for label_name in expected_label_names}


@asynccontextmanager
async def _track_operation_context(operation: str, labels: dict[str, str], duration_metric: Histogram):
    start_time = perf_counter()
    status = "success"
    try:
        yield
    except BaseException:
        status = "error"
        raise
    finally:
        duration_labels = _prepare_metric_labels(duration_metric, {**labels, "operation": operation, "status": status})
        duration_metric.labels(**duration_labels).observe(perf_counter() - start_time)
