"""
Usage Aggregation

Python rendition of the chargeback aggregation query: joins gateway request
records to usage-detail records on the correlation id and groups the
successful first-sequence records by (product, model).
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from chargeback.models import (
    MULTI_VALUE_CAP, AggregationRow, order_by_total_tokens, parse_timestamp
)


@dataclass
class GatewayRequest:
    """One request record written by the API gateway."""
    correlation_id: str
    time_generated: Optional[datetime]
    product_id: str = ""
    region: str = ""
    caller_ip: str = ""
    cache: str = ""
    backend_id: str = ""
    is_request_success: bool = True

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'GatewayRequest':
        return cls(
            correlation_id=str(record.get("correlationId", record.get("correlation_id", ""))),
            time_generated=parse_timestamp(record.get("timeGenerated", record.get("time_generated"))),
            product_id=str(record.get("productId", record.get("product_id", "")) or ""),
            region=str(record.get("region", "") or ""),
            caller_ip=str(record.get("callerIpAddress", record.get("caller_ip", "")) or ""),
            cache=str(record.get("cache", "") or ""),
            backend_id=str(record.get("backendId", record.get("backend_id", "")) or ""),
            is_request_success=bool(record.get("isRequestSuccess", record.get("is_request_success", True))),
        )


@dataclass
class UsageRecord:
    """One usage-detail record; long responses span several sequence numbers."""
    correlation_id: str
    model: str = ""
    sequence_number: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'UsageRecord':
        return cls(
            correlation_id=str(record.get("correlationId", record.get("correlation_id", ""))),
            model=str(record.get("deploymentName", record.get("model", "")) or ""),
            sequence_number=int(record.get("sequenceNumber", record.get("sequence_number", 0)) or 0),
            prompt_tokens=int(record.get("promptTokens", record.get("prompt_tokens", 0)) or 0),
            completion_tokens=int(record.get("completionTokens", record.get("completion_tokens", 0)) or 0),
            total_tokens=int(record.get("totalTokens", record.get("total_tokens", 0)) or 0),
        )


@dataclass
class _Group:
    product_id: str
    model_name: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    call_count: int = 0
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    regions: List[str] = field(default_factory=list)
    caller_ips: List[str] = field(default_factory=list)
    caches: List[str] = field(default_factory=list)
    backend_ids: List[str] = field(default_factory=list)

    def add(self, request: GatewayRequest, usage: UsageRecord) -> None:
        self.prompt_tokens += usage.prompt_tokens
        self.completion_tokens += usage.completion_tokens
        self.total_tokens += usage.total_tokens
        self.call_count += 1

        ts = request.time_generated
        if self.first_seen is None or ts < self.first_seen:
            self.first_seen = ts
        if self.last_seen is None or ts > self.last_seen:
            self.last_seen = ts

        _collect(self.regions, request.region)
        _collect(self.caller_ips, request.caller_ip)
        _collect(self.caches, request.cache)
        _collect(self.backend_ids, request.backend_id)

    def to_row(self) -> AggregationRow:
        return AggregationRow(
            product_id=self.product_id,
            model_name=self.model_name,
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
            total_tokens=self.total_tokens,
            call_count=self.call_count,
            first_seen=self.first_seen,
            last_seen=self.last_seen,
            regions=self.regions,
            caller_ips=self.caller_ips,
            caches=self.caches,
            backend_ids=self.backend_ids,
        )


def _collect(values: List[str], value: str) -> None:
    if value and value not in values and len(values) < MULTI_VALUE_CAP:
        values.append(value)


def aggregate_usage(
    requests: Iterable[GatewayRequest],
    usage_records: Iterable[UsageRecord],
    lookback_hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[AggregationRow]:
    """
    Aggregate usage per (product, model).

    Only successful, timestamped requests inside the lookback window joined
    to usage records with sequence number 0 are counted. Groups appear in discovery
    order (request order) before the stable descending sort by total tokens.

    Args:
        requests: Gateway request records
        usage_records: Usage-detail records
        lookback_hours: Window size; None keeps every request
        now: End of the window, defaults to the current UTC time

    Returns:
        Aggregation rows ordered by total tokens descending
    """
    first_usage: Dict[str, UsageRecord] = {}
    for usage in usage_records:
        if usage.sequence_number != 0:
            continue
        first_usage.setdefault(usage.correlation_id, usage)

    window_start = None
    if lookback_hours is not None:
        now = now or datetime.now(timezone.utc)
        window_start = now - timedelta(hours=lookback_hours)

    groups: Dict[Tuple[str, str], _Group] = {}
    for request in requests:
        if not request.is_request_success or request.time_generated is None:
            continue
        if window_start is not None and request.time_generated < window_start:
            continue

        usage = first_usage.get(request.correlation_id)
        if usage is None:
            continue

        key = (request.product_id, usage.model)
        group = groups.get(key)
        if group is None:
            group = groups[key] = _Group(product_id=key[0], model_name=key[1])
        group.add(request, usage)

    return order_by_total_tokens(group.to_row() for group in groups.values())
