"""
Report Data Model

Dataclasses and enumerations shared by every pipeline stage: the aggregated
usage rows returned by the log query, the serialized CSV report, and the
structured failure event sent to the ingestion endpoint.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


# Distinct values kept per multi-value column
MULTI_VALUE_CAP = 8


class StageStatus(Enum):
    """Status reported by the query and blob interfaces."""

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    SKIPPED = "Skipped"


class FailureType(Enum):
    """Closed set of failure categories written to the ingestion endpoint."""

    QUERY_FAILURE = "QueryFailure"
    BLOB_WRITE_FAILURE = "BlobWriteFailure"


class Severity(Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


def cap_distinct(values: Optional[Iterable[Any]], cap: int = MULTI_VALUE_CAP) -> List[str]:
    """
    Deduplicate values preserving first-seen order and keep at most ``cap``.

    Empty and None entries are dropped. Values beyond the cap are discarded
    without error.
    """
    if values is None:
        return []
    if isinstance(values, str):
        values = [values]

    seen: List[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value)
        if not text or text in seen:
            continue
        seen.append(text)
        if len(seen) >= cap:
            break
    return seen


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a datetime or ISO-8601 string into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Unsupported timestamp value: {value!r}")

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> str:
    """Render a timestamp as ISO-8601 UTC with a ``Z`` suffix."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


# Record keys accepted by AggregationRow.from_record, query alias first
_FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "product_id": ("productId", "product_id"),
    "model_name": ("modelName", "model_name", "model"),
    "prompt_tokens": ("promptTokens", "prompt_tokens"),
    "completion_tokens": ("completionTokens", "completion_tokens"),
    "total_tokens": ("totalTokens", "total_tokens"),
    "call_count": ("callCount", "call_count", "calls"),
    "first_seen": ("firstSeen", "first_seen"),
    "last_seen": ("lastSeen", "last_seen"),
    "regions": ("regions", "region"),
    "caller_ips": ("callerIps", "caller_ips", "callerIpAddresses"),
    "caches": ("caches", "cache"),
    "backend_ids": ("backendIds", "backend_ids", "backendId"),
}


@dataclass
class AggregationRow:
    """
    One (product, model) group of gateway usage over the lookback window.

    Token metrics are sums over successful first-sequence usage records,
    ``first_seen``/``last_seen`` bound the request timestamps, and the
    multi-value lists hold at most ``MULTI_VALUE_CAP`` distinct values.
    """

    product_id: str = ""
    model_name: str = ""
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

    def __post_init__(self):
        self.regions = cap_distinct(self.regions)
        self.caller_ips = cap_distinct(self.caller_ips)
        self.caches = cap_distinct(self.caches)
        self.backend_ids = cap_distinct(self.backend_ids)

    @property
    def key(self) -> Tuple[str, str]:
        """Aggregation key of this row."""
        return (self.product_id, self.model_name)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> 'AggregationRow':
        """
        Build a row from one query result record.

        Accepts the camelCase column aliases of the aggregation query as well
        as snake_case names. Numeric columns are coerced to ``int``.

        Raises:
            ValueError: If a numeric or timestamp column cannot be parsed
        """
        values: Dict[str, Any] = {}
        for attr, aliases in _FIELD_ALIASES.items():
            for alias in aliases:
                if alias in record:
                    values[attr] = record[alias]
                    break

        for attr in ("prompt_tokens", "completion_tokens", "total_tokens", "call_count"):
            raw = values.get(attr)
            values[attr] = int(raw) if raw not in (None, "") else 0

        for attr in ("first_seen", "last_seen"):
            values[attr] = parse_timestamp(values.get(attr))

        for attr in ("product_id", "model_name"):
            raw = values.get(attr)
            values[attr] = "" if raw is None else str(raw)

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "productId": self.product_id,
            "modelName": self.model_name,
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
            "callCount": self.call_count,
            "firstSeen": format_timestamp(self.first_seen),
            "lastSeen": format_timestamp(self.last_seen),
            "regions": list(self.regions),
            "callerIps": list(self.caller_ips),
            "caches": list(self.caches),
            "backendIds": list(self.backend_ids),
        }


def order_by_total_tokens(rows: Iterable[AggregationRow]) -> List[AggregationRow]:
    """Sort rows by total tokens descending; ties keep their input order."""
    return sorted(rows, key=lambda row: row.total_tokens, reverse=True)


@dataclass
class ReportDocument:
    """Serialized CSV report ready for publishing."""

    content: str
    columns: Tuple[str, ...]
    row_count: int = 0
    encoding: str = "utf-8"
    payload: bytes = b""
    content_type: str = "text/csv"
    line_terminator: str = "\n"

    @property
    def size(self) -> int:
        return len(self.payload)

    def lines(self) -> List[str]:
        """Physical lines of the report, split on its record terminator only."""
        lines = self.content.split(self.line_terminator)
        if lines and lines[-1] == "":
            lines.pop()
        return lines


@dataclass
class FailureEvent:
    """
    Structured record of one stage failure within one run.

    ``blob_path`` is only populated for publish failures.
    """

    workflow_name: str
    workflow_run_id: str
    failure_type: FailureType
    action_name: str
    error_code: str
    error_message: str
    severity: Severity = Severity.HIGH
    blob_path: Optional[str] = None
    time_generated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> Dict[str, Any]:
        """Render the event in the ingestion endpoint's schema."""
        return {
            "TimeGenerated": format_timestamp(self.time_generated),
            "WorkflowName": self.workflow_name,
            "WorkflowRunId": self.workflow_run_id,
            "FailureType": self.failure_type.value,
            "ActionName": self.action_name,
            "ErrorCode": self.error_code,
            "ErrorMessage": self.error_message,
            "Severity": self.severity.value,
            "BlobPath": self.blob_path or "",
        }
