"""
In-Memory Log Source

Holds gateway request and usage records in memory and answers the
aggregation query with aggregate_usage(). Used for local runs and tests.
"""

from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Union

from chargeback.sources.aggregation import GatewayRequest, UsageRecord, aggregate_usage
from chargeback.sources.base import LogQueryClient, QueryResult


class InMemoryLogSource(LogQueryClient):
    """
    Log query client backed by in-memory records.

    The query text is not interpreted: every query is answered with the
    usage aggregation over the stored records.
    """

    def __init__(self,
                 requests: Optional[Iterable[Union[GatewayRequest, Mapping[str, Any]]]] = None,
                 usage_records: Optional[Iterable[Union[UsageRecord, Mapping[str, Any]]]] = None,
                 now: Optional[datetime] = None):
        super().__init__()
        self.requests: List[GatewayRequest] = [
            r if isinstance(r, GatewayRequest) else GatewayRequest.from_record(r)
            for r in (requests or [])
        ]
        self.usage_records: List[UsageRecord] = [
            u if isinstance(u, UsageRecord) else UsageRecord.from_record(u)
            for u in (usage_records or [])
        ]
        self.now = now
        self.queries: List[str] = []

    def add_request(self, request: GatewayRequest) -> None:
        self.requests.append(request)

    def add_usage(self, usage: UsageRecord) -> None:
        self.usage_records.append(usage)

    def query(self, query_text: str, workspace_id: str, lookback_hours: int) -> QueryResult:
        self.queries.append(query_text)
        rows = aggregate_usage(
            self.requests,
            self.usage_records,
            lookback_hours=lookback_hours,
            now=self.now
        )
        self.logger.debug(f"Aggregated {len(rows)} groups from {len(self.requests)} requests")
        return QueryResult(rows=[row.to_dict() for row in rows])
