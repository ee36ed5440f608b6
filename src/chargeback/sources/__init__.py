"""
Log Sources

Query clients for the usage log store and the aggregation they compute.
"""

from chargeback.sources.base import LogQueryClient, QueryResult
from chargeback.sources.aggregation import GatewayRequest, UsageRecord, aggregate_usage
from chargeback.sources.memory import InMemoryLogSource
from chargeback.sources.queries import USAGE_AGGREGATION_QUERY, build_query

__all__ = [
    'LogQueryClient',
    'QueryResult',
    'GatewayRequest',
    'UsageRecord',
    'aggregate_usage',
    'InMemoryLogSource',
    'USAGE_AGGREGATION_QUERY',
    'build_query',
]
