"""
Tests for Aggregation Query Text
"""

from chargeback.core.config.models import QueryConfig
from chargeback.sources.queries import build_query


def test_default_query_uses_configured_tables():
    query = build_query(QueryConfig(workspace_id="prod_logs", requests_table="req", usage_table="use"))

    assert "`prod_logs.req`" in query
    assert "`prod_logs.use`" in query
    assert "@lookback_hours" in query
    assert "sequence_number = 0" in query
    assert "LIMIT 8" in query
    assert "ORDER BY totalTokens DESC, firstSeen" in query


def test_override_query_text():
    assert build_query(QueryConfig(query_text="SELECT 1")) == "SELECT 1"
