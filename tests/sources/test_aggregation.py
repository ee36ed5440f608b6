"""
Tests for Usage Aggregation

Tests the join, filtering and grouping rules of the chargeback aggregation.
"""

from datetime import timedelta

import pytest

from chargeback.sources.aggregation import GatewayRequest, UsageRecord, aggregate_usage


class TestAggregateUsage:
    """Test aggregate_usage()."""

    def test_groups_by_product_and_model(self, gateway_records, base_time):
        requests, usage = gateway_records

        rows = aggregate_usage(requests, usage, lookback_hours=24, now=base_time)

        assert [row.key for row in rows] == [("P2", "gpt-4o"), ("P1", "gpt-4o")]
        p2 = rows[0]
        assert p2.total_tokens == 1200
        assert p2.prompt_tokens == 500
        assert p2.completion_tokens == 700
        assert p2.call_count == 2
        assert p2.first_seen == base_time - timedelta(hours=2)
        assert p2.last_seen == base_time - timedelta(hours=1)
        assert p2.regions == ["westus", "eastus"]
        assert p2.caches == ["hit", "none"]

    def test_only_sequence_zero_counted(self, base_time):
        requests = [GatewayRequest("c1", base_time, "P1")]
        usage = [
            UsageRecord("c1", "gpt-4o", 1, 0, 0, 999),
            UsageRecord("c1", "gpt-4o", 0, 10, 20, 30),
            UsageRecord("c1", "gpt-4o", 2, 0, 0, 999),
        ]

        rows = aggregate_usage(requests, usage)

        assert len(rows) == 1
        assert rows[0].total_tokens == 30
        assert rows[0].call_count == 1

    def test_unsuccessful_requests_skipped(self, base_time):
        requests = [
            GatewayRequest("c1", base_time, "P1", is_request_success=False),
            GatewayRequest("c2", base_time, "P1"),
        ]
        usage = [UsageRecord("c1", "m", 0, 0, 0, 100), UsageRecord("c2", "m", 0, 0, 0, 5)]

        rows = aggregate_usage(requests, usage)

        assert rows[0].total_tokens == 5

    def test_lookback_window(self, base_time):
        requests = [
            GatewayRequest("old", base_time - timedelta(hours=25), "P1"),
            GatewayRequest("new", base_time - timedelta(hours=23), "P1"),
        ]
        usage = [UsageRecord("old", "m", 0, 0, 0, 100), UsageRecord("new", "m", 0, 0, 0, 7)]

        rows = aggregate_usage(requests, usage, lookback_hours=24, now=base_time)

        assert rows[0].total_tokens == 7
        assert rows[0].call_count == 1

    @pytest.mark.parametrize("lookback_hours", [None, 24])
    def test_requests_without_timestamp_skipped(self, base_time, lookback_hours):
        requests = [
            GatewayRequest.from_record({"correlationId": "c1", "productId": "P1"}),
            GatewayRequest("c2", base_time, "P1"),
        ]
        usage = [UsageRecord("c1", "m", 0, 0, 0, 100), UsageRecord("c2", "m", 0, 0, 0, 9)]

        rows = aggregate_usage(requests, usage, lookback_hours=lookback_hours, now=base_time)

        assert requests[0].time_generated is None
        assert rows[0].total_tokens == 9
        assert rows[0].call_count == 1

    def test_requests_without_usage_ignored(self, base_time):
        requests = [GatewayRequest("c1", base_time, "P1")]
        assert aggregate_usage(requests, []) == []

    def test_multi_value_capped_at_eight(self, base_time):
        requests = [
            GatewayRequest(f"c{i}", base_time, "P1", caller_ip=f"10.0.0.{i}")
            for i in range(12)
        ]
        usage = [UsageRecord(f"c{i}", "m", 0, 0, 0, 1) for i in range(12)]

        rows = aggregate_usage(requests, usage)

        assert rows[0].call_count == 12
        assert rows[0].caller_ips == [f"10.0.0.{i}" for i in range(8)]

    def test_ties_in_discovery_order(self, base_time):
        requests = [
            GatewayRequest("a", base_time, "PA"),
            GatewayRequest("b", base_time, "PB"),
            GatewayRequest("c", base_time, "PC"),
        ]
        usage = [
            UsageRecord("a", "m", 0, 0, 0, 10),
            UsageRecord("b", "m", 0, 0, 0, 10),
            UsageRecord("c", "m", 0, 0, 0, 20),
        ]

        rows = aggregate_usage(requests, usage)

        assert [row.product_id for row in rows] == ["PC", "PA", "PB"]


class TestRecordParsing:
    """Test record parsing from log rows."""

    def test_gateway_request_from_camel_case(self):
        request = GatewayRequest.from_record({
            'correlationId': 'c1',
            'timeGenerated': '2024-05-01T10:00:00Z',
            'productId': 'P1',
            'region': 'eastus',
            'callerIpAddress': '10.0.0.1',
            'backendId': 'be-1',
            'isRequestSuccess': False,
        })
        assert request.product_id == 'P1'
        assert request.caller_ip == '10.0.0.1'
        assert request.is_request_success is False

    def test_usage_record_from_deployment_name(self):
        usage = UsageRecord.from_record({
            'correlationId': 'c1',
            'deploymentName': 'gpt-4o',
            'sequenceNumber': '0',
            'totalTokens': '42',
        })
        assert usage.model == 'gpt-4o'
        assert usage.total_tokens == 42
        assert usage.sequence_number == 0
