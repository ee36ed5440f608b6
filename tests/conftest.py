"""
Shared Test Configuration and Fixtures

Sample usage records, aggregation rows, configuration and in-memory clients
used across the test suite.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List

import pytest

from chargeback.core.config.models import AppConfig
from chargeback.core.pipeline.interfaces import RunContext
from chargeback.models import AggregationRow
from chargeback.reporting.sinks import InMemorySink
from chargeback.sources.aggregation import GatewayRequest, UsageRecord
from chargeback.storage.memory import InMemoryBlobStore


BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def base_time() -> datetime:
    """Fixed 'now' for window calculations."""
    return BASE_TIME


@pytest.fixture
def make_row() -> Callable[..., AggregationRow]:
    """Factory for aggregation rows with plausible defaults."""
    def _make_row(product_id: str, model_name: str = "gpt-4o", total_tokens: int = 100,
                  **kwargs: Any) -> AggregationRow:
        values: Dict[str, Any] = {
            'prompt_tokens': total_tokens // 2,
            'completion_tokens': total_tokens - total_tokens // 2,
            'call_count': 1,
            'first_seen': BASE_TIME - timedelta(hours=2),
            'last_seen': BASE_TIME - timedelta(hours=1),
            'regions': ['eastus'],
            'caller_ips': ['10.0.0.1'],
            'caches': ['none'],
            'backend_ids': ['openai-east'],
        }
        values.update(kwargs)
        return AggregationRow(
            product_id=product_id,
            model_name=model_name,
            total_tokens=total_tokens,
            **values
        )
    return _make_row


@pytest.fixture
def sample_rows(make_row) -> List[AggregationRow]:
    """Two products, P1 smaller than P2."""
    return [
        make_row("P1", total_tokens=500),
        make_row("P2", total_tokens=1200),
    ]


@pytest.fixture
def gateway_records(base_time):
    """Requests and usage records for two products over the last day."""
    requests = [
        GatewayRequest("c1", base_time - timedelta(hours=3), "P1", "eastus", "10.0.0.1", "none", "be-1"),
        GatewayRequest("c2", base_time - timedelta(hours=2), "P2", "westus", "10.0.0.2", "hit", "be-2"),
        GatewayRequest("c3", base_time - timedelta(hours=1), "P2", "eastus", "10.0.0.3", "none", "be-1"),
    ]
    usage = [
        UsageRecord("c1", "gpt-4o", 0, 200, 300, 500),
        UsageRecord("c2", "gpt-4o", 0, 300, 400, 700),
        UsageRecord("c3", "gpt-4o", 0, 200, 300, 500),
    ]
    return requests, usage


@pytest.fixture
def app_config() -> AppConfig:
    """Configuration using only in-memory backends."""
    return AppConfig(
        workflow_name="test-chargeback",
        query={'source': 'memory', 'workspace_id': 'test_logs', 'timeout_seconds': 5},
        publish={'store': 'memory', 'container': 'reportoutput',
                 'blob_path': 'dailyChargeBackReport.csv', 'timeout_seconds': 5},
    )


@pytest.fixture
def run_context() -> RunContext:
    return RunContext(
        workflow_name="test-chargeback",
        query_text="SELECT 1",
        workspace_id="test_logs",
        lookback_hours=24,
        container="reportoutput",
        blob_path="dailyChargeBackReport.csv",
        run_id="run-0001",
    )


@pytest.fixture
def memory_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def memory_sink() -> InMemorySink:
    return InMemorySink()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove CHARGEBACK_* variables so tests see only what they set."""
    for key in list(os.environ):
        if key.startswith("CHARGEBACK_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
