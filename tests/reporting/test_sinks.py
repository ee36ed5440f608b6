"""
Tests for Failure Sinks

The HTTP session is mocked; no requests leave the process.
"""

import json
import logging
from unittest.mock import Mock

import pytest
import requests

from chargeback.core.exceptions import ErrorCode, IngestionError
from chargeback.reporting.sinks import HttpIngestionSink, InMemorySink, LoggingSink


PAYLOAD = {"FailureType": "QueryFailure", "WorkflowRunId": "run-1"}


def make_session(status_code=200, ok=True, error=None):
    session = Mock(spec=requests.Session)
    if error is not None:
        session.post.side_effect = error
    else:
        response = Mock(status_code=status_code, ok=ok, reason="OK" if ok else "Forbidden")
        session.post.return_value = response
    return session


class TestHttpIngestionSink:
    """Test HttpIngestionSink."""

    def test_posts_json_array(self):
        session = make_session()
        sink = HttpIngestionSink(
            "https://ingest.example.com/api/logs",
            session=session,
            api_key="token",
            log_type="ChargebackFailures",
            timeout=5
        )

        sink.send(PAYLOAD)

        args, kwargs = session.post.call_args
        assert args == ("https://ingest.example.com/api/logs",)
        assert json.loads(kwargs['data']) == [PAYLOAD]
        assert kwargs['headers']['Log-Type'] == "ChargebackFailures"
        assert kwargs['headers']['Authorization'] == "Bearer token"
        assert kwargs['headers']['Content-Type'] == "application/json"
        assert kwargs['timeout'] == 5

    def test_no_auth_header_without_key(self):
        session = make_session()
        sink = HttpIngestionSink("https://ingest.example.com", session=session,
                                 extra_headers={"X-Env": "test"})

        sink.send(PAYLOAD)

        headers = session.post.call_args.kwargs['headers']
        assert 'Authorization' not in headers
        assert headers['X-Env'] == "test"

    def test_rejected_response(self):
        sink = HttpIngestionSink("https://ingest.example.com", session=make_session(403, ok=False))

        with pytest.raises(IngestionError) as exc_info:
            sink.send(PAYLOAD)
        assert exc_info.value.error_code == ErrorCode.INGESTION_REJECTED
        assert exc_info.value.status_code == 403

    def test_transport_error(self):
        session = make_session(error=requests.exceptions.ConnectionError("refused"))
        sink = HttpIngestionSink("https://ingest.example.com", session=session)

        with pytest.raises(IngestionError) as exc_info:
            sink.send(PAYLOAD)
        assert exc_info.value.error_code == ErrorCode.INGESTION_REQUEST_FAILED


class TestLocalSinks:
    """Test logging and in-memory sinks."""

    def test_logging_sink(self, caplog):
        with caplog.at_level(logging.ERROR, logger="chargeback.failures"):
            LoggingSink().send(PAYLOAD)

        assert json.loads(caplog.records[0].getMessage()) == PAYLOAD

    def test_in_memory_sink(self):
        sink = InMemorySink()
        sink.send(PAYLOAD)
        assert sink.payloads == [PAYLOAD]
