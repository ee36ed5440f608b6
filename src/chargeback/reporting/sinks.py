"""
Failure Sinks

Destinations for failure event payloads. Sinks raise IngestionError when a
payload cannot be delivered; the FailureReporter decides what to do with it.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

import requests

from chargeback.core.exceptions import ErrorCode, IngestionError


logger = logging.getLogger(__name__)


class FailureSink(ABC):
    """Abstract destination for failure event payloads."""

    @abstractmethod
    def send(self, payload: Dict[str, Any]) -> None:
        """
        Deliver one payload.

        Raises:
            IngestionError: If the payload was not accepted
        """
        pass


class HttpIngestionSink(FailureSink):
    """
    Posts failure payloads to a structured-log ingestion endpoint.

    The body is a one-element JSON array; the record type travels in the
    ``Log-Type`` header.
    """

    def __init__(self, endpoint: str,
                 session: Optional[requests.Session] = None,
                 api_key: Optional[str] = None,
                 log_type: str = "ChargebackFailures",
                 timeout: float = 10.0,
                 extra_headers: Optional[Mapping[str, str]] = None):
        self.endpoint = endpoint
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {
            "Content-Type": "application/json",
            "Log-Type": log_type,
        }
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key}"
        if extra_headers:
            self.headers.update(extra_headers)

    def send(self, payload: Dict[str, Any]) -> None:
        try:
            response = self.session.post(
                self.endpoint,
                data=json.dumps([payload]),
                headers=self.headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise IngestionError(f"Failure ingestion request failed: {e}", cause=e)

        if not response.ok:
            raise IngestionError(
                f"Ingestion endpoint rejected event: HTTP {response.status_code} {response.reason}",
                error_code=ErrorCode.INGESTION_REJECTED,
                status_code=response.status_code
            )


class LoggingSink(FailureSink):
    """Writes each payload as one JSON line to a logger."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.ERROR):
        self.log = log or logging.getLogger("chargeback.failures")
        self.level = level

    def send(self, payload: Dict[str, Any]) -> None:
        self.log.log(self.level, json.dumps(payload, sort_keys=True))


class InMemorySink(FailureSink):
    """Collects payloads in a list."""

    def __init__(self):
        self.payloads: List[Dict[str, Any]] = []

    def send(self, payload: Dict[str, Any]) -> None:
        self.payloads.append(payload)
