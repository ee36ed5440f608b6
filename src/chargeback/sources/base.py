"""
Log Query Client Interface

Contract between the query stage and the external log store. A client runs a
query over a workspace for a lookback window and reports either the result
rows or an error status.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from chargeback.models import StageStatus


@dataclass
class QueryResult:
    """Tabular result or error status returned by a log query client."""
    status: StageStatus = StageStatus.SUCCEEDED
    rows: List[Dict[str, Any]] = field(default_factory=list)
    error_code: Optional[str] = None
    error_message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == StageStatus.SUCCEEDED

    @classmethod
    def failed(cls, message: str, status: StageStatus = StageStatus.FAILED,
               error_code: Optional[str] = None) -> 'QueryResult':
        return cls(status=status, error_code=error_code, error_message=message)


class LogQueryClient(ABC):
    """
    Abstract base class for log store query clients.

    Implementations are synchronous; the query stage runs them in an
    executor and enforces its own timeout.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"sources.{self.__class__.__name__.lower()}")

    @abstractmethod
    def query(self, query_text: str, workspace_id: str, lookback_hours: int) -> QueryResult:
        """
        Execute a query against the log store.

        Args:
            query_text: Query-language text to execute
            workspace_id: Workspace or dataset the query runs against
            lookback_hours: Size of the time window ending now

        Returns:
            QueryResult: Rows on success, status and error details otherwise
        """
        pass
