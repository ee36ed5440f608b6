"""
Blob Store Interface

Contract between the publish stage and durable blob storage. Writes replace
any existing object at the path; a write either lands completely or reports
a failure status.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from chargeback.models import StageStatus


@dataclass
class WriteResult:
    """Outcome of one blob write."""
    path: str
    status: StageStatus = StageStatus.SUCCEEDED
    bytes_written: int = 0
    error_code: Optional[str] = None
    error_message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == StageStatus.SUCCEEDED

    @classmethod
    def failed(cls, path: str, message: str, status: StageStatus = StageStatus.FAILED,
               error_code: Optional[str] = None) -> 'WriteResult':
        return cls(path=path, status=status, error_code=error_code, error_message=message)


def join_path(container: str, path: str) -> str:
    """Location string ``container/path`` used in logs and failure records."""
    return f"{container}/{path}"


class BlobStore(ABC):
    """
    Abstract base class for blob stores.

    Implementations are synchronous; the publish stage runs them in an
    executor and enforces its own timeout.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"storage.{self.__class__.__name__.lower()}")

    @abstractmethod
    def write(self, container: str, path: str, payload: bytes,
              content_type: str = "text/csv") -> WriteResult:
        """
        Write ``payload`` to ``container/path``, replacing existing content.

        Returns:
            WriteResult: Success, or the failure status and error details
        """
        pass

    @abstractmethod
    def read(self, container: str, path: str) -> bytes:
        """
        Read the object stored at ``container/path``.

        Raises:
            FileNotFoundError: If nothing is stored at the location
        """
        pass

    def exists(self, container: str, path: str) -> bool:
        try:
            self.read(container, path)
        except FileNotFoundError:
            return False
        return True
