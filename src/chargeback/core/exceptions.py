"""
Core Exception Hierarchy for the Chargeback Pipeline

Provides error classification with error codes, stage status and contextual
information. Stage failures carry everything the failure reporter needs to
build a FailureEvent.
"""

import sys
import time
import traceback
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from chargeback.models import FailureType, StageStatus


class ErrorCode(Enum):
    """Standard error codes for different error categories."""

    # Query errors (1000-1999)
    QUERY_FAILED = 1001
    QUERY_TIMEOUT = 1002
    QUERY_SOURCE_UNAVAILABLE = 1005
    QUERY_SKIPPED = 1006
    QUERY_INVALID_RESULT = 1007

    # Blob storage errors (2000-2999)
    BLOB_WRITE_FAILED = 2001
    BLOB_TIMEOUT = 2002
    BLOB_STORE_UNAVAILABLE = 2004
    BLOB_SKIPPED = 2006

    # Transform errors (3000-3999)
    TRANSFORM_ENCODING_FAILED = 3001

    # Configuration errors (4000-4999)
    CONFIG_INVALID_FORMAT = 4001
    CONFIG_INVALID_VALUE = 4003
    CONFIG_FILE_NOT_FOUND = 4004

    # Failure ingestion errors (5000-5999)
    INGESTION_REQUEST_FAILED = 5001
    INGESTION_REJECTED = 5002

    # Generic errors (9000-9999)
    UNKNOWN_ERROR = 9000


@dataclass
class ErrorContext:
    """Contextual information about an error occurrence."""

    operation: str = ""
    stage: str = ""
    run_id: Optional[str] = None
    target: Optional[str] = None
    correlation_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    system_info: Dict[str, Any] = field(default_factory=dict)
    user_context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            'operation': self.operation,
            'stage': self.stage,
            'run_id': self.run_id,
            'target': self.target,
            'correlation_id': self.correlation_id,
            'timestamp': self.timestamp,
            'system_info': self.system_info,
            'user_context': self.user_context
        }


class ChargebackError(Exception):
    """
    Base exception for all chargeback pipeline errors.

    Carries a standardized error code, optional provider-specific code
    (for example the HTTP reason returned by the storage API), the
    underlying cause and context for debugging.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        provider_code: Optional[str] = None
    ):
        """
        Initialize chargeback error.

        Args:
            message: Human-readable error description
            error_code: Standardized error code
            context: Contextual information about the error
            cause: Original exception that caused this error
            provider_code: Error code reported by the external service
        """
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.context = context or ErrorContext()
        self.cause = cause
        self.provider_code = provider_code
        self.stack_trace = traceback.format_exc()

        if not self.context.correlation_id:
            self.context.correlation_id = str(uuid.uuid4())[:8]

        if not self.context.system_info:
            self.context.system_info = {
                'platform': sys.platform,
                'python_version': sys.version,
            }

    @property
    def code_label(self) -> str:
        """Error code as written to failure records."""
        return self.provider_code or self.error_code.name

    def get_user_message(self) -> str:
        """Get user-friendly error message."""
        lines = [f"Error: {self.message}"]

        if self.error_code != ErrorCode.UNKNOWN_ERROR:
            lines.append(f"Error Code: {self.error_code.value} ({self.code_label})")

        if self.context.stage:
            lines.append(f"Stage: {self.context.stage}")

        if self.context.run_id:
            lines.append(f"Run ID: {self.context.run_id}")

        return "\n".join(lines)

    def get_debug_info(self) -> Dict[str, Any]:
        """Get comprehensive debug information."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'error_code': self.error_code.value,
            'provider_code': self.provider_code,
            'context': self.context.to_dict(),
            'cause': {
                'type': type(self.cause).__name__ if self.cause else None,
                'message': str(self.cause) if self.cause else None
            },
            'stack_trace': self.stack_trace
        }


class StageFailure(ChargebackError):
    """
    Classified failure of a pipeline stage.

    Subclasses set ``failure_type``; the executor turns exactly one of these
    into a FailureEvent and halts the run.
    """

    failure_type: FailureType

    def __init__(
        self,
        message: str,
        status: StageStatus = StageStatus.FAILED,
        action_name: str = "",
        **kwargs
    ):
        if status == StageStatus.SUCCEEDED:
            raise ValueError("A stage failure cannot carry status Succeeded")

        super().__init__(message, **kwargs)
        self.status = status
        self.action_name = action_name or self.context.stage

    @property
    def blob_path(self) -> Optional[str]:
        return None


class QueryFailure(StageFailure):
    """The query stage could not produce a result set."""

    failure_type = FailureType.QUERY_FAILURE

    def __init__(
        self,
        message: str,
        status: StageStatus = StageStatus.FAILED,
        error_code: Optional[ErrorCode] = None,
        **kwargs
    ):
        if error_code is None:
            error_code = {
                StageStatus.TIMED_OUT: ErrorCode.QUERY_TIMEOUT,
                StageStatus.SKIPPED: ErrorCode.QUERY_SKIPPED,
            }.get(status, ErrorCode.QUERY_FAILED)
        super().__init__(message, status=status, error_code=error_code, **kwargs)


class BlobWriteFailure(StageFailure):
    """The publish stage could not persist the report."""

    failure_type = FailureType.BLOB_WRITE_FAILURE

    def __init__(
        self,
        message: str,
        target_path: str,
        status: StageStatus = StageStatus.FAILED,
        error_code: Optional[ErrorCode] = None,
        **kwargs
    ):
        if error_code is None:
            error_code = {
                StageStatus.TIMED_OUT: ErrorCode.BLOB_TIMEOUT,
                StageStatus.SKIPPED: ErrorCode.BLOB_SKIPPED,
            }.get(status, ErrorCode.BLOB_WRITE_FAILED)

        context = kwargs.get('context') or ErrorContext()
        context.target = target_path
        kwargs['context'] = context

        super().__init__(message, status=status, error_code=error_code, **kwargs)
        self.target_path = target_path

    @property
    def blob_path(self) -> Optional[str]:
        return self.target_path


class ReportEncodingError(ChargebackError):
    """The CSV report could not be encoded; escalates past the failure reporter."""

    def __init__(self, message: str, encoding: str = "", **kwargs):
        kwargs.setdefault('error_code', ErrorCode.TRANSFORM_ENCODING_FAILED)
        super().__init__(message, **kwargs)
        self.encoding = encoding


class ConfigurationError(ChargebackError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFIG_INVALID_FORMAT,
        config_key: Optional[str] = None,
        **kwargs
    ):
        context = kwargs.get('context') or ErrorContext()
        if config_key:
            context.user_context['config_key'] = config_key

        kwargs['context'] = context
        kwargs['error_code'] = error_code
        super().__init__(message, **kwargs)


class IngestionError(ChargebackError):
    """A failure sink could not deliver a failure event."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INGESTION_REQUEST_FAILED,
        status_code: Optional[int] = None,
        **kwargs
    ):
        kwargs['error_code'] = error_code
        super().__init__(message, **kwargs)
        self.status_code = status_code
