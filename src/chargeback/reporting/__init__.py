"""
Failure Reporting

Builds failure events for stage failures and delivers them to a sink.
"""

from chargeback.reporting.failure import FailureReporter, ReportedFailure, severity_for
from chargeback.reporting.sinks import FailureSink, HttpIngestionSink, LoggingSink, InMemorySink

__all__ = [
    'FailureReporter',
    'ReportedFailure',
    'severity_for',
    'FailureSink',
    'HttpIngestionSink',
    'LoggingSink',
    'InMemorySink',
]
