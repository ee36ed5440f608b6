"""
Failure Reporter

Turns a classified stage failure into a FailureEvent and sends it to the
configured sink. Reporting is fire-and-forget: a sink error is logged and
dropped, never retried and never raised back into the pipeline.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from chargeback.core.exceptions import StageFailure
from chargeback.core.pipeline.interfaces import RunContext
from chargeback.models import FailureEvent, FailureType, Severity
from chargeback.reporting.sinks import FailureSink


logger = logging.getLogger(__name__)


# Every defined failure prevents report delivery
SEVERITY_POLICY: Dict[FailureType, Severity] = {
    FailureType.QUERY_FAILURE: Severity.HIGH,
    FailureType.BLOB_WRITE_FAILURE: Severity.HIGH,
}


def severity_for(failure_type: FailureType) -> Severity:
    return SEVERITY_POLICY.get(failure_type, Severity.HIGH)


@dataclass
class ReportedFailure:
    """A built failure event and whether the sink accepted it."""
    event: FailureEvent
    delivered: bool


class FailureReporter:
    """
    Builds and emits failure events.

    Used as the executor's failure handler: ``reporter(context, failure)``
    builds the event for the run and sends it.
    """

    def __init__(self, sink: FailureSink,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            sink: Destination of the failure payloads
            clock: Source of event timestamps, defaults to UTC now
        """
        self.sink = sink
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.reported: List[ReportedFailure] = []

    def build_event(self, context: RunContext, failure: StageFailure) -> FailureEvent:
        """Build the FailureEvent describing ``failure`` within the run."""
        return FailureEvent(
            workflow_name=context.workflow_name,
            workflow_run_id=context.run_id,
            failure_type=failure.failure_type,
            action_name=failure.action_name,
            error_code=failure.code_label,
            error_message=failure.message,
            severity=severity_for(failure.failure_type),
            blob_path=failure.blob_path,
            time_generated=self.clock(),
        )

    def report(self, event: FailureEvent) -> bool:
        """
        Send one event to the sink.

        Returns:
            True if the sink accepted the event, False otherwise
        """
        try:
            self.sink.send(event.to_payload())
        except Exception as e:
            logger.error(
                f"Could not deliver {event.failure_type.value} event for run "
                f"{event.workflow_run_id}: {e}"
            )
            return False

        logger.info(
            f"Reported {event.failure_type.value} in '{event.action_name}' "
            f"for run {event.workflow_run_id}"
        )
        return True

    def __call__(self, context: RunContext, failure: StageFailure) -> ReportedFailure:
        event = self.build_event(context, failure)
        reported = ReportedFailure(event=event, delivered=self.report(event))
        self.reported.append(reported)
        return reported
