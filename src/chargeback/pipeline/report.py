"""
Report Pipeline

Wires the query, transform and publish stages into one run of the daily
chargeback report and exposes the async and synchronous entry points.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from chargeback.core.config.models import AppConfig
from chargeback.core.pipeline.executor import ExecutionMetrics, PipelineExecutor
from chargeback.core.pipeline.interfaces import PipelineStage, PipelineState, RunContext
from chargeback.exporters.csv import CsvReportExporter
from chargeback.models import FailureEvent
from chargeback.pipeline.stages import PublishStage, QueryStage, TransformStage
from chargeback.reporting.failure import FailureReporter, ReportedFailure
from chargeback.reporting.sinks import LoggingSink
from chargeback.sources.base import LogQueryClient
from chargeback.sources.queries import build_query
from chargeback.storage.base import BlobStore


logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """
    Result of one pipeline invocation.

    Attributes:
        run_id: Identifier of the run
        state: Terminal state, Succeeded or Failed
        history: Every state the run passed through, in order
        failure_event: Event built for a classified stage failure
        failure_delivered: Whether the failure sink accepted the event
        published_path: Location written on success
        row_count: Number of aggregation rows in the report
        metrics: Executor timing and counts
    """
    run_id: str
    state: PipelineState
    history: List[PipelineState] = field(default_factory=list)
    failure_event: Optional[FailureEvent] = None
    failure_delivered: bool = False
    published_path: Optional[str] = None
    row_count: int = 0
    metrics: Optional[ExecutionMetrics] = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.SUCCEEDED


class ReportPipeline:
    """
    Daily usage chargeback report.

    Query, transform and publish run strictly in sequence. The first
    classified failure is reported once through the FailureReporter before
    ``run()`` returns. An unclassified error, such as a report encoding
    error, ends the run in Failed and propagates to the caller.
    """

    def __init__(self, config: AppConfig,
                 query_client: LogQueryClient,
                 blob_store: BlobStore,
                 failure_reporter: Optional[FailureReporter] = None):
        self.config = config
        self.query_client = query_client
        self.blob_store = blob_store
        self.failure_reporter = failure_reporter or FailureReporter(LoggingSink())
        self._running = False

    def build_context(self) -> RunContext:
        """Fresh run context for one invocation."""
        return RunContext(
            workflow_name=self.config.workflow_name,
            query_text=build_query(self.config.query),
            workspace_id=self.config.query.workspace_id,
            lookback_hours=self.config.query.lookback_hours,
            container=self.config.publish.container,
            blob_path=self.config.publish.blob_path
        )

    def build_stages(self) -> List[PipelineStage]:
        return [
            QueryStage(self.query_client, timeout=self.config.query.timeout_seconds),
            TransformStage(CsvReportExporter(self.config.report)),
            PublishStage(self.blob_store, timeout=self.config.publish.timeout_seconds),
        ]

    async def run(self) -> RunOutcome:
        """
        Execute one report run.

        Returns:
            RunOutcome: Terminal state and failure details of the run

        Raises:
            RuntimeError: If a run is already in progress on this pipeline
            ReportEncodingError: If the report could not be encoded
        """
        if self._running:
            raise RuntimeError("A report run is already in progress")

        self._running = True
        try:
            context = self.build_context()
            executor = PipelineExecutor(
                stages=self.build_stages(),
                failure_handler=self.failure_reporter
            )

            logger.info(f"Starting {context.workflow_name} run {context.run_id}")
            try:
                execution = await executor.execute(context)
            except Exception as e:
                logger.error(f"Run {context.run_id} ended in {executor.state.value}: {e}")
                raise

            outcome = RunOutcome(
                run_id=context.run_id,
                state=execution.state,
                history=execution.history,
                published_path=context.published_path,
                row_count=len(context.rows),
                metrics=execution.metrics
            )
            if isinstance(execution.handler_result, ReportedFailure):
                outcome.failure_event = execution.handler_result.event
                outcome.failure_delivered = execution.handler_result.delivered

            if outcome.succeeded:
                logger.info(
                    f"Run {context.run_id} published {outcome.row_count} rows to "
                    f"{outcome.published_path}"
                )
            else:
                logger.warning(
                    f"Run {context.run_id} failed in stage '{execution.failed_stage}'"
                )
            return outcome
        finally:
            self._running = False

    def run_once(self) -> RunOutcome:
        """Synchronous entry point for schedulers and the CLI."""
        return asyncio.run(self.run())
