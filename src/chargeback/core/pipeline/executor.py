"""
Pipeline Executor

Runs pipeline stages strictly in sequence, moving the run through its state
machine. The first classified stage failure halts the run and is handed to
the failure handler exactly once; unclassified errors move the run to Failed
and propagate to the caller.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from chargeback.core.exceptions import StageFailure
from chargeback.core.pipeline.interfaces import (
    PipelineResult, PipelineStage, PipelineState, RunContext
)


FailureHandler = Callable[[RunContext, StageFailure], Any]


@dataclass
class ExecutionMetrics:
    """
    Metrics for pipeline execution tracking.

    Attributes:
        total_stages: Number of stages started
        successful_stages: Number of stages that completed successfully
        failed_stages: Number of stages that failed
        total_execution_time: Total time for the run
        stage_times: Execution time for each stage
        rows_processed: Rows handled across stages
        start_time: Run start time
        end_time: Run end time
    """
    total_stages: int = 0
    successful_stages: int = 0
    failed_stages: int = 0
    total_execution_time: float = 0.0
    stage_times: Dict[str, float] = field(default_factory=dict)
    rows_processed: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def add_stage_result(self, stage_name: str, result: PipelineResult) -> None:
        """Add results from a stage execution."""
        self.total_stages += 1
        self.stage_times[stage_name] = result.execution_time
        self.rows_processed += result.processed_count

        if result.success:
            self.successful_stages += 1
        else:
            self.failed_stages += 1


@dataclass
class ExecutionOutcome:
    """Terminal state of one execution and how it got there."""
    state: PipelineState
    history: List[PipelineState]
    metrics: ExecutionMetrics
    failure: Optional[StageFailure] = None
    failed_stage: Optional[str] = None
    handler_result: Any = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.SUCCEEDED


class PipelineExecutor:
    """
    Orchestrates the execution of pipeline stages.

    Stages run one after another against the same RunContext. Each stage
    declares the PipelineState the run is in while it executes; the executor
    records every transition and refuses to re-enter a state, so there is no
    in-process retry.
    """

    def __init__(self, stages: Optional[List[PipelineStage]] = None,
                 failure_handler: Optional[FailureHandler] = None):
        """
        Initialize the pipeline executor.

        Args:
            stages: Stages in execution order
            failure_handler: Called once with the context and the first stage failure
        """
        self.stages: List[PipelineStage] = stages or []
        self.failure_handler = failure_handler
        self.logger = logging.getLogger("pipeline.executor")

        self._is_running = False
        self._state = PipelineState.NOT_STARTED
        self._history: List[PipelineState] = [PipelineState.NOT_STARTED]
        self._execution_metrics = ExecutionMetrics()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def history(self) -> List[PipelineState]:
        return list(self._history)

    def add_stage(self, stage: PipelineStage) -> None:
        """Append a stage to the pipeline."""
        self.stages.append(stage)
        self.logger.debug(f"Added stage '{stage.name}' at position {len(self.stages) - 1}")

    def get_stage(self, stage_name: str) -> Optional[PipelineStage]:
        for stage in self.stages:
            if stage.name == stage_name:
                return stage
        return None

    def get_stage_names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def _transition(self, new_state: PipelineState) -> None:
        if self._state.is_terminal:
            raise RuntimeError(f"Run already finished in state {self._state.value}")
        if new_state in self._history:
            raise RuntimeError(f"Run cannot re-enter state {new_state.value}")

        self.logger.debug(f"State {self._state.value} -> {new_state.value}")
        self._state = new_state
        self._history.append(new_state)

    async def execute(self, context: RunContext) -> ExecutionOutcome:
        """
        Execute the pipeline with the given context.

        Args:
            context: Run context to process

        Returns:
            ExecutionOutcome: Terminal state, history and metrics

        Raises:
            RuntimeError: If the pipeline is already running or misconfigured
            Exception: Any unclassified stage error, after moving to Failed
        """
        if self._is_running:
            raise RuntimeError("Pipeline is already running")

        validation_errors = self._validate_stages()
        if validation_errors:
            self.logger.error(f"Stage validation failed: {validation_errors}")
            raise RuntimeError(f"Pipeline validation failed: {validation_errors}")

        self._is_running = True
        self._state = PipelineState.NOT_STARTED
        self._history = [PipelineState.NOT_STARTED]
        self._execution_metrics = ExecutionMetrics(start_time=datetime.now(timezone.utc))
        pipeline_start_time = time.time()

        try:
            self.logger.info(
                f"Starting run {context.run_id} with {len(self.stages)} stages"
            )

            for i, stage in enumerate(self.stages):
                self._transition(stage.state)
                stage_start_time = time.time()
                self.logger.info(f"Executing stage {i+1}/{len(self.stages)}: {stage.name}")

                try:
                    result = await stage.process(context)
                except StageFailure as failure:
                    failed_result = PipelineResult(
                        success=False,
                        stage_name=stage.name,
                        execution_time=time.time() - stage_start_time
                    )
                    self._execution_metrics.add_stage_result(stage.name, failed_result)
                    context.stage_results[stage.name] = failed_result

                    self.logger.error(
                        f"Stage '{stage.name}' failed with status {failure.status.value}: "
                        f"{failure.message}"
                    )
                    self._transition(PipelineState.FAILED)
                    handler_result = self._handle_failure(context, failure)
                    return self._finish(
                        pipeline_start_time,
                        failure=failure,
                        failed_stage=stage.name,
                        handler_result=handler_result
                    )
                except Exception:
                    self.logger.exception(f"Stage '{stage.name}' raised an unclassified error")
                    self._transition(PipelineState.FAILED)
                    self._finish(pipeline_start_time, failed_stage=stage.name)
                    raise

                result.stage_name = stage.name
                result.execution_time = time.time() - stage_start_time
                context.stage_results[stage.name] = result
                self._execution_metrics.add_stage_result(stage.name, result)

                self.logger.info(
                    f"Stage '{stage.name}' completed: "
                    f"processed={result.processed_count}, "
                    f"time={result.execution_time:.2f}s"
                )

            self._transition(PipelineState.SUCCEEDED)
            return self._finish(pipeline_start_time)

        finally:
            self._is_running = False

    def _handle_failure(self, context: RunContext, failure: StageFailure) -> Any:
        """Hand the failure to the failure handler; handler errors are logged only."""
        if self.failure_handler is None:
            return None
        try:
            return self.failure_handler(context, failure)
        except Exception as e:
            self.logger.warning(f"Failure handler raised: {e}")
            return None

    def _finish(self, pipeline_start_time: float,
                failure: Optional[StageFailure] = None,
                failed_stage: Optional[str] = None,
                handler_result: Any = None) -> ExecutionOutcome:
        self._execution_metrics.total_execution_time = time.time() - pipeline_start_time
        self._execution_metrics.end_time = datetime.now(timezone.utc)

        self.logger.info(
            f"Run finished in state {self._state.value}: "
            f"stages={self._execution_metrics.successful_stages}/{len(self.stages)}, "
            f"time={self._execution_metrics.total_execution_time:.2f}s"
        )

        return ExecutionOutcome(
            state=self._state,
            history=self.history,
            metrics=self._execution_metrics,
            failure=failure,
            failed_stage=failed_stage,
            handler_result=handler_result
        )

    def _validate_stages(self) -> List[str]:
        """
        Validate all stages in the pipeline.

        Returns:
            List of validation error messages
        """
        errors = []

        if not self.stages:
            errors.append("No stages configured in pipeline")

        stage_names = set()
        stage_states = set()
        for stage in self.stages:
            if stage.name in stage_names:
                errors.append(f"Duplicate stage name: {stage.name}")
            stage_names.add(stage.name)

            if stage.state in stage_states or stage.state in (
                PipelineState.NOT_STARTED, PipelineState.SUCCEEDED, PipelineState.FAILED
            ):
                errors.append(f"Stage '{stage.name}' has invalid state {stage.state.value}")
            stage_states.add(stage.state)

            stage_errors = stage.validate_config()
            if stage_errors:
                errors.extend([f"Stage '{stage.name}': {error}" for error in stage_errors])

        return errors

    def is_running(self) -> bool:
        """Check if the pipeline is currently running."""
        return self._is_running

    def __len__(self) -> int:
        return len(self.stages)

    def __str__(self) -> str:
        return f"PipelineExecutor({len(self.stages)} stages: {self.get_stage_names()})"
