"""
Pipeline Architecture Interfaces

Abstract base classes and data structures for the report pipeline. Defines
the run context that flows through the stages and the contract every stage
implements.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from chargeback.models import AggregationRow, ReportDocument


class PipelineState(Enum):
    """Lifecycle states of one pipeline run."""

    NOT_STARTED = "NotStarted"
    QUERYING = "Querying"
    TRANSFORMING = "Transforming"
    PUBLISHING = "Publishing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.SUCCEEDED, PipelineState.FAILED)


def new_run_id() -> str:
    """Unique identifier for one pipeline invocation."""
    return str(uuid.uuid4())


@dataclass
class RunContext:
    """
    State of one pipeline invocation.

    Created when a run starts and discarded when it ends. Holds the run
    identifier, the run's configuration, and the artifacts each stage hands
    to the next.

    Attributes:
        workflow_name: Name written to failure events
        query_text: Aggregation query to execute
        workspace_id: Log workspace or dataset the query runs against
        lookback_hours: Size of the query window
        container: Blob container of the report
        blob_path: Object path of the report inside the container
        run_id: Unique identifier of this run
        rows: Aggregation rows produced by the query stage
        document: CSV document produced by the transform stage
        published_path: Location written by the publish stage
        stage_results: Results of completed stages keyed by stage name
        start_time: Run start timestamp
    """
    workflow_name: str
    query_text: str
    workspace_id: str
    lookback_hours: int
    container: str
    blob_path: str
    run_id: str = field(default_factory=new_run_id)
    rows: List[AggregationRow] = field(default_factory=list)
    document: Optional[ReportDocument] = None
    published_path: Optional[str] = None
    stage_results: Dict[str, 'PipelineResult'] = field(default_factory=dict)
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def target_path(self) -> str:
        """Full report location as ``container/path``."""
        return f"{self.container}/{self.blob_path}"


@dataclass
class PipelineResult:
    """
    Result object returned by each pipeline stage.

    Attributes:
        success: Whether the stage completed successfully
        stage_name: Name of the stage that produced this result
        processed_count: Number of rows handled by the stage
        execution_time: Time taken to execute the stage in seconds
        data: Stage-specific result data
        warnings: Non-fatal warnings from stage execution
    """
    success: bool = True
    stage_name: str = ""
    processed_count: int = 0
    execution_time: float = 0.0
    data: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, warning: str) -> None:
        """Add a warning to the result."""
        self.warnings.append(warning)

    def set_data(self, key: str, value: Any) -> None:
        """Set result data value."""
        self.data[key] = value

    def get_data(self, key: str, default: Any = None) -> Any:
        """Get result data value with default fallback."""
        return self.data.get(key, default)


class PipelineStage(ABC):
    """
    Abstract base class for all pipeline stages.

    Each stage reads its input from the RunContext, writes its output back to
    it, and returns a PipelineResult. A stage signals a classified failure by
    raising a StageFailure subclass; it never returns partial output.

    ``state`` is the PipelineState the run is in while this stage executes.
    """

    state: PipelineState = PipelineState.NOT_STARTED

    def __init__(self, name: str):
        """
        Initialize the pipeline stage.

        Args:
            name: Action name of this stage, written to failure events
        """
        self.name = name
        self.logger = logging.getLogger(f"pipeline.{name}")

    @abstractmethod
    async def process(self, context: RunContext) -> PipelineResult:
        """
        Process the run context and return results.

        Args:
            context: The run context

        Returns:
            PipelineResult: Execution results and status

        Raises:
            StageFailure: If the stage could not produce its output
        """
        pass

    def validate_config(self) -> List[str]:
        """
        Validate the stage configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        return []

    def __str__(self) -> str:
        return f"PipelineStage({self.name})"

    def __repr__(self) -> str:
        return f"PipelineStage(name='{self.name}', state={self.state.value})"
