"""
Tests for the Pipeline Executor

Tests sequential stage execution, the run state machine and failure
handling with stub stages.
"""

from typing import List, Optional
from unittest.mock import Mock

import pytest

from chargeback.core.exceptions import BlobWriteFailure, QueryFailure, ReportEncodingError
from chargeback.core.pipeline.executor import PipelineExecutor
from chargeback.core.pipeline.interfaces import PipelineResult, PipelineStage, PipelineState, RunContext


class StubStage(PipelineStage):
    """Stage that records calls and optionally raises."""

    def __init__(self, name: str, state: PipelineState, error: Optional[Exception] = None,
                 calls: Optional[List[str]] = None):
        super().__init__(name)
        self.state = state
        self.error = error
        self.calls = calls if calls is not None else []

    async def process(self, context: RunContext) -> PipelineResult:
        self.calls.append(self.name)
        if self.error is not None:
            raise self.error
        result = PipelineResult(stage_name=self.name)
        result.processed_count = 1
        return result


def make_stages(calls, query_error=None, transform_error=None, publish_error=None):
    return [
        StubStage("query", PipelineState.QUERYING, query_error, calls),
        StubStage("transform", PipelineState.TRANSFORMING, transform_error, calls),
        StubStage("publish", PipelineState.PUBLISHING, publish_error, calls),
    ]


class TestPipelineExecutor:
    """Test PipelineExecutor."""

    @pytest.mark.asyncio
    async def test_successful_run(self, run_context):
        calls = []
        handler = Mock()
        executor = PipelineExecutor(make_stages(calls), failure_handler=handler)

        outcome = await executor.execute(run_context)

        assert outcome.succeeded
        assert calls == ["query", "transform", "publish"]
        assert outcome.history == [
            PipelineState.NOT_STARTED,
            PipelineState.QUERYING,
            PipelineState.TRANSFORMING,
            PipelineState.PUBLISHING,
            PipelineState.SUCCEEDED,
        ]
        assert outcome.metrics.successful_stages == 3
        assert outcome.metrics.rows_processed == 3
        assert set(run_context.stage_results) == {"query", "transform", "publish"}
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_query_failure_halts_run(self, run_context):
        calls = []
        handler = Mock(return_value="reported")
        failure = QueryFailure("boom", action_name="query")
        executor = PipelineExecutor(make_stages(calls, query_error=failure), failure_handler=handler)

        outcome = await executor.execute(run_context)

        assert outcome.state == PipelineState.FAILED
        assert outcome.history == [PipelineState.NOT_STARTED, PipelineState.QUERYING, PipelineState.FAILED]
        assert calls == ["query"]
        assert outcome.failure is failure
        assert outcome.failed_stage == "query"
        assert outcome.handler_result == "reported"
        handler.assert_called_once_with(run_context, failure)
        assert run_context.stage_results["query"].success is False

    @pytest.mark.asyncio
    async def test_publish_failure(self, run_context):
        calls = []
        handler = Mock()
        failure = BlobWriteFailure("denied", target_path=run_context.target_path)
        executor = PipelineExecutor(make_stages(calls, publish_error=failure), failure_handler=handler)

        outcome = await executor.execute(run_context)

        assert outcome.history[-2:] == [PipelineState.PUBLISHING, PipelineState.FAILED]
        assert outcome.metrics.failed_stages == 1
        handler.assert_called_once()

    @pytest.mark.asyncio
    async def test_unclassified_error_propagates(self, run_context):
        calls = []
        handler = Mock()
        executor = PipelineExecutor(
            make_stages(calls, transform_error=ReportEncodingError("bad bytes")),
            failure_handler=handler
        )

        with pytest.raises(ReportEncodingError):
            await executor.execute(run_context)

        assert executor.state == PipelineState.FAILED
        assert calls == ["query", "transform"]
        handler.assert_not_called()
        assert not executor.is_running()

    @pytest.mark.asyncio
    async def test_handler_error_does_not_escape(self, run_context):
        handler = Mock(side_effect=RuntimeError("handler bug"))
        executor = PipelineExecutor(
            make_stages([], query_error=QueryFailure("boom")),
            failure_handler=handler
        )

        outcome = await executor.execute(run_context)

        assert outcome.state == PipelineState.FAILED
        assert outcome.handler_result is None

    @pytest.mark.asyncio
    async def test_no_stages(self, run_context):
        with pytest.raises(RuntimeError, match="No stages"):
            await PipelineExecutor().execute(run_context)

    @pytest.mark.asyncio
    async def test_duplicate_state_rejected(self, run_context):
        stages = [
            StubStage("query", PipelineState.QUERYING),
            StubStage("query_again", PipelineState.QUERYING),
        ]
        with pytest.raises(RuntimeError, match="invalid state"):
            await PipelineExecutor(stages).execute(run_context)

    @pytest.mark.asyncio
    async def test_terminal_state_as_stage_rejected(self, run_context):
        stages = [StubStage("done", PipelineState.SUCCEEDED)]
        with pytest.raises(RuntimeError):
            await PipelineExecutor(stages).execute(run_context)

    def test_stage_management(self):
        executor = PipelineExecutor()
        executor.add_stage(StubStage("query", PipelineState.QUERYING))

        assert len(executor) == 1
        assert executor.get_stage_names() == ["query"]
        assert executor.get_stage("query").name == "query"
        assert executor.get_stage("missing") is None
        assert executor.state == PipelineState.NOT_STARTED

    def test_terminal_states(self):
        assert PipelineState.SUCCEEDED.is_terminal
        assert PipelineState.FAILED.is_terminal
        assert not PipelineState.PUBLISHING.is_terminal
