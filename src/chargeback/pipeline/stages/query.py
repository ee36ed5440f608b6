"""
Query Pipeline Stage

Runs the usage aggregation query against the log store and stores the
resulting rows, ordered by total tokens, in the run context.
"""

import asyncio
import functools
from typing import Any, Iterable, List, Mapping, Optional

from chargeback.core.exceptions import ErrorCode, ErrorContext, QueryFailure
from chargeback.core.pipeline.blocking import run_blocking
from chargeback.core.pipeline.interfaces import (
    PipelineResult, PipelineStage, PipelineState, RunContext
)
from chargeback.models import AggregationRow, StageStatus, order_by_total_tokens
from chargeback.sources.base import LogQueryClient, QueryResult


class QueryStage(PipelineStage):
    """
    Pipeline stage that produces the aggregation rows.

    The client call runs on a daemon thread. When ``timeout`` elapses the
    stage fails with status TimedOut and the call is abandoned.
    Rows returned by the client are parsed, checked for duplicate
    aggregation keys and stably sorted by total tokens descending.

    Raises QueryFailure on any failure; no rows are kept in that case.
    """

    state = PipelineState.QUERYING

    def __init__(self, client: LogQueryClient, timeout: Optional[float] = None):
        super().__init__("query")
        self.client = client
        self.timeout = timeout

    async def process(self, context: RunContext) -> PipelineResult:
        result = PipelineResult(stage_name=self.name)
        error_context = ErrorContext(
            operation="query_stage_process",
            stage=self.name,
            run_id=context.run_id,
            target=context.workspace_id
        )

        self.logger.info(
            f"Querying {context.workspace_id} for the last {context.lookback_hours}h"
        )
        query_result = await self._run_query(context, error_context)

        if not query_result.succeeded:
            raise QueryFailure(
                query_result.error_message or f"Query finished with status {query_result.status.value}",
                status=query_result.status,
                context=error_context,
                provider_code=query_result.error_code,
                action_name=self.name
            )

        rows = self._parse_rows(query_result.rows, error_context)
        context.rows = rows

        result.processed_count = len(rows)
        result.set_data("row_count", len(rows))
        result.set_data("total_tokens", sum(row.total_tokens for row in rows))
        if not rows:
            result.add_warning("Query returned no usage rows")

        self.logger.info(f"Query produced {len(rows)} aggregation rows")
        return result

    async def _run_query(self, context: RunContext, error_context: ErrorContext) -> QueryResult:
        call = functools.partial(
            self.client.query,
            context.query_text,
            context.workspace_id,
            context.lookback_hours
        )

        try:
            return await run_blocking(call, timeout=self.timeout, name="chargeback-query")
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise QueryFailure(
                f"Query did not complete within {self.timeout}s",
                status=StageStatus.TIMED_OUT,
                context=error_context,
                cause=e,
                action_name=self.name
            )
        except Exception as e:
            raise QueryFailure(
                f"Query client error: {e}",
                error_code=ErrorCode.QUERY_SOURCE_UNAVAILABLE,
                context=error_context,
                cause=e,
                action_name=self.name
            )

    def _parse_rows(self, records: Iterable[Mapping[str, Any]],
                    error_context: ErrorContext) -> List[AggregationRow]:
        rows: List[AggregationRow] = []
        seen = set()

        for index, record in enumerate(records):
            try:
                row = AggregationRow.from_record(record)
            except (ValueError, TypeError) as e:
                raise QueryFailure(
                    f"Query result row {index} is invalid: {e}",
                    error_code=ErrorCode.QUERY_INVALID_RESULT,
                    context=error_context,
                    cause=e,
                    action_name=self.name
                )

            if row.key in seen:
                raise QueryFailure(
                    f"Query result repeats aggregation key {row.key}",
                    error_code=ErrorCode.QUERY_INVALID_RESULT,
                    context=error_context,
                    action_name=self.name
                )
            seen.add(row.key)
            rows.append(row)

        return order_by_total_tokens(rows)
