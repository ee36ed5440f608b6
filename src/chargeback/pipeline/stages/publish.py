"""
Publish Pipeline Stage

Writes the report document to its blob location, replacing the previous
report.
"""

import asyncio
import functools
from typing import Optional

from chargeback.core.exceptions import BlobWriteFailure, ErrorCode, ErrorContext
from chargeback.core.pipeline.blocking import run_blocking
from chargeback.core.pipeline.interfaces import (
    PipelineResult, PipelineStage, PipelineState, RunContext
)
from chargeback.models import StageStatus
from chargeback.storage.base import BlobStore, WriteResult


class PublishStage(PipelineStage):
    """
    Pipeline stage persisting ``context.document`` to the blob store.

    Raises BlobWriteFailure carrying the attempted target path when the
    store reports a failure, raises, or the timeout elapses.
    """

    state = PipelineState.PUBLISHING

    def __init__(self, store: BlobStore, timeout: Optional[float] = None):
        super().__init__("publish")
        self.store = store
        self.timeout = timeout

    async def process(self, context: RunContext) -> PipelineResult:
        if context.document is None:
            raise RuntimeError("Publish stage requires a rendered report document")

        result = PipelineResult(stage_name=self.name)
        target_path = context.target_path
        error_context = ErrorContext(
            operation="publish_stage_process",
            stage=self.name,
            run_id=context.run_id
        )

        document = context.document
        self.logger.info(f"Publishing {document.size} bytes to {target_path}")
        write_result = await self._write(context, target_path, error_context)

        if not write_result.succeeded:
            raise BlobWriteFailure(
                write_result.error_message or f"Write finished with status {write_result.status.value}",
                target_path=target_path,
                status=write_result.status,
                context=error_context,
                provider_code=write_result.error_code,
                action_name=self.name
            )

        context.published_path = write_result.path
        result.processed_count = document.row_count
        result.set_data("target_path", write_result.path)
        result.set_data("bytes_written", write_result.bytes_written)
        return result

    async def _write(self, context: RunContext, target_path: str,
                     error_context: ErrorContext) -> WriteResult:
        document = context.document
        call = functools.partial(
            self.store.write,
            context.container,
            context.blob_path,
            document.payload,
            document.content_type
        )

        try:
            return await run_blocking(call, timeout=self.timeout, name="chargeback-publish")
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise BlobWriteFailure(
                f"Write did not complete within {self.timeout}s",
                target_path=target_path,
                status=StageStatus.TIMED_OUT,
                context=error_context,
                cause=e,
                action_name=self.name
            )
        except Exception as e:
            raise BlobWriteFailure(
                f"Blob store error: {e}",
                target_path=target_path,
                error_code=ErrorCode.BLOB_STORE_UNAVAILABLE,
                context=error_context,
                cause=e,
                action_name=self.name
            )
