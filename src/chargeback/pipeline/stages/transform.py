"""
Transform Pipeline Stage

Serializes the aggregation rows into the CSV report document.
"""

from typing import Optional

from chargeback.core.pipeline.interfaces import (
    PipelineResult, PipelineStage, PipelineState, RunContext
)
from chargeback.exporters.csv import CsvReportExporter


class TransformStage(PipelineStage):
    """
    Pipeline stage rendering ``context.rows`` into ``context.document``.

    Pure and deterministic. An encoding error raises ReportEncodingError,
    which is not a classified stage failure and ends the run.
    """

    state = PipelineState.TRANSFORMING

    def __init__(self, exporter: Optional[CsvReportExporter] = None):
        super().__init__("transform")
        self.exporter = exporter or CsvReportExporter()

    async def process(self, context: RunContext) -> PipelineResult:
        result = PipelineResult(stage_name=self.name)

        document = self.exporter.render(context.rows)
        context.document = document

        result.processed_count = document.row_count
        result.set_data("bytes", document.size)
        result.set_data("columns", list(document.columns))
        return result
