"""
CSV Report Exporter

Renders aggregation rows as the chargeback CSV report: a fixed header and
column order, multi-value fields flattened with a secondary separator, and
timestamps in ISO-8601 UTC.
"""

import csv
import logging
from io import StringIO
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from chargeback.core.config.models import ReportFormatConfig
from chargeback.core.exceptions import ReportEncodingError
from chargeback.models import AggregationRow, ReportDocument, cap_distinct, format_timestamp


# (header, accessor) in report order; consumers diff reports by these names
REPORT_COLUMNS: Tuple[Tuple[str, Callable[[AggregationRow], Any]], ...] = (
    ("productId", lambda row: row.product_id),
    ("modelName", lambda row: row.model_name),
    ("promptTokens", lambda row: row.prompt_tokens),
    ("completionTokens", lambda row: row.completion_tokens),
    ("totalTokens", lambda row: row.total_tokens),
    ("callCount", lambda row: row.call_count),
    ("firstSeen", lambda row: row.first_seen),
    ("lastSeen", lambda row: row.last_seen),
    ("regions", lambda row: row.regions),
    ("callerIps", lambda row: row.caller_ips),
    ("caches", lambda row: row.caches),
    ("backendIds", lambda row: row.backend_ids),
)

COLUMN_NAMES: Tuple[str, ...] = tuple(name for name, _ in REPORT_COLUMNS)


class CsvReportExporter:
    """
    Deterministic CSV exporter for aggregation rows.

    Identical input rows always produce byte-identical output. The exporter
    keeps no state between calls.
    """

    def __init__(self, config: Optional[ReportFormatConfig] = None):
        self.config = config or ReportFormatConfig()
        self.logger = logging.getLogger(f"exporters.{self.__class__.__name__.lower()}")

    def render(self, rows: Sequence[AggregationRow]) -> ReportDocument:
        """
        Render rows into a ReportDocument.

        Args:
            rows: Aggregation rows in report order

        Returns:
            ReportDocument with header plus one line per row

        Raises:
            ReportEncodingError: If the text cannot be encoded
        """
        buffer = StringIO()
        writer = csv.writer(buffer, **self._get_csv_params())
        writer.writerow(COLUMN_NAMES)

        for row in rows:
            writer.writerow(self._format_row(row))

        content = buffer.getvalue()
        encoding = self.config.encoding
        try:
            payload = content.encode(encoding)
        except UnicodeEncodeError as e:
            raise ReportEncodingError(
                f"Report text is not representable in {encoding}: {e.reason} "
                f"at position {e.start}",
                encoding=encoding,
                cause=e
            )

        self.logger.debug(f"Rendered {len(rows)} rows ({len(payload)} bytes)")
        return ReportDocument(
            content=content,
            columns=COLUMN_NAMES,
            row_count=len(rows),
            encoding=encoding,
            payload=payload,
            line_terminator=self.config.line_terminator,
        )

    def _format_row(self, row: AggregationRow) -> List[str]:
        return [self._format_value(accessor(row)) for _, accessor in REPORT_COLUMNS]

    def _format_value(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, list):
            separator = self.config.multi_value_separator
            return separator.join(
                self._clean_text(str(item)).replace(separator, " ") for item in cap_distinct(value)
            )
        if hasattr(value, "isoformat"):
            return format_timestamp(value)
        return self._clean_text(str(value))

    @staticmethod
    def _clean_text(text: str) -> str:
        """Keep every record on a single physical line."""
        return text.replace('\r\n', ' ').replace('\n', ' ').replace('\r', ' ')

    def _get_csv_params(self) -> Dict[str, Any]:
        """Get CSV writer parameters from configuration."""
        return {
            'delimiter': self.config.delimiter,
            'quotechar': '"',
            'quoting': csv.QUOTE_MINIMAL,
            'lineterminator': self.config.line_terminator,
        }
