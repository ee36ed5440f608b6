"""
Report Exporters

Serializers turning aggregation rows into report documents.
"""

from chargeback.exporters.csv import CsvReportExporter, COLUMN_NAMES, REPORT_COLUMNS

__all__ = ['CsvReportExporter', 'COLUMN_NAMES', 'REPORT_COLUMNS']
