"""
Chargeback Report Pipeline

The concrete report pipeline built on the core pipeline framework.
"""

from chargeback.pipeline.report import ReportPipeline, RunOutcome
from chargeback.pipeline.factory import build_pipeline

__all__ = [
    'ReportPipeline',
    'RunOutcome',
    'build_pipeline',
]
