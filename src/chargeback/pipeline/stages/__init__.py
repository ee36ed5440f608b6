"""
Pipeline Stage Implementations

The three stages of the chargeback report: query, transform and publish.
"""

from chargeback.pipeline.stages.query import QueryStage
from chargeback.pipeline.stages.transform import TransformStage
from chargeback.pipeline.stages.publish import PublishStage

__all__ = [
    'QueryStage',
    'TransformStage',
    'PublishStage',
]
