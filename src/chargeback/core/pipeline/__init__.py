"""
Pipeline Infrastructure

Core pipeline components: the run context and stage contract, and the
sequential executor that drives a run through its state machine.
"""

from .interfaces import PipelineStage, PipelineState, PipelineResult, RunContext
from .executor import PipelineExecutor, ExecutionMetrics, ExecutionOutcome
from .blocking import run_blocking

__all__ = [
    'PipelineStage',
    'PipelineState',
    'PipelineResult',
    'RunContext',
    'PipelineExecutor',
    'ExecutionMetrics',
    'ExecutionOutcome',
    'run_blocking',
]
