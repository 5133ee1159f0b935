"""Workflow resolution and execution module."""

from .resolver import ConfigContext, ResolvedWorkflow, ResolvedBucket, resolve_workflow, resolve_bucket
from .executor import WorkflowExecutor

__all__ = [
    'ConfigContext',
    'ResolvedWorkflow',
    'ResolvedBucket',
    'resolve_workflow',
    'resolve_bucket',
    'WorkflowExecutor',
]
