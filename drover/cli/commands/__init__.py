"""CLI command handlers."""

from .run import run_workflow, exec_workflow, init_workflow
from .listing import list_command
from .resource import resource_command

__all__ = ['run_workflow', 'exec_workflow', 'init_workflow', 'list_command', 'resource_command']
