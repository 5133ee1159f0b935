"""
Execution module.
Builds runtime command lines and runs them through the shell.
"""

from .runtime import get_runtime, get_command
from .step_executor import StepExecutor, ExecutionResult

__all__ = [
    "get_runtime",
    "get_command",
    "StepExecutor",
    "ExecutionResult",
]
