"""Drover exceptions."""

from typing import List, Optional
from dataclasses import dataclass


@dataclass
class ValidationError:
    """Single validation error."""
    message: str
    path: str = ""
    exit_code: int = 2


class ConfigValidationError(Exception):
    """Raised when a config document fails validation.

    The loader accumulates every problem it finds before raising, so the CLI
    can report them all at once and map the failure to exit code 2.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        self.exit_code = 2

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"{error.path}: {error.message}")
            else:
                messages.append(error.message)

        super().__init__("\n".join(messages))


class DroverError(Exception):
    """Base class for errors raised while resolving or running workflows."""
    exit_code = 1


class NotFoundError(DroverError):
    """A workflow, bucket, runtime or resource lookup failed."""


class CyclicImportError(DroverError):
    """An import chain visits the same declaration twice."""

    def __init__(self, chain: List[str]):
        self.chain = chain
        super().__init__(f"cyclic import: {' -> '.join(chain)}")


class SourceError(DroverError):
    """A source locator could not be resolved or read."""


class TemplateError(DroverError):
    """Template parsing or rendering failed."""


class RuntimeConfigError(DroverError):
    """A runtime declaration cannot be turned into a command."""


class StepExecutionError(DroverError):
    """A shell step exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int):
        self.command = command
        self.returncode = exit_code
        super().__init__(f"command exited with status {exit_code}: {command}")


class InsertError(DroverError):
    """Structured insertion into a destination file failed."""


class ResourceError(DroverError):
    """A resource command could not be dispatched to its providers."""


class NoResult(DroverError):
    """Distinguished outcome: a provider had nothing to return or the user declined.

    Callers that expect this (resource fan-out, confirm steps) treat it as a
    normal result. Anywhere else it is just another error.
    """

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "no result")
