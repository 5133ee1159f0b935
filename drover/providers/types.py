"""
Resource type definitions.

A resource definition names the fields of a resource kind (release, issue,
...) and the commands providers may implement for it, each with an output
type string such as ``[]release`` or ``object``.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from drover.exceptions import NotFoundError


@dataclass
class Field:
    name: str
    description: str = ""
    type: str = "string"


@dataclass
class Command:
    """
    A command of a resource.

    Attributes:
        name: Command name (e.g. 'get', 'search')
        inputs: Names of inputs providers request for this command
        output_type: Output type string; a '[]' prefix marks an array
    """
    name: str
    inputs: List[str] = field(default_factory=list)
    output_type: str = "object"


@dataclass
class ResourceDefinition:
    name: str
    fields: List[Field] = field(default_factory=list)
    commands: List[Command] = field(default_factory=list)

    def get_command(self, name: str) -> Command:
        for command in self.commands:
            if command.name == name:
                return command
        raise NotFoundError(f"could not find {name} command for {self.name} resource")


@dataclass
class OutputType:
    """Resolved output type; fields are only used for formatting."""
    name: str
    is_array: bool = False
    fields: List[Field] = field(default_factory=list)


@dataclass
class CommandOutput:
    type: OutputType
    output: Any = None

    def field_names(self) -> Optional[List[str]]:
        if not self.type.fields:
            return None
        return [f.name for f in self.type.fields]
