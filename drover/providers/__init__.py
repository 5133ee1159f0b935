"""
Resource providers.

Provides resource definitions, the provider registry and the facade that
dispatches resource commands to configured providers.
"""

from .types import Command, CommandOutput, Field, OutputType, ResourceDefinition
from .definitions import default_resource_definitions, get_output_type, get_resource_definition
from .base import ResourceProviderPlugin, check_config
from .registry import ProviderRegistry
from .facade import ResourceFacade


__all__ = [
    "Command",
    "CommandOutput",
    "Field",
    "OutputType",
    "ResourceDefinition",
    "default_resource_definitions",
    "get_output_type",
    "get_resource_definition",
    "ResourceProviderPlugin",
    "check_config",
    "ProviderRegistry",
    "ResourceFacade",
]
