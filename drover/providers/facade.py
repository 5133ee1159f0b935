"""
Resource facade.

Dispatches ``resource command`` pairs to every provider configured for the
resource and reconciles their outputs against the command's output type.
"""

import logging
from typing import Any, Dict, List, Optional

from drover.exceptions import NoResult, NotFoundError, ResourceError
from drover.model import ResourceProvider
from drover.providers.definitions import (
    default_resource_definitions, get_output_type, get_resource_definition,
)
from drover.providers.registry import ProviderRegistry
from drover.providers.types import CommandOutput, ResourceDefinition


logger = logging.getLogger(__name__)


class ResourceFacade:
    """
    Runs resource commands against configured providers.

    Args:
        resources: The ``resources`` block of a config document
        callbacks: Object with ``request_input`` and ``log``, handed to providers
        definitions: Resource definitions (defaults to the built-in set)
        registry: Provider registry (defaults to the built-in providers)
    """

    def __init__(
        self,
        resources: Dict[str, List[ResourceProvider]],
        callbacks,
        definitions: Optional[List[ResourceDefinition]] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        self.resources = resources
        self.callbacks = callbacks
        self.definitions = definitions if definitions is not None else default_resource_definitions()
        self.registry = registry or ProviderRegistry()

    def execute_command(self, resource: str, command: str) -> CommandOutput:
        definition = get_resource_definition(self.definitions, resource)
        output_type = get_output_type(self.definitions, definition.get_command(command).output_type)

        if resource not in self.resources:
            raise NotFoundError(f"no providers configured for resource {resource}")

        outputs = []
        for config in self.resources[resource]:
            provider = self.registry.create(config)
            logger.debug(f"Executing {resource} {command} on provider {provider.name}")
            try:
                outputs.append(provider.execute_command(command, self.callbacks))
            except NoResult:
                logger.debug(f"Provider {provider.name} returned no result")

        if output_type.is_array:
            return CommandOutput(output_type, self._flatten(outputs))

        if not outputs:
            raise ResourceError("no result returned by provider(s)")
        if len(outputs) > 1:
            raise ResourceError("1 result expected, more than 1 provider returned")
        return CommandOutput(output_type, outputs[0])

    def _flatten(self, outputs: List[Any]) -> List[Any]:
        flat = []
        for output in outputs:
            if not isinstance(output, (list, tuple)):
                raise ResourceError("expected array type but provider returned object")
            flat.extend(output)
        return flat
