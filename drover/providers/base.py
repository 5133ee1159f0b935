"""Base class for resource provider plugins."""

from typing import Any, Dict, List

from drover.exceptions import ResourceError


def check_config(config: Dict[str, str], keys: List[str]) -> None:
    for key in keys:
        if key not in config:
            raise ResourceError(f"could not find field {key} in config")


class ResourceProviderPlugin:
    """
    A provider implements some commands of a resource.

    Subclasses set ``name``, validate their config in ``init`` and return
    the command output from ``execute_command``. Raising NoResult means the
    provider has nothing to contribute.
    """

    name = ""

    def init(self, config: Dict[str, str]) -> None:
        pass

    def execute_command(self, command: str, callbacks) -> Any:
        raise ResourceError(f"could not find command {command}")
