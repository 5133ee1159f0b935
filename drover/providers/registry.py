"""
Provider registry.

Maps provider names used in the ``resources`` block of a config document to
provider plugin factories.
"""

import logging
from typing import Callable, Dict, List, Optional

from drover.exceptions import ResourceError
from drover.model import ResourceProvider
from drover.providers.base import ResourceProviderPlugin
from drover.providers.github_issues import GithubIssuesProvider
from drover.providers.github_releases import GithubReleasesProvider
from drover.providers.local_doc import LocalDocProvider


logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], ResourceProviderPlugin]


class ProviderRegistry:
    """Registry of provider factories, seeded with the built-in providers."""

    def __init__(self):
        self._factories: Dict[str, ProviderFactory] = self._load_builtin_providers()

    def _load_builtin_providers(self) -> Dict[str, ProviderFactory]:
        return {
            LocalDocProvider.name: LocalDocProvider,
            GithubIssuesProvider.name: GithubIssuesProvider,
            GithubReleasesProvider.name: GithubReleasesProvider,
        }

    def register(self, name: str, factory: ProviderFactory) -> None:
        if not name:
            raise ValueError("provider name cannot be empty")
        self._factories[name] = factory
        logger.debug(f"Registered provider: {name}")

    def get(self, name: str) -> Optional[ProviderFactory]:
        return self._factories.get(name)

    def exists(self, name: str) -> bool:
        return name in self._factories

    def list_providers(self) -> List[str]:
        return sorted(self._factories)

    def create(self, config: ResourceProvider) -> ResourceProviderPlugin:
        """Instantiate and initialize the provider named by a config entry."""
        factory = self.get(config.provider)
        if factory is None:
            raise ResourceError(f"could not find provider {config.provider}")
        provider = factory()
        provider.init(dict(config.config))
        return provider
