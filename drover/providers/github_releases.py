"""github-releases provider, backed by the gh command line client."""

import json
from typing import Any, Dict, List

from drover.callbacks import InputRequest
from drover.exceptions import ResourceError
from drover.providers.base import ResourceProviderPlugin
from drover.providers.github_issues import run_gh


def _parse(output: str) -> Any:
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise ResourceError(f"could not parse gh output: {e}") from e


class GithubReleasesProvider(ResourceProviderPlugin):
    name = "github-releases"

    def execute_command(self, command: str, callbacks) -> Any:
        if command == "get":
            return self.get()
        if command == "describe":
            return self.describe(callbacks)
        return super().execute_command(command, callbacks)

    def get(self) -> List[Dict[str, str]]:
        releases = _parse(run_gh(['release', 'list', '--json', 'name,tagName,publishedAt']))
        return [
            {
                "name": release.get("tagName", ""),
                "title": release.get("name", ""),
                "date": release.get("publishedAt", ""),
            }
            for release in releases
        ]

    def describe(self, callbacks) -> Dict[str, str]:
        inputs = callbacks.request_input([InputRequest(name="name", description="Name")])
        release = _parse(run_gh([
            'release', 'view', inputs["name"],
            '--json', 'name,body,author,publishedAt,url',
        ]))
        return {
            "name": release.get("name", ""),
            "description": release.get("body", ""),
            "url": release.get("url", ""),
            "date": release.get("publishedAt", ""),
            "author": (release.get("author") or {}).get("login", ""),
        }
