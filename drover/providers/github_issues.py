"""github-issues provider, backed by the gh command line client."""

import json
import re
import subprocess
from typing import Any, Dict, List

from drover.callbacks import InputRequest, InputType
from drover.exceptions import ResourceError
from drover.providers.base import ResourceProviderPlugin


ISSUE_URL_PATTERN = re.compile(r'/issues/([0-9]+)')


def _issue_type(labels: List[Dict[str, Any]]) -> str:
    issue_type = "issue"
    for label in labels:
        if label.get("name") == "bug":
            issue_type = "bug"
        elif label.get("name") == "enhancement":
            issue_type = "feature"
    return issue_type


def run_gh(args: List[str]) -> str:
    """Run the gh client and return its stdout."""
    try:
        result = subprocess.run(['gh'] + args, capture_output=True, text=True)
    except OSError as e:
        raise ResourceError(f"could not run gh: {e}") from e
    if result.returncode != 0:
        raise ResourceError(f"gh {args[0]} {args[1]} failed: {result.stderr.strip()}")
    return result.stdout


class GithubIssuesProvider(ResourceProviderPlugin):
    name = "github-issues"

    def execute_command(self, command: str, callbacks) -> Any:
        if command == "get":
            return self.get()
        if command == "create":
            return self.create(callbacks)
        return super().execute_command(command, callbacks)

    def get(self) -> List[Dict[str, str]]:
        output = run_gh(['issue', 'list', '--json', 'number,title,author,state,createdAt,labels'])
        try:
            issues = json.loads(output)
        except json.JSONDecodeError as e:
            raise ResourceError(f"could not parse gh output: {e}") from e

        return [
            {
                "name": str(issue.get("number", "")),
                "title": issue.get("title", ""),
                "type": _issue_type(issue.get("labels") or []),
                "state": issue.get("state", ""),
                "date": issue.get("createdAt", ""),
            }
            for issue in issues
        ]

    def create(self, callbacks) -> Dict[str, str]:
        inputs = callbacks.request_input([
            InputRequest(name="title", type=InputType.TEXT),
            InputRequest(name="type", type=InputType.SELECT, values=["bug", "feature"], default_value="bug"),
            InputRequest(name="description", type=InputType.TEXT),
        ])
        label = "enhancement" if inputs["type"] == "feature" else inputs["type"]
        output = run_gh([
            'issue', 'create',
            '--title', inputs["title"],
            '--body', inputs["description"],
            '--label', label,
        ])

        match = ISSUE_URL_PATTERN.search(output)
        if not match:
            raise ResourceError("format error in gh output")
        return {
            "name": match.group(1),
            "title": inputs["title"],
            "type": inputs["type"],
            "state": "open",
            "date": "now",
        }
