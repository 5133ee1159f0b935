"""Shared fixtures: an isolated working directory and in-memory interaction callbacks."""

import textwrap
from pathlib import Path

import pytest

from drover.callbacks import Interaction


class FakeInteraction(Interaction):
    """Records every interaction and answers from preset values."""

    def __init__(self):
        self.answers = {}
        self.confirm_answer = True
        self.logs = []
        self.requests = []
        self.urls = []
        self.confirmations = []

    def log(self, level, message):
        self.logs.append((level, message))

    def request_input(self, requests):
        self.requests.extend(requests)
        return {r.name: self.answers.get(r.name, "") for r in requests}

    def open_url(self, url):
        self.urls.append(url)

    def confirm(self, message):
        self.confirmations.append(message)
        return self.confirm_answer


@pytest.fixture
def interaction():
    return FakeInteraction()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Run the test from an empty directory so ./ locators resolve inside it."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def write_file(workspace):
    """Write a dedented file below the workspace and return its ./ locator."""
    def _write(name: str, content: str) -> str:
        path = Path(workspace) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"))
        return "./" + name
    return _write
