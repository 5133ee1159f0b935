"""Tests for resource definitions, the provider facade and built-in providers."""

import json
from types import SimpleNamespace

import pytest

from drover.exceptions import NoResult, NotFoundError, ResourceError
from drover.model import ResourceProvider
from drover.providers import (
    ProviderRegistry, ResourceFacade, ResourceProviderPlugin, default_resource_definitions,
    get_output_type,
)
from drover.providers import github_issues, github_releases
from drover.providers.local_doc import LocalDocProvider


class StaticProvider(ResourceProviderPlugin):
    """Returns the value configured under ``result`` (JSON), or NoResult when absent."""

    name = "static"

    def init(self, config):
        self.result = json.loads(config["result"]) if "result" in config else None

    def execute_command(self, command, callbacks):
        if self.result is None:
            raise NoResult()
        return self.result


class AnswerCallbacks:
    def __init__(self, answers):
        self.answers = answers
        self.requests = []

    def request_input(self, requests):
        self.requests.extend(requests)
        return {r.name: self.answers.get(r.name, "") for r in requests}

    def log(self, level, message):
        pass


def static(result=None):
    config = {} if result is None else {"result": json.dumps(result)}
    return ResourceProvider(provider="static", config=config)


class TestOutputTypes:
    def setup_method(self):
        self.definitions = default_resource_definitions()

    def test_array_of_resource(self):
        output_type = get_output_type(self.definitions, "[]release")

        assert output_type.is_array
        assert [f.name for f in output_type.fields] == ["name", "date", "title"]

    def test_scalar(self):
        output_type = get_output_type(self.definitions, "object")

        assert output_type.name == "object"
        assert not output_type.is_array
        assert output_type.fields == []

    def test_unknown_type(self):
        with pytest.raises(NotFoundError) as exc_info:
            get_output_type(self.definitions, "[]widget")
        assert str(exc_info.value) == "could not find resource definition for widget"


class TestResourceFacade:
    def setup_method(self):
        self.registry = ProviderRegistry()
        self.registry.register("static", StaticProvider)

    def facade(self, resources):
        return ResourceFacade(resources, AnswerCallbacks({}), registry=self.registry)

    def test_array_outputs_flattened(self):
        facade = self.facade({"doc": [static([{"name": "a"}]), static(), static([{"name": "b"}])]})

        output = facade.execute_command("doc", "get")

        assert output.type.is_array
        assert output.output == [{"name": "a"}, {"name": "b"}]
        assert output.field_names() == ["name", "author", "location", "date"]

    def test_array_with_no_results(self):
        assert self.facade({"doc": [static()]}).execute_command("doc", "get").output == []

    def test_registered_deploy_provider(self):
        deployments = [{"name": "api", "version": "1.2.0", "instances": "3", "type": "small"}]

        output = self.facade({"deploy": [static(deployments)]}).execute_command("deploy", "get")

        assert output.output == deployments
        assert output.field_names() == ["name", "version", "instances", "type"]

    def test_array_expected(self):
        with pytest.raises(ResourceError) as exc_info:
            self.facade({"doc": [static({"name": "a"})]}).execute_command("doc", "get")
        assert str(exc_info.value) == "expected array type but provider returned object"

    def test_single_output(self):
        output = self.facade({"release": [static(), static({"v": "1"})]}).execute_command("release", "describe")

        assert output.output == {"v": "1"}
        assert output.field_names() is None

    def test_single_output_missing(self):
        with pytest.raises(ResourceError) as exc_info:
            self.facade({"release": [static()]}).execute_command("release", "describe")
        assert str(exc_info.value) == "no result returned by provider(s)"

    def test_single_output_ambiguous(self):
        with pytest.raises(ResourceError) as exc_info:
            self.facade({"release": [static({}), static({})]}).execute_command("release", "describe")
        assert str(exc_info.value) == "1 result expected, more than 1 provider returned"

    def test_unknown_resource(self):
        with pytest.raises(NotFoundError):
            self.facade({}).execute_command("widget", "get")

    def test_unknown_command(self):
        with pytest.raises(NotFoundError) as exc_info:
            self.facade({"doc": [static([])]}).execute_command("doc", "delete")
        assert str(exc_info.value) == "could not find delete command for doc resource"

    def test_no_configured_providers(self):
        with pytest.raises(NotFoundError) as exc_info:
            self.facade({}).execute_command("doc", "get")
        assert str(exc_info.value) == "no providers configured for resource doc"

    def test_unknown_provider(self):
        with pytest.raises(ResourceError) as exc_info:
            self.facade({"doc": [ResourceProvider(provider="confluence")]}).execute_command("doc", "get")
        assert str(exc_info.value) == "could not find provider confluence"

    def test_provider_without_command(self):
        registry = ProviderRegistry()
        facade = ResourceFacade({"doc": [ResourceProvider(provider="local-doc", config={"path": "."})]},
                                AnswerCallbacks({}), registry=registry)

        with pytest.raises(ResourceError) as exc_info:
            facade.execute_command("doc", "get")
        assert str(exc_info.value) == "could not find command get"


class TestProviderRegistry:
    def test_builtin_providers(self):
        registry = ProviderRegistry()
        assert registry.list_providers() == ["github-issues", "github-releases", "local-doc"]
        assert registry.exists("local-doc")
        assert registry.get("missing") is None

    def test_register_requires_name(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register("", StaticProvider)


class TestLocalDocProvider:
    def test_search(self, write_file, workspace):
        write_file("docs/guide.md", "Deploying with Drover\n")
        write_file("docs/nested/faq.md", "How do I DEPLOY?\n")
        write_file("docs/other.md", "Unrelated\n")
        provider = LocalDocProvider()
        provider.init({"path": "./docs"})
        callbacks = AnswerCallbacks({"text": "deploy"})

        docs = provider.execute_command("search", callbacks)

        assert sorted(doc["name"] for doc in docs) == ["faq.md", "guide.md"]
        assert [r.name for r in callbacks.requests] == ["text"]
        assert all(doc["author"] == "" for doc in docs)

    def test_no_match(self, write_file):
        write_file("docs/guide.md", "Nothing to see\n")
        provider = LocalDocProvider()
        provider.init({"path": "./docs"})

        assert provider.search(AnswerCallbacks({"text": "missing"})) == []

    def test_path_required(self):
        with pytest.raises(ResourceError) as exc_info:
            LocalDocProvider().init({})
        assert str(exc_info.value) == "could not find field path in config"


class TestGithubIssuesProvider:
    def test_get(self, monkeypatch):
        issues = [
            {"number": 1, "title": "Crash", "state": "OPEN", "createdAt": "2024-01-01",
             "labels": [{"name": "bug"}]},
            {"number": 2, "title": "Dark mode", "state": "OPEN", "createdAt": "2024-01-02",
             "labels": [{"name": "enhancement"}]},
            {"number": 3, "title": "Question", "state": "CLOSED", "createdAt": "2024-01-03",
             "labels": []},
        ]
        calls = []

        def fake_run(cmd, capture_output, text):
            calls.append(cmd)
            return SimpleNamespace(returncode=0, stdout=json.dumps(issues), stderr="")

        monkeypatch.setattr(github_issues.subprocess, "run", fake_run)

        result = github_issues.GithubIssuesProvider().execute_command("get", AnswerCallbacks({}))

        assert calls[0][:3] == ["gh", "issue", "list"]
        assert [(i["name"], i["type"]) for i in result] == [("1", "bug"), ("2", "feature"), ("3", "issue")]

    def test_create(self, monkeypatch):
        calls = []

        def fake_run(cmd, capture_output, text):
            calls.append(cmd)
            return SimpleNamespace(returncode=0, stdout="https://github.com/o/r/issues/17\n", stderr="")

        monkeypatch.setattr(github_issues.subprocess, "run", fake_run)
        callbacks = AnswerCallbacks({"title": "Dark mode", "type": "feature", "description": "Please"})

        issue = github_issues.GithubIssuesProvider().create(callbacks)

        assert issue["name"] == "17"
        assert "--label" in calls[0] and calls[0][calls[0].index("--label") + 1] == "enhancement"

    def test_gh_failure(self, monkeypatch):
        def fake_run(cmd, capture_output, text):
            return SimpleNamespace(returncode=1, stdout="", stderr="not logged in")

        monkeypatch.setattr(github_issues.subprocess, "run", fake_run)

        with pytest.raises(ResourceError) as exc_info:
            github_issues.GithubIssuesProvider().get()
        assert "not logged in" in str(exc_info.value)


class TestGithubReleasesProvider:
    def test_get(self, monkeypatch):
        releases = [
            {"name": "First cut", "tagName": "v0.1.0", "publishedAt": "2024-02-01T10:00:00Z"},
            {"name": "Bugfixes", "tagName": "v0.1.1", "publishedAt": "2024-02-09T10:00:00Z"},
        ]
        calls = []

        def fake_run(cmd, capture_output, text):
            calls.append(cmd)
            return SimpleNamespace(returncode=0, stdout=json.dumps(releases), stderr="")

        monkeypatch.setattr(github_issues.subprocess, "run", fake_run)

        result = github_releases.GithubReleasesProvider().execute_command("get", AnswerCallbacks({}))

        assert calls[0][:3] == ["gh", "release", "list"]
        assert result[0] == {"name": "v0.1.0", "title": "First cut", "date": "2024-02-01T10:00:00Z"}
        assert [r["name"] for r in result] == ["v0.1.0", "v0.1.1"]

    def test_describe(self, monkeypatch):
        release = {
            "name": "First cut", "body": "Initial release", "url": "https://github.com/o/r/releases/v0.1.0",
            "publishedAt": "2024-02-01T10:00:00Z", "author": {"login": "octocat"},
        }
        calls = []

        def fake_run(cmd, capture_output, text):
            calls.append(cmd)
            return SimpleNamespace(returncode=0, stdout=json.dumps(release), stderr="")

        monkeypatch.setattr(github_issues.subprocess, "run", fake_run)
        callbacks = AnswerCallbacks({"name": "v0.1.0"})

        result = github_releases.GithubReleasesProvider().execute_command("describe", callbacks)

        assert calls[0][:4] == ["gh", "release", "view", "v0.1.0"]
        assert [r.name for r in callbacks.requests] == ["name"]
        assert result["author"] == "octocat"
        assert result["description"] == "Initial release"

    def test_unsupported_command(self):
        with pytest.raises(ResourceError) as exc_info:
            github_releases.GithubReleasesProvider().execute_command("search", AnswerCallbacks({}))
        assert str(exc_info.value) == "could not find command search"

    def test_served_through_facade(self, monkeypatch):
        releases = [{"name": "First cut", "tagName": "v0.1.0", "publishedAt": "2024-02-01"}]

        def fake_run(cmd, capture_output, text):
            return SimpleNamespace(returncode=0, stdout=json.dumps(releases), stderr="")

        monkeypatch.setattr(github_issues.subprocess, "run", fake_run)
        facade = ResourceFacade({"release": [ResourceProvider(provider="github-releases")]}, AnswerCallbacks({}))

        output = facade.execute_command("release", "get")

        assert output.output == [{"name": "v0.1.0", "title": "First cut", "date": "2024-02-01"}]
