"""Tests for source locators, reading and writing config documents."""

import os
import subprocess
from pathlib import Path

import pytest

from drover.exceptions import ConfigValidationError, SourceError
from drover.model import ConfigDocument, ShellStep, Step, StepKind, Workflow
from drover.sources import (
    merge_sources, read_config, read_source, relative_source, repository_path, resolve_config_path,
    resolve_path, write_config,
)


REMOTE = "https://example.com/repo.git"


class TestMergeSources:
    @pytest.mark.parametrize("parent,child,expected", [
        ("./test.Droverfile", "./second.Droverfile", "./second.Droverfile"),
        ("./parent/test.Droverfile", "./second.Droverfile", "./parent/second.Droverfile"),
        ("./test.Droverfile", "./child/second.Droverfile", "./child/second.Droverfile"),
        ("./parent/test.Droverfile", "./child/second.Droverfile", "./parent/child/second.Droverfile"),
        ("", "./child/Droverfile", "./child/Droverfile"),
        ("./a/Droverfile", "", "./a/Droverfile"),
        ("./a/Droverfile", f"{REMOTE}:tools/Droverfile", f"{REMOTE}:tools/Droverfile"),
        (f"{REMOTE}:dir/Droverfile", "./other", f"{REMOTE}:dir/other"),
        (f"{REMOTE}:Droverfile", "./lib/Droverfile", f"{REMOTE}:lib/Droverfile"),
    ])
    def test_merge(self, parent, child, expected):
        assert merge_sources(parent, child) == expected


class TestRelativeSource:
    @pytest.mark.parametrize("root,source,expected", [
        ("./Droverfile", "./lib/tools.Droverfile", "./lib/tools.Droverfile"),
        ("./proj/Droverfile", "./proj/lib/tools.Droverfile", "./lib/tools.Droverfile"),
        ("./proj/Droverfile", "./shared/Droverfile", "./../shared/Droverfile"),
        ("./proj/Droverfile", "./proj/Droverfile", ""),
        ("./proj/Droverfile", f"{REMOTE}:tools/Droverfile", f"{REMOTE}:tools/Droverfile"),
        (f"{REMOTE}:Droverfile", f"{REMOTE}:lib/Droverfile", f"{REMOTE}:lib/Droverfile"),
    ])
    def test_relative(self, root, source, expected):
        assert relative_source(root, source) == expected

    @pytest.mark.parametrize("root,source", [
        ("./proj/Droverfile", "./proj/lib/tools.Droverfile"),
        ("./a/b/Droverfile", "./a/c/Droverfile"),
    ])
    def test_merges_back_to_the_same_document(self, root, source):
        merged = merge_sources(root, relative_source(root, source))
        assert os.path.normpath(merged) == os.path.normpath(source)


class TestResolvePath:
    def test_local_path_unchanged(self):
        assert resolve_path("./dir/Droverfile") == "./dir/Droverfile"

    def test_invalid_locator(self):
        with pytest.raises(SourceError) as exc_info:
            resolve_path("Droverfile")
        assert "invalid source Droverfile" in str(exc_info.value)

    def test_existing_checkout_reused(self, workspace, monkeypatch):
        checkout = Path(repository_path(REMOTE))
        (checkout / "conf").mkdir(parents=True)
        (checkout / "conf" / "Droverfile").write_text("variables:\n  A: b\n")

        def fail(*args, **kwargs):
            raise AssertionError("git should not run for an existing checkout")

        monkeypatch.setattr(subprocess, "run", fail)

        path = resolve_path(f"{REMOTE}:conf/Droverfile")
        assert path == os.path.join(str(checkout), "conf/Droverfile")
        assert read_config(f"{REMOTE}:conf/Droverfile")[1].variables == {"A": "b"}

    def test_checkout_clones_once(self, workspace, monkeypatch):
        calls = []

        def fake_run(cmd, check):
            calls.append(cmd)
            Path(cmd[-1]).mkdir(parents=True)

        monkeypatch.setattr(subprocess, "run", fake_run)

        resolve_path(f"{REMOTE}:Droverfile")
        resolve_path(f"{REMOTE}:other/Droverfile")

        assert calls == [["git", "clone", "--depth", "1", REMOTE, repository_path(REMOTE)]]

    def test_failed_clone(self, workspace, monkeypatch):
        def fake_run(cmd, check):
            raise subprocess.CalledProcessError(128, cmd)

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(SourceError) as exc_info:
            resolve_path(f"{REMOTE}:Droverfile")
        assert f"could not clone {REMOTE}" in str(exc_info.value)


class TestReadConfig:
    def test_directory_resolves_to_default_file(self, write_file):
        write_file("sub/Droverfile", "variables:\n  A: b\n")

        assert resolve_config_path("./sub") == ("./sub/Droverfile", "./sub/Droverfile")
        source, doc = read_config("./sub")
        assert source == "./sub/Droverfile"
        assert doc.variables == {"A": "b"}

    def test_missing_file(self, workspace):
        with pytest.raises(SourceError) as exc_info:
            read_config("./missing.Droverfile")
        assert "could not find ./missing.Droverfile" in str(exc_info.value)

    def test_validation_errors_carry_source(self, write_file):
        source = write_file("bad.Droverfile", """
        workflows:
          - name: broken
        """)

        with pytest.raises(ConfigValidationError) as exc_info:
            read_config(source)
        assert exc_info.value.errors[0].path == "./bad.Droverfile"
        assert "./bad.Droverfile: workflow broken: no steps or import defined" in str(exc_info.value)

    def test_read_source_bytes(self, write_file):
        source = write_file("snippet.txt", "hello {{ .NAME }}\n")
        assert read_source(source) == b"hello {{ .NAME }}\n"


class TestWriteConfig:
    def setup_method(self):
        self.document = ConfigDocument(
            variables={"A": "b"},
            workflows=[Workflow(name="w", steps=[Step(StepKind.SHELL, ShellStep(cmd="echo hi"))])],
        )

    def test_round_trip(self, workspace):
        write_config(self.document, "./out/Droverfile")

        assert read_config("./out/Droverfile")[1] == self.document
        assert sorted(os.listdir(workspace / "out")) == ["Droverfile"]

    def test_remote_target_rejected(self, workspace):
        with pytest.raises(SourceError):
            write_config(self.document, f"{REMOTE}:Droverfile")

    def test_invalid_document_not_written(self, write_file):
        source = write_file("Droverfile", "variables:\n  A: b\n")
        before = Path(source).read_bytes()

        self.document.workflows.append(Workflow(name="empty"))
        with pytest.raises(ConfigValidationError):
            write_config(self.document, source)

        assert Path(source).read_bytes() == before
