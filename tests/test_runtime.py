"""Tests for building runtime command lines."""

import os

import pytest

from drover.exceptions import NotFoundError, RuntimeConfigError
from drover.exec.runtime import DEFAULT_RUNTIME, get_command, get_runtime
from drover.model import Runtime


def container(**kwargs) -> Runtime:
    kwargs.setdefault("name", "go")
    return Runtime(type="container", image="img", **kwargs)


class TestGetRuntime:
    def setup_method(self):
        self.runtimes = [container(), Runtime(name="host", type="native")]

    def test_empty_name_is_native(self):
        assert get_runtime(self.runtimes, "") is DEFAULT_RUNTIME
        assert DEFAULT_RUNTIME.type == "native"

    def test_lookup_by_name(self):
        assert get_runtime(self.runtimes, "host").type == "native"
        assert get_runtime(self.runtimes, "go").image == "img"

    def test_undefined_runtime(self):
        with pytest.raises(NotFoundError) as exc_info:
            get_runtime(self.runtimes, "python")
        assert str(exc_info.value) == "runtime python is not defined"


class TestGetCommand:
    def test_native_passthrough(self):
        assert get_command(DEFAULT_RUNTIME, {}, True, "echo hi") == "echo hi"

    def test_native_command_rendered(self):
        assert get_command(DEFAULT_RUNTIME, {"WHO": "you"}, True, "echo {{ .WHO }}") == "echo you"

    def test_container_command(self, workspace):
        wd = os.getcwd()
        runtime = container(cache=["/go"], ports=["8080:8080"])

        assert get_command(runtime, {}, True, "echo hi") == (
            f"docker run --rm -v {wd}/.drover/cache/go:/go -v {wd}:/home "
            f"-p 8080:8080 -w /home -it img echo hi"
        )

    def test_not_interactive(self, workspace):
        wd = os.getcwd()
        assert get_command(container(), {}, False, "make") == (
            f"docker run --rm -v {wd}:/home -w /home img make"
        )

    def test_custom_home(self, workspace):
        wd = os.getcwd()
        command = get_command(container(home="/src"), {}, False, "make")
        assert f"-v {wd}:/src -w /src img make" in command

    def test_env_flags_sorted_rendered_and_skipped_when_empty(self, workspace):
        runtime = container(env={"ZED": "z", "ALPHA": "{{ .A }}", "EMPTY": "{{ .MISSING }}"})
        command = get_command(runtime, {"A": "a"}, False, "true")

        assert command.startswith("docker run --rm -e ALPHA=a -e ZED=z -v ")
        assert "EMPTY" not in command

    def test_ports_split_and_mapped(self, workspace):
        runtime = container(ports=["{{ .PORTS }}", "9000"])
        command = get_command(runtime, {"PORTS": "8000:80, 5000"}, False, "true")

        assert "-p 8000:80 -p 5000:5000 -p 9000:9000 -w /home" in command

    def test_relative_cache_path_rejected(self, workspace):
        with pytest.raises(RuntimeConfigError) as exc_info:
            get_command(container(cache=["go"]), {}, False, "true")
        assert str(exc_info.value) == "invalid cache path (go): path should start with /"

    def test_global_cache(self, workspace, tmp_path, monkeypatch):
        home = tmp_path / "home"
        monkeypatch.setenv("HOME", str(home))

        command = get_command(container(global_cache=["/root/.cache"]), {}, False, "true")

        cache_dir = home / ".drover" / "cache" / "go"
        assert f"-v {cache_dir}/root/.cache:/root/.cache" in command
        assert cache_dir.is_dir()

    def test_unknown_runtime_type(self):
        with pytest.raises(RuntimeConfigError) as exc_info:
            get_command(Runtime(name="vm", type="virtual"), {}, False, "true")
        assert str(exc_info.value) == "unknown runtime type virtual"
