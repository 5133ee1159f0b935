"""Tests for the shell step executor."""

import os

from drover.exec.step_executor import StepExecutor


class TestStepExecutor:
    def setup_method(self):
        self.executor = StepExecutor()

    def test_capture_stdout(self):
        result = self.executor.execute_command("echo hello", capture_stdout=True)

        assert result.exit_code == 0
        assert result.succeeded
        assert result.stdout == "hello\n"
        assert result.stderr == ""

    def test_capture_stderr(self):
        result = self.executor.execute_command("echo oops >&2", capture_stderr=True)

        assert result.stderr == "oops\n"
        assert result.stdout == ""

    def test_exit_code(self):
        result = self.executor.execute_command("exit 3")

        assert result.exit_code == 3
        assert not result.succeeded

    def test_bash_syntax(self):
        result = self.executor.execute_command("x=(a b c); echo ${#x[@]}", capture_stdout=True)
        assert result.stdout.strip() == "3"

    def test_inherits_environment(self, monkeypatch):
        monkeypatch.setenv("DROVER_TEST_VALUE", "inherited")
        result = self.executor.execute_command("echo $DROVER_TEST_VALUE", capture_stdout=True)
        assert result.stdout.strip() == "inherited"

    def test_working_directory(self, tmp_path):
        executor = StepExecutor(cwd=tmp_path)
        result = executor.execute_command("pwd", capture_stdout=True)
        assert os.path.realpath(result.stdout.strip()) == os.path.realpath(str(tmp_path))
