"""
Workflow executor.

Collects a resolved workflow's inputs, then runs its steps in order,
dispatching on the step kind. The first failing step aborts the workflow.
"""

import logging
from typing import Callable, Dict, List, Optional

from drover.callbacks import InputRequest, InputType, LogLevel
from drover.exceptions import DroverError, NoResult, StepExecutionError
from drover.exec.runtime import get_command, get_runtime
from drover.exec.step_executor import StepExecutor
from drover.model import (
    BrowserStep, ConfirmStep, EditConfigStep, ExecuteStep, IfStep, Input, LogStep,
    SetStep, ShellStep, Step, StepKind, TemplateStep, INPUT_SELECT,
)
from drover.workflow.conditions import ConditionEvaluator
from drover.workflow.edit import edit_config
from drover.workflow.insert import insert
from drover.workflow.resolver import ResolvedWorkflow


logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Runs a resolved workflow against its context's Environment."""

    def __init__(self, workflow: ResolvedWorkflow, step_executor: Optional[StepExecutor] = None):
        """
        Args:
            workflow: Workflow to run
            step_executor: Shell command runner (default: StepExecutor())
        """
        self.workflow = workflow
        self.context = workflow.context
        self.step_executor = step_executor or StepExecutor()
        self.condition_evaluator = ConditionEvaluator()
        self._handlers: Dict[StepKind, Callable] = {
            StepKind.SHELL: self._execute_shell,
            StepKind.TEMPLATE: self._execute_template,
            StepKind.BROWSER: self._execute_browser,
            StepKind.EDIT_CONFIG: self._execute_edit_config,
            StepKind.IF: self._execute_if,
            StepKind.EXECUTE: self._execute_resource,
            StepKind.SET: self._execute_set,
            StepKind.LOG: self._execute_log,
            StepKind.CONFIRM: self._execute_confirm,
        }

    @property
    def env(self):
        return self.context.env

    def execute(self) -> None:
        logger.debug(f"Running workflow {self.workflow.name} from {self.workflow.source}")
        for workflow_input in self.workflow.inputs:
            self._collect_input(workflow_input)
        self.execute_steps(self.workflow.steps)

    def execute_steps(self, steps: List[Step]) -> None:
        for index, step in enumerate(steps):
            logger.debug(f"Step {step.name or index}: {step.kind.value}")
            self._handlers[step.kind](step.payload)

    def _collect_input(self, workflow_input: Input) -> None:
        if self.context.template(workflow_input.skip) == "true":
            logger.debug(f"Skipping input {workflow_input.name}")
            return

        input_type = InputType.SELECT if workflow_input.type == INPUT_SELECT else InputType.TEXT
        request = InputRequest(
            name=workflow_input.name,
            description=workflow_input.description,
            type=input_type,
            values=list(workflow_input.values),
            default_value=workflow_input.default_value,
        )
        value = self.context.request_input([request]).get(workflow_input.name, "")

        if input_type == InputType.SELECT and not workflow_input.has_value(value):
            raise DroverError(
                f"invalid value {value!r} for input {workflow_input.name} "
                f"(valid options are: {', '.join(workflow_input.values)})"
            )
        if not value and workflow_input.default_value:
            value = workflow_input.default_value
        self.env.add_inputs({workflow_input.name: value})

    def _execute_shell(self, step: ShellStep) -> None:
        runtime = get_runtime(self.workflow.runtimes, step.runtime)
        interactive = not (step.stdout or step.stderr)
        command = get_command(runtime, self.env, interactive, step.cmd)

        result = self.step_executor.execute_command(
            command,
            capture_stdout=bool(step.stdout),
            capture_stderr=bool(step.stderr),
        )
        if result.exit_code != 0:
            raise StepExecutionError(command, result.exit_code)

        if step.stdout:
            self.env[step.stdout] = result.stdout
        if step.stderr:
            self.env[step.stderr] = result.stderr

    def _execute_template(self, step: TemplateStep) -> None:
        text = step.input
        if step.source:
            text = self.context.read_source(step.source).decode('utf-8')
        rendered = self.context.template(text)
        dest = self.context.template(step.dest)
        insert(step.insert, rendered, dest)

    def _execute_browser(self, step: BrowserStep) -> None:
        self.context.interaction.open_url(self.context.template(step.url))

    def _execute_edit_config(self, step: EditConfigStep) -> None:
        edit_config(self.context, step)

    def _execute_if(self, step: IfStep) -> None:
        if self.condition_evaluator.evaluate(step.cond, self.env):
            self.execute_steps(step.steps)

    def _execute_resource(self, step: ExecuteStep) -> None:
        output = self.context.execute_resource_command(step.resource, step.command)
        if step.register:
            self.env[step.register] = output.output

    def _execute_set(self, step: SetStep) -> None:
        for name, value in step.values.items():
            self.env[name] = self.context.template(value)

    def _execute_log(self, step: LogStep) -> None:
        try:
            level = LogLevel.parse(step.level)
        except ValueError as e:
            raise DroverError(str(e)) from e
        self.context.log(level, self.context.template(step.message))

    def _execute_confirm(self, step: ConfirmStep) -> None:
        if not self.context.interaction.confirm(step.message):
            raise NoResult(f"not confirmed: {step.message}")
