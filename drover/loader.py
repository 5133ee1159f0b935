"""Config document loader with strict validation."""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import yaml

from drover.exceptions import ValidationError, ConfigValidationError
from drover.model import (
    Bucket, ConfigDocument, EditConfigStep, ExecuteStep, IfStep, ImportBucket, ImportWorkflow,
    Input, Insert, LogStep, ResourceProvider, Runtime, SetStep, ShellStep, Step, StepKind,
    TemplateStep, BrowserStep, ConfirmStep, Workflow,
    RUNTIME_NATIVE, RUNTIME_CONTAINER, INPUT_TEXT, INPUT_SELECT,
    INSERT_BEGIN, INSERT_END, INSERT_UNIQUE,
)


class PreservingLoader(yaml.SafeLoader):
    """YAML loader that keeps yes/no/on/off as strings instead of converting to bool."""
    pass


# Templates such as `cond: yes` must reach the template engine verbatim, so the
# implicit bool resolver is dropped for every first letter of the YAML 1.1 words
# other than true/false.
PreservingLoader.yaml_implicit_resolvers = dict(PreservingLoader.yaml_implicit_resolvers)
for _first in "yYnNoO":
    if _first in PreservingLoader.yaml_implicit_resolvers:
        PreservingLoader.yaml_implicit_resolvers[_first] = [
            (tag, regexp) for tag, regexp in PreservingLoader.yaml_implicit_resolvers[_first]
            if tag != 'tag:yaml.org,2002:bool'
        ]

LOG_LEVEL_NAMES = {"fatal", "error", "warn", "info", "debug", "trace"}


class ConfigLoader:
    """Parses config documents into the data model and validates them."""

    DOCUMENT_FIELDS = {'variables', 'runtimes', 'workflows', 'buckets', 'resources'}
    RUNTIME_FIELDS = {'name', 'type', 'image', 'home', 'cache', 'global_cache', 'ports', 'env'}
    WORKFLOW_FIELDS = {'name', 'description', 'inputs', 'steps', 'import'}
    BUCKET_FIELDS = {'name', 'description', 'workflows', 'import'}
    INPUT_FIELDS = {'name', 'description', 'type', 'values', 'default_value', 'skip'}

    STEP_FIELDS = {
        StepKind.SHELL: {'cmd', 'runtime', 'stdout', 'stderr'},
        StepKind.TEMPLATE: {'input', 'source', 'dest', 'insert'},
        StepKind.BROWSER: {'url'},
        StepKind.EDIT_CONFIG: {'add_variables', 'add_workflows', 'add_buckets'},
        StepKind.IF: {'cond', 'steps'},
        StepKind.EXECUTE: {'resource', 'command', 'register'},
        StepKind.LOG: {'level', 'message'},
        StepKind.CONFIRM: {'message'},
    }

    def __init__(self):
        self.errors: List[ValidationError] = []

    def load(self, path: Path) -> ConfigDocument:
        """Read and parse a config document from disk."""
        try:
            content = Path(path).read_bytes()
        except OSError as e:
            self._add_error(f"Failed to read config: {e}", str(path))
            self._raise_validation_errors()
        return self.parse(content)

    def parse(self, content: Union[bytes, str]) -> ConfigDocument:
        """Parse YAML content into a validated ConfigDocument."""
        self.errors = []
        try:
            data = yaml.load(content, Loader=PreservingLoader)
        except yaml.YAMLError as e:
            self._add_error(f"Failed to parse config: {e}")
            self._raise_validation_errors()

        if data is None:
            data = {}
        if not isinstance(data, dict):
            self._add_error("Config must be a YAML object/dictionary")
            self._raise_validation_errors()

        document = self._parse_document(data)
        if self.errors:
            self._raise_validation_errors()

        self.validate(document)
        return document

    def validate(self, document: ConfigDocument) -> None:
        """Apply the semantic rules; raises ConfigValidationError on any violation."""
        self.errors = []
        for runtime in document.runtimes:
            self._validate_runtime(runtime)
        for workflow in document.workflows:
            self._validate_workflow(workflow, "")
        for bucket in document.buckets:
            self._validate_bucket(bucket)
        if self.errors:
            self._raise_validation_errors()

    def dump(self, document: ConfigDocument) -> str:
        """Serialize a document to YAML, omitting empty optional fields."""
        return yaml.dump(document.to_dict(), sort_keys=False, default_flow_style=False)

    # Parsing

    def _parse_document(self, data: Dict[str, Any]) -> ConfigDocument:
        self._check_fields(data, self.DOCUMENT_FIELDS, "config")

        document = ConfigDocument()
        document.variables = self._parse_string_map(data.get('variables'), "variables")

        for i, item in enumerate(self._as_list(data.get('runtimes'), "runtimes")):
            runtime = self._parse_runtime(item, f"runtimes[{i}]")
            if runtime is not None:
                document.runtimes.append(runtime)

        for i, item in enumerate(self._as_list(data.get('workflows'), "workflows")):
            workflow = self._parse_workflow(item, f"workflows[{i}]")
            if workflow is not None:
                document.workflows.append(workflow)

        for i, item in enumerate(self._as_list(data.get('buckets'), "buckets")):
            bucket = self._parse_bucket(item, f"buckets[{i}]")
            if bucket is not None:
                document.buckets.append(bucket)

        resources = data.get('resources') or {}
        if not isinstance(resources, dict):
            self._add_error("'resources' must be a dictionary")
        else:
            for name, providers in resources.items():
                parsed = []
                for i, item in enumerate(self._as_list(providers, f"resources.{name}")):
                    provider = self._parse_resource_provider(item, f"resources.{name}[{i}]")
                    if provider is not None:
                        parsed.append(provider)
                document.resources[str(name)] = parsed

        return document

    def _parse_runtime(self, data: Any, context: str) -> Optional[Runtime]:
        if not isinstance(data, dict):
            self._add_error(f"{context}: runtime must be a dictionary")
            return None
        self._check_fields(data, self.RUNTIME_FIELDS, context)
        return Runtime(
            name=self._as_str(data.get('name')),
            type=self._as_str(data.get('type')),
            image=self._as_str(data.get('image')),
            home=self._as_str(data.get('home')),
            cache=self._parse_string_list(data.get('cache'), f"{context}.cache"),
            global_cache=self._parse_string_list(data.get('global_cache'), f"{context}.global_cache"),
            ports=self._parse_string_list(data.get('ports'), f"{context}.ports"),
            env=self._parse_string_map(data.get('env'), f"{context}.env"),
        )

    def _parse_workflow(self, data: Any, context: str) -> Optional[Workflow]:
        if not isinstance(data, dict):
            self._add_error(f"{context}: workflow must be a dictionary")
            return None
        self._check_fields(data, self.WORKFLOW_FIELDS, context)

        workflow = Workflow(
            name=self._as_str(data.get('name')),
            description=self._as_str(data.get('description')),
        )
        context = f"workflow {workflow.name}" if workflow.name else context

        for i, item in enumerate(self._as_list(data.get('inputs'), f"{context}: inputs")):
            parsed = self._parse_input(item, f"{context}: inputs[{i}]")
            if parsed is not None:
                workflow.inputs.append(parsed)

        workflow.steps = self._parse_steps(data.get('steps'), context)

        if data.get('import') is not None:
            imported = data['import']
            if not isinstance(imported, dict):
                self._add_error(f"{context}: import must be a dictionary")
            else:
                self._check_fields(imported, {'source', 'bucket', 'workflow'}, f"{context}: import")
                workflow.import_ = ImportWorkflow(
                    source=self._as_str(imported.get('source')),
                    bucket=self._as_str(imported.get('bucket')),
                    workflow=self._as_str(imported.get('workflow')),
                )
        return workflow

    def _parse_bucket(self, data: Any, context: str) -> Optional[Bucket]:
        if not isinstance(data, dict):
            self._add_error(f"{context}: bucket must be a dictionary")
            return None
        self._check_fields(data, self.BUCKET_FIELDS, context)

        bucket = Bucket(
            name=self._as_str(data.get('name')),
            description=self._as_str(data.get('description')),
        )
        context = f"bucket {bucket.name}" if bucket.name else context

        for i, item in enumerate(self._as_list(data.get('workflows'), f"{context}: workflows")):
            workflow = self._parse_workflow(item, f"{context}: workflows[{i}]")
            if workflow is not None:
                bucket.workflows.append(workflow)

        if data.get('import') is not None:
            imported = data['import']
            if not isinstance(imported, dict):
                self._add_error(f"{context}: import must be a dictionary")
            else:
                self._check_fields(imported, {'source', 'bucket'}, f"{context}: import")
                bucket.import_ = ImportBucket(
                    source=self._as_str(imported.get('source')),
                    bucket=self._as_str(imported.get('bucket')),
                )
        return bucket

    def _parse_input(self, data: Any, context: str) -> Optional[Input]:
        if not isinstance(data, dict):
            self._add_error(f"{context}: input must be a dictionary")
            return None
        self._check_fields(data, self.INPUT_FIELDS, context)
        return Input(
            name=self._as_str(data.get('name')),
            description=self._as_str(data.get('description')),
            type=self._as_str(data.get('type')),
            values=self._parse_string_list(data.get('values'), f"{context}.values"),
            default_value=self._as_str(data.get('default_value')),
            skip=self._as_str(data.get('skip')),
        )

    def _parse_resource_provider(self, data: Any, context: str) -> Optional[ResourceProvider]:
        if not isinstance(data, dict):
            self._add_error(f"{context}: provider must be a dictionary")
            return None
        self._check_fields(data, {'provider', 'config'}, context)
        provider = self._as_str(data.get('provider'))
        if not provider:
            self._add_error(f"{context}: provider field is required")
        return ResourceProvider(
            provider=provider,
            config=self._parse_string_map(data.get('config'), f"{context}.config"),
        )

    def _parse_steps(self, steps: Any, context: str) -> List[Step]:
        parsed = []
        for i, item in enumerate(self._as_list(steps, f"{context}: steps")):
            step = self._parse_step(item, i, context)
            if step is not None:
                parsed.append(step)
        return parsed

    def _parse_step(self, data: Any, index: int, context: str) -> Optional[Step]:
        """Parse one step, enforcing that exactly one step kind is present."""
        if not isinstance(data, dict):
            self._add_error(f"{context}: step {index} must be a dictionary")
            return None

        name = self._as_str(data.get('name'))
        label = name or str(index)
        kinds = [kind for kind in StepKind if kind.value in data]
        unknown = [key for key in data if key != 'name' and key not in {k.value for k in StepKind}]
        if unknown:
            self._add_error(f"{context}: step {label}: unknown fields {unknown}")

        if not kinds:
            self._add_error(f"{context}: step {label} does not contain an action")
            return None
        if len(kinds) > 1:
            self._add_error(f"{context}: step {label} contains more than 1 action")
            return None

        kind = kinds[0]
        step_context = f"{context}: step {label}"
        payload = self._parse_payload(kind, data[kind.value], step_context)
        if payload is None:
            return None
        return Step(kind=kind, payload=payload, name=name)

    def _parse_payload(self, kind: StepKind, data: Any, context: str):
        if kind == StepKind.SET:
            return SetStep(values=self._parse_string_map(data, f"{context}: set"))

        if not isinstance(data, dict):
            self._add_error(f"{context}: {kind.value} must be a dictionary")
            return None
        self._check_fields(data, self.STEP_FIELDS[kind], f"{context}: {kind.value}")

        if kind == StepKind.SHELL:
            return ShellStep(
                cmd=self._as_str(data.get('cmd')),
                runtime=self._as_str(data.get('runtime')),
                stdout=self._as_str(data.get('stdout')),
                stderr=self._as_str(data.get('stderr')),
            )
        if kind == StepKind.TEMPLATE:
            insert = None
            if data.get('insert') is not None:
                raw = data['insert']
                if not isinstance(raw, dict):
                    self._add_error(f"{context}: template insert must be a dictionary")
                else:
                    self._check_fields(raw, {'section', 'placement'}, f"{context}: insert")
                    insert = Insert(
                        section=self._as_str(raw.get('section')),
                        placement=self._as_str(raw.get('placement')),
                    )
            return TemplateStep(
                input=self._as_str(data.get('input')),
                source=self._as_str(data.get('source')),
                dest=self._as_str(data.get('dest')),
                insert=insert,
            )
        if kind == StepKind.BROWSER:
            return BrowserStep(url=self._as_str(data.get('url')))
        if kind == StepKind.EDIT_CONFIG:
            step = EditConfigStep(
                add_variables=self._parse_string_map(data.get('add_variables'), f"{context}: add_variables"),
            )
            for i, item in enumerate(self._as_list(data.get('add_workflows'), f"{context}: add_workflows")):
                workflow = self._parse_workflow(item, f"{context}: add_workflows[{i}]")
                if workflow is not None:
                    step.add_workflows.append(workflow)
            for i, item in enumerate(self._as_list(data.get('add_buckets'), f"{context}: add_buckets")):
                bucket = self._parse_bucket(item, f"{context}: add_buckets[{i}]")
                if bucket is not None:
                    step.add_buckets.append(bucket)
            return step
        if kind == StepKind.IF:
            return IfStep(
                cond=self._as_str(data.get('cond')),
                steps=self._parse_steps(data.get('steps'), f"{context}: if"),
            )
        if kind == StepKind.EXECUTE:
            return ExecuteStep(
                resource=self._as_str(data.get('resource')),
                command=self._as_str(data.get('command')),
                register=self._as_str(data.get('register')),
            )
        if kind == StepKind.LOG:
            return LogStep(
                level=self._as_str(data.get('level')),
                message=self._as_str(data.get('message')),
            )
        return ConfirmStep(message=self._as_str(data.get('message')))

    # Semantic validation

    def _validate_runtime(self, runtime: Runtime):
        if not runtime.name:
            self._add_error("name field is required for runtime")
            return
        if runtime.type not in (RUNTIME_NATIVE, RUNTIME_CONTAINER):
            self._add_error(
                f"runtime {runtime.name}: unknown runtime type: {runtime.type} "
                f"(valid options are {RUNTIME_NATIVE}, {RUNTIME_CONTAINER})"
            )
        elif runtime.type == RUNTIME_NATIVE and (
                runtime.image or runtime.home or runtime.cache or runtime.global_cache
                or runtime.ports or runtime.env):
            self._add_error(
                f"runtime {runtime.name}: image, home, cache, global_cache, ports and env "
                f"fields are only applicable to {RUNTIME_CONTAINER} runtimes"
            )
        elif runtime.type == RUNTIME_CONTAINER and not runtime.image:
            self._add_error(f"runtime {runtime.name}: image field is required for {RUNTIME_CONTAINER} runtimes")

    def _validate_bucket(self, bucket: Bucket):
        if not bucket.name:
            self._add_error("name field is required for bucket")
            return
        if bucket.import_ is not None:
            if bucket.workflows:
                self._add_error(f"bucket {bucket.name}: contains both workflows and an import")
            if not bucket.import_.bucket:
                self._add_error(f"bucket {bucket.name}: bucket field is required for import")
            return
        if not bucket.workflows:
            self._add_error(f"bucket {bucket.name}: no workflows or import defined")
            return
        for workflow in bucket.workflows:
            self._validate_workflow(workflow, f"bucket {bucket.name}: ")

    def _validate_workflow(self, workflow: Workflow, prefix: str):
        if not workflow.name:
            self._add_error(f"{prefix}name field is required for workflow")
            return
        prefix = f"{prefix}workflow {workflow.name}: "
        if workflow.import_ is not None:
            if workflow.steps:
                self._add_error(f"{prefix}contains both steps and an import")
            if not workflow.import_.workflow:
                self._add_error(f"{prefix}workflow field is required for import")
            return
        for workflow_input in workflow.inputs:
            self._validate_input(workflow_input, prefix)
        if not workflow.steps:
            self._add_error(f"{prefix}no steps or import defined")
        self._validate_steps(workflow.steps, prefix)

    def _validate_input(self, workflow_input: Input, prefix: str):
        if not workflow_input.name:
            self._add_error(f"{prefix}name field is required on inputs")
            return
        prefix = f"{prefix}input {workflow_input.name}: "
        input_type = workflow_input.type
        if input_type and input_type not in (INPUT_TEXT, INPUT_SELECT):
            self._add_error(
                f"{prefix}unknown input type: {input_type} (valid options are: {INPUT_TEXT}, {INPUT_SELECT})"
            )
        elif workflow_input.values and input_type != INPUT_SELECT:
            self._add_error(f"{prefix}values for input can only be provided for the {INPUT_SELECT} type")
        elif not workflow_input.values and input_type == INPUT_SELECT:
            self._add_error(f"{prefix}no values are provided, values are required for the {INPUT_SELECT} type")
        elif workflow_input.default_value and input_type == INPUT_SELECT:
            self._add_error(f"{prefix}default value can only be provided for the {INPUT_TEXT} type")

    def _validate_steps(self, steps: List[Step], prefix: str):
        for index, step in enumerate(steps):
            label = step.name or str(index)
            step_prefix = f"{prefix}step {label}: "
            payload = step.payload

            if step.kind == StepKind.SHELL and not payload.cmd:
                self._add_error(f"{step_prefix}cmd field is required for shell")
            elif step.kind == StepKind.TEMPLATE:
                if payload.input and payload.source:
                    self._add_error(f"{step_prefix}either input or source should be set for template")
                if not payload.dest:
                    self._add_error(f"{step_prefix}dest field is required for template")
                if payload.insert is not None and payload.insert.placement not in (
                        "", INSERT_BEGIN, INSERT_END, INSERT_UNIQUE):
                    self._add_error(
                        f"{step_prefix}unknown placement in insert: {payload.insert.placement} "
                        f"(valid options are: {INSERT_BEGIN}, {INSERT_END}, {INSERT_UNIQUE})"
                    )
            elif step.kind == StepKind.BROWSER and not payload.url:
                self._add_error(f"{step_prefix}url field is required for browser")
            elif step.kind == StepKind.EDIT_CONFIG:
                for workflow in payload.add_workflows:
                    self._validate_workflow(workflow, step_prefix)
                for bucket in payload.add_buckets:
                    before = len(self.errors)
                    self._validate_bucket(bucket)
                    for error in self.errors[before:]:
                        error.message = f"{step_prefix}{error.message}"
            elif step.kind == StepKind.IF:
                if not payload.cond:
                    self._add_error(f"{step_prefix}cond field is required for if")
                if not payload.steps:
                    self._add_error(f"{step_prefix}1 or more steps are required for if")
                self._validate_steps(payload.steps, step_prefix)
            elif step.kind == StepKind.EXECUTE:
                if not payload.resource:
                    self._add_error(f"{step_prefix}resource field is required for execute")
                if not payload.command:
                    self._add_error(f"{step_prefix}command field is required for execute")
            elif step.kind == StepKind.LOG:
                if payload.level.lower() not in LOG_LEVEL_NAMES:
                    self._add_error(f"{step_prefix}unknown log level: {payload.level}")
                if not payload.message:
                    self._add_error(f"{step_prefix}message field is required for log")
            elif step.kind == StepKind.CONFIRM and not payload.message:
                self._add_error(f"{step_prefix}message field is required for confirm")

    # Helpers

    def _check_fields(self, data: Dict[str, Any], known: set, context: str):
        """Strict unknown field rejection."""
        for key in data.keys():
            if key not in known:
                self._add_error(f"{context}: unknown field '{key}'")

    def _as_list(self, value: Any, context: str) -> List[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            self._add_error(f"{context} must be a list")
            return []
        return value

    def _as_str(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return 'true' if value else 'false'
        return str(value)

    def _parse_string_list(self, value: Any, context: str) -> List[str]:
        return [self._as_str(item) for item in self._as_list(value, context)]

    def _parse_string_map(self, value: Any, context: str) -> Dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            self._add_error(f"{context} must be a dictionary")
            return {}
        return {str(k): self._as_str(v) for k, v in value.items()}

    def _add_error(self, message: str, path: str = "", exit_code: int = 2):
        """Add validation error."""
        self.errors.append(ValidationError(message, path, exit_code))

    def _raise_validation_errors(self):
        """Raise ConfigValidationError with accumulated errors."""
        raise ConfigValidationError(self.errors)


def validate_document(document: ConfigDocument) -> None:
    """Validate a document built or edited in memory."""
    ConfigLoader().validate(document)
