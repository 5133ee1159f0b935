"""
Config document data model.

Declarations as they appear in a Droverfile: variables, runtimes, workflows,
buckets and resources. Steps are a tagged union: every Step carries exactly
one payload, selected by its StepKind.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


RUNTIME_NATIVE = "native"
RUNTIME_CONTAINER = "container"
DEFAULT_HOME = "/home"

INPUT_TEXT = "text"
INPUT_SELECT = "select"

INSERT_BEGIN = "begin"
INSERT_END = "end"
INSERT_UNIQUE = "unique"


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop empty optional fields so serialized documents stay minimal."""
    return {k: v for k, v in values.items() if v not in (None, "", [], {})}


@dataclass
class Runtime:
    """Named execution environment, either the host or a container."""
    name: str = ""
    type: str = ""
    image: str = ""
    home: str = ""
    cache: List[str] = field(default_factory=list)
    global_cache: List[str] = field(default_factory=list)
    ports: List[str] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)

    def get_home(self) -> str:
        return self.home or DEFAULT_HOME

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "name": self.name,
            "type": self.type,
            "image": self.image,
            "home": self.home,
            "cache": list(self.cache),
            "global_cache": list(self.global_cache),
            "ports": list(self.ports),
            "env": dict(self.env),
        })


@dataclass
class Input:
    """Value requested from the user before a workflow runs."""
    name: str = ""
    description: str = ""
    type: str = ""
    values: List[str] = field(default_factory=list)
    default_value: str = ""
    skip: str = ""

    def has_value(self, value: str) -> bool:
        return value in self.values

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "values": list(self.values),
            "default_value": self.default_value,
            "skip": self.skip,
        })


@dataclass
class ImportWorkflow:
    source: str = ""
    bucket: str = ""
    workflow: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"source": self.source, "bucket": self.bucket, "workflow": self.workflow})


@dataclass
class ImportBucket:
    source: str = ""
    bucket: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"source": self.source, "bucket": self.bucket})


class StepKind(str, Enum):
    """Step variants, valued by their key in the config document."""
    SHELL = "shell"
    TEMPLATE = "template"
    BROWSER = "browser"
    EDIT_CONFIG = "edit_config"
    IF = "if"
    EXECUTE = "execute"
    SET = "set"
    LOG = "log"
    CONFIRM = "confirm"


@dataclass
class ShellStep:
    cmd: str = ""
    runtime: str = ""
    stdout: str = ""
    stderr: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"cmd": self.cmd, "runtime": self.runtime,
                         "stdout": self.stdout, "stderr": self.stderr})


@dataclass
class Insert:
    section: str = ""
    placement: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"section": self.section, "placement": self.placement})


@dataclass
class TemplateStep:
    input: str = ""
    source: str = ""
    dest: str = ""
    insert: Optional[Insert] = None

    def to_dict(self) -> Dict[str, Any]:
        result = _compact({"input": self.input, "source": self.source, "dest": self.dest})
        if self.insert is not None:
            result["insert"] = self.insert.to_dict()
        return result


@dataclass
class BrowserStep:
    url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"url": self.url})


@dataclass
class EditConfigStep:
    add_variables: Dict[str, str] = field(default_factory=dict)
    add_workflows: List["Workflow"] = field(default_factory=list)
    add_buckets: List["Bucket"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "add_variables": dict(self.add_variables),
            "add_workflows": [w.to_dict() for w in self.add_workflows],
            "add_buckets": [b.to_dict() for b in self.add_buckets],
        })


@dataclass
class IfStep:
    cond: str = ""
    steps: List["Step"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"cond": self.cond, "steps": [s.to_dict() for s in self.steps]})


@dataclass
class ExecuteStep:
    resource: str = ""
    command: str = ""
    register: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"resource": self.resource, "command": self.command,
                         "register": self.register})


@dataclass
class SetStep:
    values: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)


@dataclass
class LogStep:
    level: str = ""
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"level": self.level, "message": self.message})


@dataclass
class ConfirmStep:
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"message": self.message})


StepPayload = Union[ShellStep, TemplateStep, BrowserStep, EditConfigStep, IfStep,
                    ExecuteStep, SetStep, LogStep, ConfirmStep]

PAYLOAD_TYPES = {
    StepKind.SHELL: ShellStep,
    StepKind.TEMPLATE: TemplateStep,
    StepKind.BROWSER: BrowserStep,
    StepKind.EDIT_CONFIG: EditConfigStep,
    StepKind.IF: IfStep,
    StepKind.EXECUTE: ExecuteStep,
    StepKind.SET: SetStep,
    StepKind.LOG: LogStep,
    StepKind.CONFIRM: ConfirmStep,
}


@dataclass
class Step:
    """One unit of workflow execution: a kind and its matching payload."""
    kind: StepKind
    payload: StepPayload
    name: str = ""

    def __post_init__(self):
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"step {self.name or self.kind.value}: {self.kind.value} expects "
                f"{expected.__name__}, got {type(self.payload).__name__}"
            )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.name:
            result["name"] = self.name
        result[self.kind.value] = self.payload.to_dict()
        return result


@dataclass
class Workflow:
    """Workflow declaration: either a step list or an import, never both."""
    name: str = ""
    description: str = ""
    inputs: List[Input] = field(default_factory=list)
    steps: List[Step] = field(default_factory=list)
    import_: Optional[ImportWorkflow] = None

    def to_dict(self) -> Dict[str, Any]:
        result = _compact({
            "name": self.name,
            "description": self.description,
            "inputs": [i.to_dict() for i in self.inputs],
            "steps": [s.to_dict() for s in self.steps],
        })
        if self.import_ is not None:
            result["import"] = self.import_.to_dict()
        return result


@dataclass
class Bucket:
    """Named group of workflows, or an import of another bucket."""
    name: str = ""
    description: str = ""
    workflows: List[Workflow] = field(default_factory=list)
    import_: Optional[ImportBucket] = None

    def to_dict(self) -> Dict[str, Any]:
        result = _compact({
            "name": self.name,
            "description": self.description,
            "workflows": [w.to_dict() for w in self.workflows],
        })
        if self.import_ is not None:
            result["import"] = self.import_.to_dict()
        return result


@dataclass
class ResourceProvider:
    provider: str = ""
    config: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _compact({"provider": self.provider, "config": dict(self.config)})


@dataclass
class ConfigDocument:
    """Parsed root of one source."""
    variables: Dict[str, str] = field(default_factory=dict)
    runtimes: List[Runtime] = field(default_factory=list)
    workflows: List[Workflow] = field(default_factory=list)
    buckets: List[Bucket] = field(default_factory=list)
    resources: Dict[str, List[ResourceProvider]] = field(default_factory=dict)

    def get_workflow(self, bucket_name: str, workflow_name: str) -> Optional[Workflow]:
        """Find a workflow at the root (empty bucket name) or inside a bucket."""
        if not bucket_name:
            candidates = self.workflows
        else:
            bucket = self.get_bucket(bucket_name)
            candidates = bucket.workflows if bucket else []
        for workflow in candidates:
            if workflow.name == workflow_name:
                return workflow
        return None

    def get_bucket(self, bucket_name: str) -> Optional[Bucket]:
        for bucket in self.buckets:
            if bucket.name == bucket_name:
                return bucket
        return None

    def to_dict(self) -> Dict[str, Any]:
        return _compact({
            "variables": dict(self.variables),
            "runtimes": [r.to_dict() for r in self.runtimes],
            "workflows": [w.to_dict() for w in self.workflows],
            "buckets": [b.to_dict() for b in self.buckets],
            "resources": {
                name: [p.to_dict() for p in providers]
                for name, providers in self.resources.items()
            },
        })
