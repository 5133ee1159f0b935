"""
Config resolution.

A ConfigContext binds one loaded config document to its source locator, its
Environment and the interaction callbacks. Resolution follows workflow and
bucket imports across documents until a declaration with steps (or, for
buckets, a workflow list) is found.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from drover.callbacks import InputRequest, Interaction, LogLevel
from drover.exceptions import CyclicImportError, NotFoundError
from drover.model import Bucket, ConfigDocument, Input, Runtime, Step, Workflow
from drover.providers.facade import ResourceFacade
from drover.providers.types import CommandOutput, ResourceDefinition
from drover.sources import (
    DEFAULT_CONFIG_NAME, is_local, merge_sources, read_config, read_source, resolve_path,
)
from drover.variables.environment import Environment
from drover.variables.template import render


logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "./" + DEFAULT_CONFIG_NAME

ChainKey = Tuple[str, str, str]


class ConfigContext:
    """Execution context of one config document within a resolution chain."""

    def __init__(
        self,
        source: str,
        document: ConfigDocument,
        env: Environment,
        interaction: Interaction,
        parent: Optional['ConfigContext'] = None,
        resource_definitions: Optional[List[ResourceDefinition]] = None,
    ):
        self.source = source
        self.document = document
        self.env = env
        self.interaction = interaction
        self.parent = parent
        self.resource_definitions = resource_definitions

    @classmethod
    def load(
        cls,
        source: str,
        interaction: Interaction,
        overrides: Optional[Mapping[str, str]] = None,
        allow_missing: bool = False,
        resource_definitions: Optional[List[ResourceDefinition]] = None,
    ) -> 'ConfigContext':
        """
        Load the root context.

        Overrides are seeded before the document variables so they always win.
        With allow_missing, a local source that does not exist yields an empty
        document, which edit steps can then populate.
        """
        env = Environment()
        env.add_inputs(overrides or {})

        if allow_missing and is_local(source) and not os.path.exists(resolve_path(source)):
            logger.debug(f"{source} does not exist, starting from an empty document")
            document = ConfigDocument()
        else:
            source, document = read_config(source)

        env.add_variables(document.variables)
        return cls(source, document, env, interaction, resource_definitions=resource_definitions)

    def import_source(self, source: str) -> 'ConfigContext':
        """Context for a document referenced from this one."""
        full_source = merge_sources(self.source, source)
        if full_source == self.source:
            return self

        logger.debug(f"Importing {full_source}")
        full_source, document = read_config(full_source)
        env = self.env.clone()
        env.add_variables(document.variables)
        return ConfigContext(full_source, document, env, self.interaction,
                             parent=self, resource_definitions=self.resource_definitions)

    def read_source(self, source: str) -> bytes:
        """Read a file relative to this document."""
        return read_source(merge_sources(self.source, source))

    def root(self) -> 'ConfigContext':
        context = self
        while context.parent is not None:
            context = context.parent
        return context

    def template(self, text: str) -> str:
        return render(text, self.env)

    def log(self, level: LogLevel, message: str) -> None:
        self.interaction.log(level, message)

    def request_input(self, requests: List[InputRequest]) -> Dict[str, str]:
        """Answer from the Environment where possible, ask for the rest."""
        answers = {r.name: self.env[r.name] for r in requests if r.name in self.env}
        missing = [r for r in requests if r.name not in self.env]
        if missing:
            answers.update(self.interaction.request_input(missing))
        self.env.add_inputs(answers)
        return answers

    def execute_resource_command(self, resource: str, command: str) -> CommandOutput:
        facade = ResourceFacade(self.document.resources, self, self.resource_definitions)
        return facade.execute_command(resource, command)


@dataclass
class ResolvedWorkflow:
    """Import-free workflow, ready for the step interpreter."""
    name: str
    description: str
    inputs: List[Input]
    steps: List[Step]
    runtimes: List[Runtime]
    source: str
    context: ConfigContext = field(compare=False, repr=False)


@dataclass
class ResolvedBucket:
    name: str
    description: str
    declarations: List[Workflow]
    source: str
    context: ConfigContext = field(compare=False, repr=False)

    def workflows(self, visited: Optional[List[ChainKey]] = None) -> List[ResolvedWorkflow]:
        return [_resolve_workflow_declaration(self.context, w, list(visited or [])) for w in self.declarations]

    def get_workflow(self, name: str, visited: Optional[List[ChainKey]] = None) -> ResolvedWorkflow:
        for declaration in self.declarations:
            if declaration.name == name:
                return _resolve_workflow_declaration(self.context, declaration, list(visited or []))
        raise NotFoundError(f"could not find workflow {self.name}/{name}")


def _enter(visited: Optional[List[ChainKey]], key: ChainKey) -> List[ChainKey]:
    chain = list(visited or [])
    if key in chain:
        raise CyclicImportError([_describe(k) for k in chain + [key]])
    chain.append(key)
    return chain


def _describe(key: ChainKey) -> str:
    source, bucket, workflow = key
    return f"{source}:{'/'.join(part for part in (bucket, workflow) if part)}"


def resolve_workflow(
    ctx: ConfigContext,
    bucket_name: str,
    workflow_name: str,
    visited: Optional[List[ChainKey]] = None,
) -> ResolvedWorkflow:
    """Find a workflow at the root or in a bucket and follow its imports."""
    chain = _enter(visited, (ctx.source, bucket_name, workflow_name))

    if bucket_name:
        return resolve_bucket(ctx, bucket_name, chain).get_workflow(workflow_name, chain)

    for declaration in ctx.document.workflows:
        if declaration.name == workflow_name:
            return _resolve_workflow_declaration(ctx, declaration, chain)
    raise NotFoundError(f"could not find workflow {workflow_name}")


def resolve_bucket(
    ctx: ConfigContext,
    bucket_name: str,
    visited: Optional[List[ChainKey]] = None,
) -> ResolvedBucket:
    chain = _enter(visited, (ctx.source, bucket_name, ""))

    declaration = ctx.document.get_bucket(bucket_name)
    if declaration is None:
        raise NotFoundError(f"could not find bucket {bucket_name}")
    return _resolve_bucket_declaration(ctx, declaration, chain)


def _resolve_workflow_declaration(ctx: ConfigContext, declaration: Workflow,
                                  chain: List[ChainKey]) -> ResolvedWorkflow:
    if declaration.import_ is None:
        return ResolvedWorkflow(
            name=declaration.name,
            description=declaration.description,
            inputs=list(declaration.inputs),
            steps=list(declaration.steps),
            runtimes=list(ctx.document.runtimes),
            source=ctx.source,
            context=ctx,
        )

    target = ctx.import_source(declaration.import_.source)
    resolved = resolve_workflow(target, declaration.import_.bucket, declaration.import_.workflow, chain)
    resolved.name = declaration.name
    if declaration.description:
        resolved.description = declaration.description
    return resolved


def _resolve_bucket_declaration(ctx: ConfigContext, declaration: Bucket,
                                chain: List[ChainKey]) -> ResolvedBucket:
    if declaration.import_ is None:
        return ResolvedBucket(
            name=declaration.name,
            description=declaration.description,
            declarations=list(declaration.workflows),
            source=ctx.source,
            context=ctx,
        )

    target = ctx.import_source(declaration.import_.source)
    resolved = resolve_bucket(target, declaration.import_.bucket, chain)
    resolved.name = declaration.name
    if declaration.description:
        resolved.description = declaration.description
    return resolved


def list_workflows(ctx: ConfigContext) -> List[ResolvedWorkflow]:
    return [_resolve_workflow_declaration(ctx, w, [(ctx.source, "", w.name)]) for w in ctx.document.workflows]


def list_buckets(ctx: ConfigContext) -> List[ResolvedBucket]:
    return [resolve_bucket(ctx, b.name) for b in ctx.document.buckets]
