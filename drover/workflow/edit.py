"""
Config editing.

An edit_config step appends variables, workflows and buckets to the root
document of the resolution chain and persists it. Declarations that already
exist are skipped with a notice.
"""

import copy
import logging

from drover.callbacks import LogLevel
from drover.model import EditConfigStep
from drover.sources import merge_sources, relative_source, write_config
from drover.workflow.resolver import ConfigContext


logger = logging.getLogger(__name__)


def edit_config(ctx: ConfigContext, step: EditConfigStep) -> bool:
    """
    Apply an edit to the root document.

    Returns True when the root document was changed and written. The
    candidate document is validated before anything is written; the
    in-memory root document is only replaced after a successful write.
    """
    root = ctx.root()
    candidate = copy.deepcopy(root.document)
    changed = False

    for name, value in step.add_variables.items():
        if name in candidate.variables:
            ctx.log(LogLevel.INFO, f"Skipping adding variable {name} to {root.source}, already present.")
            continue
        candidate.variables[name] = ctx.template(value)
        changed = True

    for workflow in step.add_workflows:
        if candidate.get_workflow("", workflow.name) is not None:
            ctx.log(LogLevel.INFO, f"Skipping adding workflow {workflow.name} to {root.source}, already present.")
            continue
        workflow = copy.deepcopy(workflow)
        if workflow.import_ is not None:
            workflow.import_.source = _rebase(ctx, root, workflow.import_.source)
        candidate.workflows.append(workflow)
        changed = True

    for bucket in step.add_buckets:
        if candidate.get_bucket(bucket.name) is not None:
            ctx.log(LogLevel.INFO, f"Skipping adding bucket {bucket.name} to {root.source}, already present.")
            continue
        bucket = copy.deepcopy(bucket)
        if bucket.import_ is not None:
            bucket.import_.source = _rebase(ctx, root, bucket.import_.source)
        candidate.buckets.append(bucket)
        changed = True

    if not changed:
        return False

    write_config(candidate, root.source)
    root.document = candidate
    logger.info(f"Updated {root.source}")
    return True


def _rebase(ctx: ConfigContext, root: ConfigContext, source: str) -> str:
    """Move a locator written in ``ctx`` so it resolves from the root document."""
    return relative_source(root.source, merge_sources(ctx.source, source))
