"""Run and exec command implementations."""

import logging
from argparse import Namespace
from typing import List

from drover.exceptions import NotFoundError
from drover.workflow.executor import WorkflowExecutor
from drover.workflow.resolver import (
    ConfigContext, list_buckets, list_workflows, resolve_bucket, resolve_workflow,
)
from .common import load_context, print_listing, run_guarded, setup_logging


logger = logging.getLogger(__name__)


def run_names(ctx: ConfigContext, names: List[str]) -> None:
    """
    Run ``[BUCKET] WORKFLOW`` from a context.

    A single name that matches no root workflow but does match a bucket lists
    the bucket's workflows instead.
    """
    if not names or len(names) > 2:
        raise ValueError("expected [BUCKET] WORKFLOW")

    if len(names) == 2:
        workflow = resolve_workflow(ctx, names[0], names[1])
    else:
        try:
            workflow = resolve_workflow(ctx, "", names[0])
        except NotFoundError:
            if ctx.document.get_bucket(names[0]) is None:
                raise
            print_listing(resolve_bucket(ctx, names[0]).workflows(), [])
            return

    logger.debug(f"Executing workflow {'/'.join(names)} from {workflow.source}")
    WorkflowExecutor(workflow).execute()


def run_workflow(args: Namespace) -> int:
    """Run a workflow of the local config document."""
    setup_logging(args)

    def action():
        run_names(load_context(args), args.names)

    return run_guarded(action)


def exec_workflow(args: Namespace) -> int:
    """Run a workflow from another (possibly remote) config document."""
    setup_logging(args)

    def action():
        ctx = load_context(args).import_source(args.source)
        if not args.names:
            print_listing(list_workflows(ctx), list_buckets(ctx))
            return
        run_names(ctx, args.names)

    return run_guarded(action)


def init_workflow(args: Namespace) -> int:
    """Run the init workflow of another config document."""
    args.names = ["init"]
    return exec_workflow(args)
