"""List command implementation."""

from argparse import Namespace

from drover.workflow.resolver import list_buckets, list_workflows, resolve_bucket
from .common import load_context, print_listing, run_guarded, setup_logging


def list_command(args: Namespace) -> int:
    setup_logging(args)

    def action():
        ctx = load_context(args)
        if args.bucket:
            print_listing(resolve_bucket(ctx, args.bucket).workflows(), [])
        else:
            print_listing(list_workflows(ctx), list_buckets(ctx))

    return run_guarded(action)
