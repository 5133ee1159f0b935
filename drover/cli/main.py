"""Main CLI entry point for drover."""

import argparse
import sys
from typing import Optional

from .commands import exec_workflow, init_workflow, list_command, resource_command, run_workflow
from .commands.common import add_common_arguments


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the drover CLI."""
    parser = argparse.ArgumentParser(
        prog='drover',
        description='Declarative workflow runner'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Run command
    run_parser = subparsers.add_parser('run', help='Run a workflow')
    run_parser.add_argument(
        'names',
        nargs='+',
        metavar='NAME',
        help='[BUCKET] WORKFLOW'
    )
    add_common_arguments(run_parser)

    # Exec command
    exec_parser = subparsers.add_parser('exec', help='Run a workflow from another config document')
    exec_parser.add_argument(
        'source',
        type=str,
        help='Source locator (./path or repository:path)'
    )
    exec_parser.add_argument(
        'names',
        nargs='*',
        metavar='NAME',
        help='[BUCKET] WORKFLOW; lists the document when omitted'
    )
    add_common_arguments(exec_parser)

    # Init command
    init_parser = subparsers.add_parser('init', help='Run the init workflow of another config document')
    init_parser.add_argument(
        'source',
        type=str,
        help='Source locator (./path or repository:path)'
    )
    add_common_arguments(init_parser)

    # List command
    list_parser = subparsers.add_parser('list', help='List workflows and buckets')
    list_parser.add_argument(
        'bucket',
        nargs='?',
        help='Only list the workflows of this bucket'
    )
    add_common_arguments(list_parser)

    # Resource command
    resource_parser = subparsers.add_parser('resource', help='Run a resource command')
    resource_parser.add_argument(
        'resource',
        type=str,
        help='Resource name (e.g. doc, issue, release, deploy)'
    )
    resource_parser.add_argument(
        'resource_command',
        metavar='command',
        type=str,
        help='Resource command (e.g. get, search)'
    )
    add_common_arguments(resource_parser)

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return run_workflow(parsed_args)
    elif parsed_args.command == 'exec':
        return exec_workflow(parsed_args)
    elif parsed_args.command == 'init':
        return init_workflow(parsed_args)
    elif parsed_args.command == 'list':
        return list_command(parsed_args)
    elif parsed_args.command == 'resource':
        return resource_command(parsed_args)
    else:
        parser.print_help()
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == '__main__':
    run()
