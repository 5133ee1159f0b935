"""Helpers shared by the CLI commands."""

import json
import logging
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Callable, Dict, List

from drover.callbacks import CliInteraction, TRACE
from drover.exceptions import ConfigValidationError, DroverError, NoResult
from drover.workflow.resolver import ConfigContext, ResolvedBucket, ResolvedWorkflow, DEFAULT_SOURCE


logger = logging.getLogger(__name__)

LOG_LEVELS = {
    'fatal': logging.CRITICAL,
    'error': logging.ERROR,
    'warn': logging.WARNING,
    'info': logging.INFO,
    'debug': logging.DEBUG,
    'trace': TRACE,
}


def add_common_arguments(parser: ArgumentParser) -> None:
    parser.add_argument(
        '--file', '-f',
        type=str,
        help=f'Config document to use (default: {DEFAULT_SOURCE})'
    )
    parser.add_argument(
        '--set',
        action='append',
        metavar='KEY=VALUE',
        help='Set a variable or input, overriding the config (can be specified multiple times)'
    )
    parser.add_argument(
        '--set-file',
        type=str,
        help='Path to JSON file containing variables to set'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress non-error output'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Print debug and trace messages'
    )
    parser.add_argument(
        '--log-level',
        choices=list(LOG_LEVELS),
        default='info',
        help='Set log level'
    )


def parse_overrides(args: Namespace) -> Dict[str, str]:
    """Parse --set KEY=VALUE pairs and the --set-file JSON object."""
    overrides = {}

    if args.set_file:
        set_file = Path(args.set_file)
        if not set_file.exists():
            raise FileNotFoundError(f"Set file not found: {set_file}")

        with open(set_file, 'r') as f:
            file_values = json.load(f)
            if not isinstance(file_values, dict):
                raise ValueError(f"Set file must contain a JSON object, got {type(file_values).__name__}")

            for key, value in file_values.items():
                overrides[str(key)] = str(value)

    if args.set:
        for item in args.set:
            if '=' not in item:
                raise ValueError(f"Invalid --set format: {item}. Expected KEY=VALUE")
            key, value = item.split('=', 1)
            overrides[key] = value

    return overrides


def setup_logging(args: Namespace) -> None:
    log_level = LOG_LEVELS[args.log_level]
    if args.quiet:
        log_level = logging.ERROR
    elif args.verbose:
        log_level = TRACE

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def load_context(args: Namespace) -> ConfigContext:
    """Root context for the --file document, or the default Droverfile if present."""
    interaction = CliInteraction(sys.stdin, sys.stderr, verbose=args.verbose)
    source = args.file or DEFAULT_SOURCE
    return ConfigContext.load(
        source,
        interaction,
        overrides=parse_overrides(args),
        allow_missing=args.file is None,
    )


def print_listing(workflows: List[ResolvedWorkflow], buckets: List[ResolvedBucket]) -> None:
    names = [w.name for w in workflows] + [b.name for b in buckets]
    width = max((len(name) for name in names), default=0) + 2

    if workflows:
        print("Workflows:")
        for workflow in workflows:
            print(f"  {workflow.name:<{width}}{workflow.description}".rstrip())
    if buckets:
        if workflows:
            print()
        print("Buckets:")
        for bucket in buckets:
            print(f"  {bucket.name:<{width}}{bucket.description}".rstrip())
    if not names:
        print("No workflows defined.")


def run_guarded(action: Callable[[], None]) -> int:
    """Run a command body, mapping failures to exit codes."""
    try:
        action()
        return 0
    except ConfigValidationError as e:
        for error in e.errors:
            prefix = f"{error.path}: " if error.path else ""
            logger.error(f"Validation error: {prefix}{error.message}")
        return e.exit_code
    except NoResult as e:
        logger.info(f"Stopped: {e}")
        return 0
    except DroverError as e:
        logger.error(str(e))
        return e.exit_code
    except (OSError, ValueError) as e:
        logger.error(str(e))
        return 1
