"""Resource command implementation."""

from argparse import Namespace
from typing import Any, List

import yaml

from drover.exceptions import ResourceError
from drover.providers.types import CommandOutput
from .common import load_context, run_guarded, setup_logging


EMPTY_FIELD = "<empty>"


def format_output(output: CommandOutput) -> str:
    """
    Render a command output for the terminal.

    Typed outputs become a table with one column per resource field; plain
    objects are printed as YAML.
    """
    names = output.field_names()
    if not names:
        if output.output in (None, [], {}):
            return ""
        return yaml.safe_dump(output.output, sort_keys=False, default_flow_style=False)

    records = output.output if output.type.is_array else [output.output]
    rows: List[List[str]] = [names]
    for record in records:
        rows.append([_format_field(record, name) for name in names])

    widths = [max(len(row[i]) for row in rows) for i in range(len(names))]
    lines = ["  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip() for row in rows]
    return "\n".join(lines) + "\n"


def _format_field(record: Any, name: str) -> str:
    if not isinstance(record, dict):
        raise ResourceError("provider did not return a proper object")
    value = record.get(name)
    if value is None:
        return EMPTY_FIELD
    return str(value)


def resource_command(args: Namespace) -> int:
    """Run ``RESOURCE COMMAND`` against the configured providers."""
    setup_logging(args)

    def action():
        ctx = load_context(args)
        output = ctx.execute_resource_command(args.resource, args.resource_command)
        print(format_output(output), end="")

    return run_guarded(action)
