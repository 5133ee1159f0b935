"""
Structured insertion of rendered template text into destination files.

Without an insert directive the destination is overwritten. With one, the
text is placed relative to the existing content (begin, end or unique) or,
when a section is named, inside a language-specific section of the file.
"""

import logging
from pathlib import Path
from typing import List, Optional

from drover.exceptions import InsertError
from drover.model import Insert, INSERT_BEGIN, INSERT_END, INSERT_UNIQUE


logger = logging.getLogger(__name__)


def insert(directive: Optional[Insert], text: str, dest: str) -> None:
    """Write ``text`` to ``dest`` according to ``directive``."""
    if directive is None:
        _write(dest, text)
        return

    current = _read_if_exists(dest)

    if not directive.section:
        if not current:
            _write(dest, text)
        elif directive.placement in ("", INSERT_END):
            _write(dest, _append(current, text))
        elif directive.placement == INSERT_BEGIN:
            _write(dest, text.rstrip("\n") + "\n\n" + current)
        elif directive.placement == INSERT_UNIQUE:
            if text.rstrip("\n") in current.splitlines():
                logger.debug(f"{dest} already contains the text, leaving it unchanged")
            else:
                _write(dest, _append(current, text))
        else:
            raise InsertError(f"unknown placement {directive.placement}")
        return

    extension = dest.split(".")[-1]
    inserter = SECTION_INSERTERS.get(extension)
    if inserter is None:
        raise InsertError(
            f"unsupported extension {extension} for insert (valid values: {', '.join(sorted(SECTION_INSERTERS))})"
        )
    _write(dest, inserter(directive, current, text))


def _append(current: str, text: str) -> str:
    return current.rstrip("\n") + "\n\n" + text


def _read_if_exists(path: str) -> str:
    try:
        return Path(path).read_text()
    except FileNotFoundError:
        return ""
    except OSError as e:
        raise InsertError(f"could not read {path}: {e}") from e


def _write(path: str, content: str) -> None:
    try:
        Path(path).write_text(content)
    except OSError as e:
        raise InsertError(f"could not write {path}: {e}") from e


# Go

def insert_go(directive: Insert, current: str, text: str) -> str:
    if directive.section == "import":
        return _insert_go_import(current, text)
    if directive.section.startswith("func"):
        return _insert_go_func(directive, current, text)
    raise InsertError(f"unknown section {directive.section} (only import and func are supported in go)")


def _go_import_header(package_line: str, imports: List[str], text: str) -> List[str]:
    header = [package_line, "", "import ("]
    seen = set()
    for line in imports + [t.strip() for t in text.split("\n")]:
        if line and line not in seen:
            seen.add(line)
            header.append("\t" + line)
    header += [")", ""]
    return header


def _insert_go_import(current: str, text: str) -> str:
    """Merge ``text`` into the import block, creating one under the package line if needed."""
    output: List[str] = []
    package_line = ""
    imports: List[str] = []
    in_imports = False
    header_added = False

    for line in current.split("\n"):
        trimmed = line.strip()
        if header_added:
            output.append(line)
        elif trimmed.startswith("package"):
            package_line = line
        elif not package_line:
            output.append(line)
        elif not trimmed:
            continue
        elif trimmed.startswith("import"):
            if "(" in trimmed:
                in_imports = True
            else:
                imports.append(trimmed[len("import"):].strip())
        elif in_imports:
            if ")" in trimmed:
                in_imports = False
            else:
                imports.append(trimmed)
        else:
            output.extend(_go_import_header(package_line, imports, text))
            output.append(line)
            header_added = True

    if not header_added:
        output.extend(_go_import_header(package_line, imports, text))
    return "\n".join(output)


def _insert_go_func(directive: Insert, current: str, text: str) -> str:
    """
    Insert at the start of a function body, or before its closing brace for
    the end placement. Braces are counted per line, including any inside
    strings or comments.
    """
    output: List[str] = []
    at_end = directive.placement == INSERT_END
    in_section = False
    depth = 0

    for line in current.split("\n"):
        trimmed = line.strip()
        if trimmed.startswith(directive.section):
            if not at_end:
                output.append(line)
                output.append(text)
                continue
            in_section = True
            depth = 0
        if in_section:
            depth += trimmed.count("{")
            depth -= trimmed.count("}")
            if depth == 0:
                in_section = False
                output.append(text)
        output.append(line)

    return "\n".join(output)


SECTION_INSERTERS = {
    "go": insert_go,
}
