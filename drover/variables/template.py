"""
Template rendering against an Environment.

Supports the ``{{ }}`` action syntax of Go's text/template that config
documents use:

- field access ``{{ .name }}`` and ``{{ . }}`` for the whole environment
- literals: ``"quoted"`` and backtick raw strings, integers, ``true``/``false``
- function calls ``{{ join .a .b "," }}``, parenthesised sub-pipelines and
  ``|`` chaining, where the previous value becomes the last argument
- ``{{ if }}`` / ``{{ else if }}`` / ``{{ else }}`` / ``{{ end }}``
- ``{{-`` / ``-}}`` whitespace trimming and ``{{/* comments */}}``

Missing keys render as the empty string.
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from drover.exceptions import TemplateError


TRUE_STRINGS = {"1", "t", "true", "yes"}
FALSE_STRINGS = {"0", "f", "false", "no"}


def is_true(value: str) -> bool:
    return value.lower() in TRUE_STRINGS


def is_false(value: str) -> bool:
    return value.lower() in FALSE_STRINGS


# Go reference time layout elements, longest first so that prefixes such as
# "Jan" never shadow "January".
_DATE_ELEMENTS: List[Tuple[str, Callable[[datetime], str]]] = [
    ("January", lambda d: d.strftime("%B")),
    ("Monday", lambda d: d.strftime("%A")),
    ("-07:00", lambda d: _utc_offset(d, ":")),
    ("-0700", lambda d: _utc_offset(d, "")),
    ("2006", lambda d: f"{d.year:04d}"),
    ("Jan", lambda d: d.strftime("%b")),
    ("Mon", lambda d: d.strftime("%a")),
    ("MST", lambda d: d.strftime("%Z")),
    ("002", lambda d: f"{d.timetuple().tm_yday:03d}"),
    ("01", lambda d: f"{d.month:02d}"),
    ("02", lambda d: f"{d.day:02d}"),
    ("_2", lambda d: f"{d.day:>2d}"),
    ("06", lambda d: f"{d.year % 100:02d}"),
    ("15", lambda d: f"{d.hour:02d}"),
    ("03", lambda d: f"{(d.hour % 12) or 12:02d}"),
    ("04", lambda d: f"{d.minute:02d}"),
    ("05", lambda d: f"{d.second:02d}"),
    ("PM", lambda d: "PM" if d.hour >= 12 else "AM"),
    ("pm", lambda d: "pm" if d.hour >= 12 else "am"),
    ("1", lambda d: str(d.month)),
    ("2", lambda d: str(d.day)),
    ("3", lambda d: str((d.hour % 12) or 12)),
    ("4", lambda d: str(d.minute)),
    ("5", lambda d: str(d.second)),
]


def _utc_offset(moment: datetime, separator: str) -> str:
    offset = moment.utcoffset()
    if offset is None:
        return f"+00{separator}00"
    minutes = int(offset.total_seconds()) // 60
    sign = "-" if minutes < 0 else "+"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{separator}{minutes:02d}"


def format_go_date(layout: str, moment: Optional[datetime] = None) -> str:
    """Format a datetime using a Go reference-time layout such as ``2006-01-02``."""
    moment = moment or datetime.now().astimezone()
    out = []
    i = 0
    while i < len(layout):
        for element, formatter in _DATE_ELEMENTS:
            if layout.startswith(element, i):
                out.append(formatter(moment))
                i += len(element)
                break
        else:
            out.append(layout[i])
            i += 1
    return "".join(out)


def _join(first: str, second: str, separator: str) -> str:
    if not first:
        return second
    if not second:
        return first
    return first + separator + second


def _and(*args):
    for arg in args:
        if not _is_truthy(arg):
            return arg
    return args[-1]


def _or(*args):
    for arg in args:
        if _is_truthy(arg):
            return arg
    return args[-1]


# name -> (callable, exact argument count or minimum for variadic, variadic)
FUNCTIONS: Dict[str, Tuple[Callable[..., Any], int, bool]] = {
    "replace": (lambda s, old, new: _text(s).replace(_text(old), _text(new)), 3, False),
    "date": (lambda layout: format_go_date(_text(layout)), 1, False),
    "join": (lambda a, b, sep: _join(_text(a), _text(b), _text(sep)), 3, False),
    "trimSpace": (lambda s: _text(s).strip(), 1, False),
    "isTrue": (lambda s: is_true(_text(s)), 1, False),
    "isFalse": (lambda s: is_false(_text(s)), 1, False),
    "eq": (lambda a, *others: any(a == other for other in others), 2, True),
    "ne": (lambda a, b: a != b, 2, False),
    "not": (lambda a: not _is_truthy(a), 1, False),
    "and": (_and, 1, True),
    "or": (_or, 1, True),
}

_UNSUPPORTED_ACTIONS = {"range", "with", "define", "template", "block", "break", "continue"}


def _text(value: Any) -> str:
    """Printed form of a value."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_truthy(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) > 0
    return True


def _parse_error(message: str) -> TemplateError:
    return TemplateError(f"failed to parse template: {message}")


def _render_error(message: str) -> TemplateError:
    return TemplateError(f"failed to render template: {message}")


# Parse tree

@dataclass
class _Field:
    path: List[str]


@dataclass
class _Literal:
    value: Any


@dataclass
class _Function:
    name: str


@dataclass
class _Pipeline:
    commands: List[List[Any]]


@dataclass
class _Action:
    pipeline: _Pipeline


@dataclass
class _If:
    branches: List[Tuple[_Pipeline, list]] = field(default_factory=list)
    else_body: list = field(default_factory=list)


Node = Union[str, _Action, _If]

_TOKEN_PATTERN = re.compile(r'''
    (?P<space>\s+)
  | (?P<string>"(?:[^"\\]|\\.)*")
  | (?P<raw>`[^`]*`)
  | (?P<field>(?:\.[A-Za-z_][A-Za-z0-9_]*)+)
  | (?P<dot>\.)
  | (?P<number>-?\d+)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<pipe>\|)
''', re.VERBOSE)

_WHITESPACE = " \t\r\n"


def _tokenize(body: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    while pos < len(body):
        match = _TOKEN_PATTERN.match(body, pos)
        if not match:
            raise _parse_error(f"unexpected {body[pos]!r} in command")
        if match.lastgroup != 'space':
            tokens.append((match.lastgroup, match.group()))
        pos = match.end()
    return tokens


def _lex(text: str) -> List[Tuple[str, str]]:
    """Split template text into ('text', ...) and ('action', ...) items."""
    items = []
    pos = 0
    trim_next = False
    while True:
        start = text.find('{{', pos)
        chunk = text[pos:] if start < 0 else text[pos:start]
        if trim_next:
            chunk = chunk.lstrip(_WHITESPACE)
        if start < 0:
            items.append(('text', chunk))
            return items

        i = start + 2
        if text.startswith('-', i) and i + 1 < len(text) and text[i + 1] in _WHITESPACE:
            chunk = chunk.rstrip(_WHITESPACE)
            i += 2
        items.append(('text', chunk))

        end, body_end, trim_next = _find_action_end(text, i)
        items.append(('action', text[i:body_end]))
        pos = end


def _find_action_end(text: str, start: int) -> Tuple[int, int, bool]:
    """Locate the closing delimiter, skipping over quoted strings and comments."""
    quote = None
    j = start
    while j < len(text):
        c = text[j]
        if quote:
            if c == '\\' and quote == '"':
                j += 2
                continue
            if c == quote:
                quote = None
        elif c in '"`':
            quote = c
        elif text.startswith('/*', j):
            close = text.find('*/', j + 2)
            if close < 0:
                raise _parse_error("unclosed comment")
            j = close + 2
            continue
        elif text.startswith('}}', j):
            if j - 2 >= start and text[j - 1] == '-' and text[j - 2] in _WHITESPACE:
                return j + 2, j - 1, True
            return j + 2, j, False
        j += 1
    raise _parse_error("unclosed action")


class _Parser:
    def __init__(self, text: str):
        self.items = _lex(text)
        self.pos = 0

    def parse(self) -> List[Node]:
        nodes, stop = self._parse_nodes()
        if stop is not None:
            raise _parse_error(f"unexpected {{{{{stop[0]}}}}}")
        return nodes

    def _parse_nodes(self):
        nodes: List[Node] = []
        while self.pos < len(self.items):
            kind, value = self.items[self.pos]
            self.pos += 1
            if kind == 'text':
                if value:
                    nodes.append(value)
                continue

            body = value.strip()
            if body.startswith('/*'):
                if not body.endswith('*/'):
                    raise _parse_error("comment ends before closing delimiter")
                continue
            tokens = _tokenize(body)
            if not tokens:
                raise _parse_error("missing value for command")

            head_kind, head = tokens[0]
            if head_kind == 'ident' and head == 'end':
                if len(tokens) > 1:
                    raise _parse_error("unexpected tokens in {{end}}")
                return nodes, ('end', None)
            if head_kind == 'ident' and head == 'else':
                if len(tokens) == 1:
                    return nodes, ('else', None)
                if tokens[1] == ('ident', 'if'):
                    return nodes, ('else if', tokens[2:])
                raise _parse_error("unexpected tokens in {{else}}")
            if head_kind == 'ident' and head == 'if':
                nodes.append(self._parse_if(tokens[1:]))
                continue
            if head_kind == 'ident' and head in _UNSUPPORTED_ACTIONS:
                raise _parse_error(f"unsupported action {head}")

            nodes.append(_Action(_parse_pipeline(tokens)))
        return nodes, None

    def _parse_if(self, cond_tokens) -> _If:
        node = _If()
        cond = self._condition(cond_tokens)
        while True:
            body, stop = self._parse_nodes()
            node.branches.append((cond, body))
            if stop is None:
                raise _parse_error("unexpected EOF, missing {{end}}")
            if stop[0] == 'end':
                return node
            if stop[0] == 'else if':
                cond = self._condition(stop[1])
                continue
            node.else_body, stop = self._parse_nodes()
            if stop is None or stop[0] != 'end':
                raise _parse_error("expected {{end}} after {{else}}")
            return node

    def _condition(self, tokens) -> _Pipeline:
        if not tokens:
            raise _parse_error("missing value for if")
        return _parse_pipeline(tokens)


def _parse_pipeline(tokens: List[Tuple[str, str]]) -> _Pipeline:
    pipeline, pos = _parse_commands(tokens, 0)
    if pos != len(tokens):
        raise _parse_error(f"unexpected {tokens[pos][1]!r}")
    return pipeline


def _parse_commands(tokens, pos) -> Tuple[_Pipeline, int]:
    commands: List[List[Any]] = []
    current: List[Any] = []
    while pos < len(tokens) and tokens[pos][0] != 'rparen':
        kind, value = tokens[pos]
        pos += 1
        if kind == 'pipe':
            if not current:
                raise _parse_error("missing command before |")
            commands.append(current)
            current = []
        elif kind == 'lparen':
            inner, pos = _parse_commands(tokens, pos)
            if pos >= len(tokens):
                raise _parse_error("unclosed left paren")
            if not inner.commands:
                raise _parse_error("missing value in parentheses")
            pos += 1
            current.append(inner)
        else:
            current.append(_operand(kind, value))
    if current:
        commands.append(current)
    elif commands:
        raise _parse_error("missing command after |")
    return _Pipeline(commands), pos


def _operand(kind: str, value: str):
    if kind == 'field':
        return _Field(value[1:].split('.'))
    if kind == 'dot':
        return _Field([])
    if kind == 'number':
        return _Literal(int(value))
    if kind == 'raw':
        return _Literal(value[1:-1])
    if kind == 'string':
        try:
            return _Literal(json.loads(value))
        except ValueError:
            raise _parse_error(f"invalid string literal {value}")
    if value in ('true', 'false'):
        return _Literal(value == 'true')
    if value == 'nil':
        return _Literal(None)
    if value not in FUNCTIONS:
        raise _parse_error(f'function "{value}" not defined')
    return _Function(value)


_NO_ARGUMENT = object()


class Template:
    """A parsed template, renderable against any number of environments."""

    def __init__(self, text: str):
        self.text = text
        self.nodes = _Parser(text).parse()

    def render(self, env: Mapping[str, Any]) -> str:
        out: List[str] = []
        self._render_nodes(self.nodes, env, out)
        return "".join(out)

    def _render_nodes(self, nodes: List[Node], env, out: List[str]):
        for node in nodes:
            if isinstance(node, str):
                out.append(node)
            elif isinstance(node, _Action):
                out.append(_text(self._eval_pipeline(node.pipeline, env)))
            else:
                for cond, body in node.branches:
                    if _is_truthy(self._eval_pipeline(cond, env)):
                        self._render_nodes(body, env, out)
                        break
                else:
                    self._render_nodes(node.else_body, env, out)

    def _eval_pipeline(self, pipeline: _Pipeline, env):
        value = _NO_ARGUMENT
        for command in pipeline.commands:
            value = self._eval_command(command, env, value)
        return value

    def _eval_command(self, command: List[Any], env, piped):
        first = command[0]
        if isinstance(first, _Function):
            args = [self._eval_operand(arg, env) for arg in command[1:]]
            if piped is not _NO_ARGUMENT:
                args.append(piped)
            return self._call(first.name, args)
        if len(command) > 1 or piped is not _NO_ARGUMENT:
            raise _render_error(f"can't give argument to non-function {command[0]}")
        return self._eval_operand(first, env)

    def _eval_operand(self, operand, env):
        if isinstance(operand, _Literal):
            return operand.value
        if isinstance(operand, _Function):
            return self._call(operand.name, [])
        if isinstance(operand, _Pipeline):
            return self._eval_pipeline(operand, env)

        value = env
        for name in operand.path:
            if not isinstance(value, Mapping):
                raise _render_error(f"can't evaluate field {name} in type {type(value).__name__}")
            value = value.get(name, "")
        return value

    def _call(self, name: str, args: List[Any]):
        function, arity, variadic = FUNCTIONS[name]
        if (variadic and len(args) < arity) or (not variadic and len(args) != arity):
            expected = f"at least {arity}" if variadic else str(arity)
            raise _render_error(f"wrong number of args for {name}: want {expected} got {len(args)}")
        try:
            return function(*args)
        except (TypeError, ValueError) as e:
            raise _render_error(f"error calling {name}: {e}") from e


def render(text: str, env: Mapping[str, Any]) -> str:
    """Parse and render a template in one go."""
    return Template(text).render(env)
