"""
User interaction callbacks.

Workflows talk to the user only through an Interaction: logging, input
requests, opening URLs and yes/no confirmation. The CLI provides a terminal
implementation; tests substitute an in-memory one.
"""

import logging
import sys
import webbrowser
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, TextIO

from drover.exceptions import DroverError


logger = logging.getLogger(__name__)

TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class LogLevel(Enum):
    FATAL = logging.CRITICAL
    ERROR = logging.ERROR
    WARN = logging.WARNING
    INFO = logging.INFO
    DEBUG = logging.DEBUG
    TRACE = TRACE

    @classmethod
    def parse(cls, name: str) -> 'LogLevel':
        """Case-insensitive lookup of one of the six level names."""
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"unknown log level: {name}") from None

    def __str__(self) -> str:
        return self.name.capitalize()


class InputType(Enum):
    TEXT = "text"
    SELECT = "select"


@dataclass
class InputRequest:
    name: str
    description: str = ""
    type: InputType = InputType.TEXT
    values: List[str] = field(default_factory=list)
    default_value: str = ""


class Interaction:
    """Interface between the engine and the user."""

    def log(self, level: LogLevel, message: str) -> None:
        raise NotImplementedError

    def request_input(self, requests: List[InputRequest]) -> Dict[str, str]:
        raise NotImplementedError

    def open_url(self, url: str) -> None:
        raise NotImplementedError

    def confirm(self, message: str) -> bool:
        raise NotImplementedError


class CliInteraction(Interaction):
    """Terminal interaction: prompts on a writer, answers read line by line from a reader."""

    def __init__(self, reader: Optional[TextIO] = None, writer: Optional[TextIO] = None,
                 verbose: bool = False):
        self.reader = reader or sys.stdin
        self.writer = writer or sys.stderr
        self.verbose = verbose

    def log(self, level: LogLevel, message: str) -> None:
        if not self.verbose and level in (LogLevel.DEBUG, LogLevel.TRACE):
            return
        logger.log(level.value, message)

    def request_input(self, requests: List[InputRequest]) -> Dict[str, str]:
        return {request.name: self._read_input(request) for request in requests}

    def open_url(self, url: str) -> None:
        logger.debug(f"Opening {url}")
        if not webbrowser.open(url):
            raise DroverError(f"could not open a browser for {url}")

    def confirm(self, message: str) -> bool:
        answer = self._prompt(f"{message} [y/N]: ")
        return answer.strip().lower() in ("y", "yes", "t", "true", "1")

    def _read_input(self, request: InputRequest) -> str:
        label = f"{request.description} [{request.name}]" if request.description else request.name

        if request.type == InputType.TEXT:
            if request.default_value:
                label = f"{label} ({request.default_value})"
            return self._prompt(f"{label}: ")

        for index, value in enumerate(request.values, 1):
            self.writer.write(f"  {index}) {value}\n")
        while True:
            answer = self._prompt(f"{label}: ", eof=None)
            if answer is None:
                return ""
            answer = answer.strip()
            if answer in request.values:
                return answer
            if answer.isdigit() and 1 <= int(answer) <= len(request.values):
                return request.values[int(answer) - 1]
            self.writer.write(f"Please choose one of 1-{len(request.values)}\n")

    def _prompt(self, text: str, eof: Optional[str] = "") -> Optional[str]:
        self.writer.write(text)
        self.writer.flush()
        line = self.reader.readline()
        if not line:
            return eof
        return line.rstrip("\r\n")
